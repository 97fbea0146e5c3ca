"""
luckymint/protocol/rounds.py

Round records and the ledger that stores them.

A round is a bounded minting epoch: a fixed issuable supply, a jackpot pool
fed by ordinary mints, and one lucky number fixed when the round is created.
"""

import logging
from dataclasses import dataclass, asdict, replace
from typing import Any, Dict, List, Optional, Tuple

from ..errors import RoundAlreadyExists, RoundNotInitialized
from .numeric import ensure_u64
from .storage import RecordStore, StorageBackend

logger = logging.getLogger("luckymint.protocol.rounds")


ROUNDS_NAMESPACE = "rounds"


@dataclass
class Round:
    """Per-round minting state."""
    round_id: str
    asset_kind: str
    start_time: int
    max_supply: int
    remaining_supply: int
    lucky_number: int
    jackpot_pool: int = 0
    total_mints: int = 0

    def __post_init__(self):
        for name in ("start_time", "max_supply", "remaining_supply",
                     "lucky_number", "jackpot_pool", "total_mints"):
            ensure_u64(getattr(self, name), name)
        if self.remaining_supply > self.max_supply:
            raise ValueError(
                f"remaining_supply {self.remaining_supply} exceeds max_supply {self.max_supply}"
            )

    @property
    def issued_supply(self) -> int:
        return self.max_supply - self.remaining_supply

    @property
    def is_exhausted(self) -> bool:
        return self.remaining_supply == 0

    def info(self) -> Tuple[int, int, int, int, int]:
        """(start_time, remaining_supply, jackpot_pool, total_mints, lucky_number)"""
        return (
            self.start_time,
            self.remaining_supply,
            self.jackpot_pool,
            self.total_mints,
            self.lucky_number,
        )

    def copy(self) -> "Round":
        return replace(self)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Round":
        return cls(**data)


class RoundLedger:
    """
    Durable store of Round records keyed by round id.

    Only the engine writes through this ledger; it holds the round's lock
    around every read-modify-write.
    """

    def __init__(self, backend: StorageBackend):
        self._store = RecordStore(ROUNDS_NAMESPACE, backend)

    async def get(self, round_id: str) -> Optional[Round]:
        data = await self._store.get(round_id)
        if data is None:
            return None
        return Round.from_dict(data)

    async def require(self, round_id: str) -> Round:
        """Get a round or raise RoundNotInitialized."""
        round_state = await self.get(round_id)
        if round_state is None:
            raise RoundNotInitialized(round_id)
        return round_state

    async def create(self, round_state: Round) -> Round:
        """Persist a brand-new round; existing ids are never overwritten."""
        if await self._store.exists(round_state.round_id):
            raise RoundAlreadyExists(round_state.round_id)
        await self._store.put(round_state.round_id, round_state)
        logger.debug(f"Stored new round {round_state.round_id}")
        return round_state

    async def put(self, round_state: Round) -> None:
        await self._store.put(round_state.round_id, round_state)

    async def exists(self, round_id: str) -> bool:
        return await self._store.exists(round_id)

    async def list_round_ids(self) -> List[str]:
        return await self._store.list_keys()
