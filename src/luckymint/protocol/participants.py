"""
luckymint/protocol/participants.py

Participant records and the ledger that stores them.
"""

import logging
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional, Tuple

from .numeric import ensure_u64
from .storage import RecordStore, StorageBackend

logger = logging.getLogger("luckymint.protocol.participants")


PARTICIPANTS_NAMESPACE = "participants"


@dataclass(eq=False)
class Participant:
    """Lifetime minting statistics for one participant."""
    participant_id: str
    last_mint_time: int = 0
    total_mints: int = 0
    best_probability: int = 0
    current_combo: int = 0
    best_combo: int = 0
    achievement_badges: List[str] = field(default_factory=list)

    def __post_init__(self):
        for name in ("last_mint_time", "total_mints", "best_probability",
                     "current_combo", "best_combo"):
            ensure_u64(getattr(self, name), name)
        # Drop duplicates but keep first-grant order for display
        self.achievement_badges = list(dict.fromkeys(self.achievement_badges))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Participant):
            return NotImplemented
        return (
            self.participant_id == other.participant_id
            and self._stats() == other._stats()
            and set(self.achievement_badges) == set(other.achievement_badges)
        )

    def _stats(self) -> Tuple[int, int, int, int, int]:
        return (
            self.last_mint_time,
            self.total_mints,
            self.best_probability,
            self.current_combo,
            self.best_combo,
        )

    @property
    def is_new(self) -> bool:
        return self.total_mints == 0

    def has_badge(self, badge_id: str) -> bool:
        return badge_id in self.achievement_badges

    def grant_badge(self, badge_id: str) -> bool:
        """Add a badge. Returns False if it was already held."""
        if self.has_badge(badge_id):
            return False
        self.achievement_badges.append(badge_id)
        return True

    def info(self) -> Tuple[int, int, int, int, int, Tuple[str, ...]]:
        """(last_mint_time, total_mints, best_probability, current_combo,
        best_combo, achievement_badges)"""
        return self._stats() + (tuple(self.achievement_badges),)

    def copy(self) -> "Participant":
        return Participant.from_dict(self.to_dict())

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Participant":
        return cls(**data)


class ParticipantLedger:
    """Durable store of Participant records keyed by participant id."""

    def __init__(self, backend: StorageBackend):
        self._store = RecordStore(PARTICIPANTS_NAMESPACE, backend)

    async def get(self, participant_id: str) -> Optional[Participant]:
        data = await self._store.get(participant_id)
        if data is None:
            return None
        return Participant.from_dict(data)

    async def get_or_create(self, participant_id: str) -> Participant:
        """
        Return the stored participant, or a zeroed record if there is none.

        A new record is not written here; it becomes durable when the
        engine commits that participant's first successful mint.
        """
        participant = await self.get(participant_id)
        if participant is None:
            logger.debug(f"New participant {participant_id}")
            participant = Participant(participant_id=participant_id)
        return participant

    async def put(self, participant: Participant) -> None:
        await self._store.put(participant.participant_id, participant)

    async def delete(self, participant_id: str) -> bool:
        return await self._store.delete(participant_id)

    async def exists(self, participant_id: str) -> bool:
        return await self._store.exists(participant_id)

    async def list_participant_ids(self) -> List[str]:
        return await self._store.list_keys()
