"""
luckymint/protocol/gateway.py

Caller-facing boundary in front of the engine.

The mint fee is checked here, before any engine work: an underpaid request
never reaches the cooldown check, the random draw or the ledgers. The fee
is only validated; collecting it belongs to whatever payment system sits in
front of the gateway.
"""

import logging

from ..config import EngineConfig
from ..errors import InsufficientMintFee
from .engine import RewardEngine
from .notifications import MintRecord

logger = logging.getLogger("luckymint.protocol.gateway")


class MintGateway:
    """Validates mint requests and forwards them to the engine."""

    def __init__(self, engine: RewardEngine, config: EngineConfig = None):
        self.engine = engine
        self.config = config or engine.config

    @property
    def mint_fee(self) -> int:
        return self.config.mint_fee

    async def request_mint(self, participant_id: str, round_id: str, fee_paid: int) -> MintRecord:
        """
        Check the fee, then resolve the mint.

        Raises:
            InsufficientMintFee: If fee_paid is below the configured fee
            (plus everything RewardEngine.resolve_mint raises)
        """
        if fee_paid < self.mint_fee:
            logger.warning(
                f"Mint request from {participant_id} underpaid: {fee_paid} < {self.mint_fee}"
            )
            error = InsufficientMintFee(fee_paid, self.mint_fee)
            if self.engine.metrics is not None:
                self.engine.metrics.record_rejection(error.code)
            raise error

        return await self.engine.resolve_mint(participant_id, round_id)
