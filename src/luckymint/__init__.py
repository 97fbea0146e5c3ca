"""
luckymint - Probability-driven reward minting

Mints tokens in capped rounds with:
- A per-participant cooldown between mints
- A uniform luck draw from 1..100 scaled into the payout
- Combo streaks for high draws, capped multiplier
- A jackpot pool fed by ordinary mints and claimed by top draws
- A per-round lucky number that doubles an exact match
- Achievement badges for milestones
- REST API and CLI for external integrations
- Prometheus metrics for monitoring

Usage:
    from luckymint import RewardEngine, MintGateway

    engine = RewardEngine.create()
    await engine.initialize_round("season-1")

    gateway = MintGateway(engine)
    record = await gateway.request_mint("alice", "season-1", fee_paid=100)

REST API Usage:
    from luckymint.api import MintAPI

    api = MintAPI(engine, host="0.0.0.0", port=8480)
    await api.start()

Metrics Usage:
    from luckymint.metrics import MetricsCollector

    metrics = MetricsCollector()
    engine = RewardEngine.create(metrics=metrics)
    prometheus_output = metrics.collect()
"""

__version__ = "1.0.0"

from .config import EngineConfig
from .errors import (
    MintError,
    RoundNotInitialized,
    RoundAlreadyExists,
    CooldownNotFinished,
    InsufficientMintFee,
    ExceedRoundMax,
    ArithmeticFault,
    AssetLedgerError,
)
from .protocol import (
    Round,
    Participant,
    MintRecord,
    RewardEngine,
    MintGateway,
    MemoryBackend,
    FileBackend,
    SequenceRandomSource,
    ManualClock,
)
from .blockchain import AssetLedger, StoreAssetLedger
from .metrics import MetricsCollector
from .api import MintAPI

__all__ = [
    "__version__",
    # Config
    "EngineConfig",
    # Errors
    "MintError",
    "RoundNotInitialized",
    "RoundAlreadyExists",
    "CooldownNotFinished",
    "InsufficientMintFee",
    "ExceedRoundMax",
    "ArithmeticFault",
    "AssetLedgerError",
    # Core
    "Round",
    "Participant",
    "MintRecord",
    "RewardEngine",
    "MintGateway",
    # Storage & determinism
    "MemoryBackend",
    "FileBackend",
    "SequenceRandomSource",
    "ManualClock",
    # Ledger
    "AssetLedger",
    "StoreAssetLedger",
    # Surfaces
    "MetricsCollector",
    "MintAPI",
]
