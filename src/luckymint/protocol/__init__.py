"""
luckymint/protocol/

Minting protocol: records, ledgers, payout rules and the resolution engine.
"""

from .numeric import ensure_u64, checked_add, checked_sub, checked_mul, floor_div
from .storage import StorageBackend, MemoryBackend, FileBackend, RecordStore, KeyedLock
from .randomness import (
    RandomSource,
    SecureRandomSource,
    SequenceRandomSource,
    RandomSourceExhausted,
    Clock,
    SystemClock,
    ManualClock,
)
from .rounds import Round, RoundLedger
from .participants import Participant, ParticipantLedger
from .achievements import (
    PERFECT_ROLL,
    VETERAN_MINTER,
    COMBO_MASTER,
    Badge,
    evaluate_achievements,
    apply_achievements,
    get_badge_definition,
    list_all_badges,
)
from .payout import PayoutBreakdown, compute_payout
from .notifications import (
    MintRecord,
    NotificationSink,
    MemoryNotificationSink,
    LoggingNotificationSink,
    JsonLinesNotificationSink,
    NotificationEmitter,
)
from .engine import RewardEngine
from .gateway import MintGateway

__all__ = [
    # Numeric
    "ensure_u64",
    "checked_add",
    "checked_sub",
    "checked_mul",
    "floor_div",
    # Storage
    "StorageBackend",
    "MemoryBackend",
    "FileBackend",
    "RecordStore",
    "KeyedLock",
    # Randomness
    "RandomSource",
    "SecureRandomSource",
    "SequenceRandomSource",
    "RandomSourceExhausted",
    "Clock",
    "SystemClock",
    "ManualClock",
    # Records
    "Round",
    "RoundLedger",
    "Participant",
    "ParticipantLedger",
    # Achievements
    "PERFECT_ROLL",
    "VETERAN_MINTER",
    "COMBO_MASTER",
    "Badge",
    "evaluate_achievements",
    "apply_achievements",
    "get_badge_definition",
    "list_all_badges",
    # Payout
    "PayoutBreakdown",
    "compute_payout",
    # Notifications
    "MintRecord",
    "NotificationSink",
    "MemoryNotificationSink",
    "LoggingNotificationSink",
    "JsonLinesNotificationSink",
    "NotificationEmitter",
    # Engine
    "RewardEngine",
    "MintGateway",
]
