"""
luckymint/protocol/notifications.py

Append-only notification stream of completed mints.

The engine hands each committed MintRecord to a NotificationEmitter, which
keeps the ordered history and fans the record out to its sinks. Sinks are
fire-and-forget: a failing sink is logged and never undoes a committed mint.
"""

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

logger = logging.getLogger("luckymint.protocol.notifications")


# ============================================================================
# MINT RECORD
# ============================================================================

@dataclass(frozen=True)
class MintRecord:
    """Immutable record of one completed mint."""
    participant_id: str
    probability: int
    final_amount: int
    is_jackpot: bool
    combo: int
    timestamp: int
    # Detail fields
    round_id: str = ""
    sequence: int = 0
    base_amount: int = 0
    multiplier: int = 1
    lucky_hit: bool = False
    badges_granted: Tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["badges_granted"] = list(self.badges_granted)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MintRecord":
        data = dict(data)
        data["badges_granted"] = tuple(data.get("badges_granted", ()))
        return cls(**data)


# ============================================================================
# SINKS
# ============================================================================

class NotificationSink(ABC):
    """Destination for committed mint records."""

    @abstractmethod
    def append(self, record: MintRecord) -> None:
        pass


class MemoryNotificationSink(NotificationSink):
    """Keeps records in a list."""

    def __init__(self):
        self.records: List[MintRecord] = []

    def append(self, record: MintRecord) -> None:
        self.records.append(record)


class LoggingNotificationSink(NotificationSink):
    """Writes one log line per mint."""

    def __init__(self, log: logging.Logger = None, level: int = logging.INFO):
        self._log = log or logging.getLogger("luckymint.mints")
        self._level = level

    def append(self, record: MintRecord) -> None:
        flags = []
        if record.is_jackpot:
            flags.append("jackpot")
        if record.lucky_hit:
            flags.append("lucky")
        suffix = f" [{', '.join(flags)}]" if flags else ""
        self._log.log(
            self._level,
            f"Mint #{record.sequence} round={record.round_id} "
            f"participant={record.participant_id} p={record.probability} "
            f"amount={record.final_amount} combo={record.combo}{suffix}",
        )


class JsonLinesNotificationSink(NotificationSink):
    """Appends each record as one JSON line to a file."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def append(self, record: MintRecord) -> None:
        with open(self.path, "a", encoding="utf-8") as f:
            f.write(json.dumps(record.to_dict(), sort_keys=True) + "\n")

    def read_all(self) -> List[MintRecord]:
        if not self.path.exists():
            return []
        records = []
        with open(self.path, "r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if line:
                    records.append(MintRecord.from_dict(json.loads(line)))
        return records


# ============================================================================
# EMITTER
# ============================================================================

class NotificationEmitter:
    """
    Ordered, append-only history of mints with fan-out to sinks.

    Usage:
        emitter = NotificationEmitter([LoggingNotificationSink()])
        emitter.emit(record)
        recent = emitter.history(limit=10)
    """

    def __init__(
        self,
        sinks: Iterable[NotificationSink] = (),
        keep_history: bool = True,
        start_sequence: int = 1,
    ):
        self._sinks: List[NotificationSink] = list(sinks)
        self._keep_history = keep_history
        self._history: List[MintRecord] = []
        self._next_sequence = start_sequence
        self._sink_failures = 0

    def add_sink(self, sink: NotificationSink) -> None:
        self._sinks.append(sink)

    def restore(self, records: Iterable[MintRecord]) -> None:
        """Load previously emitted records into history without re-sending them."""
        for record in records:
            if self._keep_history:
                self._history.append(record)
            self._next_sequence = max(self._next_sequence, record.sequence + 1)

    def next_sequence(self) -> int:
        """Sequence number the next emitted record will carry."""
        return self._next_sequence

    def emit(self, record: MintRecord) -> None:
        if self._keep_history:
            self._history.append(record)
        self._next_sequence = max(self._next_sequence, record.sequence) + 1

        for sink in self._sinks:
            try:
                sink.append(record)
            except Exception as e:
                self._sink_failures += 1
                logger.error(
                    f"Notification sink {type(sink).__name__} failed for "
                    f"mint #{record.sequence}: {e}"
                )

    def history(self, limit: Optional[int] = None) -> List[MintRecord]:
        """Records in commit order; with limit, the most recent ones."""
        if limit is None:
            return list(self._history)
        if limit <= 0:
            return []
        return self._history[-limit:]

    @property
    def sink_failures(self) -> int:
        return self._sink_failures

    def __len__(self) -> int:
        return len(self._history)
