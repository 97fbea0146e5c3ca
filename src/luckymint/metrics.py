"""
luckymint/metrics.py

Prometheus metrics collection for luckymint.

The collector is a notification sink: every committed mint updates its
counters. The engine also reports rejected mints and the latest state of
each round it touched.
"""

import time
import logging
from collections import defaultdict
from typing import Any, Dict, List, TYPE_CHECKING

from .protocol.notifications import MintRecord, NotificationSink

if TYPE_CHECKING:
    from .protocol.rounds import Round

logger = logging.getLogger("luckymint.metrics")


class MetricsCollector(NotificationSink):
    """
    Prometheus metrics collector for luckymint.

    Usage:
        metrics = MetricsCollector()
        engine = RewardEngine.create(metrics=metrics)

        # Get metrics in Prometheus format
        prometheus_output = metrics.collect()
    """

    METRICS = {
        "luckymint_mints_total": {
            "type": "counter",
            "help": "Total number of committed mints",
        },
        "luckymint_tokens_minted_total": {
            "type": "counter",
            "help": "Total tokens paid out across all rounds",
        },
        "luckymint_jackpots_total": {
            "type": "counter",
            "help": "Number of mints that claimed the jackpot pool",
        },
        "luckymint_lucky_hits_total": {
            "type": "counter",
            "help": "Number of mints that matched the round lucky number",
        },
        "luckymint_badges_granted_total": {
            "type": "counter",
            "help": "Achievement badges granted, by badge",
        },
        "luckymint_mints_rejected_total": {
            "type": "counter",
            "help": "Rejected mint requests, by error code",
        },
        "luckymint_round_remaining_supply": {
            "type": "gauge",
            "help": "Remaining mintable supply per round",
        },
        "luckymint_round_jackpot_pool": {
            "type": "gauge",
            "help": "Current jackpot pool per round",
        },
        "luckymint_round_mints": {
            "type": "gauge",
            "help": "Mints committed in each round",
        },
        "luckymint_draw_probability": {
            "type": "histogram",
            "help": "Distribution of drawn luck values",
            "buckets": [10, 20, 30, 40, 50, 60, 70, 80, 90, 95, 100],
        },
        "luckymint_uptime_seconds": {
            "type": "counter",
            "help": "Collector uptime in seconds",
        },
    }

    def __init__(self):
        self._start_time = time.time()
        self._draw_buckets = list(self.METRICS["luckymint_draw_probability"]["buckets"])
        self.reset_counters()

    def reset_counters(self) -> None:
        """Reset all counters and gauges."""
        self._mints = 0
        self._tokens_minted = 0
        self._jackpots = 0
        self._lucky_hits = 0
        self._badges: Dict[str, int] = defaultdict(int)
        self._rejections: Dict[str, int] = defaultdict(int)
        self._rounds: Dict[str, Dict[str, int]] = {}
        self._draw_counts = {b: 0 for b in self._draw_buckets}
        self._draw_counts[float("inf")] = 0
        self._draw_sum = 0
        self._draw_count = 0

    # ========== Recording ==========

    def append(self, record: MintRecord) -> None:
        """Record a committed mint."""
        self._mints += 1
        self._tokens_minted += record.final_amount
        if record.is_jackpot:
            self._jackpots += 1
        if record.lucky_hit:
            self._lucky_hits += 1
        for badge_id in record.badges_granted:
            self._badges[badge_id] += 1
        self._record_draw(record.probability)

    def _record_draw(self, probability: int) -> None:
        self._draw_sum += probability
        self._draw_count += 1
        for bucket in self._draw_buckets:
            if probability <= bucket:
                self._draw_counts[bucket] += 1
        self._draw_counts[float("inf")] += 1

    def record_rejection(self, code: str) -> None:
        """Record a rejected mint request."""
        self._rejections[code] += 1

    def observe_round(self, round_state: "Round") -> None:
        """Snapshot a round's gauges."""
        self._rounds[round_state.round_id] = {
            "remaining_supply": round_state.remaining_supply,
            "jackpot_pool": round_state.jackpot_pool,
            "total_mints": round_state.total_mints,
        }

    # ========== Output ==========

    def collect(self) -> str:
        """
        Collect all metrics and return in Prometheus format.

        Returns:
            Prometheus-formatted metrics string
        """
        lines: List[str] = []

        def add_header(name: str) -> None:
            metric_def = self.METRICS[name]
            lines.append(f"# HELP {name} {metric_def['help']}")
            lines.append(f"# TYPE {name} {metric_def['type']}")

        def add_metric(name: str, value: Any, labels: Dict[str, str] = None) -> None:
            if labels:
                label_str = ",".join(f'{k}="{v}"' for k, v in labels.items())
                lines.append(f"{name}{{{label_str}}} {value}")
            else:
                lines.append(f"{name} {value}")

        for name, value in (
            ("luckymint_mints_total", self._mints),
            ("luckymint_tokens_minted_total", self._tokens_minted),
            ("luckymint_jackpots_total", self._jackpots),
            ("luckymint_lucky_hits_total", self._lucky_hits),
        ):
            add_header(name)
            add_metric(name, value)

        add_header("luckymint_badges_granted_total")
        for badge_id, count in sorted(self._badges.items()):
            add_metric("luckymint_badges_granted_total", count, {"badge": badge_id})

        add_header("luckymint_mints_rejected_total")
        for code, count in sorted(self._rejections.items()):
            add_metric("luckymint_mints_rejected_total", count, {"code": code})

        for name, field_name in (
            ("luckymint_round_remaining_supply", "remaining_supply"),
            ("luckymint_round_jackpot_pool", "jackpot_pool"),
            ("luckymint_round_mints", "total_mints"),
        ):
            add_header(name)
            for round_id, gauges in sorted(self._rounds.items()):
                add_metric(name, gauges[field_name], {"round": round_id})

        if self._draw_count > 0:
            add_header("luckymint_draw_probability")
            for bucket in self._draw_buckets:
                add_metric(
                    "luckymint_draw_probability_bucket",
                    self._draw_counts[bucket],
                    {"le": str(bucket)},
                )
            add_metric(
                "luckymint_draw_probability_bucket",
                self._draw_counts[float("inf")],
                {"le": "+Inf"},
            )
            add_metric("luckymint_draw_probability_sum", self._draw_sum)
            add_metric("luckymint_draw_probability_count", self._draw_count)

        add_header("luckymint_uptime_seconds")
        add_metric("luckymint_uptime_seconds", round(time.time() - self._start_time, 3))

        return "\n".join(lines) + "\n"

    def get_stats(self) -> Dict[str, Any]:
        """Get metrics as a dictionary (for the JSON API)."""
        return {
            "mints": self._mints,
            "tokens_minted": self._tokens_minted,
            "jackpots": self._jackpots,
            "lucky_hits": self._lucky_hits,
            "badges_granted": dict(self._badges),
            "rejections": dict(self._rejections),
            "rounds": {k: dict(v) for k, v in self._rounds.items()},
            "average_probability": (
                self._draw_sum / self._draw_count if self._draw_count else 0.0
            ),
            "uptime_seconds": time.time() - self._start_time,
        }
