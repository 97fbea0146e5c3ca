"""
luckymint/tests/test_metrics.py

Unit tests for Prometheus metrics.
"""

import pytest

from luckymint.metrics import MetricsCollector
from luckymint.protocol.notifications import MintRecord
from luckymint.protocol.rounds import Round


def make_record(**kwargs):
    values = dict(
        participant_id="alice",
        probability=50,
        final_amount=4500,
        is_jackpot=False,
        combo=0,
        timestamp=1_700_000_000,
        round_id="r1",
        sequence=1,
    )
    values.update(kwargs)
    return MintRecord(**values)


@pytest.fixture
def metrics():
    return MetricsCollector()


class TestMetricsCollector:
    """Test MetricsCollector class."""

    def test_initial_stats(self, metrics):
        stats = metrics.get_stats()
        assert stats["mints"] == 0
        assert stats["tokens_minted"] == 0
        assert stats["average_probability"] == 0.0

    def test_records_mints(self, metrics):
        metrics.append(make_record())
        metrics.append(make_record(probability=100, final_amount=50050, is_jackpot=True,
                                   badges_granted=("Perfect Roll",)))
        stats = metrics.get_stats()

        assert stats["mints"] == 2
        assert stats["tokens_minted"] == 54550
        assert stats["jackpots"] == 1
        assert stats["badges_granted"] == {"Perfect Roll": 1}
        assert stats["average_probability"] == 75.0

    def test_records_lucky_hits(self, metrics):
        metrics.append(make_record(lucky_hit=True))
        assert metrics.get_stats()["lucky_hits"] == 1

    def test_records_rejections(self, metrics):
        metrics.record_rejection("COOLDOWN_NOT_FINISHED")
        metrics.record_rejection("COOLDOWN_NOT_FINISHED")
        metrics.record_rejection("EXCEED_ROUND_MAX")
        assert metrics.get_stats()["rejections"] == {
            "COOLDOWN_NOT_FINISHED": 2,
            "EXCEED_ROUND_MAX": 1,
        }

    def test_observe_round(self, metrics):
        metrics.observe_round(Round(
            round_id="r1", asset_kind="LUCK", start_time=0, max_supply=10000,
            remaining_supply=5500, lucky_number=7, jackpot_pool=500, total_mints=1,
        ))
        assert metrics.get_stats()["rounds"]["r1"] == {
            "remaining_supply": 5500,
            "jackpot_pool": 500,
            "total_mints": 1,
        }

    def test_reset_counters(self, metrics):
        metrics.append(make_record())
        metrics.record_rejection("EXCEED_ROUND_MAX")
        metrics.reset_counters()
        stats = metrics.get_stats()
        assert stats["mints"] == 0
        assert stats["rejections"] == {}


class TestPrometheusOutput:
    """Test Prometheus text rendering."""

    def test_headers_present(self, metrics):
        output = metrics.collect()
        assert "# HELP luckymint_mints_total" in output
        assert "# TYPE luckymint_mints_total counter" in output
        assert "# TYPE luckymint_round_remaining_supply gauge" in output
        assert "luckymint_uptime_seconds" in output

    def test_counter_values(self, metrics):
        metrics.append(make_record())
        output = metrics.collect()
        assert "luckymint_mints_total 1" in output
        assert "luckymint_tokens_minted_total 4500" in output

    def test_labels(self, metrics):
        metrics.record_rejection("EXCEED_ROUND_MAX")
        metrics.append(make_record(badges_granted=("Combo Master",)))
        output = metrics.collect()
        assert 'luckymint_mints_rejected_total{code="EXCEED_ROUND_MAX"} 1' in output
        assert 'luckymint_badges_granted_total{badge="Combo Master"} 1' in output

    def test_histogram(self, metrics):
        """Test draws land in cumulative buckets."""
        metrics.append(make_record(probability=50))
        metrics.append(make_record(probability=96))
        output = metrics.collect()
        assert 'luckymint_draw_probability_bucket{le="50"} 1' in output
        assert 'luckymint_draw_probability_bucket{le="100"} 2' in output
        assert 'luckymint_draw_probability_bucket{le="+Inf"} 2' in output
        assert "luckymint_draw_probability_sum 146" in output
        assert "luckymint_draw_probability_count 2" in output

    def test_histogram_omitted_without_draws(self, metrics):
        assert "luckymint_draw_probability_bucket" not in metrics.collect()
