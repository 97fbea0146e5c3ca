"""
luckymint/tests/test_achievements.py

Tests for the achievement evaluator and badge catalogue.
"""

import pytest

from luckymint.config import EngineConfig
from luckymint.protocol.achievements import (
    PERFECT_ROLL,
    VETERAN_MINTER,
    COMBO_MASTER,
    BadgeCategory,
    evaluate_achievements,
    apply_achievements,
    get_badge_definition,
    list_all_badges,
)
from luckymint.protocol.participants import Participant


class TestBadgeCatalogue:
    """Test badge definitions."""

    def test_all_badges_listed(self):
        ids = [badge.badge_id for badge in list_all_badges()]
        assert ids == [PERFECT_ROLL, VETERAN_MINTER, COMBO_MASTER]

    def test_badge_names(self):
        """Test badge ids are the user-facing names."""
        assert PERFECT_ROLL == "Perfect Roll"
        assert VETERAN_MINTER == "Veteran Minter"
        assert COMBO_MASTER == "Combo Master"

    def test_definition(self):
        badge = get_badge_definition(COMBO_MASTER)
        assert badge.category == BadgeCategory.STREAK.value
        assert badge.to_dict()["badge_id"] == COMBO_MASTER

    def test_unknown_badge(self):
        assert get_badge_definition("Nope") is None


class TestEvaluateAchievements:
    """Test evaluate_achievements."""

    def test_nothing_earned(self):
        participant = Participant("alice", total_mints=1)
        assert evaluate_achievements(participant, 50) == []

    def test_perfect_roll(self):
        participant = Participant("alice", total_mints=1, current_combo=1)
        assert evaluate_achievements(participant, 100) == [PERFECT_ROLL]

    def test_ninety_nine_is_not_perfect(self):
        participant = Participant("alice", total_mints=1, current_combo=1)
        assert PERFECT_ROLL not in evaluate_achievements(participant, 99)

    def test_veteran_exactly_at_milestone(self):
        """Test the veteran badge only triggers on the 100th mint itself."""
        assert evaluate_achievements(Participant("a", total_mints=100), 10) == [VETERAN_MINTER]
        assert evaluate_achievements(Participant("a", total_mints=99), 10) == []
        assert evaluate_achievements(Participant("a", total_mints=101), 10) == []

    def test_combo_master(self):
        assert evaluate_achievements(Participant("a", current_combo=5), 85) == [COMBO_MASTER]
        assert evaluate_achievements(Participant("a", current_combo=9), 85) == [COMBO_MASTER]
        assert evaluate_achievements(Participant("a", current_combo=4), 85) == []

    def test_multiple_badges_in_one_mint(self):
        participant = Participant("alice", total_mints=5, current_combo=5)
        assert evaluate_achievements(participant, 100) == [PERFECT_ROLL, COMBO_MASTER]

    def test_held_badges_not_repeated(self):
        """Test re-evaluating a state that holds the badges yields nothing."""
        participant = Participant(
            "alice", current_combo=6, achievement_badges=[PERFECT_ROLL, COMBO_MASTER]
        )
        assert evaluate_achievements(participant, 100) == []

    def test_custom_config(self):
        config = EngineConfig(veteran_mint_count=3, combo_master_streak=2)
        participant = Participant("alice", total_mints=3, current_combo=2)
        assert evaluate_achievements(participant, 85, config) == [VETERAN_MINTER, COMBO_MASTER]


class TestApplyAchievements:
    """Test apply_achievements."""

    def test_grants_new_badges(self):
        participant = Participant("alice")
        granted = apply_achievements(participant, [PERFECT_ROLL])
        assert granted == [PERFECT_ROLL]
        assert participant.has_badge(PERFECT_ROLL)

    def test_skips_held_badges(self):
        participant = Participant("alice", achievement_badges=[PERFECT_ROLL])
        granted = apply_achievements(participant, [PERFECT_ROLL, COMBO_MASTER])
        assert granted == [COMBO_MASTER]
        assert participant.achievement_badges == [PERFECT_ROLL, COMBO_MASTER]
