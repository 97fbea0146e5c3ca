"""
luckymint/protocol/achievements.py

Achievement badges for minting participants.

Badges are permanent, granted at most once per participant:
- Perfect Roll   - drew the maximum luck value
- Veteran Minter - reached exactly the veteran mint count
- Combo Master   - held a combo streak of the master length

The evaluator is a pure function over the participant's already-updated
statistics and the current draw. It reports what is newly earned; the engine
appends the result to the participant record.
"""

import logging
from dataclasses import dataclass, asdict
from enum import Enum
from typing import Any, Dict, List, Optional

from ..config import EngineConfig
from .participants import Participant

logger = logging.getLogger("luckymint.protocol.achievements")


# =============================================================================
# BADGE CONSTANTS
# =============================================================================

PERFECT_ROLL = "Perfect Roll"
VETERAN_MINTER = "Veteran Minter"
COMBO_MASTER = "Combo Master"


class BadgeCategory(Enum):
    """Categories of badges."""
    LUCK = "luck"           # Driven by a single draw
    LOYALTY = "loyalty"     # Driven by lifetime activity
    STREAK = "streak"       # Driven by consecutive high draws


class BadgeRarity(Enum):
    """Badge rarity levels."""
    COMMON = "common"
    UNCOMMON = "uncommon"
    RARE = "rare"
    EPIC = "epic"
    LEGENDARY = "legendary"


ACHIEVEMENTS = {
    PERFECT_ROLL: {
        "description": "Drew the maximum luck value",
        "category": BadgeCategory.LUCK,
        "rarity": BadgeRarity.RARE,
    },
    VETERAN_MINTER: {
        "description": "Completed exactly 100 mints",
        "category": BadgeCategory.LOYALTY,
        "rarity": BadgeRarity.EPIC,
    },
    COMBO_MASTER: {
        "description": "Reached a combo streak of 5 high draws",
        "category": BadgeCategory.STREAK,
        "rarity": BadgeRarity.LEGENDARY,
    },
}


@dataclass
class Badge:
    """A badge that can be earned."""
    badge_id: str
    description: str
    category: str           # BadgeCategory value
    rarity: str             # BadgeRarity value

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def get_badge_definition(badge_id: str) -> Optional[Badge]:
    """Get badge definition by ID."""
    info = ACHIEVEMENTS.get(badge_id)
    if info is None:
        return None
    return Badge(
        badge_id=badge_id,
        description=info["description"],
        category=info["category"].value,
        rarity=info["rarity"].value,
    )


def list_all_badges() -> List[Badge]:
    """List all available badge definitions."""
    return [get_badge_definition(badge_id) for badge_id in ACHIEVEMENTS]


# =============================================================================
# EVALUATOR
# =============================================================================

def evaluate_achievements(
    participant: Participant,
    probability: int,
    config: EngineConfig = None,
) -> List[str]:
    """
    Work out which badges the current mint newly earns.

    Args:
        participant: Participant after this mint's stat updates
        probability: Luck value drawn by this mint
        config: Engine tunables (defaults used if omitted)

    Returns:
        Badge ids not already held, in catalogue order. Re-running on a
        state that already holds them returns an empty list.
    """
    config = config or EngineConfig()
    earned: List[str] = []

    if probability == config.max_probability:
        earned.append(PERFECT_ROLL)

    # Exact equality: a veteran badge missed at the milestone is gone for good
    if participant.total_mints == config.veteran_mint_count:
        earned.append(VETERAN_MINTER)

    if participant.current_combo >= config.combo_master_streak:
        earned.append(COMBO_MASTER)

    return [badge_id for badge_id in earned if not participant.has_badge(badge_id)]


def apply_achievements(participant: Participant, badge_ids: List[str]) -> List[str]:
    """Grant badges to a participant, returning the ones actually added."""
    granted = [badge_id for badge_id in badge_ids if participant.grant_badge(badge_id)]
    for badge_id in granted:
        logger.info(f"Awarded achievement '{badge_id}' to {participant.participant_id}")
    return granted
