"""
luckymint/config.py

Configuration constants and data classes for luckymint.
"""

import os
import logging
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger("luckymint.config")


# Supply issued per round (token units)
ROUND_MAX_SUPPLY = 10000

# Inclusive draw range for the luck value
MIN_PROBABILITY = 1
MAX_PROBABILITY = 100

# Combo streak parameters
COMBO_THRESHOLD = 80                # draws at/above extend the streak
MAX_COMBO_MULTIPLIER = 5            # multiplier cap, streak itself is uncapped

# Jackpot parameters
JACKPOT_THRESHOLD = 95              # draws at/above claim the pool
JACKPOT_CONTRIBUTION_DIVISOR = 10   # non-jackpot mints feed 1/10 of payout

# Exact lucky-number match doubles the payout
LUCKY_NUMBER_MULTIPLIER = 2

# Seconds a participant waits between mints
MINT_COOLDOWN = 60

# Minimum fee accepted at the caller-facing boundary
MINT_FEE = 100

# Achievement milestones
VETERAN_MINT_COUNT = 100
COMBO_MASTER_STREAK = 5

# Asset minted by default rounds
DEFAULT_ASSET_KIND = "LUCK"

# Unsigned 64-bit ceiling for all ledger arithmetic
U64_MAX = 2**64 - 1

# Local persistence
DEFAULT_DATA_DIR = Path.home() / ".luckymint"

# REST API defaults
DEFAULT_API_HOST = "127.0.0.1"
DEFAULT_API_PORT = 8480

ENV_PREFIX = "LUCKYMINT_"


def _env_int(name: str, default: int) -> int:
    """Read an integer environment variable, falling back to default."""
    raw = os.getenv(f"{ENV_PREFIX}{name}", "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{ENV_PREFIX}{name} must be an integer, got {raw!r}")


@dataclass(frozen=True)
class EngineConfig:
    """Tunables for the reward resolution engine."""
    round_max_supply: int = ROUND_MAX_SUPPLY
    min_probability: int = MIN_PROBABILITY
    max_probability: int = MAX_PROBABILITY
    combo_threshold: int = COMBO_THRESHOLD
    max_combo_multiplier: int = MAX_COMBO_MULTIPLIER
    jackpot_threshold: int = JACKPOT_THRESHOLD
    jackpot_contribution_divisor: int = JACKPOT_CONTRIBUTION_DIVISOR
    lucky_number_multiplier: int = LUCKY_NUMBER_MULTIPLIER
    mint_cooldown: int = MINT_COOLDOWN
    mint_fee: int = MINT_FEE
    veteran_mint_count: int = VETERAN_MINT_COUNT
    combo_master_streak: int = COMBO_MASTER_STREAK
    asset_kind: str = DEFAULT_ASSET_KIND

    @classmethod
    def from_env(cls, **overrides: Any) -> "EngineConfig":
        """
        Build a config from LUCKYMINT_* environment variables.

        Explicit keyword overrides win over the environment.
        """
        values: Dict[str, Any] = {
            "round_max_supply": _env_int("ROUND_MAX_SUPPLY", ROUND_MAX_SUPPLY),
            "mint_cooldown": _env_int("MINT_COOLDOWN", MINT_COOLDOWN),
            "mint_fee": _env_int("MINT_FEE", MINT_FEE),
        }
        asset_kind = os.getenv(f"{ENV_PREFIX}ASSET_KIND", "").strip()
        if asset_kind:
            values["asset_kind"] = asset_kind
        values.update({k: v for k, v in overrides.items() if v is not None})

        config = cls(**values)
        config.validate()
        return config

    def validate(self) -> None:
        """Raise ValueError if the tunables are inconsistent."""
        if not 1 <= self.min_probability <= self.max_probability <= 100:
            raise ValueError(
                f"Probability range must sit inside 1..100, "
                f"got {self.min_probability}..{self.max_probability}"
            )
        if not 0 < self.round_max_supply <= U64_MAX:
            raise ValueError(f"round_max_supply out of range: {self.round_max_supply}")
        if not self.min_probability <= self.combo_threshold <= self.max_probability:
            raise ValueError(f"combo_threshold outside draw range: {self.combo_threshold}")
        if not self.combo_threshold <= self.jackpot_threshold <= self.max_probability:
            raise ValueError(
                f"jackpot_threshold must be between combo_threshold and "
                f"max_probability, got {self.jackpot_threshold}"
            )
        if self.max_combo_multiplier < 1:
            raise ValueError("max_combo_multiplier must be at least 1")
        if self.jackpot_contribution_divisor < 1:
            raise ValueError("jackpot_contribution_divisor must be at least 1")
        if self.lucky_number_multiplier < 1:
            raise ValueError("lucky_number_multiplier must be at least 1")
        if self.mint_cooldown < 0 or self.mint_fee < 0:
            raise ValueError("mint_cooldown and mint_fee cannot be negative")
        if not self.asset_kind:
            raise ValueError("asset_kind cannot be empty")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def get_data_dir(override: Optional[str] = None) -> Path:
    """Resolve the local data directory (override, env, then default)."""
    if override:
        return Path(override).expanduser()
    env_dir = os.getenv(f"{ENV_PREFIX}DATA_DIR", "").strip()
    if env_dir:
        return Path(env_dir).expanduser()
    return DEFAULT_DATA_DIR
