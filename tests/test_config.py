"""
luckymint/tests/test_config.py

Tests for engine configuration and environment lookups.
"""

import pytest
from pathlib import Path

from luckymint.config import (
    EngineConfig,
    get_data_dir,
    DEFAULT_DATA_DIR,
    ROUND_MAX_SUPPLY,
    MINT_COOLDOWN,
    MINT_FEE,
    DEFAULT_ASSET_KIND,
)


@pytest.fixture
def clean_env(monkeypatch):
    """Remove any LUCKYMINT_* variables from the environment."""
    for name in ("ROUND_MAX_SUPPLY", "MINT_COOLDOWN", "MINT_FEE", "ASSET_KIND", "DATA_DIR"):
        monkeypatch.delenv(f"LUCKYMINT_{name}", raising=False)
    return monkeypatch


class TestEngineConfig:
    """Test EngineConfig defaults and validation."""

    def test_defaults(self):
        """Test default tunables."""
        config = EngineConfig()
        assert config.round_max_supply == 10000
        assert config.min_probability == 1
        assert config.max_probability == 100
        assert config.combo_threshold == 80
        assert config.max_combo_multiplier == 5
        assert config.jackpot_threshold == 95
        assert config.jackpot_contribution_divisor == 10
        assert config.lucky_number_multiplier == 2
        assert config.veteran_mint_count == 100
        assert config.combo_master_streak == 5
        config.validate()

    def test_frozen(self):
        """Test config cannot be mutated."""
        config = EngineConfig()
        with pytest.raises(AttributeError):
            config.mint_fee = 0

    def test_invalid_probability_range(self):
        with pytest.raises(ValueError, match="Probability range"):
            EngineConfig(min_probability=50, max_probability=10).validate()

    def test_invalid_jackpot_threshold(self):
        """Test jackpot threshold below combo threshold is rejected."""
        with pytest.raises(ValueError, match="jackpot_threshold"):
            EngineConfig(jackpot_threshold=70).validate()

    def test_zero_supply_rejected(self):
        with pytest.raises(ValueError, match="round_max_supply"):
            EngineConfig(round_max_supply=0).validate()

    def test_negative_fee_rejected(self):
        with pytest.raises(ValueError):
            EngineConfig(mint_fee=-1).validate()

    def test_to_dict(self):
        data = EngineConfig().to_dict()
        assert data["round_max_supply"] == ROUND_MAX_SUPPLY
        assert data["asset_kind"] == DEFAULT_ASSET_KIND


class TestFromEnv:
    """Test EngineConfig.from_env."""

    def test_defaults_without_env(self, clean_env):
        config = EngineConfig.from_env()
        assert config.round_max_supply == ROUND_MAX_SUPPLY
        assert config.mint_cooldown == MINT_COOLDOWN
        assert config.mint_fee == MINT_FEE

    def test_reads_env(self, clean_env):
        """Test LUCKYMINT_* variables are applied."""
        clean_env.setenv("LUCKYMINT_ROUND_MAX_SUPPLY", "50000")
        clean_env.setenv("LUCKYMINT_MINT_COOLDOWN", "5")
        clean_env.setenv("LUCKYMINT_MINT_FEE", "250")
        clean_env.setenv("LUCKYMINT_ASSET_KIND", "GOLD")

        config = EngineConfig.from_env()
        assert config.round_max_supply == 50000
        assert config.mint_cooldown == 5
        assert config.mint_fee == 250
        assert config.asset_kind == "GOLD"

    def test_overrides_win(self, clean_env):
        """Test explicit overrides beat the environment, None is ignored."""
        clean_env.setenv("LUCKYMINT_MINT_FEE", "250")
        config = EngineConfig.from_env(mint_fee=10, mint_cooldown=None)
        assert config.mint_fee == 10
        assert config.mint_cooldown == MINT_COOLDOWN

    def test_bad_integer(self, clean_env):
        clean_env.setenv("LUCKYMINT_MINT_COOLDOWN", "soon")
        with pytest.raises(ValueError, match="LUCKYMINT_MINT_COOLDOWN"):
            EngineConfig.from_env()

    def test_invalid_values_rejected(self, clean_env):
        clean_env.setenv("LUCKYMINT_ROUND_MAX_SUPPLY", "0")
        with pytest.raises(ValueError):
            EngineConfig.from_env()


class TestDataDir:
    """Test data directory resolution."""

    def test_override(self, clean_env, tmp_path):
        assert get_data_dir(str(tmp_path)) == tmp_path

    def test_env(self, clean_env, tmp_path):
        clean_env.setenv("LUCKYMINT_DATA_DIR", str(tmp_path / "state"))
        assert get_data_dir() == tmp_path / "state"

    def test_default(self, clean_env):
        assert get_data_dir() == DEFAULT_DATA_DIR
        assert isinstance(get_data_dir(), Path)
