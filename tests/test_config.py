"""
Tests for config.py (load_settings) and the demo entry point.
"""

import os
from unittest.mock import patch

import pytest

from config import DEMO_TOKENS, PoolTemplate, StrategySettings, load_settings
from main import build_pool_config, main
from zero_il.strategy import get_q96_percentage


@pytest.fixture
def clean_env():
    """Environment without any ZERO_IL_* variables."""
    env = {k: v for k, v in os.environ.items() if not k.startswith("ZERO_IL_")}
    with patch.dict(os.environ, env, clear=True):
        yield


@pytest.fixture
def empty_env_file(tmp_path):
    path = tmp_path / ".env"
    path.write_text("")
    return str(path)


class TestLoadSettings:

    def test_defaults(self, clean_env, empty_env_file):
        settings = load_settings(empty_env_file)

        assert settings.max_slippage_pips == 1000
        assert settings.tick_spacing == 10
        assert settings.pool_fee == 0
        assert settings.log_level == "INFO"
        assert settings.pool == PoolTemplate()

    def test_env_file_overrides(self, clean_env, tmp_path):
        path = tmp_path / ".env"
        path.write_text(
            "ZERO_IL_MAX_SLIPPAGE_PIPS=500\n"
            "ZERO_IL_RANGE_LOWER=-200\n"
            "ZERO_IL_RANGE_UPPER=200\n"
            "ZERO_IL_IL0_TRIGGER=5\n"
            "ZERO_IL_RESERVE_TOKEN0=false\n"
            "ZERO_IL_LOG_LEVEL=debug\n"
        )

        settings = load_settings(str(path))

        assert settings.max_slippage_pips == 500
        assert settings.pool.position_range_lower == -200
        assert settings.pool.position_range_upper == 200
        assert settings.pool.il0_trigger_percent == 5
        assert settings.pool.il1_trigger_percent == 1
        assert settings.pool.reserve_token0 is False
        assert settings.log_level == "DEBUG"

    def test_environment_variable(self, clean_env, empty_env_file):
        os.environ["ZERO_IL_TICK_SPACING"] = "60"
        settings = load_settings(empty_env_file)
        assert settings.tick_spacing == 60

    def test_invalid_int(self, clean_env, empty_env_file):
        os.environ["ZERO_IL_POOL_FEE"] = "abc"
        with pytest.raises(ValueError):
            load_settings(empty_env_file)


class TestBuildPoolConfig:

    def test_percent_to_q96(self):
        config = build_pool_config(StrategySettings())

        assert config.il0_trigger_fraction == get_q96_percentage(1)
        assert config.position_range_lower == -100
        assert config.shift_upper_distance == 50
        assert config.reserve_token0 is True

    def test_demo_tokens_sorted(self):
        assert int(DEMO_TOKENS["TKA"].address, 16) < int(DEMO_TOKENS["TKB"].address, 16)


class TestDemo:

    def test_runs(self, clean_env, empty_env_file, capsys):
        assert main(["--swaps=50,-50", "--env-file", empty_env_file]) == 0

        out = capsys.readouterr().out
        assert "User withdrew all shares" in out
