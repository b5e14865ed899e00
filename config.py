"""
Configuration for the Zero-IL strategy demo

Значения по умолчанию для пула, стратегии и логирования.
Любое значение можно переопределить через .env / переменные окружения.
"""

import os
from dataclasses import dataclass, field
from typing import Dict

from dotenv import load_dotenv


@dataclass
class TokenConfig:
    """Конфигурация токена."""
    address: str
    symbol: str
    decimals: int


@dataclass
class PoolTemplate:
    """
    Default pool config values.

    Range and shift values are tick offsets from the position centre,
    triggers are whole percentages of the baseline amount.
    """
    position_range_lower: int = -100
    position_range_upper: int = 100
    shift_lower_distance: int = -50
    shift_upper_distance: int = 50
    il0_trigger_percent: int = 1
    il1_trigger_percent: int = 1
    reserve_token0: bool = True


@dataclass
class StrategySettings:
    """Runtime settings of the strategy."""
    owner: str = "0x0000000000000000000000000000000000000B0b"
    strategy_address: str = "0x0000000000000000000000000000000000004444"
    # Slippage in hundredths of a bip (1000 = 0.1%)
    max_slippage_pips: int = 1000
    # V4 LP fee (0 = no fee), tick spacing
    pool_fee: int = 0
    tick_spacing: int = 10
    log_level: str = "INFO"
    log_file: str = ""
    pool: PoolTemplate = field(default_factory=PoolTemplate)


# ============================================================
# DEMO TOKENS
# ============================================================

DEMO_TOKENS: Dict[str, TokenConfig] = {
    "TKA": TokenConfig(
        address="0x1111111111111111111111111111111111111111",
        symbol="TKA",
        decimals=18
    ),
    "TKB": TokenConfig(
        address="0x9999999999999999999999999999999999999999",
        symbol="TKB",
        decimals=18
    ),
}


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    return int(value) if value not in (None, "") else default


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value in (None, ""):
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def load_settings(env_file: str = None) -> StrategySettings:
    """
    Load settings from environment (.env supported).

    Variables:
        ZERO_IL_OWNER, ZERO_IL_STRATEGY_ADDRESS, ZERO_IL_MAX_SLIPPAGE_PIPS,
        ZERO_IL_POOL_FEE, ZERO_IL_TICK_SPACING, ZERO_IL_LOG_LEVEL,
        ZERO_IL_LOG_FILE, ZERO_IL_RANGE_LOWER, ZERO_IL_RANGE_UPPER,
        ZERO_IL_SHIFT_LOWER, ZERO_IL_SHIFT_UPPER, ZERO_IL_IL0_TRIGGER,
        ZERO_IL_IL1_TRIGGER, ZERO_IL_RESERVE_TOKEN0
    """
    load_dotenv(env_file)

    defaults = StrategySettings()
    template = PoolTemplate(
        position_range_lower=_env_int("ZERO_IL_RANGE_LOWER", defaults.pool.position_range_lower),
        position_range_upper=_env_int("ZERO_IL_RANGE_UPPER", defaults.pool.position_range_upper),
        shift_lower_distance=_env_int("ZERO_IL_SHIFT_LOWER", defaults.pool.shift_lower_distance),
        shift_upper_distance=_env_int("ZERO_IL_SHIFT_UPPER", defaults.pool.shift_upper_distance),
        il0_trigger_percent=_env_int("ZERO_IL_IL0_TRIGGER", defaults.pool.il0_trigger_percent),
        il1_trigger_percent=_env_int("ZERO_IL_IL1_TRIGGER", defaults.pool.il1_trigger_percent),
        reserve_token0=_env_bool("ZERO_IL_RESERVE_TOKEN0", defaults.pool.reserve_token0),
    )

    return StrategySettings(
        owner=os.getenv("ZERO_IL_OWNER") or defaults.owner,
        strategy_address=os.getenv("ZERO_IL_STRATEGY_ADDRESS") or defaults.strategy_address,
        max_slippage_pips=_env_int("ZERO_IL_MAX_SLIPPAGE_PIPS", defaults.max_slippage_pips),
        pool_fee=_env_int("ZERO_IL_POOL_FEE", defaults.pool_fee),
        tick_spacing=_env_int("ZERO_IL_TICK_SPACING", defaults.tick_spacing),
        log_level=(os.getenv("ZERO_IL_LOG_LEVEL") or defaults.log_level).upper(),
        log_file=os.getenv("ZERO_IL_LOG_FILE") or defaults.log_file,
        pool=template,
    )
