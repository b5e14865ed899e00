"""
Pool Registry

One PoolConfig and one PoolState per pool id. Configs are written by the
owner before the pool exists; states are created once when the pool manager
initializes the pool and are never removed.
"""

import copy
import logging
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from ..math.ticks import Q96, align_tick_to_spacing
from ..contracts.v4.pool_manager import PoolKey
from .errors import InvalidConfig, InvalidPool

logger = logging.getLogger(__name__)


def get_q96_percentage(percent: int) -> int:
    """
    Build a Q96 trigger fraction from a whole percentage.

    Example: get_q96_percentage(1) -> 1% of 2^96
    """
    return (2 ** 80 * percent // 100) * 2 ** 16


@dataclass
class PoolConfig:
    """
    Per-pool strategy parameters.

    Range and shift values are tick offsets; trigger fractions are Q96
    (2^96 = 100%).
    """
    position_range_lower: int
    position_range_upper: int
    shift_lower_distance: int
    shift_upper_distance: int
    il0_trigger_fraction: int
    il1_trigger_fraction: int
    reserve_token0: bool = True

    @property
    def is_configured(self) -> bool:
        return self.position_range_lower != 0 or self.position_range_upper != 0

    @property
    def width(self) -> int:
        return self.position_range_upper - self.position_range_lower

    def validate(self, tick_spacing: int):
        if not self.is_configured:
            raise InvalidConfig("Position range offsets are both zero")
        if self.position_range_lower >= self.position_range_upper:
            raise InvalidConfig(
                f"Range lower {self.position_range_lower} must be below upper {self.position_range_upper}"
            )
        if self.position_range_lower % tick_spacing or self.position_range_upper % tick_spacing:
            raise InvalidConfig(f"Range offsets must be multiples of tick spacing {tick_spacing}")
        if self.il0_trigger_fraction < 0 or self.il1_trigger_fraction < 0:
            raise InvalidConfig("Trigger fractions must be non-negative")


@dataclass
class Position:
    """Tick bounds of the managed position."""
    lower: int
    upper: int

    @property
    def width(self) -> int:
        return self.upper - self.lower

    def as_tuple(self) -> Tuple[int, int]:
        return self.lower, self.upper

    @classmethod
    def centered(cls, center: int, config: PoolConfig, tick_spacing: int) -> 'Position':
        """Bounds around `center` aligned down to the tick spacing."""
        aligned = align_tick_to_spacing(center, tick_spacing, round_down=True)
        return cls(
            lower=aligned + config.position_range_lower,
            upper=aligned + config.position_range_upper
        )


@dataclass
class PoolState:
    """Live strategy state of one pool."""
    currency0: str
    currency1: str
    fee: int
    tick_spacing: int
    hooks: str
    last_known_tick: int
    current_position: Position
    baseline_tick: int
    baseline_position: Position
    reserve_token0: bool = True
    reserve_amount: int = 0

    @property
    def reserve_currency(self) -> str:
        return self.currency0 if self.reserve_token0 else self.currency1

    def pool_key(self) -> PoolKey:
        return PoolKey(
            currency0=self.currency0,
            currency1=self.currency1,
            fee=self.fee,
            tick_spacing=self.tick_spacing,
            hooks=self.hooks
        )

    def reset_baseline(self, tick: int):
        """Record `tick` and the current bounds as the zero-IL reference."""
        self.baseline_tick = tick
        self.baseline_position = Position(self.current_position.lower, self.current_position.upper)


class PoolRegistry:
    """Store of configs, states and pool keys addressed by pool id."""

    def __init__(self):
        self._configs: Dict[bytes, PoolConfig] = {}
        self._states: Dict[bytes, PoolState] = {}
        self._keys: Dict[bytes, PoolKey] = {}

    def get_config(self, pool_id: bytes) -> Optional[PoolConfig]:
        return self._configs.get(pool_id)

    def set_config(self, pool_key: PoolKey, config: PoolConfig) -> bytes:
        """
        Validate and store the config for a pool key.

        Returns:
            Pool id
        """
        config.validate(pool_key.tick_spacing)
        pool_id = pool_key.get_pool_id()
        self._configs[pool_id] = copy.copy(config)
        self._keys[pool_id] = pool_key
        logger.info(
            f"[Registry] Config set for 0x{pool_id.hex()[:16]}...: "
            f"range=[{config.position_range_lower}, {config.position_range_upper}] "
            f"shift=[{config.shift_lower_distance}, {config.shift_upper_distance}]"
        )
        return pool_id

    def get_state(self, pool_id: bytes) -> Optional[PoolState]:
        return self._states.get(pool_id)

    def require_state(self, pool_id: bytes) -> PoolState:
        state = self._states.get(pool_id)
        if state is None:
            raise InvalidPool(f"Pool 0x{pool_id.hex()} is not initialized")
        return state

    def require_config(self, pool_id: bytes) -> PoolConfig:
        config = self._configs.get(pool_id)
        if config is None or not config.is_configured:
            raise InvalidPool(f"Pool 0x{pool_id.hex()} is not configured")
        return config

    def initialize_state(
        self,
        pool_id: bytes,
        currency0: str,
        currency1: str,
        fee: int,
        tick_spacing: int,
        hooks: str,
        initial_tick: int
    ) -> PoolState:
        """
        Create the pool state centred on initial_tick.

        Raises:
            InvalidPool: state already exists or the pool has no config
        """
        if pool_id in self._states:
            raise InvalidPool(f"Pool 0x{pool_id.hex()} already initialized")
        config = self.require_config(pool_id)

        position = Position.centered(initial_tick, config, tick_spacing)
        state = PoolState(
            currency0=currency0,
            currency1=currency1,
            fee=fee,
            tick_spacing=tick_spacing,
            hooks=hooks,
            last_known_tick=initial_tick,
            current_position=position,
            baseline_tick=initial_tick,
            baseline_position=Position(position.lower, position.upper),
            reserve_token0=config.reserve_token0,
        )
        self._states[pool_id] = state
        logger.info(
            f"[Registry] Pool 0x{pool_id.hex()[:16]}... initialized at tick {initial_tick}, "
            f"position=[{position.lower}, {position.upper}]"
        )
        return state

    def recover_pool_key(self, pool_id: bytes) -> Optional[PoolKey]:
        key = self._keys.get(pool_id)
        if key is None:
            state = self._states.get(pool_id)
            return state.pool_key() if state else None
        return key

    def snapshot(self) -> tuple:
        return copy.deepcopy((self._configs, self._states, self._keys))

    def restore(self, snapshot: tuple):
        self._configs, self._states, self._keys = copy.deepcopy(snapshot)


__all__ = [
    'Q96',
    'get_q96_percentage',
    'PoolConfig',
    'Position',
    'PoolState',
    'PoolRegistry',
]
