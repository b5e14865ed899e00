"""
Tests for PoolRegistry, PoolConfig and Position.
"""

import pytest

from zero_il.math.ticks import Q96
from zero_il.contracts.v4.pool_manager import PoolKey
from zero_il.strategy import (
    InvalidConfig,
    InvalidPool,
    PoolRegistry,
    Position,
    get_q96_percentage,
)

from conftest import TOKEN_A, TOKEN_B, STRATEGY_ADDRESS, make_config


@pytest.fixture
def key():
    return PoolKey.from_tokens(TOKEN_A, TOKEN_B, fee=0, tick_spacing=10, hooks=STRATEGY_ADDRESS)


@pytest.fixture
def registry():
    return PoolRegistry()


def init_state(registry, key, tick=0):
    return registry.initialize_state(
        key.get_pool_id(), key.currency0, key.currency1, key.fee, key.tick_spacing, key.hooks, tick
    )


class TestQ96Percentage:

    def test_hundred_percent_is_q96(self):
        assert get_q96_percentage(100) == Q96

    def test_one_percent(self):
        assert get_q96_percentage(1) == (2 ** 80 // 100) * 2 ** 16
        assert get_q96_percentage(1) == pytest.approx(Q96 / 100, rel=1e-12)


class TestPoolConfigValidation:

    def test_all_zero_range_rejected(self, registry, key):
        with pytest.raises(InvalidConfig):
            registry.set_config(key, make_config(position_range_lower=0, position_range_upper=0))

    def test_inverted_range_rejected(self, registry, key):
        with pytest.raises(InvalidConfig):
            registry.set_config(key, make_config(position_range_lower=100, position_range_upper=-100))

    def test_misaligned_range_rejected(self, registry, key):
        with pytest.raises(InvalidConfig):
            registry.set_config(key, make_config(position_range_lower=-105))

    def test_negative_trigger_rejected(self, registry, key):
        with pytest.raises(InvalidConfig):
            registry.set_config(key, make_config(trigger=-1))

    def test_one_sided_range_allowed(self, registry, key):
        registry.set_config(key, make_config(position_range_lower=0, position_range_upper=100))
        assert registry.get_config(key.get_pool_id()).width == 100


class TestInitializeState:

    def test_requires_config(self, registry, key):
        with pytest.raises(InvalidPool):
            init_state(registry, key)

    def test_state_centred_on_initial_tick(self, registry, key):
        registry.set_config(key, make_config())
        state = init_state(registry, key, tick=0)

        assert state.current_position == Position(-100, 100)
        assert state.baseline_position == Position(-100, 100)
        assert state.baseline_tick == 0
        assert state.last_known_tick == 0
        assert state.reserve_amount == 0
        assert state.reserve_token0 is True

    def test_misaligned_initial_tick_is_aligned_down(self, registry, key):
        registry.set_config(key, make_config())
        state = init_state(registry, key, tick=-7)
        assert state.current_position == Position(-110, 90)

    def test_reserve_side_from_config(self, registry, key):
        registry.set_config(key, make_config(reserve_token0=False))
        state = init_state(registry, key)
        assert state.reserve_currency == key.currency1

    def test_twice_rejected(self, registry, key):
        registry.set_config(key, make_config())
        init_state(registry, key)
        with pytest.raises(InvalidPool):
            init_state(registry, key)

    def test_require_state_unknown_pool(self, registry):
        with pytest.raises(InvalidPool):
            registry.require_state(b"\x01" * 32)


class TestPoolKeyRecovery:

    def test_recover_pool_key(self, registry, key):
        pool_id = registry.set_config(key, make_config())
        assert registry.recover_pool_key(pool_id) == key
        assert registry.recover_pool_key(pool_id).get_pool_id() == pool_id

    def test_state_rebuilds_key(self, registry, key):
        registry.set_config(key, make_config())
        state = init_state(registry, key)
        assert state.pool_key().get_pool_id() == key.get_pool_id()

    def test_unknown_pool(self, registry):
        assert registry.recover_pool_key(b"\x02" * 32) is None


class TestSnapshot:

    def test_restore_discards_changes(self, registry, key):
        registry.set_config(key, make_config())
        state = init_state(registry, key)
        snapshot = registry.snapshot()

        state.current_position = Position(-500, -300)
        state.reserve_amount = 123

        registry.restore(snapshot)
        restored = registry.require_state(key.get_pool_id())
        assert restored.current_position == Position(-100, 100)
        assert restored.reserve_amount == 0
