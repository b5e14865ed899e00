"""
Shared fixtures for all tests.
"""

import pytest

from zero_il.math.ticks import Q96
from zero_il.contracts.tokens import TokenLedger
from zero_il.contracts.v4.pool_manager import V4PoolManager, PoolKey
from zero_il.contracts.v4.router import V4Router
from zero_il.strategy import PoolConfig, ZeroILStrategy, get_q96_percentage


TOKEN_A = "0x1111111111111111111111111111111111111111"
TOKEN_B = "0x9999999999999999999999999999999999999999"

OWNER = "0x0000000000000000000000000000000000000B0B"
STRATEGY_ADDRESS = "0x0000000000000000000000000000000000004444"
LP = "0x00000000000000000000000000000000000000A1"
USER = "0x00000000000000000000000000000000000000B2"
TRADER = "0x00000000000000000000000000000000000000C3"

E18 = 10 ** 18
FAUCET_AMOUNT = 100_000 * E18
EXTERNAL_LIQUIDITY = 200_000 * E18
DEPOSIT = 1_000 * E18

# Amount paid for 200,000e18 liquidity at [-100, 100] from 1:1 price
EXTERNAL_DEPOSIT_COST = 997454414149819226701


def make_config(trigger=None, **overrides) -> PoolConfig:
    trigger = get_q96_percentage(1) if trigger is None else trigger
    values = dict(
        position_range_lower=-100,
        position_range_upper=100,
        shift_lower_distance=-50,
        shift_upper_distance=50,
        il0_trigger_fraction=trigger,
        il1_trigger_fraction=trigger,
    )
    values.update(overrides)
    return PoolConfig(**values)


@pytest.fixture
def tokens():
    """Ledger with every actor funded with both tokens."""
    ledger = TokenLedger()
    for holder in (LP, USER, TRADER, OWNER):
        ledger.mint(TOKEN_A, holder, FAUCET_AMOUNT)
        ledger.mint(TOKEN_B, holder, FAUCET_AMOUNT)
    return ledger


@pytest.fixture
def pool_manager(tokens):
    return V4PoolManager(tokens)


@pytest.fixture
def router(pool_manager):
    return V4Router(pool_manager)


@pytest.fixture
def strategy(pool_manager):
    hooks = ZeroILStrategy(STRATEGY_ADDRESS, OWNER, pool_manager)
    pool_manager.register_hooks(hooks)
    return hooks


@pytest.fixture
def pool_key(strategy):
    return PoolKey.from_tokens(TOKEN_A, TOKEN_B, fee=0, tick_spacing=10, hooks=strategy.address)


@pytest.fixture
def config():
    return make_config()


@pytest.fixture
def initialized_pool(strategy, pool_manager, pool_key, config):
    """Configured pool initialized at 1:1 price; returns pool id."""
    pool_id = strategy.set_config(pool_key, config, sender=OWNER)
    pool_manager.initialize(pool_key, Q96)
    return pool_id


@pytest.fixture
def funded_pool(initialized_pool, strategy, router, pool_key):
    """External liquidity at [-100, 100] plus a 1,000/1,000 strategy deposit by USER."""
    router.modify_liquidity(LP, pool_key, -100, 100, EXTERNAL_LIQUIDITY)
    strategy.add_liquidity(initialized_pool, DEPOSIT, DEPOSIT, sender=USER)
    return initialized_pool
