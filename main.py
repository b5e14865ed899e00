"""
Zero-IL Strategy Demo

Runs the strategy against an in-memory V4 pool:
- external LP adds 200,000e18 liquidity at [-100, 100]
- a user deposits through the strategy
- a trader swaps back and forth; the strategy re-centres and compensates IL
- the user withdraws

Usage:
    python main.py
    python main.py --swaps 50,-30,400 --deposit 1000
    python main.py --log-level DEBUG --log-file zero_il.log
"""

import argparse
import logging
import sys

from config import DEMO_TOKENS, StrategySettings, load_settings
from zero_il.math import Q96, to_wei, tick_to_price
from zero_il.contracts.tokens import TokenLedger
from zero_il.contracts.v4 import V4PoolManager, V4Router, PoolKey
from zero_il.contracts.v4.constants import v4_fee_to_percent
from zero_il.strategy import PoolConfig, ZeroILStrategy, StrategyError, get_q96_percentage

logger = logging.getLogger(__name__)

LP_ADDRESS = "0x00000000000000000000000000000000000000A1"
USER_ADDRESS = "0x00000000000000000000000000000000000000B2"
TRADER_ADDRESS = "0x00000000000000000000000000000000000000C3"

EXTERNAL_LIQUIDITY = 200_000 * 10 ** 18
FAUCET_AMOUNT = 100_000 * 10 ** 18


def setup_logging(settings: StrategySettings):
    handlers = [logging.StreamHandler()]
    if settings.log_file:
        handlers.append(logging.FileHandler(settings.log_file, encoding="utf-8"))

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        handlers=handlers
    )


def build_pool_config(settings: StrategySettings) -> PoolConfig:
    template = settings.pool
    return PoolConfig(
        position_range_lower=template.position_range_lower,
        position_range_upper=template.position_range_upper,
        shift_lower_distance=template.shift_lower_distance,
        shift_upper_distance=template.shift_upper_distance,
        il0_trigger_fraction=get_q96_percentage(template.il0_trigger_percent),
        il1_trigger_fraction=get_q96_percentage(template.il1_trigger_percent),
        reserve_token0=template.reserve_token0,
    )


def print_state(strategy: ZeroILStrategy, pool_manager: V4PoolManager, pool_id: bytes):
    state = strategy.get_state(pool_id)
    pool = pool_manager.get_pool_state_by_id(pool_id)
    il = strategy.compute_current_il(pool_id)

    print("-" * 70)
    print(f"Pool tick:          {pool.tick} (price {tick_to_price(pool.tick):.6f})")
    print(f"Position:           [{state.current_position.lower}, {state.current_position.upper}]")
    print(f"Position liquidity: {strategy.position_liquidity(pool_id)}")
    print(f"Baseline:           tick {state.baseline_tick} "
          f"[{state.baseline_position.lower}, {state.baseline_position.upper}]")
    print(f"Reserve (token{0 if state.reserve_token0 else 1}): {state.reserve_amount}")
    print(f"IL:                 il0={il.il0} ({il.il0_fraction * 100 / Q96:.4f}%) "
          f"il1={il.il1} ({il.il1_fraction * 100 / Q96:.4f}%)")
    print(f"Total shares:       {strategy.total_shares(pool_id)}")
    print("-" * 70)


def run_demo(settings: StrategySettings, swaps: list, deposit: int, prefund: int) -> int:
    tokens = TokenLedger()
    pool_manager = V4PoolManager(tokens)
    router = V4Router(pool_manager)
    strategy = ZeroILStrategy(
        settings.strategy_address,
        settings.owner,
        pool_manager,
        max_slippage_pips=settings.max_slippage_pips
    )
    pool_manager.register_hooks(strategy)

    key = PoolKey.from_tokens(
        DEMO_TOKENS["TKA"].address,
        DEMO_TOKENS["TKB"].address,
        fee=settings.pool_fee,
        tick_spacing=settings.tick_spacing,
        hooks=strategy.address
    )

    for holder in (LP_ADDRESS, USER_ADDRESS, TRADER_ADDRESS):
        tokens.mint(key.currency0, holder, FAUCET_AMOUNT)
        tokens.mint(key.currency1, holder, FAUCET_AMOUNT)

    pool_id = strategy.set_config(key, build_pool_config(settings), sender=settings.owner)
    print(f"Pool fee {v4_fee_to_percent(key.fee)}%, tick spacing {key.tick_spacing}")
    pool_manager.initialize(key, Q96)

    delta = router.modify_liquidity(LP_ADDRESS, key, -100, 100, EXTERNAL_LIQUIDITY)
    print(f"External LP paid {-delta.amount0} token0 / {-delta.amount1} token1")

    shares = strategy.add_liquidity(pool_id, to_wei(deposit), to_wei(deposit), sender=USER_ADDRESS)
    print(f"User deposited {deposit} of each token, shares minted: {shares}")

    if prefund:
        # Claims of the non-reserve token fund compensations bought into the reserve
        state = strategy.get_state(pool_id)
        currency = key.currency1 if state.reserve_token0 else key.currency0
        router.mint_claims(USER_ADDRESS, strategy.address, currency, to_wei(prefund))

    print_state(strategy, pool_manager, pool_id)

    for amount in swaps:
        zero_for_one = amount > 0
        try:
            router.swap(TRADER_ADDRESS, key, zero_for_one, -to_wei(abs(amount)))
            print(f"\nSwap: sold {abs(amount)} token{0 if zero_for_one else 1}")
        except StrategyError as e:
            print(f"\nSwap of {amount} reverted: {e}")
        print_state(strategy, pool_manager, pool_id)

    amount0, amount1 = strategy.withdraw_liquidity(pool_id, shares, sender=USER_ADDRESS)
    print(f"\nUser withdrew all shares: {amount0} token0 / {amount1} token1")
    print(f"User balances: {tokens.balance_of(key.currency0, USER_ADDRESS)} / "
          f"{tokens.balance_of(key.currency1, USER_ADDRESS)}")
    return 0


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Zero-IL strategy demo on an in-memory V4 pool")
    parser.add_argument(
        "--swaps",
        default="50,-50,200,-400",
        help="Comma separated swap sizes in tokens; positive sells token0, negative sells token1"
    )
    parser.add_argument("--deposit", type=int, default=1000, help="User deposit of each token")
    parser.add_argument("--prefund", type=int, default=10, help="Claims pre-funded for compensations")
    parser.add_argument("--env-file", default=None, help="Path to .env file")
    parser.add_argument("--log-level", default=None, help="Override log level")
    parser.add_argument("--log-file", default=None, help="Also log to this file")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    """Главная функция."""
    args = parse_args(argv)
    settings = load_settings(args.env_file)
    if args.log_level:
        settings.log_level = args.log_level.upper()
    if args.log_file:
        settings.log_file = args.log_file
    setup_logging(settings)

    print("""
 ____                    ___ _
|_  /___ _ _ ___  ___   |_ _| |
 / // -_) '_/ _ \\|___|   | || |__
/___\\___|_| \\___/       |___|____|

    Zero-IL strategy for V4 pools
    """)

    swaps = [int(s) for s in args.swaps.split(",") if s.strip()]
    return run_demo(settings, swaps, args.deposit, args.prefund)


if __name__ == "__main__":
    sys.exit(main())
