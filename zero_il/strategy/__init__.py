from .errors import (
    StrategyError,
    InvalidConfig,
    InvalidPool,
    NativeValueMismatch,
    InsufficientLiquidity,
    UnknownAction,
    NotOwner,
    NotPoolManager,
)
from .registry import PoolConfig, PoolState, Position, PoolRegistry, get_q96_percentage
from .position_tracker import PositionTracker
from .il_accountant import ILAccountant, ILResult, Compensation
from .reserve_ledger import ReserveLedger, DepositAllocation, WithdrawalAllocation
from .swap_executor import SwapExecutor, SamePoolSwapExecutor
from .dispatcher import Action, AtomicDispatcher, DispatchStatus, SettlementResult
from .strategy import ZeroILStrategy
