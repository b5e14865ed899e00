"""
Strategy errors.

Every error aborts the whole top-level call; the unit of work restores
registry, shares and pool manager before the error reaches the caller.
"""


class StrategyError(Exception):
    """Базовая ошибка стратегии."""
    pass


class InvalidConfig(StrategyError):
    """Owner supplied a degenerate pool config."""
    pass


class InvalidPool(StrategyError):
    """Pool is unconfigured, uninitialized or already initialized."""
    pass


class NativeValueMismatch(StrategyError):
    """Attached native value does not match the deposit."""
    def __init__(self, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(f"Native value mismatch: expected {expected}, got {actual}")


class InsufficientLiquidity(StrategyError):
    """Trade or liquidity move cannot be filled at the requested size."""
    pass


class UnknownAction(StrategyError):
    """Dispatch payload carries an unknown action tag."""
    def __init__(self, action: int):
        self.action = action
        super().__init__(f"Unknown action: {action}")


class NotOwner(StrategyError):
    """Owner-only operation called by another address."""
    pass


class NotPoolManager(StrategyError):
    """Callback invoked by someone other than the pool manager or outside its unlock window."""
    pass
