from .tokens import TokenLedger, ShareLedger, InsufficientBalanceError
