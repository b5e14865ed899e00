"""
In-memory token ledgers.

- TokenLedger: ERC20-style balances per (token, holder); the zero address is
  the chain's native currency.
- ShareLedger: fungible LP share units per (pool_id, holder) with a total
  supply per pool.

Both expose snapshot()/restore() so a unit of work can roll them back.
"""

import copy
import logging
from collections import defaultdict
from typing import Dict, Tuple

from web3 import Web3

logger = logging.getLogger(__name__)


class InsufficientBalanceError(Exception):
    """Holder balance is lower than the amount being moved."""

    def __init__(self, holder: str, required: int, available: int, asset: str = ""):
        self.holder = holder
        self.required = required
        self.available = available
        self.asset = asset
        super().__init__(
            f"Insufficient balance of {asset or 'asset'} for {holder}: "
            f"required {required}, available {available}"
        )


def normalize_address(address: str) -> str:
    """Checksum an address so ledger keys do not depend on letter case."""
    return Web3.to_checksum_address(address)


class TokenLedger:
    """ERC20 balances for every token the simulation knows about."""

    def __init__(self):
        self._balances: Dict[Tuple[str, str], int] = defaultdict(int)

    def balance_of(self, token: str, holder: str) -> int:
        return self._balances.get((normalize_address(token), normalize_address(holder)), 0)

    def mint(self, token: str, to: str, amount: int):
        """Faucet: create `amount` of `token` for `to`."""
        if amount < 0:
            raise ValueError("Mint amount must be non-negative")
        self._balances[(normalize_address(token), normalize_address(to))] += amount

    def transfer(self, token: str, sender: str, recipient: str, amount: int):
        """Move `amount` of `token` from `sender` to `recipient`."""
        if amount < 0:
            raise ValueError("Transfer amount must be non-negative")

        token = normalize_address(token)
        sender = normalize_address(sender)
        recipient = normalize_address(recipient)

        available = self._balances.get((token, sender), 0)
        if available < amount:
            raise InsufficientBalanceError(sender, amount, available, token)

        self._balances[(token, sender)] = available - amount
        self._balances[(token, recipient)] += amount
        logger.debug(f"[Tokens] {token[:10]}... {sender[:10]}... -> {recipient[:10]}...: {amount}")

    def snapshot(self) -> dict:
        return copy.deepcopy(dict(self._balances))

    def restore(self, snapshot: dict):
        self._balances = defaultdict(int, copy.deepcopy(snapshot))


class ShareLedger:
    """
    Fungible accounting of LP ownership per pool.

    Shares are minted/burned 1:1 with the liquidity units a holder
    contributes or removes.
    """

    def __init__(self):
        self._balances: Dict[Tuple[bytes, str], int] = defaultdict(int)
        self._total_supply: Dict[bytes, int] = defaultdict(int)

    def balance_of(self, pool_id: bytes, holder: str) -> int:
        return self._balances.get((pool_id, normalize_address(holder)), 0)

    def total_supply(self, pool_id: bytes) -> int:
        return self._total_supply.get(pool_id, 0)

    def mint(self, pool_id: bytes, to: str, amount: int):
        if amount < 0:
            raise ValueError("Share amount must be non-negative")
        self._balances[(pool_id, normalize_address(to))] += amount
        self._total_supply[pool_id] += amount

    def burn(self, pool_id: bytes, holder: str, amount: int):
        holder = normalize_address(holder)
        available = self._balances.get((pool_id, holder), 0)
        if available < amount:
            raise InsufficientBalanceError(holder, amount, available, f"shares of 0x{pool_id.hex()}")
        self._balances[(pool_id, holder)] = available - amount
        self._total_supply[pool_id] -= amount

    def snapshot(self) -> tuple:
        return copy.deepcopy((dict(self._balances), dict(self._total_supply)))

    def restore(self, snapshot: tuple):
        balances, supply = copy.deepcopy(snapshot)
        self._balances = defaultdict(int, balances)
        self._total_supply = defaultdict(int, supply)
