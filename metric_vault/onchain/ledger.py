"""In-memory share ledger with ERC-20 style mint/burn accounting."""
from __future__ import annotations

import logging
from typing import Dict

from metric_vault.core.numeric import checked_add, checked_sub, check_uint256
from metric_vault.errors import InsufficientShares

logger = logging.getLogger(__name__)


class ShareLedger:
    NAME = "Erc20"
    SYMBOL = "Metric"
    DECIMALS = 18

    def __init__(self) -> None:
        self._balances: Dict[str, int] = {}
        self._total_supply = 0

    @staticmethod
    def _key(owner: str) -> str:
        return owner.lower()

    def balance_of(self, owner: str) -> int:
        return self._balances.get(self._key(owner), 0)

    def total_supply(self) -> int:
        return self._total_supply

    def mint(self, owner: str, amount: int) -> None:
        check_uint256(amount, "amount")
        new_supply = checked_add(self._total_supply, amount)
        new_balance = checked_add(self.balance_of(owner), amount)
        self._total_supply = new_supply
        self._balances[self._key(owner)] = new_balance
        logger.debug("Minted %s shares to %s", amount, owner)

    def burn(self, owner: str, amount: int) -> None:
        check_uint256(amount, "amount")
        balance = self.balance_of(owner)
        if amount > balance:
            raise InsufficientShares(owner, balance, amount)
        remaining = checked_sub(balance, amount)
        self._total_supply = checked_sub(self._total_supply, amount)
        if remaining:
            self._balances[self._key(owner)] = remaining
        else:
            self._balances.pop(self._key(owner), None)
        logger.debug("Burned %s shares from %s", amount, owner)
