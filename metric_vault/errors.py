"""Exception types raised by the vault core."""
from __future__ import annotations


class VaultError(Exception):
    """Base class for every error raised by metric_vault."""


class DivisionByZero(VaultError, ZeroDivisionError):
    """Raised when a proportional split is requested against an empty supply."""


class ArithmeticOverflow(VaultError, OverflowError):
    """Raised when a uint256 computation would wrap or go negative."""


class LedgerError(VaultError):
    pass


class InsufficientShares(LedgerError):
    def __init__(self, owner: str, balance: int, requested: int) -> None:
        super().__init__(
            f"Insufficient shares for {owner}: balance={balance} requested={requested}"
        )
        self.owner = owner
        self.balance = balance
        self.requested = requested


class CallError(VaultError):
    """An external token or router call failed.

    ``error_data`` carries the raw revert payload (possibly empty).
    """

    def __init__(self, message: str, error_data: bytes = b"") -> None:
        super().__init__(message)
        self.error_data = bytes(error_data)


class BudgetExhausted(VaultError):
    """The gas budget for the current top-level operation ran out."""


class VaultNotInitialized(VaultError):
    pass


class DepositFailed(VaultError):
    pass


class ReentrantCall(VaultError):
    pass
