"""Collaborator interfaces the vault core talks to, plus gas budgeting."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional, Protocol

from metric_vault.errors import BudgetExhausted
from metric_vault.onchain.calldata import decode_amount_out


@dataclass
class CallResult:
    success: bool
    return_data: bytes = b""
    error_data: bytes = b""
    gas_used: int = 0

    @classmethod
    def ok(cls, return_data: bytes = b"", gas_used: int = 0) -> "CallResult":
        return cls(success=True, return_data=bytes(return_data), gas_used=gas_used)

    @classmethod
    def fail(cls, error_data: bytes = b"", gas_used: int = 0) -> "CallResult":
        return cls(success=False, error_data=bytes(error_data), gas_used=gas_used)

    def trailing_word(self) -> Optional[int]:
        return decode_amount_out(self.return_data if self.success else self.error_data)


class GasBudget:
    """Explicit remaining-gas budget threaded through external calls.

    ``split()`` hands half of what is left to the next call, the way a
    contract forwards ``gas_left() / 2``. Falling below ``min_call_gas``
    raises BudgetExhausted, which aborts the whole top-level operation.
    """

    def __init__(self, remaining: int, min_call_gas: int = 21_000) -> None:
        if remaining < 0:
            raise ValueError("Gas budget cannot be negative")
        self.remaining = remaining
        self.min_call_gas = min_call_gas

    def __repr__(self) -> str:
        return f"GasBudget(remaining={self.remaining})"

    def split(self) -> int:
        allowance = self.remaining // 2
        if allowance < self.min_call_gas:
            raise BudgetExhausted(
                f"Gas budget exhausted: {self.remaining} left, need {self.min_call_gas * 2}"
            )
        return allowance

    def consume(self, used: int) -> None:
        if used > self.remaining:
            self.remaining = 0
            raise BudgetExhausted(f"Call used {used} gas, more than the remaining budget")
        self.remaining -= used


class LedgerGateway(Protocol):
    def mint(self, owner: str, amount: int) -> None: ...

    def burn(self, owner: str, amount: int) -> None: ...

    def total_supply(self) -> int: ...

    def balance_of(self, owner: str) -> int: ...


class TokenGateway(Protocol):
    """ERC-20 view of one asset. Failures raise CallError."""

    address: str

    def balance_of(self, owner: str, gas: int) -> int: ...

    def transfer(self, to: str, amount: int, gas: int) -> bool: ...

    def transfer_from(self, src: str, dst: str, amount: int, gas: int) -> bool: ...

    def approve(self, spender: str, amount: int, gas: int) -> bool: ...


class ExternalCallGateway(Protocol):
    def invoke(self, target: str, payload: bytes, gas: int) -> CallResult: ...


TokenFactory = Callable[[str], TokenGateway]
