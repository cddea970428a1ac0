"""In-memory token and router gateways for dry runs and local simulation."""
from __future__ import annotations

import logging
from typing import Dict, Iterable, Optional

from metric_vault.core.numeric import checked_add, checked_div, checked_mul, checked_sub
from metric_vault.errors import CallError
from metric_vault.onchain.calldata import decode_exact_input_single
from metric_vault.onchain.gateways import CallResult

logger = logging.getLogger(__name__)


class InMemoryToken:
    """ERC-20 balances and allowances held in dicts.

    ``caller`` is the account whose ``transfer``/``approve`` calls this
    gateway performs (the vault). Method names listed in ``fail_on`` raise
    CallError, which lets tests inject per-asset failures.
    """

    def __init__(
        self,
        address: str,
        caller: str,
        balances: Optional[Dict[str, int]] = None,
        fail_on: Iterable[str] = (),
    ) -> None:
        self.address = address
        self.caller = caller
        self.fail_on = set(fail_on)
        self._balances: Dict[str, int] = {}
        self._allowances: Dict[tuple[str, str], int] = {}
        self.calls: list[tuple[str, tuple]] = []
        for owner, amount in (balances or {}).items():
            self.mint(owner, amount)

    def __repr__(self) -> str:
        return f"InMemoryToken(address={self.address})"

    def _check(self, method: str, *args) -> None:
        self.calls.append((method, args))
        if method in self.fail_on:
            raise CallError(f"{method} reverted on {self.address}", b"\x08\xc3\x79\xa0")

    def mint(self, owner: str, amount: int) -> None:
        key = owner.lower()
        self._balances[key] = checked_add(self._balances.get(key, 0), amount)

    def balance(self, owner: str) -> int:
        return self._balances.get(owner.lower(), 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self._allowances.get((owner.lower(), spender.lower()), 0)

    def move(self, src: str, dst: str, amount: int) -> None:
        """Move balance between two holders without any allowance check."""
        available = self.balance(src)
        if amount > available:
            raise CallError(
                f"transfer amount {amount} exceeds balance {available} of {src}"
            )
        self._balances[src.lower()] = checked_sub(available, amount)
        self.mint(dst, amount)

    def balance_of(self, owner: str, gas: int) -> int:
        self._check("balance_of", owner)
        return self.balance(owner)

    def transfer(self, to: str, amount: int, gas: int) -> bool:
        self._check("transfer", to, amount)
        self.move(self.caller, to, amount)
        return True

    def transfer_from(self, src: str, dst: str, amount: int, gas: int) -> bool:
        self._check("transfer_from", src, dst, amount)
        if amount > self.balance(src):
            raise CallError(f"transfer amount {amount} exceeds balance of {src}")
        self.spend_allowance(src, self.caller, amount)
        self.move(src, dst, amount)
        return True

    def approve(self, spender: str, amount: int, gas: int) -> bool:
        self._check("approve", spender, amount)
        self._allowances[(self.caller.lower(), spender.lower())] = amount
        return True

    def set_allowance(self, owner: str, spender: str, amount: int) -> None:
        self._allowances[(owner.lower(), spender.lower())] = amount

    def spend_allowance(self, owner: str, spender: str, amount: int) -> None:
        allowed = self.allowance(owner, spender)
        if amount > allowed:
            raise CallError(f"allowance {allowed} below {amount} for {spender}")
        self._allowances[(owner.lower(), spender.lower())] = allowed - amount


class InMemoryTokenRegistry:
    """Token factory keyed by address; unknown addresses get an empty token."""

    def __init__(self, caller: str) -> None:
        self.caller = caller
        self._tokens: Dict[str, InMemoryToken] = {}

    def add(self, address: str, balances: Optional[Dict[str, int]] = None, fail_on: Iterable[str] = ()) -> InMemoryToken:
        token = InMemoryToken(address, self.caller, balances=balances, fail_on=fail_on)
        self._tokens[address.lower()] = token
        return token

    def __call__(self, address: str) -> InMemoryToken:
        token = self._tokens.get(address.lower())
        if token is None:
            token = self.add(address)
        return token


class InMemoryRouter:
    """Executes exactInputSingle calldata against an InMemoryTokenRegistry.

    Pulls ``amountIn`` of tokenIn from ``sender`` using its allowance and pays
    ``amountIn * num / den`` of tokenOut to the recipient. The response is a
    single uint256 word holding the amount out.
    """

    def __init__(
        self,
        address: str,
        tokens: InMemoryTokenRegistry,
        sender: str,
        rates: Optional[Dict[tuple[str, str], tuple[int, int]]] = None,
        failing_tokens: Iterable[str] = (),
        gas_per_swap: int = 120_000,
    ) -> None:
        self.address = address
        self.tokens = tokens
        self.sender = sender
        self.rates = {(a.lower(), b.lower()): r for (a, b), r in (rates or {}).items()}
        self.failing_tokens = {t.lower() for t in failing_tokens}
        self.gas_per_swap = gas_per_swap
        self.payloads: list[bytes] = []

    def invoke(self, target: str, payload: bytes, gas: int) -> CallResult:
        self.payloads.append(bytes(payload))
        if target.lower() != self.address.lower():
            return CallResult.fail(b"unknown target")
        try:
            _, request = decode_exact_input_single(payload)
        except ValueError as exc:
            logger.warning("Router rejected payload: %s", exc)
            return CallResult.fail(str(exc).encode())
        token_in = str(request.token_in)
        token_out = str(request.token_out)
        if token_in.lower() in self.failing_tokens:
            return CallResult.fail(b"STF", gas_used=self.gas_per_swap)
        num, den = self.rates.get((token_in.lower(), token_out.lower()), (1, 1))
        amount_out = checked_div(checked_mul(request.amount_in, num), den)
        if amount_out < request.amount_out_minimum:
            return CallResult.fail(b"Too little received", gas_used=self.gas_per_swap)
        source = self.tokens(token_in)
        sink = self.tokens(token_out)
        if source.balance(self.sender) < request.amount_in:
            return CallResult.fail(b"STF", gas_used=self.gas_per_swap)
        try:
            source.spend_allowance(self.sender, self.address, request.amount_in)
            source.move(self.sender, self.address, request.amount_in)
            sink.mint(str(request.recipient), amount_out)
        except CallError as exc:
            return CallResult.fail(exc.error_data or str(exc).encode(), gas_used=self.gas_per_swap)
        return CallResult.ok(amount_out.to_bytes(32, "big"), gas_used=self.gas_per_swap)
