"""Proportional withdrawal and rebalance passes over the vault's held assets."""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Optional, Sequence, TypeVar

from metric_vault.core.addresses import same_address
from metric_vault.core.numeric import check_uint256, compute_percentage, proportional_share
from metric_vault.errors import CallError, DivisionByZero, InsufficientShares
from metric_vault.onchain.calldata import (
    SwapRequest,
    SwapRouterVariant,
    encode_exact_input_single,
)
from metric_vault.onchain.gateways import (
    CallResult,
    ExternalCallGateway,
    GasBudget,
    LedgerGateway,
    TokenFactory,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

SKIPPED = "skipped"
BALANCE_FAILED = "balance_failed"
APPROVE_FAILED = "approve_failed"
SWAP = "swap"
TRANSFER = "transfer"


@dataclass
class AssetOutcome:
    asset: str
    action: str
    amount: int = 0
    success: bool = True
    error: Optional[str] = None
    amount_out: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "asset": self.asset,
            "action": self.action,
            "amount": str(self.amount),
            "success": self.success,
            "error": self.error,
            "amount_out": None if self.amount_out is None else str(self.amount_out),
        }


@dataclass
class WithdrawalReport:
    caller: str
    shares_burned: int
    percentage: int
    outcomes: list[AssetOutcome] = field(default_factory=list)

    @property
    def failures(self) -> list[AssetOutcome]:
        return [o for o in self.outcomes if not o.success]

    def to_dict(self) -> dict:
        return {
            "caller": self.caller,
            "shares_burned": str(self.shares_burned),
            "percentage": str(self.percentage),
            "outcomes": [o.to_dict() for o in self.outcomes],
        }


@dataclass
class RebalanceReport:
    pairs_processed: int
    outcomes: list[AssetOutcome] = field(default_factory=list)

    @property
    def failures(self) -> list[AssetOutcome]:
        return [o for o in self.outcomes if not o.success]

    def to_dict(self) -> dict:
        return {
            "pairs_processed": self.pairs_processed,
            "outcomes": [o.to_dict() for o in self.outcomes],
        }


class DistributionEngine:
    """Stateless per-call pass over a snapshot of vault balances.

    Per-asset call failures are recorded and skipped. DivisionByZero,
    ArithmeticOverflow and BudgetExhausted propagate and end the operation.
    """

    def __init__(
        self,
        ledger: LedgerGateway,
        tokens: TokenFactory,
        router: ExternalCallGateway,
        router_address: str,
        base_asset: str,
        vault_address: str,
        pool_fee: int = 3000,
        variant: SwapRouterVariant = SwapRouterVariant.ROUTER02,
        deadline_seconds: int = 180,
        token_call_gas: int = 60_000,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.ledger = ledger
        self.tokens = tokens
        self.router = router
        self.router_address = router_address
        self.base_asset = base_asset
        self.vault_address = vault_address
        self.pool_fee = pool_fee
        self.variant = SwapRouterVariant(variant)
        self.deadline_seconds = deadline_seconds
        self.token_call_gas = token_call_gas
        self.clock = clock

    def _token_call(self, budget: GasBudget, fn: Callable[[int], T]) -> T:
        gas = budget.split()
        try:
            return fn(gas)
        finally:
            budget.consume(min(self.token_call_gas, gas))

    def build_swap_request(
        self,
        token_in: str,
        token_out: str,
        amount_in: int,
        recipient: str,
        amount_out_minimum: int = 0,
    ) -> SwapRequest:
        deadline = None
        if self.variant.uses_deadline:
            deadline = int(self.clock()) + self.deadline_seconds
        return SwapRequest(
            token_in=token_in,
            token_out=token_out,
            fee=self.pool_fee,
            recipient=recipient,
            amount_in=amount_in,
            amount_out_minimum=amount_out_minimum,
            sqrt_price_limit_x96=0,
            deadline=deadline,
        )

    def swap(
        self,
        token_in: str,
        token_out: str,
        amount_in: int,
        recipient: str,
        budget: GasBudget,
        amount_out_minimum: int = 0,
    ) -> CallResult:
        request = self.build_swap_request(
            token_in, token_out, amount_in, recipient, amount_out_minimum
        )
        payload = encode_exact_input_single(request, self.variant)
        gas = budget.split()
        result = self.router.invoke(self.router_address, payload, gas)
        budget.consume(result.gas_used)
        return result

    def withdraw(
        self,
        caller: str,
        amount_out: int,
        held_assets: Sequence[str],
        budget: GasBudget,
    ) -> WithdrawalReport:
        check_uint256(amount_out, "amount_out")
        supply = self.ledger.total_supply()
        if supply == 0:
            raise DivisionByZero("Cannot withdraw: total share supply is zero")
        held = self.ledger.balance_of(caller)
        if amount_out > held:
            raise InsufficientShares(caller, held, amount_out)
        percentage = compute_percentage(amount_out, supply)

        report = WithdrawalReport(caller=caller, shares_burned=amount_out, percentage=percentage)
        for asset in held_assets:
            report.outcomes.append(self._withdraw_asset(caller, asset, percentage, budget))

        # Shares are burned even if every per-asset step failed.
        self.ledger.burn(caller, amount_out)
        logger.info(
            "Withdrawal by %s burned %s shares (pct=%s) across %d assets, %d failed",
            caller,
            amount_out,
            percentage,
            len(report.outcomes),
            len(report.failures),
        )
        return report

    def _withdraw_asset(
        self, caller: str, asset: str, percentage: int, budget: GasBudget
    ) -> AssetOutcome:
        token = self.tokens(asset)
        try:
            balance = self._token_call(budget, lambda gas: token.balance_of(self.vault_address, gas))
        except CallError as exc:
            logger.warning("Skipping %s: balance query failed: %s", asset, exc)
            return AssetOutcome(asset, BALANCE_FAILED, success=False, error=str(exc))

        share_total = proportional_share(balance, percentage)
        if share_total == 0:
            return AssetOutcome(asset, SKIPPED)

        if same_address(asset, self.base_asset):
            try:
                self._token_call(budget, lambda gas: token.transfer(caller, share_total, gas))
            except CallError as exc:
                logger.error("Transfer of %s %s to %s failed: %s", share_total, asset, caller, exc)
                return AssetOutcome(asset, TRANSFER, share_total, success=False, error=str(exc))
            return AssetOutcome(asset, TRANSFER, share_total)

        try:
            self._token_call(
                budget, lambda gas: token.approve(self.router_address, share_total, gas)
            )
        except CallError as exc:
            logger.warning("Skipping %s: approve failed: %s", asset, exc)
            return AssetOutcome(asset, APPROVE_FAILED, share_total, success=False, error=str(exc))

        result = self.swap(asset, self.base_asset, share_total, self.vault_address, budget)
        if not result.success:
            logger.error("Swap of %s %s failed: 0x%s", share_total, asset, result.error_data.hex())
            return AssetOutcome(
                asset, SWAP, share_total, success=False, error="0x" + result.error_data.hex()
            )
        return AssetOutcome(asset, SWAP, share_total, amount_out=result.trailing_word())

    def rebalance(
        self,
        tokens_to_swap: Sequence[str],
        direction_flags: Sequence[bool],
        amount_hints: Sequence[int],
        budget: GasBudget,
    ) -> RebalanceReport:
        """Swap each token to or from the base asset.

        ``direction_flags[i]`` True sells ``tokens_to_swap[i]`` for the base
        asset, False buys it with the base asset. Pairs beyond the shorter of
        the two sequences are ignored; a missing amount hint counts as zero.
        """
        pairs = list(zip(tokens_to_swap, direction_flags))
        report = RebalanceReport(pairs_processed=len(pairs))
        for index, (token, to_base) in enumerate(pairs):
            hint = amount_hints[index] if index < len(amount_hints) else 0
            check_uint256(hint, "amount_hint")
            if to_base:
                source, target = token, self.base_asset
            else:
                source, target = self.base_asset, token
            report.outcomes.append(self._rebalance_pair(source, target, hint, budget))
        logger.info(
            "Rebalance processed %d pairs, %d failed", report.pairs_processed, len(report.failures)
        )
        return report

    def _rebalance_pair(
        self, source: str, target: str, amount: int, budget: GasBudget
    ) -> AssetOutcome:
        token = self.tokens(source)
        try:
            balance = self._token_call(budget, lambda gas: token.balance_of(self.vault_address, gas))
        except CallError as exc:
            logger.warning("Skipping %s: balance query failed: %s", source, exc)
            return AssetOutcome(source, BALANCE_FAILED, success=False, error=str(exc))
        if balance == 0:
            return AssetOutcome(source, SKIPPED)

        try:
            self._token_call(budget, lambda gas: token.approve(self.router_address, amount, gas))
        except CallError as exc:
            logger.warning("Skipping %s: approve failed: %s", source, exc)
            return AssetOutcome(source, APPROVE_FAILED, amount, success=False, error=str(exc))

        result = self.swap(source, target, amount, self.vault_address, budget)
        if not result.success:
            logger.error("Rebalance swap %s -> %s failed: 0x%s", source, target, result.error_data.hex())
            return AssetOutcome(
                source, SWAP, amount, success=False, error="0x" + result.error_data.hex()
            )
        return AssetOutcome(source, SWAP, amount, amount_out=result.trailing_word())
