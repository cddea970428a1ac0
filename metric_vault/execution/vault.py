"""Vault entrypoints: initialize, deposit, withdraw and rebalance."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Callable, Iterator, Optional, Sequence

from metric_vault.config import settings
from metric_vault.core.numeric import check_uint256
from metric_vault.errors import CallError, DepositFailed, ReentrantCall, VaultNotInitialized
from metric_vault.execution.distribution import (
    DistributionEngine,
    RebalanceReport,
    WithdrawalReport,
)
from metric_vault.models.schemas import VaultConfig
from metric_vault.onchain.calldata import SwapRouterVariant
from metric_vault.onchain.gateways import (
    ExternalCallGateway,
    GasBudget,
    LedgerGateway,
    TokenFactory,
)

logger = logging.getLogger(__name__)


class Vault:
    def __init__(
        self,
        ledger: LedgerGateway,
        tokens: TokenFactory,
        router: ExternalCallGateway,
        pool_fee: Optional[int] = None,
        variant: Optional[SwapRouterVariant] = None,
        gas_budget: Optional[int] = None,
        min_call_gas: Optional[int] = None,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        self.ledger = ledger
        self.tokens = tokens
        self.router = router
        self.pool_fee = settings.pool_fee if pool_fee is None else pool_fee
        self.variant = SwapRouterVariant(variant or settings.router_variant)
        self.gas_budget = settings.gas_budget if gas_budget is None else gas_budget
        self.min_call_gas = settings.min_call_gas if min_call_gas is None else min_call_gas
        self.clock = clock
        self._config: Optional[VaultConfig] = None
        self._busy = False

    def __repr__(self) -> str:
        address = self._config.vault_address if self._config else None
        return f"Vault(address={address}, variant={self.variant.value})"

    @property
    def config(self) -> VaultConfig:
        if self._config is None:
            raise VaultNotInitialized("Vault has not been initialized")
        return self._config

    @property
    def held_assets(self) -> list[str]:
        return list(self.config.held_assets)

    def initialize(self, config: VaultConfig) -> None:
        """Store the configuration, replacing any previous one entirely."""
        with self._operation("initialize"):
            replaced = self._config is not None
            self._config = config
            logger.info(
                "Vault %s %s: base=%s router=%s assets=%d",
                config.vault_address,
                "reconfigured" if replaced else "initialized",
                config.base_asset,
                config.router,
                len(config.held_assets),
            )

    def total_supply(self) -> int:
        return self.ledger.total_supply()

    def share_balance(self, owner: str) -> int:
        return self.ledger.balance_of(owner)

    def new_budget(self) -> GasBudget:
        return GasBudget(self.gas_budget, min_call_gas=self.min_call_gas)

    def _engine(self) -> DistributionEngine:
        config = self.config
        kwargs = {}
        if self.clock is not None:
            kwargs["clock"] = self.clock
        return DistributionEngine(
            ledger=self.ledger,
            tokens=self.tokens,
            router=self.router,
            router_address=config.router,
            base_asset=config.base_asset,
            vault_address=config.vault_address,
            pool_fee=self.pool_fee,
            variant=self.variant,
            deadline_seconds=settings.swap_deadline_seconds,
            token_call_gas=settings.token_call_gas,
            **kwargs,
        )

    @contextmanager
    def _operation(self, name: str) -> Iterator[None]:
        if self._busy:
            raise ReentrantCall(f"{name} called while another vault operation is running")
        self._busy = True
        try:
            yield
        finally:
            self._busy = False

    def deposit(self, caller: str, amount_in: int, budget: Optional[GasBudget] = None) -> int:
        """Pull ``amount_in`` of the base asset from ``caller`` and mint shares 1:1."""
        with self._operation("deposit"):
            config = self.config
            check_uint256(amount_in, "amount_in")
            budget = budget or self.new_budget()
            base = self.tokens(config.base_asset)
            gas = budget.split()
            try:
                base.transfer_from(caller, config.vault_address, amount_in, gas)
            except CallError as exc:
                raise DepositFailed(f"Could not pull {amount_in} base asset from {caller}: {exc}") from exc
            finally:
                budget.consume(min(settings.token_call_gas, gas))
            self.ledger.mint(caller, amount_in)
            logger.info("Deposit by %s minted %s shares", caller, amount_in)
            return amount_in

    def withdraw(
        self, caller: str, amount_out: int, budget: Optional[GasBudget] = None
    ) -> WithdrawalReport:
        with self._operation("withdraw"):
            engine = self._engine()
            return engine.withdraw(
                caller, amount_out, self.held_assets, budget or self.new_budget()
            )

    def rebalance(
        self,
        tokens_to_swap: Sequence[str],
        direction_flags: Sequence[bool],
        amount_hints: Sequence[int],
        budget: Optional[GasBudget] = None,
    ) -> RebalanceReport:
        with self._operation("rebalance"):
            engine = self._engine()
            return engine.rebalance(
                tokens_to_swap, direction_flags, amount_hints, budget or self.new_budget()
            )
