"""On-chain integration helpers."""

from metric_vault.onchain.calldata import SwapRequest, SwapRouterVariant, encode_exact_input_single
from metric_vault.onchain.gateways import CallResult, GasBudget
from metric_vault.onchain.ledger import ShareLedger

__all__ = [
    "CallResult",
    "GasBudget",
    "ShareLedger",
    "SwapRequest",
    "SwapRouterVariant",
    "encode_exact_input_single",
]
