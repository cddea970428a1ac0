#!/usr/bin/env python3
"""CLI for encoding router swaps and inspecting vault balances."""
from __future__ import annotations

import argparse
import logging
import sys
from typing import Optional, Sequence

from web3 import Web3

from metric_vault.config import redact_key, settings
from metric_vault.errors import CallError
from metric_vault.models.schemas import VaultConfig
from metric_vault.onchain.calldata import (
    SwapRequest,
    SwapRouterVariant,
    encode_exact_input_single,
    format_calldata_words,
)
from metric_vault.onchain.web3_gateway import Web3TokenGateway

logger = logging.getLogger(__name__)


def _configure_logging() -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)-8s [%(name)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def _int(value: str) -> int:
    return int(value, 0)


def _encode_swap(args: argparse.Namespace) -> int:
    request = SwapRequest(
        token_in=args.token_in,
        token_out=args.token_out,
        fee=args.fee,
        recipient=args.recipient,
        amount_in=args.amount_in,
        amount_out_minimum=args.amount_out_min,
        sqrt_price_limit_x96=args.sqrt_price_limit,
        deadline=args.deadline,
    )
    calldata = encode_exact_input_single(request, SwapRouterVariant(args.variant))
    print(f"0x{calldata.hex()}")
    if args.words:
        print(f"Calldata length: {len(calldata)} bytes")
        for name, word in format_calldata_words(calldata):
            print(f"{name}: {word}")
    return 0


def _state(args: argparse.Namespace) -> int:
    config = VaultConfig.from_settings(settings)
    web3 = Web3(Web3.HTTPProvider(args.rpc_url or settings.rpc_url))
    print(f"vault: {config.vault_address}")
    print(f"base asset: {config.base_asset}")
    print(f"router: {config.router}")
    print(f"operator key: {redact_key()}")
    for asset in [config.base_asset, *config.held_assets]:
        token = Web3TokenGateway(asset, web3=web3)
        try:
            balance = token.balance_of(config.vault_address, settings.token_call_gas)
        except CallError as exc:
            logger.warning("Balance query for %s failed: %s", asset, exc)
            print(asset, "unavailable")
            continue
        print(asset, balance)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Metric vault tooling")
    sub = parser.add_subparsers(dest="command", required=True)

    encode = sub.add_parser("encode-swap", help="Print exactInputSingle calldata as hex")
    encode.add_argument("--token-in", required=True)
    encode.add_argument("--token-out", required=True)
    encode.add_argument("--fee", type=_int, default=settings.pool_fee)
    encode.add_argument("--recipient", required=True)
    encode.add_argument("--amount-in", type=_int, required=True)
    encode.add_argument("--amount-out-min", type=_int, default=0)
    encode.add_argument("--sqrt-price-limit", type=_int, default=0)
    encode.add_argument("--deadline", type=_int, default=None)
    encode.add_argument(
        "--variant",
        choices=[v.value for v in SwapRouterVariant],
        default=SwapRouterVariant.ROUTER02.value,
    )
    encode.add_argument("--words", action="store_true", help="Also print each 32-byte word")
    encode.set_defaults(func=_encode_swap)

    state = sub.add_parser("state", help="Show configured assets and vault balances")
    state.add_argument("--rpc-url", default=None)
    state.set_defaults(func=_state)
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    _configure_logging()
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        return args.func(args)
    except ValueError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
