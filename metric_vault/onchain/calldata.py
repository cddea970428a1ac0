"""Byte-exact calldata for the router's exactInputSingle swap."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from eth_utils import keccak

from metric_vault.core.addresses import AddressLike, to_address_bytes
from metric_vault.core.numeric import UINT24_MASK, check_uint256

WORD_SIZE = 32

# exactInputSingle((address,address,uint24,address,uint256,uint256,uint160))
SELECTOR_EXACT_INPUT_SINGLE = bytes.fromhex("04e45aaf")
# exactInputSingle((address,address,uint24,address,uint256,uint256,uint256,uint160))
SELECTOR_EXACT_INPUT_SINGLE_LEGACY = bytes.fromhex("414bf389")

EXACT_INPUT_SINGLE_SIGNATURE = (
    "exactInputSingle((address,address,uint24,address,uint256,uint256,uint160))"
)
EXACT_INPUT_SINGLE_LEGACY_SIGNATURE = (
    "exactInputSingle((address,address,uint24,address,uint256,uint256,uint256,uint160))"
)


class SwapRouterVariant(str, Enum):
    ROUTER02 = "router02"
    LEGACY = "legacy"

    @property
    def selector(self) -> bytes:
        if self is SwapRouterVariant.LEGACY:
            return SELECTOR_EXACT_INPUT_SINGLE_LEGACY
        return SELECTOR_EXACT_INPUT_SINGLE

    @property
    def offset_prefixed(self) -> bool:
        return self is SwapRouterVariant.LEGACY

    @property
    def uses_deadline(self) -> bool:
        return self is SwapRouterVariant.LEGACY


@dataclass(frozen=True)
class SwapRequest:
    token_in: AddressLike
    token_out: AddressLike
    fee: int
    recipient: AddressLike
    amount_in: int
    amount_out_minimum: int
    sqrt_price_limit_x96: int = 0
    deadline: Optional[int] = None


def selector_for(signature: str) -> bytes:
    return keccak(text=signature)[:4]


def encode_address_word(address: AddressLike) -> bytes:
    return bytes(12) + to_address_bytes(address)


def encode_fee_word(fee: int) -> bytes:
    # uint24: anything above the low 24 bits is dropped, not rejected.
    return bytes(29) + (fee & UINT24_MASK).to_bytes(3, "big")


def encode_uint256_word(value: int, name: str = "value") -> bytes:
    return check_uint256(value, name).to_bytes(WORD_SIZE, "big")


def encode_exact_input_single(
    request: SwapRequest,
    variant: SwapRouterVariant = SwapRouterVariant.ROUTER02,
) -> bytes:
    """Serialize ``request`` for the router's exactInputSingle entrypoint.

    Layout: selector, an offset word of 32 when the variant expects one,
    then tokenIn, tokenOut, fee, recipient, [deadline], amountIn,
    amountOutMinimum and sqrtPriceLimitX96 as 32-byte big-endian words.
    The result is always ``4 + 32 * k`` bytes long.
    """
    variant = SwapRouterVariant(variant)
    parts = [variant.selector]
    if variant.offset_prefixed:
        parts.append(encode_uint256_word(WORD_SIZE, "offset"))
    parts.append(encode_address_word(request.token_in))
    parts.append(encode_address_word(request.token_out))
    parts.append(encode_fee_word(request.fee))
    parts.append(encode_address_word(request.recipient))
    if request.deadline is not None:
        parts.append(encode_uint256_word(request.deadline, "deadline"))
    parts.append(encode_uint256_word(request.amount_in, "amount_in"))
    parts.append(encode_uint256_word(request.amount_out_minimum, "amount_out_minimum"))
    parts.append(encode_uint256_word(request.sqrt_price_limit_x96, "sqrt_price_limit_x96"))
    return b"".join(parts)


def decode_exact_input_single(calldata: bytes) -> tuple[SwapRouterVariant, SwapRequest]:
    """Inverse of encode_exact_input_single, used by routers that consume it."""
    selector = bytes(calldata[:4])
    if selector == SELECTOR_EXACT_INPUT_SINGLE:
        variant = SwapRouterVariant.ROUTER02
    elif selector == SELECTOR_EXACT_INPUT_SINGLE_LEGACY:
        variant = SwapRouterVariant.LEGACY
    else:
        raise ValueError(f"Unknown selector 0x{selector.hex()}")
    body = bytes(calldata[4:])
    if len(body) % WORD_SIZE:
        raise ValueError(f"Calldata body is not word aligned: {len(body)} bytes")
    words = [body[i : i + WORD_SIZE] for i in range(0, len(body), WORD_SIZE)]
    if variant.offset_prefixed:
        words = words[1:]
    if len(words) == 8:
        deadline: Optional[int] = int.from_bytes(words[4], "big")
        words = words[:4] + words[5:]
    elif len(words) == 7:
        deadline = None
    else:
        raise ValueError(f"Unexpected word count for exactInputSingle: {len(words)}")
    request = SwapRequest(
        token_in="0x" + words[0][12:].hex(),
        token_out="0x" + words[1][12:].hex(),
        fee=int.from_bytes(words[2], "big"),
        recipient="0x" + words[3][12:].hex(),
        amount_in=int.from_bytes(words[4], "big"),
        amount_out_minimum=int.from_bytes(words[5], "big"),
        sqrt_price_limit_x96=int.from_bytes(words[6], "big"),
        deadline=deadline,
    )
    return variant, request


def decode_amount_out(return_data: bytes) -> Optional[int]:
    """Return the trailing uint256 of a router response, or None if it is too short."""
    if len(return_data) < WORD_SIZE:
        return None
    return int.from_bytes(return_data[-WORD_SIZE:], "big")


_WORD_NAMES = [
    "tokenIn",
    "tokenOut",
    "fee",
    "recipient",
    "amountIn",
    "amountOutMinimum",
    "sqrtPriceLimitX96",
]


def format_calldata_words(calldata: bytes) -> list[tuple[str, str]]:
    """Split swap calldata into (name, 0x-hex) rows for display."""
    rows = [("selector", "0x" + calldata[:4].hex())]
    body = calldata[4:]
    words = [body[i : i + WORD_SIZE] for i in range(0, len(body), WORD_SIZE)]
    names = list(_WORD_NAMES)
    if calldata[:4] == SELECTOR_EXACT_INPUT_SINGLE_LEGACY:
        names.insert(0, "offset")
    if len(words) == len(names) + 1:
        names.insert(names.index("amountIn"), "deadline")
    for idx, word in enumerate(words):
        name = names[idx] if idx < len(names) else f"word{idx}"
        rows.append((name, "0x" + word.hex()))
    return rows
