"""Address normalisation helpers."""
from __future__ import annotations

from typing import Union

from eth_utils import to_canonical_address
from web3 import Web3

AddressLike = Union[str, bytes]


def to_address_bytes(address: AddressLike) -> bytes:
    """Return the raw 20 address bytes.

    Checksums are not validated; mixed-case hex is accepted as-is.
    """
    if isinstance(address, (bytes, bytearray)):
        if len(address) != 20:
            raise ValueError(f"Address must be 20 bytes, got {len(address)}")
        return bytes(address)
    return bytes(to_canonical_address(address.lower()))


def checksum(address: AddressLike) -> str:
    if isinstance(address, (bytes, bytearray)):
        address = "0x" + to_address_bytes(address).hex()
    if not Web3.is_address(address.lower()):
        raise ValueError(f"Invalid address: {address}")
    return Web3.to_checksum_address(address.lower())


def same_address(a: AddressLike, b: AddressLike) -> bool:
    return to_address_bytes(a) == to_address_bytes(b)
