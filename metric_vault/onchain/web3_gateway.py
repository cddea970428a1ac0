"""web3.py-backed token and router gateways."""
from __future__ import annotations

import logging
import time
from typing import Any, Callable, Optional

from web3 import Web3
from web3.exceptions import ContractLogicError

from metric_vault.config import settings
from metric_vault.errors import CallError
from metric_vault.onchain.gateways import CallResult
from metric_vault.onchain.wallet import WalletManager

logger = logging.getLogger(__name__)

ERC20_ABI = [
    {
        "inputs": [{"name": "account", "type": "address"}],
        "name": "balanceOf",
        "outputs": [{"type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [
            {"name": "recipient", "type": "address"},
            {"name": "amount", "type": "uint256"},
        ],
        "name": "transfer",
        "outputs": [{"type": "bool"}],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "inputs": [
            {"name": "sender", "type": "address"},
            {"name": "recipient", "type": "address"},
            {"name": "amount", "type": "uint256"},
        ],
        "name": "transferFrom",
        "outputs": [{"type": "bool"}],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "inputs": [
            {"name": "spender", "type": "address"},
            {"name": "amount", "type": "uint256"},
        ],
        "name": "approve",
        "outputs": [{"type": "bool"}],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "inputs": [
            {"name": "owner", "type": "address"},
            {"name": "spender", "type": "address"},
        ],
        "name": "allowance",
        "outputs": [{"type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
]


def _revert_data(exc: Exception) -> bytes:
    data = getattr(exc, "data", None)
    if isinstance(data, (bytes, bytearray)):
        return bytes(data)
    if isinstance(data, str) and data.startswith("0x"):
        try:
            return bytes.fromhex(data[2:])
        except ValueError:
            return data.encode()
    return str(exc).encode()


class _Web3Client:
    def __init__(
        self,
        wallet: Optional[WalletManager] = None,
        web3: Optional[Web3] = None,
        max_retries: Optional[int] = None,
        backoff_seconds: Optional[float] = None,
        receipt_timeout: Optional[int] = None,
    ) -> None:
        if wallet is None and web3 is None:
            raise ValueError("A wallet or a web3 instance is required")
        self.wallet = wallet
        self.web3 = web3 or wallet.web3
        self.max_retries = settings.rpc_max_retries if max_retries is None else max_retries
        self.backoff_seconds = (
            settings.rpc_backoff_seconds if backoff_seconds is None else backoff_seconds
        )
        self.receipt_timeout = (
            settings.receipt_timeout_seconds if receipt_timeout is None else receipt_timeout
        )

    def _retry_call(self, fn: Callable[[], Any]) -> Any:
        last_exc: Optional[Exception] = None
        for attempt in range(self.max_retries + 1):
            try:
                return fn()
            except ContractLogicError:
                raise
            except Exception as exc:
                last_exc = exc
                if attempt >= self.max_retries:
                    break
                time.sleep(self.backoff_seconds * (2**attempt))
        raise RuntimeError(self._format_error(last_exc)) from last_exc

    def _format_error(self, exc: Optional[Exception]) -> str:
        if exc is None:
            return "Unknown RPC error"
        message = str(exc)
        if "execution reverted" in message:
            return message
        if "timeout" in message.lower():
            return f"RPC timeout: {message}"
        return message

    def _wait_for_receipt(self, tx_hash: str) -> dict:
        start = time.monotonic()
        while (time.monotonic() - start) <= self.receipt_timeout:
            try:
                receipt = self.web3.eth.get_transaction_receipt(tx_hash)
            except Exception:
                receipt = None
            if receipt:
                return receipt
            time.sleep(2)
        raise TimeoutError(f"Transaction confirmation timeout after {self.receipt_timeout}s: {tx_hash}")


class Web3TokenGateway(_Web3Client):
    """ERC-20 calls issued from the vault operator account.

    Without a wallet the gateway is read-only: balance queries work and
    state-changing calls raise CallError.
    """

    def __init__(self, address: str, wallet: Optional[WalletManager] = None, **kwargs) -> None:
        super().__init__(wallet, **kwargs)
        if not Web3.is_address(address):
            raise ValueError(f"Invalid token address: {address}")
        self.address = Web3.to_checksum_address(address)
        self.contract = self.web3.eth.contract(address=self.address, abi=ERC20_ABI)

    def __repr__(self) -> str:
        return f"Web3TokenGateway(address={self.address})"

    def balance_of(self, owner: str, gas: int) -> int:
        try:
            return int(
                self._retry_call(
                    lambda: self.contract.functions.balanceOf(
                        Web3.to_checksum_address(owner)
                    ).call({"gas": gas})
                )
            )
        except ContractLogicError as exc:
            raise CallError(f"balanceOf reverted on {self.address}", _revert_data(exc)) from exc
        except RuntimeError as exc:
            raise CallError(f"balanceOf failed on {self.address}: {exc}") from exc

    def _send(self, name: str, fn, gas: int) -> bool:
        if self.wallet is None:
            raise CallError(f"{name} on {self.address} needs a signing wallet")
        try:
            tx = fn.build_transaction(
                {
                    "from": self.wallet.address,
                    "gas": gas,
                    "chainId": self.wallet.chain_id,
                }
            )
            tx_hash = self.wallet.send_transaction(tx)
            receipt = self._wait_for_receipt(tx_hash)
        except ContractLogicError as exc:
            raise CallError(f"{name} reverted on {self.address}", _revert_data(exc)) from exc
        except Exception as exc:
            raise CallError(f"{name} failed on {self.address}: {exc}") from exc
        if receipt.get("status", 0) == 0:
            raise CallError(f"{name} reverted on {self.address}: {tx_hash}")
        logger.info("%s on %s confirmed tx=%s", name, self.address, tx_hash)
        return True

    def transfer(self, to: str, amount: int, gas: int) -> bool:
        fn = self.contract.functions.transfer(Web3.to_checksum_address(to), amount)
        return self._send("transfer", fn, gas)

    def transfer_from(self, src: str, dst: str, amount: int, gas: int) -> bool:
        fn = self.contract.functions.transferFrom(
            Web3.to_checksum_address(src), Web3.to_checksum_address(dst), amount
        )
        return self._send("transferFrom", fn, gas)

    def approve(self, spender: str, amount: int, gas: int) -> bool:
        fn = self.contract.functions.approve(Web3.to_checksum_address(spender), amount)
        return self._send("approve", fn, gas)


class Web3CallGateway(_Web3Client):
    """Low-level call dispatch: simulate with eth_call, then send and confirm."""

    def invoke(self, target: str, payload: bytes, gas: int) -> CallResult:
        if self.wallet is None:
            raise ValueError("Web3CallGateway needs a signing wallet")
        if not Web3.is_address(target):
            raise ValueError(f"Invalid target address: {target}")
        tx = {
            "from": self.wallet.address,
            "to": Web3.to_checksum_address(target),
            "data": Web3.to_hex(payload),
            "gas": gas,
            "value": 0,
        }
        try:
            return_data = bytes(self._retry_call(lambda: self.web3.eth.call(tx)))
        except ContractLogicError as exc:
            logger.warning("Call to %s would revert: %s", target, exc)
            return CallResult.fail(_revert_data(exc))
        except RuntimeError as exc:
            logger.warning("Call to %s failed: %s", target, exc)
            return CallResult.fail(str(exc).encode())

        try:
            tx_hash = self.wallet.send_transaction(tx)
            receipt = self._wait_for_receipt(tx_hash)
        except ContractLogicError as exc:
            logger.error("Call to %s reverted on send: %s", target, exc)
            return CallResult.fail(_revert_data(exc))
        except Exception as exc:
            logger.error("Sending call to %s failed: %s", target, exc)
            return CallResult.fail(str(exc).encode())
        gas_used = int(receipt.get("gasUsed", 0))
        if receipt.get("status", 0) == 0:
            logger.error("Call to %s reverted on-chain: %s", target, tx_hash)
            return CallResult.fail(b"", gas_used=gas_used)
        return CallResult.ok(return_data, gas_used=gas_used)
