import json

import pytest

from metric_vault.onchain.wallet import WalletManager


class DummyEth:
    def __init__(self):
        self.nonce = 7
        self.sent = []

    def get_transaction_count(self, _addr):
        return self.nonce

    def estimate_gas(self, _tx):
        return 21000

    def send_raw_transaction(self, raw):
        self.sent.append(raw)
        return bytes.fromhex("ab" * 32)


class DummyWeb3:
    def __init__(self):
        self.eth = DummyEth()


def test_loads_from_env(monkeypatch):
    test_key = "0x" + "a" * 64
    monkeypatch.setenv("VAULT_PRIVATE_KEY", test_key)
    manager = WalletManager(web3=DummyWeb3())
    assert manager.address.startswith("0x")


def test_rejects_invalid_key(monkeypatch):
    monkeypatch.setenv("VAULT_PRIVATE_KEY", "bad-key")
    with pytest.raises(ValueError):
        WalletManager(web3=DummyWeb3())


def test_private_key_not_in_repr(monkeypatch):
    test_key = "0x" + "b" * 64
    monkeypatch.setenv("VAULT_PRIVATE_KEY", test_key)
    manager = WalletManager(web3=DummyWeb3())
    assert "b" * 10 not in repr(manager)


def test_private_key_not_serializable(monkeypatch):
    test_key = "0x" + "c" * 64
    monkeypatch.setenv("VAULT_PRIVATE_KEY", test_key)
    manager = WalletManager(web3=DummyWeb3())
    with pytest.raises(TypeError):
        json.dumps(manager.__dict__)


def test_invalid_key_error_does_not_leak_key(monkeypatch):
    bad_key = "0x" + "g" * 64
    monkeypatch.setenv("VAULT_PRIVATE_KEY", bad_key)
    with pytest.raises(ValueError) as excinfo:
        WalletManager(web3=DummyWeb3())
    assert bad_key not in str(excinfo.value)


def test_sign_transaction_includes_chain_and_nonce(monkeypatch):
    monkeypatch.delenv("VAULT_PRIVATE_KEY", raising=False)
    manager = WalletManager(web3=DummyWeb3(), private_key="0x" + "d" * 64, chain_id=31337)
    signed = manager.sign_transaction({"to": manager.address, "value": 0})
    assert signed.raw_transaction is not None
    assert signed.hash.startswith("0x")


def test_send_transaction_returns_prefixed_hash(monkeypatch):
    monkeypatch.delenv("VAULT_PRIVATE_KEY", raising=False)
    web3 = DummyWeb3()
    manager = WalletManager(web3=web3, private_key="0x" + "e" * 64)
    tx_hash = manager.send_transaction({"to": manager.address, "value": 0, "gas": 21000})
    assert tx_hash == "0x" + "ab" * 32
    assert len(web3.eth.sent) == 1


def test_is_governance(monkeypatch):
    monkeypatch.delenv("VAULT_PRIVATE_KEY", raising=False)
    manager = WalletManager(web3=DummyWeb3(), private_key="0x" + "1" * 64)
    assert manager.is_governance(manager.address.lower()) is True
    assert manager.is_governance("0x0000000000000000000000000000000000000002") is False
    assert manager.is_governance("") is False
