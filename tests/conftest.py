import pytest

from metric_vault.execution.vault import Vault
from metric_vault.models.schemas import VaultConfig
from metric_vault.onchain.ledger import ShareLedger
from metric_vault.onchain.memory import InMemoryRouter, InMemoryTokenRegistry

VAULT = "0x1111111111111111111111111111111111111111"
BASE = "0x2222222222222222222222222222222222222222"
ROUTER = "0x3333333333333333333333333333333333333333"
GOVERNANCE = "0x4444444444444444444444444444444444444444"
TOKEN_A = "0x5555555555555555555555555555555555555555"
TOKEN_B = "0x6666666666666666666666666666666666666666"
TOKEN_C = "0x7777777777777777777777777777777777777777"
ALICE = "0x8888888888888888888888888888888888888888"
BOB = "0x9999999999999999999999999999999999999999"


@pytest.fixture()
def ledger() -> ShareLedger:
    return ShareLedger()


@pytest.fixture()
def tokens() -> InMemoryTokenRegistry:
    registry = InMemoryTokenRegistry(caller=VAULT)
    registry.add(BASE, balances={VAULT: 1000})
    registry.add(TOKEN_A, balances={VAULT: 400})
    registry.add(TOKEN_B, balances={VAULT: 200})
    return registry


@pytest.fixture()
def router(tokens) -> InMemoryRouter:
    return InMemoryRouter(ROUTER, tokens, sender=VAULT)


@pytest.fixture()
def config() -> VaultConfig:
    return VaultConfig(
        vault_address=VAULT,
        base_asset=BASE,
        router=ROUTER,
        governance=GOVERNANCE,
        held_assets=[BASE, TOKEN_A, TOKEN_B],
    )


@pytest.fixture()
def vault(ledger, tokens, router, config) -> Vault:
    v = Vault(ledger, tokens, router, pool_fee=3000, variant="router02")
    v.initialize(config)
    return v
