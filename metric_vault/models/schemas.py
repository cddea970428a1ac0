from __future__ import annotations

from typing import List

from pydantic import BaseModel, ConfigDict, Field, field_validator

from metric_vault.config import Settings
from metric_vault.core.addresses import checksum


def _checksum(value) -> str:
    if not isinstance(value, (str, bytes)):
        raise ValueError(f"Invalid address: {value!r}")
    return checksum(value)


class VaultConfig(BaseModel):
    """Persisted vault configuration, replaced wholesale by initialize."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    vault_address: str = Field(alias="vaultAddress")
    base_asset: str = Field(alias="baseAsset")
    router: str
    governance: str
    held_assets: List[str] = Field(default_factory=list, alias="heldAssets")

    @field_validator("vault_address", "base_asset", "router", "governance", mode="before")
    @classmethod
    def validate_address(cls, value):
        return _checksum(value)

    @field_validator("held_assets", mode="before")
    @classmethod
    def validate_held_assets(cls, value):
        # Order is processing order; duplicates are kept on purpose.
        return [_checksum(item) for item in value]

    @classmethod
    def from_settings(cls, settings: Settings) -> "VaultConfig":
        return cls(
            vault_address=settings.vault_address,
            base_asset=settings.base_asset_address,
            router=settings.router_address,
            governance=settings.governance_address or settings.vault_address,
            held_assets=settings.held_assets,
        )
