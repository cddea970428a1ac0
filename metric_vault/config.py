from __future__ import annotations

import json

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        enable_decoding=False,
    )

    rpc_url: str = Field(
        default="",
        validation_alias=AliasChoices("VAULT_RPC_URL", "RPC_URL", "rpc_url"),
    )
    vault_private_key: str = ""
    chain_id: int = 42161
    vault_address: str = ""
    base_asset_address: str = "0xaf88d065e77c8cC2239327C5EDb3A432268e5831"  # USDC on Arbitrum
    router_address: str = "0x68b3465833fb72A70ecDF485E0e4C7bD8665Fc45"  # SwapRouter02
    governance_address: str = ""
    held_assets: list[str] = []
    pool_fee: int = 3000
    router_variant: str = "router02"
    swap_deadline_seconds: int = 180
    gas_budget: int = 30_000_000
    min_call_gas: int = 21_000
    token_call_gas: int = 60_000
    rpc_max_retries: int = 2
    rpc_backoff_seconds: float = 0.5
    receipt_timeout_seconds: int = 120
    log_level: str = "INFO"

    @field_validator("held_assets", mode="before")
    @classmethod
    def parse_held_assets(cls, value):
        if isinstance(value, str):
            stripped = value.strip()
            # Try JSON format first: ["0x...", "0x..."]
            if stripped.startswith("[") and stripped.endswith("]"):
                try:
                    parsed = json.loads(stripped)
                    if isinstance(parsed, list):
                        return [str(item).strip() for item in parsed if str(item).strip()]
                except json.JSONDecodeError:
                    pass
            # Fallback to comma-separated format: 0x...,0x...
            return [item.strip() for item in stripped.split(",") if item.strip()]
        return value

    @field_validator("router_variant", mode="before")
    @classmethod
    def normalize_router_variant(cls, value):
        if isinstance(value, str):
            clean = value.strip().lower()
            if clean not in ("router02", "legacy"):
                raise ValueError(f"Unknown router variant: {value}")
            return clean
        return value

    @field_validator("pool_fee", mode="before")
    @classmethod
    def parse_pool_fee(cls, value):
        if isinstance(value, str) and value.strip() == "":
            return 3000
        return value


settings = Settings()


def redact_key(raw_key: str | None = None) -> str:
    """Return a log-safe marker for the configured vault key."""
    key = raw_key if raw_key is not None else settings.vault_private_key
    if not key:
        return "<unset>"
    return "<set>"
