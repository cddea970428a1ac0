"""Vault configuration models."""

from metric_vault.models.schemas import VaultConfig

__all__ = ["VaultConfig"]
