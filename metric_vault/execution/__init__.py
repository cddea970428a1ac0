"""Vault operations and the proportional distribution engine."""
