"""Metric vault: pooled base-asset vault with proportional withdrawals and router rebalancing."""

__version__ = "0.1.0"
