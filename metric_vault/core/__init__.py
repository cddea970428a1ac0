"""Shared numeric and address utilities."""
