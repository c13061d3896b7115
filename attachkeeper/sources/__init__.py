"""Adapters for the vault store and remote resources."""
