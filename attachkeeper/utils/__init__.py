"""Naming, path and sanitizing helpers."""
