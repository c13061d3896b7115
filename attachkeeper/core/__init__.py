"""Attachment path engine: scanning, rewriting, ingestion and validation."""
