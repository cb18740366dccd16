"""Shared helpers: record store, logging, converters and settings."""
