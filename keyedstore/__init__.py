"""Embedded store for Python model classes: key encoding, model declaration, table storage."""

__version__ = "0.5.1"

__all__ = ["database", "errors", "keys", "model", "storage"]