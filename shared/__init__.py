"""Shared primitives used across services."""

__all__ = [
    "exceptions",
]
