"""SQLAlchemy models package for ManaLedger.
Re-exports the shared `db` instance to avoid import loops and provides
convenient names for the model classes.

Usage:
    from models import db, Card, Deck, DeckCard, DeckAnalysis
"""
from __future__ import annotations

from extensions import db  # shared SQLAlchemy() instance

# Import models only after db exists to avoid circular imports
from .card import Card  # type: ignore F401
from .deck import Deck, DeckCard  # type: ignore F401
from .deck_analysis import DeckAnalysis  # type: ignore F401

__all__ = [
    "db",
    "Card",
    "Deck",
    "DeckCard",
    "DeckAnalysis",
]
