from __future__ import annotations

from extensions import db
from utils.time import utcnow


class Deck(db.Model):
    __tablename__ = "decks"

    id   = db.Column(db.String(36), primary_key=True)
    name = db.Column(db.String(200), nullable=False, index=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)

    cards = db.relationship(
        "DeckCard",
        back_populates="deck",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    analysis = db.relationship(
        "DeckAnalysis",
        back_populates="deck",
        cascade="all, delete-orphan",
        passive_deletes=True,
        uselist=False,
    )

    def __repr__(self) -> str:  # pragma: no cover - repr helper
        return f"<Deck {self.name} [{self.id}]>"


class DeckCard(db.Model):
    """One decklist line: a card, how many copies, and which board it sits in."""

    __tablename__ = "deck_cards"
    __table_args__ = (
        db.CheckConstraint("quantity >= 1", name="ck_deck_cards_quantity_positive"),
        db.CheckConstraint(
            "board_type in ('commander','mainboard','sideboard','maybeboard')",
            name="ck_deck_cards_board_type",
        ),
        db.UniqueConstraint("deck_id", "card_id", "board_type", name="uq_deck_cards_deck_card_board"),
    )

    BOARD_COMMANDER = "commander"
    BOARD_MAINBOARD = "mainboard"
    BOARD_SIDEBOARD = "sideboard"
    BOARD_MAYBEBOARD = "maybeboard"
    BOARD_TYPES = (BOARD_COMMANDER, BOARD_MAINBOARD, BOARD_SIDEBOARD, BOARD_MAYBEBOARD)
    # Only these sections count toward deck composition.
    ANALYZED_BOARDS = (BOARD_COMMANDER, BOARD_MAINBOARD)

    id = db.Column(db.Integer, primary_key=True)
    deck_id = db.Column(
        db.String(36),
        db.ForeignKey("decks.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    card_id = db.Column(
        db.String(36),
        db.ForeignKey("cards.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    quantity   = db.Column(db.Integer, nullable=False, default=1)
    board_type = db.Column(db.String(20), nullable=False, default=BOARD_MAINBOARD)

    deck = db.relationship("Deck", back_populates="cards")
    card = db.relationship("Card", back_populates="deck_entries")

    def __repr__(self) -> str:  # pragma: no cover - repr helper
        return f"<DeckCard {self.deck_id}:{self.card_id} x{self.quantity} ({self.board_type})>"
