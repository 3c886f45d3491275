from __future__ import annotations

from extensions import db
from utils.time import utcnow


class Card(db.Model):
    """Catalog card row. Populated by the card import job; read-only for analysis."""

    __tablename__ = "cards"
    __table_args__ = (
        db.CheckConstraint("cmc >= 0", name="ck_cards_cmc_nonneg"),
    )

    id = db.Column(db.String(36), primary_key=True)

    name        = db.Column(db.String(255), index=True, nullable=False)
    mana_cost   = db.Column(db.String(120), nullable=True)
    cmc         = db.Column(db.Float, nullable=False, default=0.0)
    type_line   = db.Column(db.Text, nullable=True)
    oracle_text = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    deck_entries = db.relationship("DeckCard", back_populates="card", passive_deletes=True)

    @staticmethod
    def type_line_is_land(type_line: str | None) -> bool:
        return "Land" in (type_line or "")

    @staticmethod
    def type_line_is_basic(type_line: str | None) -> bool:
        return "Basic" in (type_line or "")

    @property
    def is_land(self) -> bool:
        return self.type_line_is_land(self.type_line)

    @property
    def is_basic_land(self) -> bool:
        return self.type_line_is_basic(self.type_line)

    def __repr__(self):
        return f"<Card {self.name} [{self.id}]>"
