from extensions import db
from utils.time import utcnow


class DeckAnalysis(db.Model):
    """Persisted archetype summary for a deck. Written only by the analysis pass."""

    __tablename__ = "deck_analysis"

    deck_id = db.Column(
        db.String(36),
        db.ForeignKey("decks.id", ondelete="CASCADE"),
        primary_key=True,
    )

    draw_count                  = db.Column(db.Integer, nullable=False, default=0)
    ramp_count                  = db.Column(db.Integer, nullable=False, default=0)
    single_target_removal_count = db.Column(db.Integer, nullable=False, default=0)
    mass_removal_count          = db.Column(db.Integer, nullable=False, default=0)
    counterspell_count          = db.Column(db.Integer, nullable=False, default=0)
    token_count                 = db.Column(db.Integer, nullable=False, default=0)
    recursion_count             = db.Column(db.Integer, nullable=False, default=0)

    average_mana_value = db.Column(db.Float, nullable=False, default=0.0)
    highest_mana_value = db.Column(db.Float, nullable=False, default=0.0)

    # JSON text; see services.analysis_store for the encoding
    mana_curve    = db.Column(db.Text, nullable=False, default="{}")
    color_symbols = db.Column(db.Text, nullable=False, default="{}")
    card_types    = db.Column(db.Text, nullable=False, default="[]")

    basic_land_count    = db.Column(db.Integer, nullable=False, default=0)
    nonbasic_land_count = db.Column(db.Integer, nullable=False, default=0)
    land_count          = db.Column(db.Integer, nullable=False, default=0)

    version = db.Column(db.Integer, nullable=False, default=1)
    analyzed_at = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)

    deck = db.relationship("Deck", back_populates="analysis")

    def __repr__(self) -> str:  # pragma: no cover - repr helper
        return f"<DeckAnalysis {self.deck_id} v{self.version}>"
