"""Create the deck_analysis table owned by the analysis pass."""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0001_deck_analysis"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # cards / decks / deck_cards belong to the catalog schema and must already exist.
    op.create_table(
        "deck_analysis",
        sa.Column("deck_id", sa.String(length=36), nullable=False),
        sa.Column("draw_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("ramp_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("single_target_removal_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("mass_removal_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("counterspell_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("token_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("recursion_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("average_mana_value", sa.Float(), nullable=False, server_default="0"),
        sa.Column("highest_mana_value", sa.Float(), nullable=False, server_default="0"),
        sa.Column("mana_curve", sa.Text(), nullable=False, server_default="{}"),
        sa.Column("color_symbols", sa.Text(), nullable=False, server_default="{}"),
        sa.Column("card_types", sa.Text(), nullable=False, server_default="[]"),
        sa.Column("basic_land_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("nonbasic_land_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("land_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("analyzed_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(
            ["deck_id"],
            ["decks.id"],
            name="fk_deck_analysis_deck_id_decks",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("deck_id", name="pk_deck_analysis"),
    )
    op.create_index("ix_deck_analysis_analyzed_at", "deck_analysis", ["analyzed_at"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_deck_analysis_analyzed_at", table_name="deck_analysis")
    op.drop_table("deck_analysis")
