"""Service layer: card rows, mana costs, aggregation and persistence."""
