"""Rules-text role classification."""
