"""Batch jobs run from the CLI or a scheduler."""
