"""Small cross-cutting helpers (time, logging)."""
