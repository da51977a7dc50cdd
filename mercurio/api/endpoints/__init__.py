"""Backend table endpoints."""
