"""Infrastructure services (logging setup)."""
