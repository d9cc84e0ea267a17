"""Plugin host launcher application package (process wiring and CLI)."""
