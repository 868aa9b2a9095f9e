"""PSN Trophies backend: PlayStation Network trophy dashboard proxy."""

__version__ = "1.0.0"
