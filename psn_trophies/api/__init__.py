"""HTTP routes for the trophy dashboard."""
