"""Session, identity, catalog, merge and translation services."""
