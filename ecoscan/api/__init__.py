"""API package: router registration."""
