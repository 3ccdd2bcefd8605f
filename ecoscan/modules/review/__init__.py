"""Admin review queue for scans and listings."""
