"""EcoScan reward and marketplace service."""

from ecoscan.core.config import Settings, settings

__all__ = ["Settings", "settings"]
