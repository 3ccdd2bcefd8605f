"""HTTP routers; each module exposes a ``router``."""
