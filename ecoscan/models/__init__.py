"""Lightweight models package initialiser.

- Exposes the shared SQLAlchemy `Base`.
- Lazily exposes all domain models via module-level attribute access so importing
  `ecoscan.core.database` (which pulls `Base`) doesn't eagerly import every model.
"""

from ecoscan.models.base import Base

__all__ = ["Base"]


def __getattr__(name: str):
    """
    Lazily load aggregated model attributes to avoid circular imports during
    early DB setup (e.g., when ecoscan.core.database imports Base).
    """
    import importlib

    _registry = importlib.import_module("ecoscan.models.registry")

    if hasattr(_registry, name):
        return getattr(_registry, name)
    raise AttributeError(f"module 'ecoscan.models' has no attribute {name!r}")


def __dir__():
    import importlib

    _registry = importlib.import_module("ecoscan.models.registry")

    return sorted(set(list(globals().keys()) + list(_registry.__all__)))
