"""Output adapters for UI layers."""

from poise.adapters.base import Adapter, DictAdapter, SessionSnapshot

__all__ = [
    "Adapter",
    "DictAdapter",
    "SessionSnapshot",
]
