"""Route group exports."""

from . import health, optimization, stops

__all__ = ["health", "optimization", "stops"]
