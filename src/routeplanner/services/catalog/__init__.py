"""Stop catalog helpers."""

from .catalog import StopCatalog
from .colors import color_from_index

__all__ = ["StopCatalog", "color_from_index"]
