"""Geocoding services."""

from .client import GeocodingClient

__all__ = ["GeocodingClient"]
