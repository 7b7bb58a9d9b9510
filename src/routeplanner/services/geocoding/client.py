"""Reverse geocoding client used when a stop is placed."""

from __future__ import annotations

import logging

import httpx

from ...config import settings
from ...errors import GeocodingError, TransportError

logger = logging.getLogger(__name__)


class GeocodingClient:
    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = (base_url or settings.geocoding_base_url).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.ptv_api_key
        self.timeout = timeout if timeout is not None else settings.request_timeout_seconds
        self.transport = transport

    def _get_client(self) -> httpx.AsyncClient:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["apiKey"] = self.api_key
        return httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout, connect=10.0),
            headers=headers,
            transport=self.transport,
        )

    async def resolve_address(self, latitude: float, longitude: float) -> str:
        """Return the formatted address closest to the position."""
        url = f"{self.base_url}/locations/by-position/{latitude}/{longitude}"
        try:
            async with self._get_client() as client:
                response = await client.get(url)
        except httpx.HTTPError as exc:
            raise TransportError(f"Geocoding request failed: {exc}") from exc

        try:
            data = response.json()
        except ValueError as exc:
            raise TransportError(
                f"Geocoding service returned a non-JSON response (HTTP {response.status_code})."
            ) from exc

        locations = data.get("locations") if isinstance(data, dict) else None
        if isinstance(locations, list) and locations:
            first = locations[0]
            if not isinstance(first, dict):
                raise GeocodingError(f"Malformed location in geocoding response: {first!r}")
            address = first.get("formattedAddress")
            if address:
                return str(address)
        if isinstance(data, dict) and data.get("description"):
            raise GeocodingError(data["description"], payload=data)
        raise GeocodingError("No address found")
