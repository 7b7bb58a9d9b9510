"""HTTP client for the asynchronous route optimization service."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ...config import settings
from ...errors import ServiceError, TransportError
from .models import JobStatus

logger = logging.getLogger(__name__)

UNKNOWN_STATUS = "UNKNOWN"


class OptimizationClient:
    """Submit, poll and stop optimization jobs.

    A fresh ``httpx.AsyncClient`` is opened per call; ``transport`` lets
    tests substitute ``httpx.MockTransport``.
    """

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = (base_url or settings.optimization_base_url).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.ptv_api_key
        self.timeout = timeout if timeout is not None else settings.request_timeout_seconds
        self.transport = transport
        if not self.api_key:
            logger.warning("PLANNER_PTV_API_KEY not set. Optimization requests will be rejected.")

    def _get_client(self) -> httpx.AsyncClient:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["apiKey"] = self.api_key
        return httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout, connect=10.0),
            headers=headers,
            transport=self.transport,
        )

    async def _request(self, method: str, path: str, *, json: Any = None) -> dict:
        url = f"{self.base_url}{path}"
        try:
            async with self._get_client() as client:
                response = await client.request(method, url, json=json)
        except httpx.HTTPError as exc:
            raise TransportError(f"Request to optimization service failed: {exc}") from exc

        try:
            data = response.json()
        except ValueError as exc:
            raise TransportError(
                f"Optimization service returned a non-JSON response (HTTP {response.status_code})."
            ) from exc
        if not isinstance(data, dict):
            raise TransportError("Optimization service returned an unexpected response body.")
        return data

    async def submit(self, request: dict) -> str:
        """Start an optimization and return its job id."""
        data = await self._request("POST", "/optimizations", json=request)
        job_id = data.get("id")
        if job_id:
            logger.info(f"Optimization submitted: id={job_id}")
            return str(job_id)
        description = data.get("description") or "No optimization ID found"
        raise ServiceError(description, payload=data)

    async def get_status(self, job_id: str) -> JobStatus:
        """Current status of a job; a body without a status counts as not finished yet."""
        data = await self._request("GET", f"/optimizations/{job_id}")
        status = data.get("status")
        if not status:
            logger.warning(
                f"No status returned for optimization {job_id}: {data.get('description') or 'empty response'}"
            )
            return JobStatus(job_id=job_id, status=UNKNOWN_STATUS, payload=data)
        metrics = data.get("metrics") or {}
        if not isinstance(metrics, dict):
            raise ServiceError(f"Malformed metrics for optimization {job_id}.", payload=data)
        return JobStatus(
            job_id=job_id,
            status=str(status),
            unscheduled_orders=metrics.get("numberOfUnscheduledOrders"),
            payload=data,
        )

    async def stop(self, job_id: str) -> None:
        """Ask the service to end the optimization early; the answer is ignored."""
        url = f"{self.base_url}/optimizations/{job_id}/stop"
        try:
            async with self._get_client() as client:
                await client.post(url)
            logger.info(f"Stop requested for optimization {job_id}")
        except httpx.HTTPError as exc:
            logger.warning(f"Stop request for optimization {job_id} failed: {exc}")
