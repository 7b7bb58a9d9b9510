"""Exception types raised by the planner core."""

from __future__ import annotations


class PlannerError(Exception):
    """Base class for every error surfaced to the operator."""


class InputError(PlannerError, ValueError):
    """Rejected before any network call; nothing was mutated."""


class TransportError(PlannerError, ConnectionError):
    """Network failure or a response body that is not JSON."""


class ServiceError(PlannerError):
    """The remote service reported an error instead of a usable answer."""

    def __init__(self, description: str, *, payload: dict | None = None) -> None:
        super().__init__(description)
        self.description = description
        self.payload = payload or {}


class GeocodingError(ServiceError):
    """No address could be resolved for a position."""


class MappingError(PlannerError):
    """An optimization result references a stop the catalog does not know."""


class JobInProgressError(PlannerError):
    """An optimization job is already running."""


class JobCancelledError(PlannerError):
    """Polling was cancelled before a terminal status was observed."""


class JobTimeoutError(PlannerError):
    """Polling exceeded the configured timeout."""
