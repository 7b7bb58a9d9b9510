"""Planner session: the state one operator works on across optimization cycles."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from functools import lru_cache

from ..config import Settings, settings as default_settings
from ..errors import InputError, JobInProgressError, PlannerError
from ..models.domain import InsertionDirective, Stop
from .catalog.catalog import StopCatalog
from .geocoding.client import GeocodingClient
from .optimization.client import OptimizationClient
from .optimization.mapper import map_result
from .optimization.models import FleetConfiguration, JobStatus, MappedSolution, RoutePath, Solution
from .optimization.orchestrator import CancellationToken, OptimizationOrchestrator
from .optimization.request_builder import build_optimization_request, validate_directive
from .outputs.formatter import progress_label

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class PreparedOptimization:
    request: dict
    stop_when_fully_scheduled: bool


class PlannerSession:
    """Owns the catalog, the previous solution and the single optimization flight.

    Errors are caught at this boundary and kept as ``last_error``, the one
    notification the operator sees; the catalog and previous solution stay
    at their last known-good state.
    """

    def __init__(
        self,
        *,
        settings: Settings | None = None,
        catalog: StopCatalog | None = None,
        geocoder: GeocodingClient | None = None,
        optimization_client: OptimizationClient | None = None,
        orchestrator: OptimizationOrchestrator | None = None,
    ) -> None:
        self.settings = settings or default_settings
        self.catalog = catalog if catalog is not None else StopCatalog(max_stops=self.settings.max_stops)
        self.geocoder = geocoder or GeocodingClient()
        if orchestrator is None:
            orchestrator = OptimizationOrchestrator(
                optimization_client or OptimizationClient(),
                poll_interval=self.settings.poll_interval_seconds,
                timeout=self.settings.poll_timeout_seconds,
            )
        orchestrator.on_progress = self._on_progress
        self.orchestrator = orchestrator

        self.directive = InsertionDirective()
        self.previous_solution: Solution | None = None
        self.current_paths: list[RoutePath] = []
        self.previous_paths: list[RoutePath] = []
        self.progress: str | None = None
        self.last_error: str | None = None
        self._in_flight = False

    @property
    def is_optimizing(self) -> bool:
        return self._in_flight or self.orchestrator.is_active

    def _notify(self, error: Exception) -> None:
        self.last_error = f"Error: {error}"
        logger.warning(f"Planner error ({type(error).__name__}): {error}")

    def _on_progress(self, status: JobStatus) -> None:
        self.progress = progress_label(status.status, self.orchestrator.polls)

    async def place_stop(self, latitude: float, longitude: float) -> Stop:
        """Resolve the address of a position and add it as the next stop."""
        try:
            if self.is_optimizing:
                raise JobInProgressError("Stops cannot be added while an optimization is running.")
            if len(self.catalog) >= self.catalog.max_stops:
                raise InputError(f"You cannot add more than {self.catalog.max_stops} locations.")
            address = await self.geocoder.resolve_address(latitude, longitude)
            return self.catalog.add_stop(latitude, longitude, address)
        except PlannerError as exc:
            self._notify(exc)
            raise

    def set_directive(self, directive: InsertionDirective) -> InsertionDirective:
        try:
            validate_directive(self.catalog, directive)
        except InputError as exc:
            self._notify(exc)
            raise
        self.directive = directive
        return directive

    def prepare_optimization(
        self,
        *,
        vehicles_per_depot: int | None = None,
        stop_when_fully_scheduled: bool | None = None,
        now: datetime | None = None,
    ) -> PreparedOptimization:
        """Validate and build the next request, reserving the single flight."""
        try:
            if self.is_optimizing:
                raise JobInProgressError("An optimization is already running.")
            config = FleetConfiguration.from_settings(
                self.settings, vehicles_per_depot=vehicles_per_depot, now=now
            )
            request = build_optimization_request(
                self.catalog, config, self.previous_solution, self.directive
            )
        except PlannerError as exc:
            self._notify(exc)
            raise

        self._in_flight = True
        self.last_error = None
        if stop_when_fully_scheduled is None:
            stop_when_fully_scheduled = self.settings.stop_when_fully_scheduled
        return PreparedOptimization(request=request, stop_when_fully_scheduled=stop_when_fully_scheduled)

    async def execute(
        self,
        prepared: PreparedOptimization,
        cancel_token: CancellationToken | None = None,
    ) -> MappedSolution | None:
        """Run a prepared request to completion; failures end up in ``last_error``."""
        try:
            return await self.orchestrator.run(
                prepared.request,
                on_result=self._apply_result,
                stop_when_fully_scheduled=prepared.stop_when_fully_scheduled,
                cancel_token=cancel_token,
            )
        except PlannerError as exc:
            self._notify(exc)
            return None
        finally:
            self._in_flight = False
            self.progress = None

    async def optimize(
        self,
        *,
        vehicles_per_depot: int | None = None,
        stop_when_fully_scheduled: bool | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> MappedSolution | None:
        prepared = self.prepare_optimization(
            vehicles_per_depot=vehicles_per_depot,
            stop_when_fully_scheduled=stop_when_fully_scheduled,
        )
        return await self.execute(prepared, cancel_token=cancel_token)

    def _apply_result(self, result: dict) -> MappedSolution | None:
        mapped = map_result(result, self.catalog)
        if mapped is None:
            return None
        self.previous_solution = mapped.solution
        self.previous_paths = self.current_paths
        self.current_paths = mapped.paths
        return mapped


@lru_cache()
def get_planner() -> PlannerSession:
    """Process-wide planner session used by the HTTP layer."""
    return PlannerSession()
