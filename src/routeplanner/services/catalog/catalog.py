"""In-memory catalog of the stops placed by the operator."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterator

from ...config import settings
from ...errors import InputError, MappingError
from ...models.domain import Assignment, Stop
from ..optimization.models import Solution, TaskKind
from .colors import color_from_index

logger = logging.getLogger(__name__)


def _parse_timestamp(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as exc:
        raise MappingError(f"Invalid arrival time '{value}'.") from exc


def _vehicle_sort_key(vehicle_id: str) -> tuple[int, int, str]:
    # Vehicle ids are numeric strings in practice, compare them as numbers
    if vehicle_id.isdigit():
        return (0, int(vehicle_id), "")
    return (1, 0, vehicle_id)


class StopCatalog:
    """Owns every stop and its assignment state across optimization cycles.

    Stops are never removed or re-indexed, so ids stay valid for any job
    that is still in flight.
    """

    def __init__(self, max_stops: int | None = None) -> None:
        self.max_stops = max_stops if max_stops is not None else settings.max_stops
        self._stops: dict[str, Stop] = {}

    def __len__(self) -> int:
        return len(self._stops)

    def __iter__(self) -> Iterator[Stop]:
        return iter(self._stops.values())

    def __contains__(self, stop_id: object) -> bool:
        return stop_id in self._stops

    def get(self, stop_id: str) -> Stop | None:
        return self._stops.get(stop_id)

    def add_stop(self, latitude: float, longitude: float, address: str) -> Stop:
        if len(self._stops) >= self.max_stops:
            raise InputError(f"You cannot add more than {self.max_stops} locations.")
        if not -90.0 <= latitude <= 90.0 or not -180.0 <= longitude <= 180.0:
            raise InputError(f"Invalid coordinates ({latitude}, {longitude}).")

        position = len(self._stops)
        stop = Stop(
            id=str(position + 1),
            latitude=latitude,
            longitude=longitude,
            address=address,
            color=color_from_index(position),
            position=position,
            is_depot=position == 0,
        )
        self._stops[stop.id] = stop
        logger.info(f"Added stop {stop.id} at ({latitude:.6f}, {longitude:.6f}) depot={stop.is_depot}")
        return stop

    def mark_depot(self, stop_id: str, is_depot: bool = True) -> Stop:
        stop = self._stops.get(stop_id)
        if stop is None:
            raise InputError(f"Stop {stop_id} not found.")
        if is_depot and stop.assignment is not None:
            raise InputError(f"Stop {stop_id} is routed as a delivery and cannot become a depot.")
        stop.is_depot = is_depot
        return stop

    def depots(self) -> list[Stop]:
        return [stop for stop in self._stops.values() if stop.is_depot]

    def deliveries(self) -> list[Stop]:
        return [stop for stop in self._stops.values() if not stop.is_depot]

    def has_depot(self) -> bool:
        return any(stop.is_depot for stop in self._stops.values())

    def ordered(self) -> list[Stop]:
        """Stops in display order: depots, then by vehicle, arrival and insertion order."""

        def key(stop: Stop) -> tuple:
            if stop.is_depot:
                return (0, stop.position)
            assignment = stop.assignment
            if assignment is None:
                return (2, stop.position)
            arrival = assignment.arrival_time
            return (
                1,
                _vehicle_sort_key(assignment.vehicle_id),
                arrival.timestamp() if arrival is not None else float("inf"),
                stop.position,
            )

        return sorted(self._stops.values(), key=key)

    def anchor_candidates(self) -> list[Stop]:
        """Stops a new insertion may be anchored on."""
        return [stop for stop in self.ordered() if not stop.is_depot and stop.used]

    def apply_solution(self, solution: Solution) -> None:
        """Record the assignments of ``solution``; all or nothing.

        Every stop id is checked before any stop is touched, so an
        inconsistent solution leaves the catalog exactly as it was.
        """
        missing = sorted(
            stop_id for stop_id in solution.referenced_stop_ids() if stop_id not in self._stops
        )
        if missing:
            raise MappingError(f"Solution references unknown stops: {', '.join(missing)}")

        updates: list[tuple[Stop, Assignment | None]] = []
        for route in solution.routes:
            for task in route.tasks:
                stop = self._stops[task.stop_id]
                if task.kind is TaskKind.DEPOT_VISIT:
                    updates.append((stop, None))
                    continue
                updates.append(
                    (
                        stop,
                        Assignment(
                            vehicle_id=route.vehicle_id,
                            depot_id=route.depot_id or "",
                            arrival_time=_parse_timestamp(task.arrival_time),
                        ),
                    )
                )

        for stop, assignment in updates:
            if assignment is not None:
                stop.assignment = assignment
            stop.used = True

        logger.info(f"Applied solution: {len(solution.routes)} routes, {len(updates)} tasks")
