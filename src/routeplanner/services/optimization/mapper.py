"""Map a finished optimization result back onto the stop catalog."""

from __future__ import annotations

import logging
from typing import Any, Optional

from ...errors import MappingError
from ..catalog.catalog import StopCatalog
from .models import Break, MappedSolution, Route, RoutePath, Solution, Task, TaskKind

logger = logging.getLogger(__name__)


def _normalize_task(raw_task: dict, arrival: Optional[str]) -> Task:
    depot_id = raw_task.get("depotId")
    order_id = raw_task.get("orderId")
    task_type = str(raw_task.get("type", ""))
    if depot_id is not None:
        return Task(stop_id=str(depot_id), kind=TaskKind.DEPOT_VISIT, type=task_type, arrival_time=arrival)
    if order_id is not None:
        return Task(stop_id=str(order_id), kind=TaskKind.DELIVERY, type=task_type, arrival_time=arrival)
    raise MappingError(f"Task without order or depot reference: {raw_task}")


def normalize_route(raw_route: dict) -> Route:
    """Keep only what a later request needs: vehicle, start, tasks and breaks."""
    try:
        vehicle_id = str(raw_route["vehicleId"])
        start = raw_route.get("start") or {}
        route = Route(
            vehicle_id=vehicle_id,
            start_time=start.get("departure"),
            depot_id=str(start["locationId"]) if start.get("locationId") is not None else None,
        )
        for stop in raw_route.get("stops", []):
            arrival = stop.get("arrival")
            for appointment in stop.get("appointments", []):
                for raw_task in appointment.get("tasks", []):
                    route.tasks.append(_normalize_task(raw_task, arrival))
                for pause in appointment.get("breaks", []):
                    route.breaks.append(Break(start_time=pause["start"], duration=int(pause["duration"])))
    except (AttributeError, KeyError, TypeError, ValueError) as exc:
        raise MappingError(f"Malformed route in optimization result: {exc}") from exc
    return route


def extract_solution(result: dict) -> Solution:
    return Solution(routes=[normalize_route(raw_route) for raw_route in result.get("routes") or []])


def _coordinates(catalog: StopCatalog, stop_id: Any) -> tuple[float, float]:
    stop = catalog.get(str(stop_id))
    if stop is None:
        raise MappingError(f"Optimization result references unknown location {stop_id}.")
    return stop.coordinates


def _route_location(raw_route: dict, key: str) -> Any:
    location = raw_route.get(key) or {}
    if not isinstance(location, dict):
        raise MappingError(f"Malformed route {key} in optimization result: {location!r}")
    return location.get("locationId")


def route_path(raw_route: dict, route: Route, catalog: StopCatalog) -> RoutePath:
    """Start location, every delivery in visiting order, end location."""
    start = _route_location(raw_route, "start")
    end = _route_location(raw_route, "end")
    coordinates = [_coordinates(catalog, start)]
    for task in route.tasks:
        if task.kind is TaskKind.DELIVERY:
            coordinates.append(_coordinates(catalog, task.stop_id))
    coordinates.append(_coordinates(catalog, end))
    return RoutePath(vehicle_id=route.vehicle_id, coordinates=coordinates)


def map_result(result: dict, catalog: StopCatalog) -> MappedSolution | None:
    """Apply a terminal result to ``catalog`` and return the solution and paths.

    Returns ``None`` when the result carries no routes. Nothing in the
    catalog changes unless the whole result maps cleanly.
    """
    raw_routes = result.get("routes")
    if raw_routes is None:
        logger.warning("Optimization result has no routes, nothing to apply")
        return None

    if not isinstance(raw_routes, list):
        raise MappingError(f"Optimization result routes must be a list, got {type(raw_routes).__name__}.")
    solution = extract_solution(result)
    paths = [route_path(raw_route, route, catalog) for raw_route, route in zip(raw_routes, solution.routes)]
    catalog.apply_solution(solution)

    logger.info(
        f"Mapped optimization result: {len(solution.routes)} routes, "
        f"{sum(len(route.delivery_categories()) for route in solution.routes)} deliveries"
    )
    return MappedSolution(solution=solution, paths=paths)
