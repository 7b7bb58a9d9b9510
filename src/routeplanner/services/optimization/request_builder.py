"""Build optimization requests from the stop catalog and the previous solution.

Every delivery carries two categories: its own stop id and either ``new``
(never routed) or ``optimized`` (routed by an earlier cycle). Constraints
reference stops through these categories:

* respected sequences keep the previous visiting order of each route, with
  ``new`` spliced next to the anchor for the hard insertion modes;
* a forbidden sequence orders ``new`` relative to the anchor for the soft
  insertion modes;
* order/vehicle combinations pin routed stops to their previous vehicle.

The functions here are pure: the same catalog, configuration, solution and
directive always produce the same request.
"""

from __future__ import annotations

import logging
from typing import Optional

from ...errors import InputError
from ...models.domain import InsertionDirective, InsertionMode, Stop
from ..catalog.catalog import StopCatalog
from .models import FleetConfiguration, Route, Solution, TaskKind

logger = logging.getLogger(__name__)

NEW_CATEGORY = "new"
OPTIMIZED_CATEGORY = "optimized"
NOT_BEFORE = "NOT_BEFORE"
ORDER_REQUIRES_VEHICLE = "ORDER_REQUIRES_VEHICLE"


def validate_directive(catalog: StopCatalog, directive: InsertionDirective | None) -> None:
    """Reject a directive whose anchor cannot be honoured."""
    if directive is None or not directive.requires_anchor:
        return
    anchor_id = directive.anchor_stop_id
    if not anchor_id:
        raise InputError(f"Insertion mode '{directive.mode.value}' requires an anchor stop.")
    anchor = catalog.get(anchor_id)
    if anchor is None:
        raise InputError(f"Anchor stop {anchor_id} not found.")
    if anchor.is_depot:
        raise InputError(f"Anchor stop {anchor_id} is a depot.")
    if not anchor.used:
        raise InputError(f"Anchor stop {anchor_id} is not part of the previous routes.")


def _location(stop: Stop) -> dict:
    return {
        "id": stop.id,
        "latitude": stop.latitude,
        "longitude": stop.longitude,
    }


def _delivery(stop: Stop, config: FleetConfiguration) -> dict:
    state_category = OPTIMIZED_CATEGORY if stop.assignment is not None else NEW_CATEGORY
    return {
        "id": stop.id,
        "delivery": {
            "locationId": stop.id,
            "duration": config.service_duration,
            "categories": [stop.id, state_category],
        },
        "properties": {
            "categories": [stop.id],
        },
    }


def _vehicle(depot: Stop, vehicle_id: str, config: FleetConfiguration) -> dict:
    return {
        "id": vehicle_id,
        "costs": {
            "perHour": config.cost_per_hour,
            "perKilometer": config.cost_per_kilometer,
            "fixed": config.fixed_cost,
        },
        "start": {
            "locationId": depot.id,
            "earliestStartTime": config.earliest_start.isoformat(),
        },
        "end": {
            "locationId": depot.id,
            "latestEndTime": config.latest_end.isoformat(),
        },
        "routing": {
            "profile": config.routing_profile,
        },
        "categories": [vehicle_id],
    }


def _depot(stop: Stop) -> dict:
    return {
        "id": stop.id,
        "locationId": stop.id,
    }


def _order_vehicle_combination(stop: Stop) -> dict:
    return {
        "type": ORDER_REQUIRES_VEHICLE,
        "orderCategory": stop.id,
        "vehicleCategory": stop.assignment.vehicle_id,
    }


def route_to_structure(route: Route) -> dict:
    """Serialize a previous route into the ``routes`` input of a request."""
    tasks = []
    for task in route.tasks:
        entry = {"type": task.type}
        if task.kind is TaskKind.DEPOT_VISIT:
            entry["depotId"] = task.stop_id
        else:
            entry["orderId"] = task.stop_id
        tasks.append(entry)

    structure = {"vehicleId": route.vehicle_id}
    if route.start_time is not None:
        structure["start"] = route.start_time
    structure["tasks"] = tasks
    structure["breaks"] = [
        {"start": pause.start_time, "duration": pause.duration} for pause in route.breaks
    ]
    return structure


def respected_sequence(route: Route, directive: InsertionDirective | None = None) -> dict:
    """Keep the previous order of the route; splice ``new`` for hard insertions.

    When the anchor belongs to another route nothing is spliced here.
    """
    categories = route.delivery_categories()
    if directive is not None and directive.mode.is_hard and directive.anchor_stop_id in categories:
        index = categories.index(directive.anchor_stop_id)
        if directive.mode is InsertionMode.HARD_IMMEDIATELY_AFTER:
            index += 1
        categories.insert(index, NEW_CATEGORY)
    return {"taskCategories": categories}


def forbidden_sequence(directive: InsertionDirective | None) -> Optional[dict]:
    if directive is None or not directive.mode.is_soft:
        return None
    anchor = directive.anchor_stop_id
    if directive.mode is InsertionMode.SOFT_BEFORE:
        # the anchor must not come before the new stops
        return {
            "firstTaskCategory": anchor,
            "type": NOT_BEFORE,
            "secondTaskCategory": NEW_CATEGORY,
        }
    return {
        "firstTaskCategory": NEW_CATEGORY,
        "type": NOT_BEFORE,
        "secondTaskCategory": anchor,
    }


def build_optimization_request(
    catalog: StopCatalog,
    config: FleetConfiguration,
    previous_solution: Solution | None = None,
    directive: InsertionDirective | None = None,
) -> dict:
    if not catalog.has_depot():
        raise InputError("No depot found.")
    validate_directive(catalog, directive)

    locations: list[dict] = []
    deliveries: list[dict] = []
    vehicles: list[dict] = []
    depots: list[dict] = []
    order_vehicle: list[dict] = []
    respected_sequences: list[dict] = []
    forbidden_sequences: list[dict] = []
    routes: list[dict] = []

    vehicle_number = 0
    for stop in catalog:
        locations.append(_location(stop))

        if stop.is_depot:
            depots.append(_depot(stop))
            for _ in range(config.vehicles_per_depot):
                vehicle_number += 1
                vehicles.append(_vehicle(stop, str(vehicle_number), config))
        else:
            deliveries.append(_delivery(stop, config))

        if stop.assignment is not None and stop.assignment.depot_id:
            order_vehicle.append(_order_vehicle_combination(stop))

    if previous_solution is not None and previous_solution.routes:
        for route in previous_solution.routes:
            routes.append(route_to_structure(route))
            respected_sequences.append(respected_sequence(route, directive))
        forbidden = forbidden_sequence(directive)
        if forbidden is not None:
            forbidden_sequences.append(forbidden)

    logger.info(
        f"Built optimization request: {len(locations)} locations, {len(deliveries)} deliveries, "
        f"{len(vehicles)} vehicles, {len(order_vehicle)} pinned orders, "
        f"{len(respected_sequences)} respected / {len(forbidden_sequences)} forbidden sequences"
    )

    return {
        "locations": locations,
        "orders": {
            "deliveries": deliveries,
        },
        "vehicles": vehicles,
        "depots": depots,
        "settings": {
            "duration": config.optimization_duration,
        },
        "constraints": {
            "combinations": {
                "orderVehicle": order_vehicle,
            },
            "tasks": {
                "respectedSequences": respected_sequences,
                "forbiddenSequences": forbidden_sequences,
            },
        },
        "routes": routes,
    }
