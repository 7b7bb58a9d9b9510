"""Serializers for planner state shown to the operator."""

from __future__ import annotations

from typing import Sequence

from ...models.domain import Stop
from ..optimization.models import RoutePath


def progress_label(status: str, tick: int) -> str:
    """Status text followed by one to three dots, cycling with each poll."""
    dots = "." * ((tick % 3) + 1)
    return f"{status}{dots}"


def stop_to_json(stop: Stop) -> dict:
    assignment = stop.assignment
    return {
        "id": stop.id,
        "latitude": stop.latitude,
        "longitude": stop.longitude,
        "address": stop.address,
        "color": stop.color,
        "is_depot": stop.is_depot,
        "used": stop.used,
        "vehicle_id": assignment.vehicle_id if assignment else None,
        "depot_id": assignment.depot_id if assignment else None,
        "arrival_time": assignment.arrival_time.isoformat()
        if assignment and assignment.arrival_time
        else None,
    }


def paths_to_json(paths: Sequence[RoutePath]) -> list[dict]:
    return [
        {
            "vehicle_id": path.vehicle_id,
            "coordinates": [list(point) for point in path.coordinates],
        }
        for path in paths
    ]
