"""Optimization domain models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import List, Optional

TERMINAL_STATUSES = frozenset({"SUCCEEDED", "FAILED"})


class TaskKind(str, Enum):
    DELIVERY = "delivery"
    DEPOT_VISIT = "depot-visit"


@dataclass(slots=True)
class Task:
    stop_id: str
    kind: TaskKind
    type: str
    arrival_time: Optional[str] = None


@dataclass(slots=True)
class Break:
    start_time: str
    duration: int


@dataclass(slots=True)
class Route:
    vehicle_id: str
    start_time: Optional[str]
    depot_id: Optional[str] = None
    tasks: List[Task] = field(default_factory=list)
    breaks: List[Break] = field(default_factory=list)

    def delivery_categories(self) -> list[str]:
        """Stop ids of the non-depot tasks, in visiting order."""
        return [task.stop_id for task in self.tasks if task.kind is TaskKind.DELIVERY]


@dataclass(slots=True)
class Solution:
    routes: List[Route] = field(default_factory=list)

    def referenced_stop_ids(self) -> set[str]:
        return {task.stop_id for route in self.routes for task in route.tasks}


@dataclass(slots=True)
class RoutePath:
    vehicle_id: str
    coordinates: List[tuple[float, float]]


@dataclass(slots=True)
class MappedSolution:
    solution: Solution
    paths: List[RoutePath]


@dataclass(slots=True)
class JobStatus:
    job_id: str
    status: str
    unscheduled_orders: Optional[int] = None
    payload: dict = field(default_factory=dict)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def is_fully_scheduled(self) -> bool:
        return self.unscheduled_orders == 0


@dataclass(frozen=True, slots=True)
class FleetConfiguration:
    """Read-only fleet sizing and cost parameters for one request."""

    vehicles_per_depot: int
    cost_per_hour: float
    cost_per_kilometer: float
    fixed_cost: float
    service_duration: int
    optimization_duration: int
    earliest_start: datetime
    latest_end: datetime
    routing_profile: str = "EUR_CAR"

    @classmethod
    def from_settings(
        cls,
        settings,
        *,
        vehicles_per_depot: int | None = None,
        now: datetime | None = None,
    ) -> "FleetConfiguration":
        current = now or datetime.now().astimezone()
        start_of_day = current.replace(hour=0, minute=0, second=0, microsecond=0)
        return cls(
            vehicles_per_depot=vehicles_per_depot or settings.vehicles_per_depot,
            cost_per_hour=settings.vehicle_cost_per_hour,
            cost_per_kilometer=settings.vehicle_cost_per_kilometer,
            fixed_cost=settings.vehicle_fixed_cost,
            service_duration=settings.service_duration_seconds,
            optimization_duration=settings.optimization_duration_seconds,
            earliest_start=start_of_day,
            latest_end=start_of_day + timedelta(days=settings.operating_days),
            routing_profile=settings.routing_profile,
        )
