"""Domain models for stops and insertion directives."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


@dataclass(slots=True)
class Assignment:
    """Where and when an optimization placed a delivery stop."""

    vehicle_id: str
    depot_id: str
    arrival_time: Optional[datetime] = None


@dataclass(slots=True)
class Stop:
    """A delivery point or depot placed by the operator."""

    id: str
    latitude: float
    longitude: float
    address: str
    color: str
    position: int
    is_depot: bool = False
    assignment: Optional[Assignment] = None
    used: bool = False

    @property
    def coordinates(self) -> tuple[float, float]:
        return (self.latitude, self.longitude)


class InsertionMode(str, Enum):
    UNCONSTRAINED = "unconstrained"
    SOFT_BEFORE = "soft-before"
    SOFT_AFTER = "soft-after"
    HARD_IMMEDIATELY_BEFORE = "hard-immediately-before"
    HARD_IMMEDIATELY_AFTER = "hard-immediately-after"

    @property
    def is_hard(self) -> bool:
        return self in (InsertionMode.HARD_IMMEDIATELY_BEFORE, InsertionMode.HARD_IMMEDIATELY_AFTER)

    @property
    def is_soft(self) -> bool:
        return self in (InsertionMode.SOFT_BEFORE, InsertionMode.SOFT_AFTER)


@dataclass(frozen=True, slots=True)
class InsertionDirective:
    """Where newly added stops should land relative to the previous solution."""

    mode: InsertionMode = InsertionMode.UNCONSTRAINED
    anchor_stop_id: Optional[str] = None

    @property
    def requires_anchor(self) -> bool:
        return self.mode is not InsertionMode.UNCONSTRAINED
