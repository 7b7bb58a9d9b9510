"""Planner request/response schemas."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from ..models.domain import InsertionMode


class StopCreateRequest(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class StopModel(BaseModel):
    id: str
    latitude: float
    longitude: float
    address: str
    color: str
    is_depot: bool
    used: bool
    vehicle_id: Optional[str] = None
    depot_id: Optional[str] = None
    arrival_time: Optional[str] = None


class InsertionDirectiveModel(BaseModel):
    mode: InsertionMode = InsertionMode.UNCONSTRAINED
    anchor_stop_id: Optional[str] = Field(
        default=None,
        description="Stop the new stops are placed relative to. Required unless mode is 'unconstrained'.",
    )


class OptimizationStartRequest(BaseModel):
    vehicles_per_depot: Optional[int] = Field(default=None, ge=1)
    stop_when_fully_scheduled: Optional[bool] = Field(
        default=None,
        description="Stop the optimization as soon as every stop is scheduled.",
    )


class OptimizationStatusModel(BaseModel):
    state: str
    job_id: Optional[str] = None
    status: Optional[str] = None
    unscheduled_orders: Optional[int] = None
    progress: Optional[str] = None
    last_error: Optional[str] = None


class RoutePathModel(BaseModel):
    vehicle_id: str
    coordinates: List[List[float]]


class RoutePathsResponse(BaseModel):
    current: List[RoutePathModel]
    previous: List[RoutePathModel]
