"""Optimization endpoints."""

from __future__ import annotations

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status

from ...errors import InputError, JobInProgressError
from ...models.domain import InsertionDirective
from ...schemas.planner import (
    InsertionDirectiveModel,
    OptimizationStartRequest,
    OptimizationStatusModel,
    RoutePathsResponse,
)
from ...services.outputs.formatter import paths_to_json
from ...services.planner import PlannerSession, get_planner

router = APIRouter(prefix="/optimization", tags=["optimization"])


def _status(planner: PlannerSession) -> OptimizationStatusModel:
    orchestrator = planner.orchestrator
    last_status = orchestrator.last_status
    return OptimizationStatusModel(
        state=orchestrator.state.value,
        job_id=orchestrator.job_id,
        status=last_status.status if last_status else None,
        unscheduled_orders=last_status.unscheduled_orders if last_status else None,
        progress=planner.progress,
        last_error=planner.last_error,
    )


@router.get("/directive", response_model=InsertionDirectiveModel, status_code=status.HTTP_200_OK)
def get_directive(planner: PlannerSession = Depends(get_planner)) -> InsertionDirectiveModel:
    directive = planner.directive
    return InsertionDirectiveModel(mode=directive.mode, anchor_stop_id=directive.anchor_stop_id)


@router.put("/directive", response_model=InsertionDirectiveModel, status_code=status.HTTP_200_OK)
def set_directive(
    payload: InsertionDirectiveModel,
    planner: PlannerSession = Depends(get_planner),
) -> InsertionDirectiveModel:
    try:
        planner.set_directive(InsertionDirective(mode=payload.mode, anchor_stop_id=payload.anchor_stop_id))
    except InputError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return payload


@router.post("/start", response_model=OptimizationStatusModel, status_code=status.HTTP_202_ACCEPTED)
def start_optimization(
    payload: OptimizationStartRequest,
    background_tasks: BackgroundTasks,
    planner: PlannerSession = Depends(get_planner),
) -> OptimizationStatusModel:
    """Validate and build the request, then run the job in the background."""
    try:
        prepared = planner.prepare_optimization(
            vehicles_per_depot=payload.vehicles_per_depot,
            stop_when_fully_scheduled=payload.stop_when_fully_scheduled,
        )
    except InputError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except JobInProgressError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc

    background_tasks.add_task(planner.execute, prepared)
    return _status(planner)


@router.get("/status", response_model=OptimizationStatusModel, status_code=status.HTTP_200_OK)
def optimization_status(planner: PlannerSession = Depends(get_planner)) -> OptimizationStatusModel:
    return _status(planner)


@router.get("/paths", response_model=RoutePathsResponse, status_code=status.HTTP_200_OK)
def route_paths(planner: PlannerSession = Depends(get_planner)) -> RoutePathsResponse:
    """Traversal paths of the latest solution and of the one before it."""
    return RoutePathsResponse(
        current=paths_to_json(planner.current_paths),
        previous=paths_to_json(planner.previous_paths),
    )
