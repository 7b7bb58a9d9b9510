"""Stop placement endpoints."""

from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from ...errors import InputError, JobInProgressError, PlannerError
from ...schemas.planner import StopCreateRequest, StopModel
from ...services.outputs.formatter import stop_to_json
from ...services.planner import PlannerSession, get_planner

router = APIRouter(prefix="/stops", tags=["stops"])


@router.post("", response_model=StopModel, status_code=status.HTTP_201_CREATED)
async def place_stop(payload: StopCreateRequest, planner: PlannerSession = Depends(get_planner)) -> dict:
    try:
        stop = await planner.place_stop(payload.latitude, payload.longitude)
    except InputError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except JobInProgressError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except PlannerError as exc:
        logging.exception(f"Error placing stop: {exc}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
    return stop_to_json(stop)


@router.get("", response_model=List[StopModel], status_code=status.HTTP_200_OK)
def list_stops(planner: PlannerSession = Depends(get_planner)) -> list[dict]:
    """Stops in display order."""
    return [stop_to_json(stop) for stop in planner.catalog.ordered()]


@router.get("/anchors", response_model=List[StopModel], status_code=status.HTTP_200_OK)
def list_anchor_candidates(planner: PlannerSession = Depends(get_planner)) -> list[dict]:
    """Stops new insertions can be anchored on."""
    return [stop_to_json(stop) for stop in planner.catalog.anchor_candidates()]
