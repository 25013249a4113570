"""Trip planning endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Query, status
from fastapi.responses import Response

from ...schemas.planner import PlanRequest, PlanResponse
from ...services.export.geojson import plan_to_feature_collection
from ...services.export.gpx import day_route_to_gpx, gpx_file_name, plan_to_gpx
from ...services.outputs.trip_formatter import plan_to_csv
from ...services.planning.errors import PlannerInvariantError
from ...services.planning.service import plan_trip

router = APIRouter(prefix="/trips", tags=["trips"])

logger = logging.getLogger(__name__)


def _run_planner(payload: PlanRequest) -> PlanResponse:
    try:
        return plan_trip(payload)
    except PlannerInvariantError as exc:
        logger.exception(f"Planner invariant violated: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal planner error",
        ) from exc
    except Exception as exc:
        logger.exception(f"Error planning trip: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to plan trip",
        ) from exc


def _require_success(plan: PlanResponse) -> PlanResponse:
    if not plan.ok:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": plan.error, "details": plan.details},
        )
    return plan


@router.post("/plan", response_model=PlanResponse, status_code=status.HTTP_200_OK)
def plan(payload: PlanRequest) -> PlanResponse:
    """Plan a multi-day trip.

    Planning failures (for example ``needMoreDays``) are reported in the
    body with ``ok=false`` rather than as an HTTP error.
    """
    return _run_planner(payload)


@router.post("/plan/geojson", status_code=status.HTTP_200_OK)
def plan_geojson(payload: PlanRequest) -> dict:
    """Plan a trip and return one GeoJSON feature per day."""
    result = _require_success(_run_planner(payload))
    return plan_to_feature_collection(result)


@router.post("/plan/csv", status_code=status.HTTP_200_OK)
def plan_csv(payload: PlanRequest) -> Response:
    result = _require_success(_run_planner(payload))
    return Response(
        content=plan_to_csv(result),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="trip_plan.csv"'},
    )


@router.post("/plan/gpx", status_code=status.HTTP_200_OK)
def plan_gpx(
    payload: PlanRequest,
    day: int | None = Query(default=None, ge=1, description="Export only this day"),
) -> Response:
    """Plan a trip and return it as GPX, one track per day or a single day."""
    result = _require_success(_run_planner(payload))
    if day is None:
        content = plan_to_gpx(result)
        file_name = f"cycling-trip-{len(result.routes)}-days"
    else:
        route = next((item for item in result.routes if item.day_number == day), None)
        if route is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Day {day} not found; the trip has {len(result.routes)} days",
            )
        file_name = gpx_file_name(route)
        content = day_route_to_gpx(route, file_name)
    return Response(
        content=content,
        media_type="application/gpx+xml",
        headers={"Content-Disposition": f'attachment; filename="{file_name}.gpx"'},
    )
