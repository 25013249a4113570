"""Trip planning orchestration service."""

from __future__ import annotations

import logging
import time
from typing import Optional, Sequence

import httpx

from ...config import settings
from ...models.domain import Coordinate, SegmentMeta, SegmentRequest
from ...schemas.planner import (
    DayRouteModel,
    LineStringModel,
    PlanRequest,
    PlanResponse,
    SegmentDetailModel,
    TripConstraintsModel,
)
from ..segments.strava_client import SegmentLookupError, StravaSegmentClient
from .cost_matrix import CostMatrix
from .errors import PlannerError, PlannerErrorKind
from .models import DayPartition, Solution, StitchedGeometry, TripConstraints
from .osrm_client import OSRMClient, OSRMConnectors
from .partitioner import build_trip_constraints, partition_route
from .solver import solve_segment_order
from .stitcher import extract_day_geometry, stitch_route_geometry
from .waypoints import build_waypoint_plan, orient_segments

logger = logging.getLogger(__name__)


def _failure(
    kind: PlannerErrorKind,
    details: str,
    constraints: Optional[TripConstraintsModel] = None,
) -> PlanResponse:
    return PlanResponse(ok=False, error=kind.value, details=details, constraints=constraints)


def _constraints_model(payload: PlanRequest, constraints: TripConstraints) -> TripConstraintsModel:
    return TripConstraintsModel(
        start_date=payload.start_date,
        end_date=payload.end_date,
        max_days=constraints.max_days,
        max_daily_distance_km=payload.max_daily_distance_km,
        max_daily_elevation_m=payload.max_daily_elevation_m,
    )


def _resolve_segment_metas(requests: Sequence[SegmentRequest]) -> list[SegmentMeta]:
    client = StravaSegmentClient()
    metas = [client.get_segment_meta(request.segment_id) for request in requests]
    logger.info(
        "Resolved %d segments: %s",
        len(metas),
        [(meta.segment_id, meta.name, round(meta.distance_m)) for meta in metas],
    )
    return metas


def _make_osrm_client() -> Optional[OSRMClient]:
    try:
        return OSRMClient()
    except ValueError as e:
        logger.warning(f"OSRM client unavailable: {e}. Using straight-line distances and geometry.")
        return None


def _get_cost_matrix(osrm_client: Optional[OSRMClient], waypoints: Sequence[Coordinate]) -> CostMatrix:
    if osrm_client is None:
        return CostMatrix.from_haversine(waypoints)
    try:
        return CostMatrix.from_osrm(osrm_client.table(waypoints))
    except (httpx.HTTPError, ConnectionError, ValueError) as e:
        logger.warning(f"OSRM table request failed: {e}. Using haversine fallback.")
        return CostMatrix.from_haversine(waypoints)


def _build_day_routes(
    solution: Solution,
    partitions: Sequence[DayPartition],
    stitched: StitchedGeometry,
    metas: Sequence[SegmentMeta],
) -> list[DayRouteModel]:
    routes: list[DayRouteModel] = []
    for partition in partitions:
        day_geometry = extract_day_geometry(stitched, partition)
        segments = []
        for index in partition.segment_indices:
            meta = metas[solution.ordered_segments[index].request_index]
            segments.append(SegmentDetailModel(id=meta.segment_id, name=meta.name, strava_url=meta.strava_url))
        routes.append(
            DayRouteModel(
                day_number=partition.day_number,
                geometry=LineStringModel(coordinates=day_geometry.coordinates),
                distance_km=partition.distance_km,
                elevation_gain_m=partition.elevation_gain_m,
                duration_minutes=partition.duration_min,
                segments=segments,
            )
        )
    return routes


def plan_trip(payload: PlanRequest) -> PlanResponse:
    """Run the full pipeline for one planning request.

    Expected planning failures come back as ``ok=False`` responses;
    :class:`PlannerInvariantError` propagates to the caller.
    """
    plan_start = time.perf_counter()
    requests = [SegmentRequest(segment_id=item.segment_id, forward=item.forward) for item in payload.segments]
    constraints = build_trip_constraints(
        payload.start_date,
        payload.end_date,
        payload.max_daily_distance_km,
        payload.max_daily_elevation_m,
    )
    constraints_model = _constraints_model(payload, constraints)
    logger.info(
        "Planning trip: %d segments, %d days, trip start: %s",
        len(requests),
        constraints.max_days,
        payload.trip_start is not None,
    )

    if constraints.max_days > settings.max_trip_days:
        return _failure(
            PlannerErrorKind.NEED_MORE_DAYS,
            f"Trip duration of {constraints.max_days} days exceeds maximum supported limit of "
            f"{settings.max_trip_days} days",
            constraints_model,
        )

    try:
        metas = _resolve_segment_metas(requests)
    except (SegmentLookupError, ValueError) as e:
        logger.error(f"Failed to resolve segment metadata: {e}")
        return _failure(PlannerErrorKind.EXTERNAL_API, str(e), constraints_model)

    try:
        oriented = orient_segments(requests, metas)
        waypoint_plan = build_waypoint_plan(requests, oriented, payload.trip_start)
        osrm_client = _make_osrm_client()
        matrix = _get_cost_matrix(osrm_client, waypoint_plan.waypoints)
        matrix.validate(expected_size=len(waypoint_plan.waypoints))

        solution = solve_segment_order(matrix, waypoint_plan.segments, waypoint_plan.trip_start_index)

        partition = partition_route(solution, oriented, matrix, constraints, waypoint_plan.trip_start_index)
        if not partition.success:
            logger.warning(f"Partitioning failed ({partition.error.value}): {partition.details}")
            return _failure(partition.error, partition.details or "", constraints_model)

        connectors = OSRMConnectors(osrm_client) if osrm_client is not None else None
        stitched = stitch_route_geometry(solution, oriented, waypoint_plan, matrix, connectors)
    except PlannerError as e:
        logger.warning(f"Trip planning failed ({e.kind.value}): {e.details}")
        return _failure(e.kind, e.details, constraints_model)

    routes = _build_day_routes(solution, partition.partitions, stitched, oriented)
    elapsed_ms = (time.perf_counter() - plan_start) * 1000.0
    logger.info(f"Planned {len(routes)} days with {solution.method} in {elapsed_ms:.0f}ms")

    return PlanResponse(
        ok=True,
        routes=routes,
        total_distance_km=sum(route.distance_km for route in routes),
        total_elevation_gain_m=sum(route.elevation_gain_m for route in routes),
        total_duration_minutes=sum(route.duration_minutes for route in routes),
        constraints=constraints_model,
        metadata={
            "solver_method": solution.method,
            "solve_time_ms": round(solution.solve_time_ms, 2),
            "matrix_source": matrix.source,
            "waypoint_count": len(waypoint_plan.waypoints),
            "solution_distance_m": round(solution.total_distance_m, 1),
            "geometry_points": len(stitched.coordinates),
            "planning_time_ms": round(elapsed_ms, 2),
        },
    )
