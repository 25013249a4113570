"""Expand requested segments into the waypoint list used for the cost matrix."""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from ...config import settings
from ...models.domain import Coordinate, SegmentMeta, SegmentRequest, is_valid_coordinate
from .errors import PlannerError, PlannerErrorKind
from .models import OrderedSegment, WaypointPlan

logger = logging.getLogger(__name__)


def orient_segments(
    requests: Sequence[SegmentRequest],
    metas: Sequence[SegmentMeta],
) -> list[SegmentMeta]:
    """Return metadata with start/end and geometry flipped for reverse requests."""
    if len(requests) != len(metas):
        raise PlannerError(
            PlannerErrorKind.INVALID_INPUT,
            f"Got metadata for {len(metas)} segments but {len(requests)} were requested",
        )
    return [meta.oriented(request.forward) for request, meta in zip(requests, metas)]


def build_waypoint_plan(
    requests: Sequence[SegmentRequest],
    metas: Sequence[SegmentMeta],
    trip_start: Optional[Coordinate] = None,
) -> WaypointPlan:
    """Build the waypoint list: optional trip start at 0, then start/end per segment.

    ``metas`` must already be oriented (see :func:`orient_segments`), so the
    start waypoint of every pair is where the rider enters the segment.
    """
    if not requests:
        raise PlannerError(PlannerErrorKind.INVALID_INPUT, "At least one segment is required")
    if len(requests) != len(metas):
        raise PlannerError(
            PlannerErrorKind.INVALID_INPUT,
            f"Got metadata for {len(metas)} segments but {len(requests)} were requested",
        )

    waypoints: list[Coordinate] = []
    trip_start_index: Optional[int] = None
    if trip_start is not None:
        if not is_valid_coordinate(trip_start):
            raise PlannerError(
                PlannerErrorKind.INVALID_INPUT,
                f"Trip start {trip_start!r} is not a valid (longitude, latitude) pair",
            )
        waypoints.append((float(trip_start[0]), float(trip_start[1])))
        trip_start_index = 0

    segments: list[OrderedSegment] = []
    for request_index, (request, meta) in enumerate(zip(requests, metas)):
        if meta.segment_id != request.segment_id:
            raise PlannerError(
                PlannerErrorKind.INVALID_INPUT,
                f"Metadata for segment {meta.segment_id} does not match requested segment {request.segment_id}",
            )
        start, end = meta.endpoints()
        waypoints.append(start)
        waypoints.append(end)
        segments.append(
            OrderedSegment(
                segment_id=request.segment_id,
                forward=request.forward,
                request_index=request_index,
                start_index=len(waypoints) - 2,
                end_index=len(waypoints) - 1,
            )
        )

    if len(waypoints) > settings.max_matrix_waypoints:
        raise PlannerError(
            PlannerErrorKind.INVALID_INPUT,
            f"Too many waypoints ({len(waypoints)}). Maximum is {settings.max_matrix_waypoints}; "
            "remove a segment or the trip start.",
        )

    logger.debug(
        "Built %d waypoints for %d segments (trip start: %s)",
        len(waypoints),
        len(segments),
        trip_start_index is not None,
    )
    return WaypointPlan(waypoints=waypoints, segments=segments, trip_start_index=trip_start_index)
