"""Stitch connector and segment geometry into one trip polyline, and slice it per day."""

from __future__ import annotations

import logging
import time
from bisect import bisect_right
from typing import Optional, Protocol, Sequence

from ...models.domain import Coordinate, SegmentMeta
from ..geospatial import coordinate_distance_m, usable_polyline
from .cost_matrix import CostMatrix
from .errors import PlannerError, PlannerInvariantError
from .models import DayGeometry, DayPartition, Solution, StitchedGeometry, WaypointPlan

logger = logging.getLogger(__name__)


class ConnectorProvider(Protocol):
    def connector(self, origin: Coordinate, destination: Coordinate) -> Optional[Sequence[Coordinate]]:
        """Return the travel path from origin to destination, or None if unknown."""


class StraightLineConnectors:
    """Connector provider that never has road geometry."""

    def connector(self, origin: Coordinate, destination: Coordinate) -> Optional[Sequence[Coordinate]]:
        return None


class _PolylineBuilder:
    __slots__ = ("coordinates", "cumulative")

    def __init__(self) -> None:
        self.coordinates: list[Coordinate] = []
        self.cumulative: list[float] = []

    @property
    def distance(self) -> float:
        return self.cumulative[-1] if self.cumulative else 0.0

    def extend(self, points: Sequence[Coordinate]) -> None:
        for point in points:
            if not self.coordinates:
                self.coordinates.append(point)
                self.cumulative.append(0.0)
                continue
            last = self.coordinates[-1]
            if point == last:
                continue
            self.coordinates.append(point)
            self.cumulative.append(self.cumulative[-1] + coordinate_distance_m(last, point))


def _connector_path(
    provider: ConnectorProvider,
    origin: Coordinate,
    destination: Coordinate,
    step: int,
) -> list[Coordinate]:
    if origin == destination:
        return [origin]
    path = usable_polyline(provider.connector(origin, destination))
    if path is None:
        logger.warning("No connector geometry for step %d; using a straight line", step)
        return [origin, destination]
    # snap to the waypoints so consecutive legs meet exactly
    path[0] = origin
    path[-1] = destination
    return path


def _segment_path(meta: SegmentMeta) -> list[Coordinate]:
    start, end = meta.endpoints()
    path = usable_polyline(meta.geometry)
    if path is None:
        logger.warning(
            "Segment %s (%s) has no stored geometry; using a straight line", meta.segment_id, meta.name
        )
        return [start, end]
    return path


def stitch_route_geometry(
    solution: Solution,
    segment_metas: Sequence[SegmentMeta],
    waypoint_plan: WaypointPlan,
    matrix: CostMatrix,
    connectors: Optional[ConnectorProvider] = None,
) -> StitchedGeometry:
    """Concatenate, in solved order, each connector path and each segment path.

    ``segment_metas`` must be oriented and indexed by ``request_index``.
    Missing or malformed leg geometry degrades to a straight line; only a
    segment without any coordinates fails the stitch.
    """
    stitch_start = time.perf_counter()
    connectors = connectors or StraightLineConnectors()

    if matrix.size != len(waypoint_plan.waypoints):
        raise PlannerInvariantError(
            f"Cost matrix has {matrix.size} rows but the trip has {len(waypoint_plan.waypoints)} waypoints"
        )

    builder = _PolylineBuilder()
    step_bounds: list[tuple[float, float]] = []
    position: Optional[Coordinate] = None
    if waypoint_plan.trip_start_index is not None:
        position = waypoint_plan.waypoints[waypoint_plan.trip_start_index]

    for i, segment in enumerate(solution.ordered_segments):
        if segment.request_index < 0 or segment.request_index >= len(segment_metas):
            raise PlannerInvariantError(
                f"Segment metadata not found for segment {segment.segment_id} (request index {segment.request_index})"
            )
        meta = segment_metas[segment.request_index]
        try:
            segment_path = _segment_path(meta)
        except PlannerError:
            logger.error("Segment %s has no resolvable coordinates", segment.segment_id)
            raise

        step_start = builder.distance
        if position is not None:
            builder.extend(_connector_path(connectors, position, segment_path[0], i))
        builder.extend(segment_path)
        step_bounds.append((step_start, builder.distance))
        position = segment_path[-1]

    stitched = StitchedGeometry(
        coordinates=builder.coordinates,
        cumulative_distances=builder.cumulative,
        step_bounds=step_bounds,
    )
    logger.info(
        "Stitched %d segments into %d coordinates, %.0f m, in %.1f ms",
        len(step_bounds),
        len(stitched.coordinates),
        stitched.total_distance_m,
        (time.perf_counter() - stitch_start) * 1000.0,
    )
    return stitched


def extract_day_geometry(stitched: StitchedGeometry, partition: DayPartition) -> DayGeometry:
    """Slice out the part of the trip polyline ridden on one day.

    The day covers the vertices appended by its steps: everything after the
    previous day's last segment end, up to and including its own last segment
    end. Day slices are disjoint, so joining them in day order gives back the
    whole stitched polyline.
    """
    indices = partition.segment_indices
    if not indices:
        raise PlannerInvariantError(f"Day {partition.day_number} has no segments")
    if indices != list(range(indices[0], indices[0] + len(indices))):
        raise PlannerInvariantError(f"Day {partition.day_number} segment indices are not contiguous: {indices}")
    if indices[0] < 0 or indices[-1] >= len(stitched.step_bounds):
        raise PlannerInvariantError(
            f"Day {partition.day_number} references solution index outside 0..{len(stitched.step_bounds) - 1}"
        )

    start_distance = stitched.step_bounds[indices[0]][0]
    end_distance = stitched.step_bounds[indices[-1]][1]
    # a later day starts after the vertex that closed the previous day
    lo = 0 if indices[0] == 0 else bisect_right(stitched.cumulative_distances, start_distance)
    hi = bisect_right(stitched.cumulative_distances, end_distance)
    coordinates = stitched.coordinates[lo:hi]
    if not coordinates:
        raise PlannerInvariantError(
            f"Day {partition.day_number} has no coordinates between {start_distance:.0f} m and {end_distance:.0f} m"
        )

    logger.debug(
        "Extracted day %d: coordinates [%d:%d] of %d",
        partition.day_number,
        lo,
        hi,
        len(stitched.coordinates),
    )
    return DayGeometry(
        day_number=partition.day_number,
        coordinates=list(coordinates),
        start_distance_m=start_distance,
        end_distance_m=end_distance,
    )
