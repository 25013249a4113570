"""Greedy daily partitioning of a solved segment order.

The partitioner walks the solution in order and never reorders segments across
days. It does not try to minimise the day count below what greedy accumulation
yields, nor to balance load between days.
"""

from __future__ import annotations

import logging
import math
import time
from datetime import date
from typing import Optional, Sequence

from ...config import settings
from ...models.domain import SegmentMeta
from .cost_matrix import CostMatrix
from .errors import PlannerErrorKind, PlannerInvariantError
from .models import DayPartition, PartitionResult, Solution, TripConstraints

logger = logging.getLogger(__name__)

EPSILON = 1e-6


def calculate_trip_days(start_date: date, end_date: date) -> int:
    """Number of calendar days in the trip, inclusive of both ends."""
    return abs((end_date - start_date).days) + 1


def build_trip_constraints(
    start_date: date,
    end_date: date,
    max_daily_distance_km: float,
    max_daily_elevation_m: float,
) -> TripConstraints:
    return TripConstraints(
        max_days=calculate_trip_days(start_date, end_date),
        max_daily_distance_m=max_daily_distance_km * 1000.0,
        max_daily_elevation_m=max_daily_elevation_m,
    )


def segment_duration_s(distance_m: float, average_speed_kmh: float | None = None) -> float:
    speed_kmh = average_speed_kmh or settings.average_speed_kmh
    return distance_m / 1000.0 / speed_kmh * 3600.0


def _check_constraints(constraints: TripConstraints) -> Optional[str]:
    if not math.isfinite(constraints.max_daily_distance_m) or constraints.max_daily_distance_m <= 0:
        return f"Daily distance limit must be positive, got {constraints.max_daily_distance_m / 1000.0:g}km"
    if not math.isfinite(constraints.max_daily_elevation_m) or constraints.max_daily_elevation_m < 0:
        return f"Daily elevation limit must not be negative, got {constraints.max_daily_elevation_m:g}m"
    if constraints.max_days < 1:
        return f"Trip must allow at least one day, got {constraints.max_days}"
    return None


class _DayAccumulator:
    __slots__ = ("segment_indices", "distance_m", "elevation_gain_m", "duration_s")

    def __init__(self) -> None:
        self.segment_indices: list[int] = []
        self.distance_m = 0.0
        self.elevation_gain_m = 0.0
        self.duration_s = 0.0

    def add(self, index: int, distance_m: float, elevation_m: float, duration_s: float) -> None:
        self.segment_indices.append(index)
        self.distance_m += distance_m
        self.elevation_gain_m += elevation_m
        self.duration_s += duration_s

    def close(self, day_number: int) -> DayPartition:
        return DayPartition(
            day_number=day_number,
            segment_indices=list(self.segment_indices),
            distance_m=self.distance_m,
            elevation_gain_m=self.elevation_gain_m,
            duration_s=self.duration_s,
        )


def partition_route(
    solution: Solution,
    segment_metas: Sequence[SegmentMeta],
    matrix: CostMatrix,
    constraints: TripConstraints,
    trip_start_index: Optional[int] = None,
) -> PartitionResult:
    """Cut the solved order into consecutive days that respect the daily caps.

    ``segment_metas`` is indexed by each ordered segment's ``request_index``.
    Each step costs the connector from the previous position (the trip start
    on day one, if given) plus the segment itself; the step opening a new day
    carries the connector from where the previous day ended.
    """
    partition_start = time.perf_counter()
    ordered = solution.ordered_segments
    logger.info(
        "Partitioning %d segments (max %d days, %.0f km/day, %.0f m/day)",
        len(ordered),
        constraints.max_days,
        constraints.max_daily_distance_m / 1000.0,
        constraints.max_daily_elevation_m,
    )

    if not ordered:
        return PartitionResult.failure(PlannerErrorKind.DAILY_LIMIT_EXCEEDED, "No segments to partition")

    problem = _check_constraints(constraints)
    if problem:
        return PartitionResult.failure(PlannerErrorKind.DAILY_LIMIT_EXCEEDED, problem)

    partitions: list[DayPartition] = []
    day = _DayAccumulator()
    previous_index = trip_start_index

    for i, segment in enumerate(ordered):
        if segment.request_index < 0 or segment.request_index >= len(segment_metas):
            raise PlannerInvariantError(
                f"Segment metadata not found for segment {segment.segment_id} (request index {segment.request_index})"
            )
        meta = segment_metas[segment.request_index]

        transfer_distance = 0.0
        transfer_duration = 0.0
        if previous_index is not None:
            transfer_distance = matrix.distances[previous_index][segment.start_index]
            transfer_duration = matrix.durations[previous_index][segment.start_index]

        elevation = meta.elevation_gain_m if math.isfinite(meta.elevation_gain_m) else 0.0
        step_distance = transfer_distance + meta.distance_m
        step_duration = transfer_duration + segment_duration_s(meta.distance_m)

        if not (math.isfinite(step_distance) and math.isfinite(step_duration)):
            return PartitionResult.failure(
                PlannerErrorKind.DAILY_LIMIT_EXCEEDED,
                f"Segment {i + 1} (ID: {segment.segment_id}) has no finite distance or duration from the previous stop",
            )

        if day.segment_indices:
            exceeds_distance = day.distance_m + step_distance > constraints.max_daily_distance_m + EPSILON
            exceeds_elevation = day.elevation_gain_m + elevation > constraints.max_daily_elevation_m + EPSILON
            if exceeds_distance or exceeds_elevation:
                partitions.append(day.close(len(partitions) + 1))
                day = _DayAccumulator()

        if not day.segment_indices:
            if step_distance > constraints.max_daily_distance_m + EPSILON:
                return PartitionResult.failure(
                    PlannerErrorKind.SEGMENT_TOO_FAR,
                    f"Segment {i + 1} (ID: {segment.segment_id}, {meta.name}) needs {step_distance / 1000.0:.0f}km "
                    f"including the ride to its start, exceeding your daily limit of "
                    f"{constraints.max_daily_distance_m / 1000.0:g}km",
                )
            if elevation > constraints.max_daily_elevation_m + EPSILON:
                return PartitionResult.failure(
                    PlannerErrorKind.SEGMENT_TOO_FAR,
                    f"Segment {i + 1} (ID: {segment.segment_id}, {meta.name}) has {elevation:.0f}m elevation gain, "
                    f"exceeding your daily limit of {constraints.max_daily_elevation_m:g}m",
                )
            if len(partitions) + 1 > constraints.max_days:
                return PartitionResult.failure(
                    PlannerErrorKind.NEED_MORE_DAYS,
                    f"Cannot fit all {len(ordered)} segments within {constraints.max_days} days "
                    f"due to distance/elevation constraints",
                )

        day.add(i, step_distance, elevation, step_duration)
        previous_index = segment.end_index

    partitions.append(day.close(len(partitions) + 1))

    logger.info(
        "Partitioned into %d days in %.1f ms: %s",
        len(partitions),
        (time.perf_counter() - partition_start) * 1000.0,
        [
            {
                "day": p.day_number,
                "segments": len(p.segment_indices),
                "distance_km": round(p.distance_km),
                "elevation_m": round(p.elevation_gain_m),
            }
            for p in partitions
        ],
    )
    return PartitionResult(success=True, partitions=partitions)
