"""Planning pipeline domain models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Literal, Optional, Tuple

from ...models.domain import Coordinate
from .errors import PlannerErrorKind

SolverMethod = Literal["ortools", "bruteforce", "heuristic"]


@dataclass(slots=True, frozen=True)
class OrderedSegment:
    """A segment as a forced edge: entered at ``start_index``, left at ``end_index``."""

    segment_id: str
    forward: bool
    request_index: int
    start_index: int
    end_index: int
    position: Optional[int] = None


@dataclass(slots=True)
class WaypointPlan:
    waypoints: List[Coordinate]
    segments: List[OrderedSegment]
    trip_start_index: Optional[int] = None


@dataclass(slots=True)
class Solution:
    ordered_segments: List[OrderedSegment]
    total_distance_m: float
    total_duration_s: float
    method: SolverMethod
    solve_time_ms: float


@dataclass(slots=True, frozen=True)
class TripConstraints:
    max_days: int
    max_daily_distance_m: float
    max_daily_elevation_m: float


@dataclass(slots=True)
class DayPartition:
    day_number: int
    segment_indices: List[int]
    distance_m: float
    elevation_gain_m: float
    duration_s: float

    @property
    def distance_km(self) -> float:
        return self.distance_m / 1000.0

    @property
    def duration_min(self) -> float:
        return self.duration_s / 60.0


@dataclass(slots=True)
class PartitionResult:
    success: bool
    partitions: List[DayPartition] = field(default_factory=list)
    error: Optional[PlannerErrorKind] = None
    details: Optional[str] = None

    @classmethod
    def failure(cls, error: PlannerErrorKind, details: str) -> "PartitionResult":
        return cls(success=False, error=error, details=details)


@dataclass(slots=True)
class StitchedGeometry:
    """Whole-trip polyline with the cumulative distance (metres) at every vertex.

    ``step_bounds[i]`` holds the cumulative distance where step ``i`` (the
    connector into solution index ``i`` plus the segment itself) begins and
    where the segment ends.
    """

    coordinates: List[Coordinate]
    cumulative_distances: List[float]
    step_bounds: List[Tuple[float, float]]

    @property
    def total_distance_m(self) -> float:
        return self.cumulative_distances[-1] if self.cumulative_distances else 0.0


@dataclass(slots=True)
class DayGeometry:
    day_number: int
    coordinates: List[Coordinate]
    start_distance_m: float
    end_distance_m: float

    def to_geojson(self) -> dict:
        return {
            "type": "LineString",
            "coordinates": [[lon, lat] for lon, lat in self.coordinates],
        }
