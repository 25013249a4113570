"""Domain models for requested and resolved segments."""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from typing import Optional, Tuple

from ..services.planning.errors import PlannerError, PlannerErrorKind

Coordinate = Tuple[float, float]
"""A (longitude, latitude) pair in GeoJSON order."""


def is_valid_coordinate(value: object) -> bool:
    if not isinstance(value, (tuple, list)) or len(value) < 2:
        return False
    lon, lat = value[0], value[1]
    if not isinstance(lon, (int, float)) or not isinstance(lat, (int, float)):
        return False
    return math.isfinite(lon) and math.isfinite(lat) and -180.0 <= lon <= 180.0 and -90.0 <= lat <= 90.0


@dataclass(slots=True, frozen=True)
class SegmentRequest:
    """A user-chosen segment and the direction it should be ridden in."""

    segment_id: str
    forward: bool = True


@dataclass(slots=True, frozen=True)
class SegmentMeta:
    """Resolved segment data as returned by the segment provider.

    ``start``/``end`` and ``geometry`` are stored in the segment's canonical
    direction until :meth:`oriented` is called with the requested direction.
    """

    segment_id: str
    name: str
    distance_m: float
    elevation_gain_m: float
    start: Optional[Coordinate] = None
    end: Optional[Coordinate] = None
    geometry: Tuple[Coordinate, ...] = field(default_factory=tuple)

    def oriented(self, forward: bool) -> "SegmentMeta":
        """Return the metadata adjusted for the direction it will be ridden in."""
        if forward:
            return self
        return replace(
            self,
            start=self.end,
            end=self.start,
            geometry=tuple(reversed(self.geometry)),
        )

    def endpoints(self) -> tuple[Coordinate, Coordinate]:
        """Return (start, end), preferring explicit endpoints over the path geometry."""
        start = self.start if is_valid_coordinate(self.start) else None
        end = self.end if is_valid_coordinate(self.end) else None
        usable = [point for point in self.geometry if is_valid_coordinate(point)]
        if start is None and usable:
            start = usable[0]
        if end is None and usable:
            end = usable[-1]
        if start is None or end is None:
            raise PlannerError(
                PlannerErrorKind.GEOMETRY_UNRESOLVABLE,
                f"Segment {self.segment_id} ({self.name}) has no usable coordinates",
            )
        return (float(start[0]), float(start[1])), (float(end[0]), float(end[1]))

    @property
    def strava_url(self) -> str:
        return f"https://www.strava.com/segments/{self.segment_id}"
