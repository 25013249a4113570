"""Geospatial helper functions."""

from __future__ import annotations

import math
from typing import Sequence

from ..models.domain import Coordinate, is_valid_coordinate

EARTH_RADIUS_M = 6371000.0


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Compute distance in metres between two coordinates using the Haversine formula."""

    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_M * c


def coordinate_distance_m(origin: Coordinate, destination: Coordinate) -> float:
    """Haversine distance between two (lon, lat) coordinates."""

    return haversine_m(origin[1], origin[0], destination[1], destination[0])


def usable_polyline(coordinates: Sequence[Coordinate] | None) -> list[Coordinate] | None:
    """Return the polyline as float tuples, or None if it is not a drawable line.

    A drawable line has at least two vertices and every vertex is a finite,
    in-range (lon, lat) pair.
    """

    if not coordinates or len(coordinates) < 2:
        return None
    if not all(is_valid_coordinate(point) for point in coordinates):
        return None
    return [(float(point[0]), float(point[1])) for point in coordinates]
