"""Distance/duration matrices over the trip waypoints."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Literal, Sequence

import numpy as np

from ...config import settings
from ...models.domain import Coordinate
from ..geospatial import coordinate_distance_m
from .errors import PlannerError, PlannerErrorKind

logger = logging.getLogger(__name__)

MatrixSource = Literal["osrm", "haversine", "static"]


@dataclass(slots=True, frozen=True)
class CostMatrix:
    """Pairwise travel distance (metres) and duration (seconds) between waypoints."""

    distances: list[list[float]]
    durations: list[list[float]]
    source: MatrixSource = "static"

    @property
    def size(self) -> int:
        return len(self.distances)

    def validate(self, expected_size: int | None = None) -> None:
        """Check the matrix is square, consistently sized, finite and non-negative."""
        for label, rows in (("distance", self.distances), ("duration", self.durations)):
            try:
                values = np.asarray(rows, dtype=float)
            except (TypeError, ValueError) as exc:
                raise PlannerError(
                    PlannerErrorKind.INVALID_INPUT,
                    f"The {label} matrix is not a rectangular numeric table",
                ) from exc
            if values.ndim != 2 or values.shape[0] != values.shape[1]:
                raise PlannerError(
                    PlannerErrorKind.INVALID_INPUT,
                    f"The {label} matrix must be square, got shape {values.shape}",
                )
            if values.shape[0] != self.size:
                raise PlannerError(
                    PlannerErrorKind.INVALID_INPUT,
                    f"Matrix size mismatch: distances={self.size}, {label}s={values.shape[0]}",
                )
            if not np.isfinite(values).all():
                raise PlannerError(
                    PlannerErrorKind.INVALID_INPUT,
                    f"The {label} matrix contains unreachable or non-finite entries",
                )
            if (values < 0).any():
                raise PlannerError(
                    PlannerErrorKind.INVALID_INPUT,
                    f"The {label} matrix contains negative entries",
                )
        if expected_size is not None and self.size != expected_size:
            raise PlannerError(
                PlannerErrorKind.INVALID_INPUT,
                f"Matrix size mismatch. Expected {expected_size}x{expected_size}, got {self.size}x{self.size}",
            )

    @classmethod
    def from_osrm(cls, osrm_table: dict) -> "CostMatrix":
        """Build a matrix from an OSRM table response.

        Unreachable pairs (``None``) become ``inf`` so that validation rejects them.
        """
        durations = osrm_table.get("durations")
        distances = osrm_table.get("distances")
        if durations is None or distances is None:
            raise ValueError("OSRM table response missing durations or distances.")

        def _convert(rows: Sequence[Sequence[float | None]]) -> list[list[float]]:
            return [[math.inf if value is None else float(value) for value in row] for row in rows]

        return cls(distances=_convert(distances), durations=_convert(durations), source="osrm")

    @classmethod
    def from_haversine(
        cls,
        waypoints: Sequence[Coordinate],
        average_speed_kmh: float | None = None,
    ) -> "CostMatrix":
        """Straight-line matrix used when the routing service is unavailable."""
        speed_kmh = average_speed_kmh or settings.average_speed_kmh
        count = len(waypoints)
        distances = [[0.0] * count for _ in range(count)]
        durations = [[0.0] * count for _ in range(count)]
        for i in range(count):
            for j in range(count):
                if i == j:
                    continue
                distance_m = coordinate_distance_m(waypoints[i], waypoints[j])
                distances[i][j] = distance_m
                durations[i][j] = distance_m / 1000.0 / speed_kmh * 3600.0
        logger.info("Computed haversine fallback matrix for %d waypoints", count)
        return cls(distances=distances, durations=durations, source="haversine")
