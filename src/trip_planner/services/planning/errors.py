"""Planner failure taxonomy."""

from __future__ import annotations

from enum import Enum


class PlannerErrorKind(str, Enum):
    """Expected, user-facing planning outcomes that are not a success."""

    INVALID_INPUT = "invalidInput"
    SOLVER_FAILURE = "solverFailure"
    SEGMENT_TOO_FAR = "segmentTooFar"
    DAILY_LIMIT_EXCEEDED = "dailyLimitExceeded"
    NEED_MORE_DAYS = "needMoreDays"
    GEOMETRY_UNRESOLVABLE = "geometryUnresolvable"
    EXTERNAL_API = "externalApi"


class PlannerError(Exception):
    """Raised by a pipeline stage when the request cannot be planned."""

    def __init__(self, kind: PlannerErrorKind, details: str) -> None:
        super().__init__(details)
        self.kind = kind
        self.details = details

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.details}"


class SolverError(PlannerError):
    """Raised when the order solver cannot produce a complete ordering."""

    def __init__(self, details: str, kind: PlannerErrorKind = PlannerErrorKind.SOLVER_FAILURE) -> None:
        super().__init__(kind, details)


class PlannerInvariantError(RuntimeError):
    """Internal consistency violation; indicates a bug, never a bad request."""
