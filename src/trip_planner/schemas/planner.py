"""Trip planning request/response schemas."""

from __future__ import annotations

from datetime import date
from typing import Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, Field, field_validator, model_validator


class SegmentInput(BaseModel):
    segment_id: str = Field(..., min_length=1, description="Strava segment ID")
    forward: bool = Field(default=True, description="Ride from the segment's start to its end")

    @field_validator("segment_id", mode="before")
    @classmethod
    def _coerce_id(cls, value: object) -> object:
        return str(value) if isinstance(value, int) else value


class PlanRequest(BaseModel):
    segments: List[SegmentInput] = Field(..., min_length=1, max_length=10)
    trip_start: Optional[Tuple[float, float]] = Field(
        default=None,
        description="Optional fixed start as [longitude, latitude].",
    )
    start_date: date
    end_date: date
    max_daily_distance_km: float = Field(default=100.0, ge=20, le=300)
    max_daily_elevation_m: float = Field(default=1000.0, ge=200, le=5000)

    @field_validator("trip_start")
    @classmethod
    def _check_trip_start(cls, value: Optional[Tuple[float, float]]) -> Optional[Tuple[float, float]]:
        if value is None:
            return value
        lon, lat = value
        if not (-180.0 <= lon <= 180.0 and -90.0 <= lat <= 90.0):
            raise ValueError("trip_start must be [longitude, latitude] within valid ranges")
        return value

    @model_validator(mode="after")
    def _check_request(self) -> "PlanRequest":
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        ids = [segment.segment_id for segment in self.segments]
        if len(set(ids)) != len(ids):
            raise ValueError("Each segment may only be requested once")
        return self


class SegmentDetailModel(BaseModel):
    id: str
    name: str
    strava_url: str


class LineStringModel(BaseModel):
    type: Literal["LineString"] = "LineString"
    coordinates: List[Tuple[float, float]]


class DayRouteModel(BaseModel):
    day_number: int = Field(..., ge=1)
    geometry: LineStringModel
    distance_km: float = Field(..., ge=0)
    elevation_gain_m: float = Field(..., ge=0)
    duration_minutes: float = Field(..., ge=0)
    segments: List[SegmentDetailModel]


class TripConstraintsModel(BaseModel):
    start_date: date
    end_date: date
    max_days: int
    max_daily_distance_km: float
    max_daily_elevation_m: float


PlannerErrorCode = Literal[
    "invalidInput",
    "solverFailure",
    "segmentTooFar",
    "dailyLimitExceeded",
    "needMoreDays",
    "geometryUnresolvable",
    "externalApi",
]


class PlanResponse(BaseModel):
    ok: bool
    routes: List[DayRouteModel] = Field(default_factory=list)
    total_distance_km: float = 0.0
    total_elevation_gain_m: float = 0.0
    total_duration_minutes: float = 0.0
    constraints: Optional[TripConstraintsModel] = None
    metadata: Dict[str, object] = Field(default_factory=dict)
    error: Optional[PlannerErrorCode] = None
    details: Optional[str] = None
