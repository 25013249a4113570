"""HTTP client for reading segment metadata from the Strava API."""

from __future__ import annotations

import logging
import time
from typing import Any

import httpx

from ...config import settings
from ...models.domain import Coordinate, SegmentMeta
from ..planning.osrm_client import decode_polyline

logger = logging.getLogger(__name__)


class SegmentLookupError(Exception):
    """Raised when segment metadata cannot be retrieved from the provider."""


def _latlng_to_coordinate(value: Any) -> Coordinate | None:
    if not isinstance(value, (list, tuple)) or len(value) != 2:
        return None
    lat, lng = value
    if lat is None or lng is None:
        return None
    return (float(lng), float(lat))


def segment_meta_from_payload(payload: dict) -> SegmentMeta:
    """Convert a Strava ``DetailedSegment`` payload into canonical-direction metadata."""
    try:
        segment_id = str(payload["id"])
        distance = float(payload["distance"])
    except (KeyError, TypeError, ValueError) as exc:
        raise SegmentLookupError(f"Malformed segment payload: {exc}") from exc

    polyline = (payload.get("map") or {}).get("polyline") or ""
    geometry: tuple[Coordinate, ...] = ()
    if polyline:
        try:
            geometry = tuple((lon, lat) for lat, lon in decode_polyline(polyline))
        except IndexError:
            logger.warning(f"Could not decode polyline for segment {segment_id}; geometry dropped")

    elevation = payload.get("total_elevation_gain")
    return SegmentMeta(
        segment_id=segment_id,
        name=str(payload.get("name") or f"Segment {segment_id}"),
        distance_m=distance,
        elevation_gain_m=float(elevation) if elevation is not None else 0.0,
        start=_latlng_to_coordinate(payload.get("start_latlng")),
        end=_latlng_to_coordinate(payload.get("end_latlng")),
        geometry=geometry,
    )


class StravaSegmentClient:
    def __init__(
        self,
        access_token: str | None = None,
        base_url: str | None = None,
        timeout: float = 15.0,
        max_retries: int | None = None,
        backoff_seconds: float = 1.0,
    ) -> None:
        self.access_token = access_token or settings.strava_access_token
        if not self.access_token:
            raise ValueError("Strava access token is not configured.")
        self.base_url = (base_url or settings.strava_api_url).rstrip("/")
        self.timeout = timeout
        self.max_retries = max_retries if max_retries is not None else settings.strava_max_retries
        self.backoff_seconds = backoff_seconds

    def get_segment_meta(self, segment_id: str) -> SegmentMeta:
        url = f"{self.base_url}/segments/{segment_id}"
        headers = {"Authorization": f"Bearer {self.access_token}"}
        with httpx.Client(timeout=self.timeout) as client:
            attempt = 0
            while True:
                try:
                    response = client.get(url, headers=headers)
                    if response.status_code == 404:
                        raise SegmentLookupError(f"Strava segment {segment_id} not found")
                    if response.status_code == 429:
                        raise SegmentLookupError("Strava rate limit exceeded; try again later")
                    response.raise_for_status()
                    return segment_meta_from_payload(response.json())
                except (httpx.HTTPStatusError, httpx.TransportError) as e:
                    attempt += 1
                    if attempt > self.max_retries:
                        raise SegmentLookupError(f"Strava request for segment {segment_id} failed: {e}") from e
                    wait_time = self.backoff_seconds * (2 ** (attempt - 1))
                    logger.debug(f"Strava request failed, retrying in {wait_time:.1f}s (attempt {attempt}/{self.max_retries})")
                    time.sleep(wait_time)
