"""GPX export of planned trips."""

from __future__ import annotations

import re
from typing import Optional

import gpxpy.gpx

from ...schemas.planner import DayRouteModel, PlanResponse

CREATOR = "Cycling Trip Planner"


def _clean_name(name: str) -> str:
    return re.sub(r"[^a-zA-Z0-9\s-]", "", name).strip()[:20]


def gpx_file_name(route: DayRouteModel) -> str:
    """Build a readable file name for one day's GPX, without extension.

    Uses the first and last segment names when available, else the start and
    end coordinates.
    """
    names = [segment.name for segment in route.segments]
    if names:
        first = _clean_name(names[0])
        last = _clean_name(names[-1])
        if first and last and first != last:
            return f"Day {route.day_number} - {first} to {last}"
        if first:
            return f"Day {route.day_number} - {first}"

    coordinates = route.geometry.coordinates
    if not coordinates:
        return f"Day {route.day_number}"
    (start_lon, start_lat), (end_lon, end_lat) = coordinates[0], coordinates[-1]
    return f"Day {route.day_number} - {start_lat:.2f},{start_lon:.2f} to {end_lat:.2f},{end_lon:.2f}"


def _day_track(route: DayRouteModel) -> gpxpy.gpx.GPXTrack:
    track = gpxpy.gpx.GPXTrack(
        name=f"Day {route.day_number}",
        description="Segments: " + ", ".join(segment.name for segment in route.segments),
    )
    segment = gpxpy.gpx.GPXTrackSegment()
    for lon, lat in route.geometry.coordinates:
        segment.points.append(gpxpy.gpx.GPXTrackPoint(latitude=round(lat, 6), longitude=round(lon, 6)))
    track.segments.append(segment)
    return track


def _new_gpx(name: str, description: str) -> gpxpy.gpx.GPX:
    gpx = gpxpy.gpx.GPX()
    gpx.creator = CREATOR
    gpx.name = name
    gpx.description = description
    gpx.author_name = CREATOR
    return gpx


def day_route_to_gpx(route: DayRouteModel, name: Optional[str] = None) -> str:
    """Render one day as a GPX 1.1 document with a single track."""
    gpx = _new_gpx(
        name or gpx_file_name(route),
        f"Cycling route for Day {route.day_number} - Distance: {round(route.distance_km)}km, "
        f"Elevation: {round(route.elevation_gain_m)}m",
    )
    gpx.tracks.append(_day_track(route))
    return gpx.to_xml(version="1.1")


def plan_to_gpx(plan: PlanResponse) -> str:
    """Render the whole trip as one GPX 1.1 document with a track per day."""
    if not plan.ok:
        raise ValueError(f"Cannot export a failed plan: {plan.error}")

    gpx = _new_gpx(
        f"Cycling trip - {len(plan.routes)} days",
        f"Distance: {round(plan.total_distance_km)}km, Elevation: {round(plan.total_elevation_gain_m)}m",
    )
    for route in plan.routes:
        gpx.tracks.append(_day_track(route))
    return gpx.to_xml(version="1.1")
