"""GeoJSON/WKT export of planned trips."""

from __future__ import annotations

from typing import Any, Dict, List

from shapely.geometry import LineString, mapping

from ...schemas.planner import DayRouteModel, PlanResponse


def generate_day_color(index: int) -> str:
    """Generate distinct colors for days."""
    colors = [
        "#e0003e", "#0000c1", "#38e000", "#e0af00", "#611cc7",
        "#13aae0", "#e000a2", "#a4d819", "#00e0bb", "#e0e005",
        "#3100e0", "#e00017", "#08e000", "#e0bb0b",
    ]
    return colors[index % len(colors)]


def _day_linestring(route: DayRouteModel) -> LineString:
    coordinates = route.geometry.coordinates
    if len(coordinates) == 1:
        # a lone vertex still has to be a valid LineString
        coordinates = [coordinates[0], coordinates[0]]
    return LineString(coordinates)


def day_route_to_wkt(route: DayRouteModel) -> str:
    """Convert a day's geometry to a WKT LINESTRING (lon lat order)."""
    if not route.geometry.coordinates:
        raise ValueError(f"Day {route.day_number} has no coordinates")
    return _day_linestring(route).wkt


def plan_to_feature_collection(plan: PlanResponse) -> Dict[str, Any]:
    """Convert a successful plan into a GeoJSON FeatureCollection with one feature per day."""
    if not plan.ok:
        raise ValueError(f"Cannot export a failed plan: {plan.error}")

    features: List[Dict[str, Any]] = []
    for index, route in enumerate(plan.routes):
        line = _day_linestring(route)
        features.append(
            {
                "type": "Feature",
                "geometry": mapping(line),
                "properties": {
                    "day_number": route.day_number,
                    "distance_km": round(route.distance_km, 2),
                    "elevation_gain_m": round(route.elevation_gain_m),
                    "duration_minutes": round(route.duration_minutes),
                    "segments": [segment.id for segment in route.segments],
                    "segment_names": [segment.name for segment in route.segments],
                    "color": generate_day_color(index),
                    "bounds": list(line.bounds),
                },
            }
        )

    return {
        "type": "FeatureCollection",
        "features": features,
        "properties": {
            "total_distance_km": round(plan.total_distance_km, 2),
            "total_elevation_gain_m": round(plan.total_elevation_gain_m),
            "total_duration_minutes": round(plan.total_duration_minutes),
            "days": len(plan.routes),
        },
    }
