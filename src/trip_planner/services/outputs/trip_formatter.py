"""Serializers for trip plan outputs."""

from __future__ import annotations

import csv
import io

from ...schemas.planner import PlanResponse


def plan_to_csv(plan: PlanResponse) -> str:
    buffer = io.StringIO()
    fieldnames = [
        "day_number",
        "sequence",
        "segment_id",
        "segment_name",
        "strava_url",
        "day_distance_km",
        "day_elevation_gain_m",
        "day_duration_minutes",
    ]
    writer = csv.DictWriter(buffer, fieldnames=fieldnames)
    writer.writeheader()
    sequence = 1
    for route in plan.routes:
        for segment in route.segments:
            writer.writerow(
                {
                    "day_number": route.day_number,
                    "sequence": sequence,
                    "segment_id": segment.id,
                    "segment_name": segment.name,
                    "strava_url": segment.strava_url,
                    "day_distance_km": round(route.distance_km, 2),
                    "day_elevation_gain_m": round(route.elevation_gain_m),
                    "day_duration_minutes": round(route.duration_minutes),
                }
            )
            sequence += 1
    return buffer.getvalue()
