import pytest

from trip_planner.config import settings
from trip_planner.models.domain import SegmentMeta, SegmentRequest
from trip_planner.services.planning.errors import PlannerError, PlannerErrorKind
from trip_planner.services.planning.waypoints import build_waypoint_plan, orient_segments


def _meta(segment_id: str, start: tuple[float, float] | None, end: tuple[float, float] | None, geometry=()) -> SegmentMeta:
    return SegmentMeta(
        segment_id=segment_id,
        name=f"Segment {segment_id}",
        distance_m=5000.0,
        elevation_gain_m=50.0,
        start=start,
        end=end,
        geometry=tuple(geometry),
    )


def test_waypoints_pair_segment_start_and_end():
    requests = [SegmentRequest("A"), SegmentRequest("B")]
    metas = [_meta("A", (8.0, 47.0), (8.0, 47.1)), _meta("B", (8.1, 47.0), (8.1, 47.1))]

    plan = build_waypoint_plan(requests, metas)

    assert plan.trip_start_index is None
    assert plan.waypoints == [(8.0, 47.0), (8.0, 47.1), (8.1, 47.0), (8.1, 47.1)]
    assert [(s.start_index, s.end_index) for s in plan.segments] == [(0, 1), (2, 3)]
    assert [s.request_index for s in plan.segments] == [0, 1]


def test_trip_start_takes_index_zero():
    requests = [SegmentRequest("A")]
    plan = build_waypoint_plan(requests, [_meta("A", (8.0, 47.0), (8.0, 47.1))], trip_start=(7.9, 46.9))

    assert plan.trip_start_index == 0
    assert plan.waypoints[0] == (7.9, 46.9)
    assert (plan.segments[0].start_index, plan.segments[0].end_index) == (1, 2)


def test_reverse_request_swaps_endpoints_and_geometry():
    geometry = [(8.0, 47.0), (8.05, 47.05), (8.0, 47.1)]
    requests = [SegmentRequest("A", forward=False)]
    metas = orient_segments(requests, [_meta("A", (8.0, 47.0), (8.0, 47.1), geometry)])

    plan = build_waypoint_plan(requests, metas)

    assert plan.waypoints == [(8.0, 47.1), (8.0, 47.0)]
    assert metas[0].geometry == tuple(reversed(geometry))
    assert plan.segments[0].forward is False


def test_endpoints_fall_back_to_geometry():
    meta = _meta("A", None, None, [(8.0, 47.0), (8.02, 47.03), (8.04, 47.06)])

    assert meta.endpoints() == ((8.0, 47.0), (8.04, 47.06))


def test_segment_without_coordinates_is_unresolvable():
    with pytest.raises(PlannerError) as exc:
        build_waypoint_plan([SegmentRequest("A")], [_meta("A", None, None)])
    assert exc.value.kind == PlannerErrorKind.GEOMETRY_UNRESOLVABLE


def test_invalid_trip_start_is_rejected():
    with pytest.raises(PlannerError) as exc:
        build_waypoint_plan([SegmentRequest("A")], [_meta("A", (8.0, 47.0), (8.0, 47.1))], trip_start=(200.0, 47.0))
    assert exc.value.kind == PlannerErrorKind.INVALID_INPUT


def test_metadata_must_match_requests():
    with pytest.raises(PlannerError) as exc:
        build_waypoint_plan([SegmentRequest("A")], [_meta("B", (8.0, 47.0), (8.0, 47.1))])
    assert exc.value.kind == PlannerErrorKind.INVALID_INPUT

    with pytest.raises(PlannerError):
        orient_segments([SegmentRequest("A"), SegmentRequest("B")], [_meta("A", (8.0, 47.0), (8.0, 47.1))])


def test_empty_request_is_invalid():
    with pytest.raises(PlannerError) as exc:
        build_waypoint_plan([], [])
    assert exc.value.kind == PlannerErrorKind.INVALID_INPUT


def test_waypoint_limit(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(settings, "max_matrix_waypoints", 3)
    requests = [SegmentRequest("A"), SegmentRequest("B")]
    metas = [_meta("A", (8.0, 47.0), (8.0, 47.1)), _meta("B", (8.1, 47.0), (8.1, 47.1))]

    with pytest.raises(PlannerError) as exc:
        build_waypoint_plan(requests, metas)
    assert exc.value.kind == PlannerErrorKind.INVALID_INPUT
