import math
import random

import pytest

from trip_planner.config import settings
from trip_planner.models.domain import SegmentMeta
from trip_planner.services.planning import solver
from trip_planner.services.planning.cost_matrix import CostMatrix
from trip_planner.services.planning.errors import PlannerError, PlannerErrorKind, SolverError
from trip_planner.services.planning.models import OrderedSegment, TripConstraints
from trip_planner.services.planning.partitioner import partition_route


def _segments(count: int, offset: int = 0) -> list[OrderedSegment]:
    return [
        OrderedSegment(
            segment_id=f"S{i}",
            forward=True,
            request_index=i,
            start_index=offset + 2 * i,
            end_index=offset + 2 * i + 1,
        )
        for i in range(count)
    ]


def _matrix(size: int, default: float, overrides: dict[tuple[int, int], float] | None = None) -> CostMatrix:
    distances = [[0.0 if i == j else default for j in range(size)] for i in range(size)]
    for (i, j), value in (overrides or {}).items():
        distances[i][j] = value
    durations = [[value / 5.0 for value in row] for row in distances]
    return CostMatrix(distances=distances, durations=durations)


@pytest.fixture
def no_ortools(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(settings, "solver_use_ortools", False)


def _two_segment_matrix() -> CostMatrix:
    # S0 end -> S1 start is short; S1 end -> S0 start is long
    return _matrix(4, 5000.0, {(0, 1): 1000.0, (2, 3): 1000.0, (1, 2): 100.0})


def test_bruteforce_prefers_short_connector(no_ortools):
    result = solver.solve_segment_order(_two_segment_matrix(), _segments(2))

    assert result.method == "bruteforce"
    assert [s.segment_id for s in result.ordered_segments] == ["S0", "S1"]
    assert result.total_distance_m == pytest.approx(2100.0)
    assert [s.position for s in result.ordered_segments] == [0, 1]


def test_bruteforce_is_deterministic(no_ortools):
    matrix = _matrix(10, 3000.0, {(1, 6): 200.0, (7, 2): 200.0, (3, 8): 200.0, (9, 0): 4000.0})
    first = solver.solve_segment_order(matrix, _segments(5))
    second = solver.solve_segment_order(matrix, _segments(5))

    assert [s.segment_id for s in first.ordered_segments] == [s.segment_id for s in second.ordered_segments]
    assert first.total_distance_m == second.total_distance_m


def test_bruteforce_ties_keep_request_order(no_ortools):
    result = solver.solve_segment_order(_matrix(6, 1000.0), _segments(3))

    assert [s.segment_id for s in result.ordered_segments] == ["S0", "S1", "S2"]


def test_trip_start_connector_counts_towards_cost(no_ortools):
    # waypoint 0 is the trip start, right next to S1's start
    matrix = _matrix(5, 5000.0, {(0, 3): 10.0, (1, 2): 1000.0, (3, 4): 1000.0, (4, 1): 100.0})
    result = solver.solve_segment_order(matrix, _segments(2, offset=1), trip_start_index=0)

    assert [s.segment_id for s in result.ordered_segments] == ["S1", "S0"]
    assert result.total_distance_m == pytest.approx(10.0 + 1000.0 + 100.0 + 1000.0)


def test_single_segment(no_ortools):
    result = solver.solve_segment_order(_matrix(2, 1500.0), _segments(1))

    assert [s.segment_id for s in result.ordered_segments] == ["S0"]
    assert result.total_distance_m == pytest.approx(1500.0)


def test_large_inputs_use_heuristic(no_ortools):
    count = settings.bruteforce_max_segments + 1
    result = solver.solve_segment_order(_matrix(2 * count, 2000.0), _segments(count))

    assert result.method == "heuristic"
    assert sorted(s.request_index for s in result.ordered_segments) == list(range(count))
    assert [s.position for s in result.ordered_segments] == list(range(count))


def test_heuristic_follows_nearest_start():
    matrix = _matrix(7, 9000.0, {(0, 5): 50.0, (6, 3): 60.0, (4, 1): 70.0})
    result = solver.solve_with_heuristic(matrix, _segments(3, offset=1), trip_start_index=0)

    assert [s.segment_id for s in result.ordered_segments] == ["S2", "S1", "S0"]


def test_bruteforce_refuses_large_inputs():
    count = settings.bruteforce_max_segments + 1
    with pytest.raises(SolverError):
        solver.solve_with_bruteforce(_matrix(2 * count, 1.0), _segments(count))


def test_route_cost_matches_manual_sum():
    matrix = _two_segment_matrix()
    order = list(reversed(_segments(2)))

    assert solver.route_cost(order, matrix.distances) == pytest.approx(1000.0 + 5000.0 + 1000.0)
    assert solver.route_cost([], matrix.distances) == 0.0


def test_no_segments_is_invalid_input(no_ortools):
    with pytest.raises(SolverError) as exc:
        solver.solve_segment_order(_matrix(2, 1.0), [])
    assert exc.value.kind == PlannerErrorKind.INVALID_INPUT


def test_out_of_bounds_index_is_invalid_input(no_ortools):
    with pytest.raises(SolverError) as exc:
        solver.solve_segment_order(_matrix(2, 1.0), _segments(2))
    assert exc.value.kind == PlannerErrorKind.INVALID_INPUT


def test_too_many_segments_is_invalid_input(no_ortools):
    count = settings.max_segments + 1
    with pytest.raises(SolverError) as exc:
        solver.solve_segment_order(_matrix(2 * count, 1.0), _segments(count))
    assert exc.value.kind == PlannerErrorKind.INVALID_INPUT


def test_unreachable_matrix_entry_is_rejected(no_ortools):
    matrix = _matrix(4, 1000.0, {(1, 2): math.inf})
    with pytest.raises(PlannerError) as exc:
        solver.solve_segment_order(matrix, _segments(2))
    assert exc.value.kind == PlannerErrorKind.INVALID_INPUT


def test_ortools_visits_every_segment_once():
    pytest.importorskip("ortools")
    matrix = _matrix(7, 9000.0, {(0, 1): 10.0, (1, 2): 1000.0, (2, 3): 100.0, (3, 4): 1000.0, (4, 5): 100.0, (5, 6): 1000.0})

    result = solver.solve_with_ortools(matrix, _segments(3, offset=1), trip_start_index=0, time_limit_seconds=2)

    assert result.method == "ortools"
    assert [s.segment_id for s in result.ordered_segments] == ["S0", "S1", "S2"]
    assert result.total_distance_m == pytest.approx(solver.route_cost(result.ordered_segments, matrix.distances, 0))


def test_ortools_without_trip_start():
    pytest.importorskip("ortools")
    result = solver.solve_with_ortools(_two_segment_matrix(), _segments(2), time_limit_seconds=2)

    assert sorted(s.segment_id for s in result.ordered_segments) == ["S0", "S1"]
    assert [s.position for s in result.ordered_segments] == [0, 1]


def test_ortools_failure_falls_back(monkeypatch: pytest.MonkeyPatch):
    def _boom(*args, **kwargs):
        raise SolverError("no solution")

    monkeypatch.setattr(settings, "solver_use_ortools", True)
    monkeypatch.setattr(solver, "ortools_available", lambda: True)
    monkeypatch.setattr(solver, "solve_with_ortools", _boom)

    result = solver.solve_segment_order(_two_segment_matrix(), _segments(2))

    assert result.method == "bruteforce"


def _random_matrix(seed: int, size: int) -> CostMatrix:
    rng = random.Random(seed)
    distances = [[0.0 if i == j else float(rng.randint(100, 5000)) for j in range(size)] for i in range(size)]
    durations = [[value / 5.0 for value in row] for row in distances]
    return CostMatrix(distances=distances, durations=durations)


@pytest.fixture
def fast_ortools(monkeypatch: pytest.MonkeyPatch):
    pytest.importorskip("ortools")
    monkeypatch.setattr(settings, "solver_use_ortools", True)
    monkeypatch.setattr(settings, "solver_time_limit_seconds", 1)


@pytest.mark.parametrize("seed, trip_start", [(1, False), (2, True), (3, False)])
def test_default_tier_matches_exhaustive_optimum(fast_ortools, seed: int, trip_start: bool):
    offset = 1 if trip_start else 0
    matrix = _random_matrix(seed, 10 + offset)
    segments = _segments(5, offset=offset)
    start_index = 0 if trip_start else None

    result = solver.solve_segment_order(matrix, segments, start_index)
    optimum = solver.solve_with_bruteforce(matrix, segments, start_index)

    assert result.total_distance_m == pytest.approx(optimum.total_distance_m)
    assert sorted(s.request_index for s in result.ordered_segments) == list(range(5))


@pytest.mark.parametrize("seed", [11, 12, 13])
def test_ortools_reaches_exhaustive_optimum(seed: int):
    pytest.importorskip("ortools")
    matrix = _random_matrix(seed, 8)
    segments = _segments(4)

    result = solver.solve_with_ortools(matrix, segments, time_limit_seconds=1)
    optimum = solver.solve_with_bruteforce(matrix, segments)

    assert result.total_distance_m == pytest.approx(optimum.total_distance_m)


def test_trivial_two_segment_trip_with_default_tier(fast_ortools):
    result = solver.solve_segment_order(_two_segment_matrix(), _segments(2))

    assert [s.segment_id for s in result.ordered_segments] == ["S0", "S1"]
    assert result.total_distance_m == pytest.approx(2100.0)

    metas = [
        SegmentMeta(segment_id=f"S{i}", name=f"Segment {i}", distance_m=1000.0, elevation_gain_m=50.0)
        for i in range(2)
    ]
    constraints = TripConstraints(max_days=3, max_daily_distance_m=500_000.0, max_daily_elevation_m=1000.0)
    partition = partition_route(result, metas, _two_segment_matrix(), constraints)

    assert partition.success
    assert [p.segment_indices for p in partition.partitions] == [[0, 1]]
