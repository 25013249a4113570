import math

import pytest

from trip_planner.services.geospatial import coordinate_distance_m
from trip_planner.services.planning.cost_matrix import CostMatrix
from trip_planner.services.planning.errors import PlannerError, PlannerErrorKind


def test_from_osrm_keeps_values_and_marks_unreachable():
    table = {
        "durations": [[0, 60], [None, 0]],
        "distances": [[0, 500.5], [None, 0]],
    }
    matrix = CostMatrix.from_osrm(table)

    assert matrix.source == "osrm"
    assert matrix.distances[0][1] == 500.5
    assert math.isinf(matrix.distances[1][0])
    with pytest.raises(PlannerError) as exc:
        matrix.validate()
    assert exc.value.kind == PlannerErrorKind.INVALID_INPUT


def test_from_osrm_requires_both_tables():
    with pytest.raises(ValueError):
        CostMatrix.from_osrm({"durations": [[0]]})


def test_haversine_matrix():
    waypoints = [(8.0, 47.0), (8.0, 47.1), (8.1, 47.1)]
    matrix = CostMatrix.from_haversine(waypoints, average_speed_kmh=20.0)

    matrix.validate(expected_size=3)
    assert matrix.source == "haversine"
    assert [matrix.distances[i][i] for i in range(3)] == [0.0, 0.0, 0.0]
    assert matrix.distances[0][1] == pytest.approx(coordinate_distance_m(waypoints[0], waypoints[1]))
    assert matrix.distances[0][2] == pytest.approx(matrix.distances[2][0])
    assert matrix.durations[0][1] == pytest.approx(matrix.distances[0][1] / 1000.0 / 20.0 * 3600.0)


def test_one_tenth_degree_of_latitude():
    assert coordinate_distance_m((8.0, 47.0), (8.0, 47.1)) == pytest.approx(11_119.5, rel=1e-3)


@pytest.mark.parametrize(
    "distances, durations",
    [
        ([[0, 1, 2], [1, 0, 2]], [[0, 1, 2], [1, 0, 2]]),
        ([[0, 1], [1, 0]], [[0, 1, 1], [1, 0, 1], [1, 1, 0]]),
        ([[0, -1], [1, 0]], [[0, 1], [1, 0]]),
        ([[0, 1], [1, 0]], [[0, float("nan")], [1, 0]]),
    ],
)
def test_validate_rejects_malformed_matrices(distances, durations):
    with pytest.raises(PlannerError) as exc:
        CostMatrix(distances=distances, durations=durations).validate()
    assert exc.value.kind == PlannerErrorKind.INVALID_INPUT


def test_validate_checks_expected_size():
    matrix = CostMatrix(distances=[[0, 1], [1, 0]], durations=[[0, 1], [1, 0]])

    matrix.validate(expected_size=2)
    with pytest.raises(PlannerError):
        matrix.validate(expected_size=3)
