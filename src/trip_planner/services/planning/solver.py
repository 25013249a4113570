"""Segment ordering: OR-Tools, exhaustive and nearest-neighbour solver tiers.

Each segment is a forced edge (start waypoint straight to end waypoint); only
the order in which segments are visited is free. The tiers share one cost
function so every :class:`Solution` reports comparable totals.
"""

from __future__ import annotations

import importlib.util
import itertools
import logging
import math
import time
from dataclasses import replace
from typing import Optional, Sequence

from ...config import settings
from .cost_matrix import CostMatrix
from .errors import PlannerErrorKind, SolverError
from .models import OrderedSegment, Solution, SolverMethod

logger = logging.getLogger(__name__)


def ortools_available() -> bool:
    """Return True if the OR-Tools routing library can be imported."""
    return importlib.util.find_spec("ortools") is not None


def route_cost(
    order: Sequence[OrderedSegment],
    matrix: Sequence[Sequence[float]],
    trip_start_index: Optional[int] = None,
) -> float:
    """Connector cost into each segment plus each segment's internal cost."""
    if not order:
        return 0.0
    total = 0.0
    current = trip_start_index if trip_start_index is not None else order[0].start_index
    for segment in order:
        total += matrix[current][segment.start_index]
        total += matrix[segment.start_index][segment.end_index]
        current = segment.end_index
    return total


def _validate(
    matrix: CostMatrix,
    segments: Sequence[OrderedSegment],
    trip_start_index: Optional[int],
) -> None:
    if not segments:
        raise SolverError("No segments provided to the order solver", kind=PlannerErrorKind.INVALID_INPUT)
    if len(segments) > settings.max_segments:
        raise SolverError(
            f"Too many segments for the order solver: {len(segments)}. Maximum is {settings.max_segments}.",
            kind=PlannerErrorKind.INVALID_INPUT,
        )
    matrix.validate()

    referenced = [index for segment in segments for index in (segment.start_index, segment.end_index)]
    if trip_start_index is not None:
        referenced.append(trip_start_index)
    out_of_bounds = [index for index in referenced if index < 0 or index >= matrix.size]
    if out_of_bounds:
        raise SolverError(
            f"Waypoint index {max(out_of_bounds)} exceeds matrix size {matrix.size}",
            kind=PlannerErrorKind.INVALID_INPUT,
        )
    if len(set(referenced)) != len(referenced):
        raise SolverError(
            "Segments and trip start must each occupy distinct waypoints",
            kind=PlannerErrorKind.INVALID_INPUT,
        )


def _build_solution(
    order: Sequence[OrderedSegment],
    matrix: CostMatrix,
    trip_start_index: Optional[int],
    method: SolverMethod,
    solve_start: float,
) -> Solution:
    ordered = [replace(segment, position=position) for position, segment in enumerate(order)]
    return Solution(
        ordered_segments=ordered,
        total_distance_m=route_cost(ordered, matrix.distances, trip_start_index),
        total_duration_s=route_cost(ordered, matrix.durations, trip_start_index),
        method=method,
        solve_time_ms=(time.perf_counter() - solve_start) * 1000.0,
    )


def solve_with_ortools(
    matrix: CostMatrix,
    segments: Sequence[OrderedSegment],
    trip_start_index: Optional[int] = None,
    time_limit_seconds: Optional[int] = None,
) -> Solution:
    """Single-vehicle pickup-and-delivery model where every pickup is followed by its delivery.

    Nodes are the referenced waypoints plus one dummy node with zero cost in and
    out, which closes the open path. The dummy is the depot when no trip start
    is fixed; otherwise the trip start is the route start and the dummy its end.
    """
    from ortools.constraint_solver import pywrapcp, routing_enums_pb2

    solve_start = time.perf_counter()

    # route_index_map: local node -> matrix index; the dummy node maps to None
    route_index_map: list[Optional[int]] = []
    if trip_start_index is not None:
        route_index_map.append(trip_start_index)
    for segment in segments:
        route_index_map.append(segment.start_index)
        route_index_map.append(segment.end_index)
    dummy_node = len(route_index_map)
    route_index_map.append(None)
    local_of = {full_idx: local for local, full_idx in enumerate(route_index_map) if full_idx is not None}

    n_route = len(route_index_map)
    route_distance_matrix = [[0] * n_route for _ in range(n_route)]
    for i, full_idx_i in enumerate(route_index_map):
        for j, full_idx_j in enumerate(route_index_map):
            if full_idx_i is None or full_idx_j is None:
                continue
            route_distance_matrix[i][j] = int(round(matrix.distances[full_idx_i][full_idx_j]))

    start_node = local_of[trip_start_index] if trip_start_index is not None else dummy_node
    manager = pywrapcp.RoutingIndexManager(n_route, 1, [start_node], [dummy_node])
    routing = pywrapcp.RoutingModel(manager)

    def distance_callback(from_index: int, to_index: int) -> int:
        from_node = manager.IndexToNode(from_index)
        to_node = manager.IndexToNode(to_index)
        return route_distance_matrix[from_node][to_node]

    transit_callback_index = routing.RegisterTransitCallback(distance_callback)
    routing.SetArcCostEvaluatorOfAllVehicles(transit_callback_index)

    horizon = sum(max(row) for row in route_distance_matrix) + 1
    routing.AddDimension(transit_callback_index, 0, horizon, True, "Distance")
    distance_dimension = routing.GetDimensionOrDie("Distance")

    solver = routing.solver()
    for segment in segments:
        pickup_index = manager.NodeToIndex(local_of[segment.start_index])
        delivery_index = manager.NodeToIndex(local_of[segment.end_index])
        routing.AddPickupAndDelivery(pickup_index, delivery_index)
        solver.Add(routing.VehicleVar(pickup_index) == routing.VehicleVar(delivery_index))
        solver.Add(distance_dimension.CumulVar(pickup_index) <= distance_dimension.CumulVar(delivery_index))
        solver.Add(routing.NextVar(pickup_index) == delivery_index)

    search_parameters = pywrapcp.DefaultRoutingSearchParameters()
    search_parameters.first_solution_strategy = getattr(
        routing_enums_pb2.FirstSolutionStrategy, settings.solver_first_solution_strategy
    )
    search_parameters.local_search_metaheuristic = getattr(
        routing_enums_pb2.LocalSearchMetaheuristic, settings.solver_local_search_metaheuristic
    )
    search_parameters.time_limit.FromSeconds(time_limit_seconds or settings.solver_time_limit_seconds)

    assignment = routing.SolveWithParameters(search_parameters)
    if not assignment:
        raise SolverError("No solution found by OR-Tools")

    by_start = {segment.start_index: segment for segment in segments}
    order: list[OrderedSegment] = []
    index = routing.Start(0)
    while not routing.IsEnd(index):
        full_idx = route_index_map[manager.IndexToNode(index)]
        if full_idx is not None and full_idx in by_start:
            order.append(by_start[full_idx])
        index = assignment.Value(routing.NextVar(index))

    if len(order) != len(segments):
        raise SolverError(
            f"OR-Tools route visited {len(order)} of {len(segments)} segments"
        )
    return _build_solution(order, matrix, trip_start_index, "ortools", solve_start)


def solve_with_bruteforce(
    matrix: CostMatrix,
    segments: Sequence[OrderedSegment],
    trip_start_index: Optional[int] = None,
) -> Solution:
    """Evaluate every ordering; the first ordering found at the minimum cost wins."""
    if len(segments) > settings.bruteforce_max_segments:
        raise SolverError(
            f"Brute force solver limited to {settings.bruteforce_max_segments} segments, got {len(segments)}"
        )
    solve_start = time.perf_counter()

    best_order: Optional[tuple[OrderedSegment, ...]] = None
    best_cost = math.inf
    evaluated = 0
    for permutation in itertools.permutations(segments):
        evaluated += 1
        cost = route_cost(permutation, matrix.distances, trip_start_index)
        if cost < best_cost:
            best_cost = cost
            best_order = permutation

    if best_order is None:
        raise SolverError("No valid solution found by brute force")

    logger.debug("Brute force evaluated %d permutations, best cost %.1f m", evaluated, best_cost)
    return _build_solution(best_order, matrix, trip_start_index, "bruteforce", solve_start)


def solve_with_heuristic(
    matrix: CostMatrix,
    segments: Sequence[OrderedSegment],
    trip_start_index: Optional[int] = None,
) -> Solution:
    """Nearest neighbour: always ride next the segment whose start is cheapest to reach."""
    solve_start = time.perf_counter()

    remaining = list(segments)
    order: list[OrderedSegment] = []
    current = trip_start_index if trip_start_index is not None else remaining[0].start_index

    while remaining:
        nearest: Optional[OrderedSegment] = None
        nearest_distance = math.inf
        for segment in remaining:
            distance_to_start = matrix.distances[current][segment.start_index]
            if distance_to_start < nearest_distance:
                nearest_distance = distance_to_start
                nearest = segment
        if nearest is None:
            raise SolverError("No reachable segment found in heuristic solver")
        order.append(nearest)
        remaining.remove(nearest)
        current = nearest.end_index

    return _build_solution(order, matrix, trip_start_index, "heuristic", solve_start)


def solve_segment_order(
    matrix: CostMatrix,
    segments: Sequence[OrderedSegment],
    trip_start_index: Optional[int] = None,
) -> Solution:
    """Choose the segment visiting order, picking the solver tier by capability and size.

    OR-Tools is tried first when enabled and installed. Small inputs are also
    searched exhaustively and the cheaper order is kept, ties going to the
    exhaustive order. Large inputs fall back to nearest neighbour only when
    OR-Tools is unavailable or fails.
    """
    total_start = time.perf_counter()
    logger.info(
        "Solving segment order: %d segments, %d waypoints, trip start: %s",
        len(segments),
        matrix.size,
        trip_start_index is not None,
    )
    _validate(matrix, segments, trip_start_index)

    solution: Optional[Solution] = None
    if settings.solver_use_ortools and ortools_available():
        try:
            solution = solve_with_ortools(matrix, segments, trip_start_index)
        except Exception as exc:
            logger.warning(
                "OR-Tools solver failed (%s); falling back to %s",
                exc,
                "bruteforce" if len(segments) <= settings.bruteforce_max_segments else "heuristic",
            )

    if len(segments) <= settings.bruteforce_max_segments:
        # exhaustive search is exact; OR-Tools only wins when strictly cheaper
        exact = solve_with_bruteforce(matrix, segments, trip_start_index)
        if solution is None or exact.total_distance_m <= solution.total_distance_m:
            solution = exact
    elif solution is None:
        solution = solve_with_heuristic(matrix, segments, trip_start_index)

    logger.info(
        "Solved segment order with %s in %.1f ms (total %.1f ms): %.0f m, %.0f s, order=%s",
        solution.method,
        solution.solve_time_ms,
        (time.perf_counter() - total_start) * 1000.0,
        solution.total_distance_m,
        solution.total_duration_s,
        [segment.segment_id for segment in solution.ordered_segments],
    )
    return solution
