"""Segment ordering, daily partitioning and geometry reconstruction."""
