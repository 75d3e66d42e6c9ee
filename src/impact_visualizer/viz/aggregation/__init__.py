"""Aggregation engine for per-node metric totals."""

from impact_visualizer.viz.aggregation.aggregator import (
    breakdown,
    percentage_of,
    total_for,
    totals_by_path,
)

__all__ = [
    "breakdown",
    "percentage_of",
    "total_for",
    "totals_by_path",
]
