"""Projections of the manifest tree into table, pie and chart views."""

from impact_visualizer.viz.projection.chart import project_chart, time_range
from impact_visualizer.viz.projection.pie import (
    project_pie,
    project_rings,
    slice_percentages,
)
from impact_visualizer.viz.projection.table import (
    expand_to_depth,
    expand_with_ancestors,
    project_table,
    subtree_size,
    toggle_path,
    visible_count,
)

__all__ = [
    "project_chart",
    "time_range",
    "project_pie",
    "project_rings",
    "slice_percentages",
    "expand_to_depth",
    "expand_with_ancestors",
    "project_table",
    "subtree_size",
    "toggle_path",
    "visible_count",
]
