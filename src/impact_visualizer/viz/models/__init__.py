"""Data models for the visualization system."""

from impact_visualizer.viz.models.manifest import (
    NodePath,
    ROOT_NAME,
    OutputRecord,
    TreeNode,
    ManifestTree,
    as_path,
    coerce_number,
    format_path,
    parse_path,
    timestamp_identity,
    timestamp_sort_key,
)
from impact_visualizer.viz.models.views import (
    SelectionState,
    Row,
    Slice,
    Point,
    Share,
)

__all__ = [
    "NodePath",
    "ROOT_NAME",
    "OutputRecord",
    "TreeNode",
    "ManifestTree",
    "as_path",
    "coerce_number",
    "format_path",
    "parse_path",
    "timestamp_identity",
    "timestamp_sort_key",
    "SelectionState",
    "Row",
    "Slice",
    "Point",
    "Share",
]
