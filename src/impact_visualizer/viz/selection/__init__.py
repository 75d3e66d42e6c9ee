"""Selection and navigation state."""

from impact_visualizer.viz.selection.coordinator import (
    SelectionCoordinator,
    UnknownMetric,
    ViewSet,
)

__all__ = [
    "SelectionCoordinator",
    "UnknownMetric",
    "ViewSet",
]
