"""JSON renderer for manifest views."""

import json
from typing import Any, Sequence

from impact_visualizer.viz.aggregation.aggregator import total_for
from impact_visualizer.viz.models.manifest import ManifestTree
from impact_visualizer.viz.models.views import Point, Row, Slice
from impact_visualizer.viz.projection.chart import time_range
from impact_visualizer.viz.projection.pie import slice_percentages
from impact_visualizer.viz.renderers.base import OutputFormat
from impact_visualizer.viz.selection.coordinator import ViewSet


def slices_to_dict(slices: Sequence[Slice]) -> list[dict[str, Any]]:
    """Slices with their ring percentages attached."""
    return [
        {**item.to_dict(), "percentage": percent}
        for item, percent in zip(slices, slice_percentages(slices))
    ]


def summary_to_dict(tree: ManifestTree, source_link: str | None = None) -> dict[str, Any]:
    """Manifest metadata with the root total of every metric."""
    period = time_range(tree.root)
    return {
        "name": tree.name,
        "description": tree.description,
        "source": source_link,
        "aggregationType": tree.aggregation_type,
        "timeRange": list(period) if period else None,
        "timestamps": tree.timestamps,
        "nodeCount": tree.node_count,
        "metrics": [
            {
                "name": metric,
                "total": total_for(tree.root, metric),
                "unit": tree.unit_for(metric),
                "description": tree.metric_descriptions.get(metric, ""),
            }
            for metric in tree.metric_names
        ],
    }


class JSONRenderer:
    """Renders manifest views as JSON."""

    format = OutputFormat.JSON

    def render(
        self,
        tree: ManifestTree,
        views: ViewSet,
        *,
        precision: int = 3,
        **options,
    ) -> str:
        """Render the views of one selection as JSON.

        Args:
            tree: The manifest tree
            views: Projections to render
            precision: Ignored for JSON (values are emitted unrounded)
            **options: Additional options (indent, etc.)

        Returns:
            JSON string with selection, timestamps, table, pie and chart
        """
        data = views.to_dict()
        data["timestamps"] = tree.timestamps
        data["pie"] = slices_to_dict(views.slices)

        indent = options.get("indent", 2)
        return json.dumps(data, indent=indent, default=str)

    def render_summary(self, tree: ManifestTree, *, source_link: str | None = None, **options) -> str:
        indent = options.get("indent", 2)
        return json.dumps(summary_to_dict(tree, source_link), indent=indent, default=str)

    def render_table(self, tree: ManifestTree, rows: Sequence[Row], metric: str, **options) -> str:
        data = {
            "metric": metric,
            "timestamps": tree.timestamps,
            "rows": [row.to_dict() for row in rows],
        }
        return json.dumps(data, indent=options.get("indent", 2), default=str)

    def render_pie(self, rings: Sequence[Sequence[Slice]], unit: str = "", **options) -> str:
        data = {"unit": unit, "rings": [slices_to_dict(ring) for ring in rings]}
        return json.dumps(data, indent=options.get("indent", 2), default=str)

    def render_chart(self, points: Sequence[Point], metric: str, **options) -> str:
        data = {"metric": metric, "points": [point.to_dict() for point in points]}
        return json.dumps(data, indent=options.get("indent", 2), default=str)
