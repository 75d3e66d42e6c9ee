"""Terminal renderer using Rich."""

from __future__ import annotations

import io
from typing import Sequence

from rich.console import Console, Group
from rich.table import Table
from rich.text import Text

from impact_visualizer.viz.aggregation.aggregator import total_for
from impact_visualizer.viz.models.manifest import ManifestTree, format_path
from impact_visualizer.viz.models.views import Point, Row, Slice
from impact_visualizer.viz.projection.chart import time_range
from impact_visualizer.viz.projection.pie import slice_percentages
from impact_visualizer.viz.renderers.base import ColorScheme, OutputFormat
from impact_visualizer.viz.selection.coordinator import ViewSet

BAR_WIDTH = 30
NOT_AVAILABLE = "N/A"


def _format_value(value: float | None, precision: int) -> str:
    if value is None:
        return NOT_AVAILABLE
    return f"{value:.{precision}f}"


def _bar(fraction: float, width: int = BAR_WIDTH) -> str:
    filled = max(0, min(width, round(fraction * width)))
    return "█" * filled


class TextRenderer:
    """Renders manifest views as plain terminal text."""

    format = OutputFormat.TEXT

    def __init__(self, width: int = 120):
        self.width = width

    def _export(self, *renderables) -> str:
        console = Console(
            file=io.StringIO(),
            force_terminal=False,
            width=self.width,
            record=True,
        )
        for renderable in renderables:
            console.print(renderable)
        return console.export_text()

    def render(
        self,
        tree: ManifestTree,
        views: ViewSet,
        *,
        precision: int = 3,
        show_time_series: bool = False,
        **options,
    ) -> str:
        """Render the table, pie and chart of one selection."""
        selected = format_path(views.state.path) or "/"
        header = Text.assemble(
            ("Selection: ", "bold"),
            selected,
            ("  Metric: ", "bold"),
            views.state.metric,
        )
        return self._export(
            header,
            self.table(tree, views.rows, views.state.metric, precision=precision,
                       show_time_series=show_time_series),
            self.pie([views.slices], tree.unit_for(views.state.metric), precision=precision),
            self.chart(views.points, views.state.metric, precision=precision),
        )

    def render_summary(
        self,
        tree: ManifestTree,
        *,
        precision: int = 3,
        source_link: str | None = None,
    ) -> str:
        """Render manifest name, description and per-metric totals."""
        lines: list = [Text(tree.name or "(unnamed manifest)", style="bold")]
        if tree.description:
            lines.append(Text(tree.description, style="dim"))
        if source_link:
            lines.append(Text(source_link, style="cyan"))

        period = time_range(tree.root)
        if period is None and tree.timestamps:
            period = (tree.timestamps[0], tree.timestamps[-1])
        if period is not None:
            lines.append(Text(f"{period[0]} - {period[1]}", style="dim"))

        metrics = Table(title="Totals")
        metrics.add_column("Metric")
        metrics.add_column("Total", justify="right")
        metrics.add_column("Unit")
        metrics.add_column("Description")
        for metric in tree.metric_names:
            metrics.add_row(
                Text(metric),
                _format_value(total_for(tree.root, metric), precision),
                Text(tree.unit_for(metric)),
                Text(tree.metric_descriptions.get(metric, "")),
            )
        lines.append(metrics)
        return self._export(Group(*lines))

    def table(
        self,
        tree: ManifestTree,
        rows: Sequence[Row],
        metric: str,
        *,
        precision: int = 3,
        show_time_series: bool = False,
    ) -> Table:
        """Build a Rich table of visible rows."""
        table = Table(title=Text(f"Detailed Breakdown ({metric})"))
        table.add_column("Component")
        table.add_column("Total", justify="right")
        timestamps = tree.timestamps if show_time_series else []
        for timestamp in timestamps:
            table.add_column(Text(timestamp), justify="right")

        for row in rows:
            if row.is_leaf:
                marker = "  "
            else:
                marker = "▾ " if row.expanded else "▸ "
            label = Text("  " * row.depth + marker + row.component)
            cells = [label, _format_value(row.total, precision)]
            if show_time_series:
                cells.extend(_format_value(value, precision) for value in row.per_timestamp)
            table.add_row(*cells)
        return table

    def pie(
        self,
        rings: Sequence[Sequence[Slice]],
        unit: str = "",
        *,
        precision: int = 3,
    ) -> Group:
        """Build a bar breakdown for one or more pie rings."""
        parts: list = []
        for depth, ring in enumerate(rings):
            title = "Component Breakdown" if depth == 0 else f"Ring {depth + 1}"
            parts.append(Text(title, style="bold"))
            if not ring:
                parts.append(Text("  (no components)", style="dim"))
                continue
            colors = ColorScheme.slice_colors(len(ring))
            for item, percent, color in zip(ring, slice_percentages(ring), colors):
                line = Text("  ")
                line.append(_bar(percent / 100).ljust(BAR_WIDTH), style=color)
                line.append(f" {item.name}")
                line.append(f"  {_format_value(item.value, precision)} {unit}".rstrip())
                line.append(f"  {percent:.1f}%", style="dim")
                if not item.is_leaf:
                    line.append("  ›", style="dim")
                parts.append(line)
        if not parts:
            parts.append(Text("Component Breakdown", style="bold"))
            parts.append(Text("  (no components)", style="dim"))
        return Group(*parts)

    def chart(
        self,
        points: Sequence[Point],
        metric: str,
        *,
        precision: int = 3,
    ) -> Table | Text:
        """Build a time series table with a bar per point."""
        if not points:
            return Text("No time series available", style="dim")

        peak = max((abs(point.value) for point in points), default=0.0)
        color = ColorScheme.slice_colors(1)[0]
        table = Table(title=Text(f"Totals Over Time ({metric})"))
        table.add_column("Timestamp")
        table.add_column("Value", justify="right")
        table.add_column("")
        for point in points:
            fraction = abs(point.value) / peak if peak else 0.0
            table.add_row(
                Text(point.timestamp),
                _format_value(point.value, precision),
                Text(_bar(fraction), style=color),
            )
        return table

    def render_table(self, tree: ManifestTree, rows: Sequence[Row], metric: str, **options) -> str:
        return self._export(self.table(tree, rows, metric, **options))

    def render_pie(self, rings: Sequence[Sequence[Slice]], unit: str = "", **options) -> str:
        return self._export(self.pie(rings, unit, **options))

    def render_chart(self, points: Sequence[Point], metric: str, **options) -> str:
        return self._export(self.chart(points, metric, **options))
