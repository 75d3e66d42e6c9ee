"""Impact Visualizer projection engine.

Normalizes a parsed manifest into a component tree and projects it into
table rows, drilldown pie slices and time series points, with one
selection shared across all three.

Public API:
    - build_manifest_tree: parsed manifest → ManifestTree
    - total_for / percentage_of: per-node totals and shares
    - project_table / project_pie / project_chart: the three views
    - SelectionCoordinator: selected path + metric state machine
    - render_views: ViewSet → str
    - visualize_manifest: parsed manifest → rendered output (all-in-one)

Example:
    from impact_visualizer.viz import visualize_manifest, OutputFormat

    # Quick visualization
    text = visualize_manifest(parsed, select="server/cpu")

    # Step by step
    from impact_visualizer.viz import (
        SelectionCoordinator, build_manifest_tree, expand_to_depth, render_views,
    )

    tree = build_manifest_tree(parsed)
    selection = SelectionCoordinator(tree)
    selection.select(["server", "cpu"])
    views = selection.views(expand_to_depth(tree, 2))
    output = render_views(tree, views, format=OutputFormat.JSON)
"""

from typing import Any, Iterable, Sequence

from impact_visualizer.viz.models import (
    NodePath,
    OutputRecord,
    TreeNode,
    ManifestTree,
    SelectionState,
    Row,
    Slice,
    Point,
    Share,
    parse_path,
    format_path,
)
from impact_visualizer.viz.tree import (
    DEFAULT_MAX_DEPTH,
    DEFAULT_MAX_NODES,
    MalformedManifest,
    build_manifest_tree,
)
from impact_visualizer.viz.aggregation import (
    breakdown,
    percentage_of,
    total_for,
    totals_by_path,
)
from impact_visualizer.viz.projection import (
    expand_to_depth,
    expand_with_ancestors,
    project_chart,
    project_pie,
    project_rings,
    project_table,
    slice_percentages,
    time_range,
    toggle_path,
)
from impact_visualizer.viz.selection import (
    SelectionCoordinator,
    UnknownMetric,
    ViewSet,
)
from impact_visualizer.viz.renderers import (
    OutputFormat,
    JSONRenderer,
    TextRenderer,
)


def get_renderer(format: OutputFormat = OutputFormat.TEXT):
    """Return the renderer for an output format."""
    if format == OutputFormat.JSON:
        return JSONRenderer()
    return TextRenderer()


def render_views(
    tree: ManifestTree,
    views: ViewSet,
    *,
    format: OutputFormat = OutputFormat.TEXT,
    precision: int = 3,
    **options,
) -> str:
    """Render the projections of one selection.

    Args:
        tree: The manifest tree
        views: Projections from SelectionCoordinator.views
        format: Output format (TEXT or JSON)
        precision: Decimal places for text output
        **options: Format-specific options

    Returns:
        Rendered output
    """
    renderer = get_renderer(format)
    return renderer.render(tree, views, precision=precision, **options)


def render_summary(
    tree: ManifestTree,
    *,
    format: OutputFormat = OutputFormat.TEXT,
    source_link: str | None = None,
    **options,
) -> str:
    """Render manifest metadata and per-metric totals."""
    renderer = get_renderer(format)
    return renderer.render_summary(tree, source_link=source_link, **options)


def visualize_manifest(
    parsed: Any,
    *,
    metric: str | None = None,
    select: str | Sequence[str] | None = None,
    expanded_paths: Iterable[Sequence[str]] | None = None,
    expand_depth: int = 1,
    format: OutputFormat = OutputFormat.TEXT,
    max_depth: int = DEFAULT_MAX_DEPTH,
    max_nodes: int = DEFAULT_MAX_NODES,
    **options,
) -> str:
    """All-in-one function to visualize a parsed manifest.

    Args:
        parsed: The parsed manifest document
        metric: Metric to show (first manifest metric if None)
        select: Selected path, as "A/B" or a sequence of names
        expanded_paths: Table rows to expand (defaults to expand_depth)
        expand_depth: Depth to expand when expanded_paths is None
        format: Output format
        max_depth: Deepest component nesting accepted
        max_nodes: Most components accepted
        **options: Format-specific options

    Returns:
        Rendered visualization

    Raises:
        MalformedManifest: If the manifest has no usable root or metrics
        UnknownMetric: If metric is not a manifest metric
    """
    tree = build_manifest_tree(parsed, max_depth=max_depth, max_nodes=max_nodes)
    selection = SelectionCoordinator(tree)

    if metric is not None:
        selection.change_metric(metric)
    if select is not None:
        selection.select(parse_path(select) if isinstance(select, str) else select)

    if expanded_paths is None:
        expanded_paths = expand_to_depth(tree, expand_depth)

    return render_views(tree, selection.views(expanded_paths), format=format, **options)


__all__ = [
    # Models
    "NodePath",
    "OutputRecord",
    "TreeNode",
    "ManifestTree",
    "SelectionState",
    "Row",
    "Slice",
    "Point",
    "Share",
    "parse_path",
    "format_path",
    # Errors
    "MalformedManifest",
    "UnknownMetric",
    # Configuration
    "DEFAULT_MAX_DEPTH",
    "DEFAULT_MAX_NODES",
    "OutputFormat",
    # Core functions
    "build_manifest_tree",
    "total_for",
    "totals_by_path",
    "percentage_of",
    "breakdown",
    "project_table",
    "toggle_path",
    "expand_to_depth",
    "expand_with_ancestors",
    "project_pie",
    "project_rings",
    "slice_percentages",
    "project_chart",
    "time_range",
    "SelectionCoordinator",
    "ViewSet",
    "get_renderer",
    "render_views",
    "render_summary",
    "visualize_manifest",
]
