# Copyright 2026 Pennyworth Technologies, Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Manifest API FastAPI server - one manifest, one shared selection."""

import logging
from pathlib import Path
from typing import List, Optional

from fastapi import FastAPI, HTTPException, Query
from fastapi.responses import PlainTextResponse
from fastapi.middleware.cors import CORSMiddleware
from rich.console import Console
from rich.markup import escape

from impact_visualizer.config import VisualizerConfig
from impact_visualizer.loader import parse_manifest_text, read_manifest_text
from impact_visualizer.viz import (
    SelectionCoordinator,
    UnknownMetric,
    ViewSet,
    build_manifest_tree,
    expand_to_depth,
    expand_with_ancestors,
    parse_path,
    project_chart,
    project_rings,
    project_table,
    time_range,
    total_for,
)
from impact_visualizer.viz.renderers.json_renderer import slices_to_dict
from impact_visualizer.dashboard.schemas import (
    ChartOutput, ManifestOutput, MetricInfo, NodeData, PieOutput, PointData, RowData,
    SelectionOutput, SelectionUpdate, SliceData, TableOutput, ViewsOutput,
)

console = Console()
logger = logging.getLogger(__name__)


def create_app(manifest_path: Path, config: Optional[VisualizerConfig] = None) -> FastAPI:
    """Create and configure the FastAPI application.

    The manifest is loaded and built once; every request reads the same
    tree and the same SelectionCoordinator.

    Raises:
        ManifestLoadError: If the manifest file cannot be read
        MalformedManifest: If the manifest has no usable root or metrics
    """
    if config is None:
        config = VisualizerConfig()

    app = FastAPI(
        title="Impact Visualizer",
        description="Table, pie and chart views of a sustainability impact manifest",
        version="1.0.0"
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    manifest_text = read_manifest_text(manifest_path)
    tree = build_manifest_tree(
        parse_manifest_text(manifest_text, source=str(manifest_path)),
        max_depth=config.limits.max_depth,
        max_nodes=config.limits.max_nodes,
    )
    selection = SelectionCoordinator(tree)

    default_metric = config.display.default_metric
    if default_metric is not None:
        if tree.has_metric(default_metric):
            selection.change_metric(default_metric)
        else:
            logger.warning("Configured default metric '%s' is not in %s", default_metric, manifest_path)

    def _selection_output() -> SelectionOutput:
        state = selection.state
        return SelectionOutput(path=list(state.path), metric=state.metric, version=selection.version)

    def _expanded(expand: List[str], depth: Optional[int]):
        if depth is None:
            depth = config.display.expand_depth
        return expand_with_ancestors(
            tree, expand_to_depth(tree, depth), [parse_path(text) for text in expand]
        )

    def _table_output(views: ViewSet) -> TableOutput:
        return TableOutput(
            metric=views.state.metric,
            timestamps=tree.timestamps,
            rows=[RowData(**row.to_dict()) for row in views.rows],
        )

    def _pie_output(rings: Optional[int]) -> PieOutput:
        metric = selection.state.metric
        slices = project_rings(
            tree,
            metric,
            selection.pie_focus,
            max_rings=rings or config.display.max_rings or 1,
        )
        return PieOutput(
            metric=metric,
            unit=tree.unit_for(metric),
            focus=list(selection.pie_focus),
            rings=[[SliceData(**item) for item in slices_to_dict(ring)] for ring in slices],
        )

    def _chart_output(views: ViewSet) -> ChartOutput:
        return ChartOutput(
            metric=views.state.metric,
            path=list(views.state.path),
            points=[PointData(**point.to_dict()) for point in views.points],
        )

    @app.get("/api/manifest", response_model=ManifestOutput)
    async def get_manifest() -> ManifestOutput:
        """Get manifest metadata, metric totals and the normalized tree.

        Nodes are listed flat in pre-order so deep trees serialize
        without nesting.
        """
        period = time_range(tree.root)
        return ManifestOutput(
            name=tree.name,
            description=tree.description,
            aggregation_type=tree.aggregation_type,
            metrics=[
                MetricInfo(
                    name=metric,
                    total=total_for(tree.root, metric),
                    unit=tree.unit_for(metric),
                    description=tree.metric_descriptions.get(metric, ""),
                )
                for metric in tree.metric_names
            ],
            timestamps=tree.timestamps,
            time_range=list(period) if period else None,
            node_count=tree.node_count,
            nodes=[
                NodeData(path=list(path), **node.to_dict(include_children=False))
                for path, node in tree.iter_nodes()
            ],
        )

    @app.get("/api/raw", response_class=PlainTextResponse)
    async def get_raw() -> str:
        """Get the manifest source as written."""
        return manifest_text

    @app.get("/api/selection", response_model=SelectionOutput)
    async def get_selection() -> SelectionOutput:
        """Get the current selection."""
        return _selection_output()

    @app.post("/api/selection", response_model=SelectionOutput)
    async def update_selection(update: SelectionUpdate) -> SelectionOutput:
        """Change the selected path and/or metric in one transition."""
        if update.metric is not None:
            try:
                selection.check_metric(update.metric)
            except UnknownMetric as e:
                raise HTTPException(status_code=400, detail=str(e))

        state = selection.state
        selection.import_state({
            "path": update.path if update.path is not None else list(state.path),
            "metric": update.metric or state.metric,
        })
        return _selection_output()

    @app.post("/api/selection/drill-up", response_model=SelectionOutput)
    async def drill_up() -> SelectionOutput:
        """Move the selection to its parent."""
        selection.drill_up()
        return _selection_output()

    @app.get("/api/table", response_model=TableOutput)
    async def get_table(
        expand: List[str] = Query(default=[]),
        depth: Optional[int] = Query(default=None, ge=0),
    ) -> TableOutput:
        """Get the visible table rows for the current metric."""
        metric = selection.state.metric
        return TableOutput(
            metric=metric,
            timestamps=tree.timestamps,
            rows=[
                RowData(**row.to_dict())
                for row in project_table(tree, metric, _expanded(expand, depth))
            ],
        )

    @app.get("/api/pie", response_model=PieOutput)
    async def get_pie(rings: Optional[int] = Query(default=None, ge=1)) -> PieOutput:
        """Get the pie rings around the current selection."""
        return _pie_output(rings)

    @app.get("/api/chart", response_model=ChartOutput)
    async def get_chart() -> ChartOutput:
        """Get the time series of the selected component."""
        state = selection.state
        return ChartOutput(
            metric=state.metric,
            path=list(state.path),
            points=[
                PointData(**point.to_dict())
                for point in project_chart(tree.resolve(state.path), state.metric)
            ],
        )

    @app.get("/api/views", response_model=ViewsOutput)
    async def get_views(
        expand: List[str] = Query(default=[]),
        depth: Optional[int] = Query(default=None, ge=0),
        rings: Optional[int] = Query(default=None, ge=1),
    ) -> ViewsOutput:
        """Get table, pie and chart for the current selection at once."""
        views = selection.views(_expanded(expand, depth))
        return ViewsOutput(
            selection=_selection_output(),
            table=_table_output(views),
            pie=_pie_output(rings),
            chart=_chart_output(views),
        )

    return app


def start_dashboard(manifest_path: Path, config: Optional[VisualizerConfig], host: str, port: int):
    """Start the manifest API with uvicorn."""
    import uvicorn

    app = create_app(manifest_path, config)

    console.print(f"[green]Impact Visualizer API:[/green] http://{host}:{port}/api/views")
    console.print(f"  Manifest: {escape(str(manifest_path))}")
    console.print("\n[dim]Press Ctrl+C to stop[/dim]")

    uvicorn.run(app, host=host, port=port, log_level="warning")
