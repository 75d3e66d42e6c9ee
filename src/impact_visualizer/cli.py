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

"""Impact Visualizer CLI - explore sustainability impact manifests."""

import json
import logging
from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape
from rich.syntax import Syntax

from impact_visualizer import __version__
from impact_visualizer.config import (
    ConfigLoadError,
    ConfigValidationError,
    VisualizerConfig,
    generate_config_template,
    get_config,
    get_global_config_path,
    get_project_config_path,
)
from impact_visualizer.loader import (
    ManifestLoadError,
    load_manifest,
    read_manifest_text,
    source_link,
)
from impact_visualizer.viz import (
    ManifestTree,
    MalformedManifest,
    OutputFormat,
    SelectionCoordinator,
    UnknownMetric,
    build_manifest_tree,
    expand_to_depth,
    expand_with_ancestors,
    get_renderer,
    parse_path,
    project_chart,
    project_rings,
    project_table,
    render_summary,
    render_views,
)

console = Console()
logger = logging.getLogger(__name__)

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

# Errors a user can cause with bad input; reported without a traceback
USER_ERRORS = (
    ManifestLoadError,
    MalformedManifest,
    UnknownMetric,
    ConfigLoadError,
    ConfigValidationError,
)


def _configure_logging(level_name: str) -> None:
    level = getattr(logging, level_name.upper())
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger().setLevel(level)


def _fail(error: Exception) -> None:
    console.print(f"[red]Error:[/red] {escape(str(error))}")
    raise SystemExit(1)


def _get_config(ctx: click.Context) -> VisualizerConfig:
    """Effective configuration, loaded once per invocation."""
    if ctx.obj.get("config") is None:
        ctx.obj["config"] = get_config(config_path=ctx.obj.get("config_path"))
    return ctx.obj["config"]


def _output_format(ctx: click.Context) -> OutputFormat:
    output_format = ctx.obj.get("output_format") or _get_config(ctx).display.output_format
    return OutputFormat(output_format)


def _load_tree(ctx: click.Context, manifest: Path) -> ManifestTree:
    config = _get_config(ctx)
    return build_manifest_tree(
        load_manifest(manifest),
        max_depth=config.limits.max_depth,
        max_nodes=config.limits.max_nodes,
    )


def _coordinator(ctx: click.Context, tree: ManifestTree, metric: str | None) -> SelectionCoordinator:
    """Coordinator with the requested metric, or the configured default."""
    selection = SelectionCoordinator(tree)
    if metric is not None:
        selection.change_metric(metric)
        return selection

    default_metric = _get_config(ctx).display.default_metric
    if default_metric is None:
        return selection
    if tree.has_metric(default_metric):
        selection.change_metric(default_metric)
    else:
        logger.warning(
            "Configured default metric '%s' is not in this manifest; using '%s'",
            default_metric,
            selection.state.metric,
        )
    return selection


def _expanded_paths(tree: ManifestTree, depth: int, expand: tuple[str, ...]) -> frozenset:
    """Rows expanded to ``depth`` plus every ``--expand`` path and its ancestors."""
    return expand_with_ancestors(
        tree, expand_to_depth(tree, depth), [parse_path(text) for text in expand]
    )


def _emit(output: str) -> None:
    print(output, end="" if output.endswith("\n") else "\n")


@click.group()
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default="WARNING",
    help="Logging verbosity (default: WARNING)",
)
@click.option(
    "--format", "-f", "output_format",
    type=click.Choice(["text", "json"]),
    default=None,
    help="Output format: text or json (default from config: text)",
)
@click.option(
    "--config", "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Config file to use instead of ./.impact-viz.json",
)
@click.pass_context
def main(ctx: click.Context, log_level: str, output_format: str | None, config_path: Path | None) -> None:
    """Impact Visualizer - explore sustainability impact manifests.

    Shows a manifest's component tree as a breakdown table, a drilldown
    pie and a time series chart for any of its metrics.
    """
    _configure_logging(log_level)
    ctx.ensure_object(dict)
    ctx.obj["output_format"] = output_format
    ctx.obj["config_path"] = config_path
    ctx.obj["config"] = None


@main.command()
def version() -> None:
    """Show version."""
    console.print(f"impact-visualizer {__version__}")


@main.command()
@click.argument("manifest", type=click.Path(path_type=Path))
@click.option("--source-url", help="URL the manifest was published at (linked when on GitHub)")
@click.pass_context
def summary(ctx: click.Context, manifest: Path, source_url: str | None) -> None:
    """Show manifest name, description, time range and metric totals."""
    try:
        tree = _load_tree(ctx, manifest)
        config = _get_config(ctx)
        _emit(render_summary(
            tree,
            format=_output_format(ctx),
            source_link=source_link(source_url) or source_url,
            precision=config.display.precision,
        ))
    except USER_ERRORS as e:
        _fail(e)


@main.command()
@click.argument("manifest", type=click.Path(path_type=Path))
@click.option("--metric", "-m", help="Metric to show (default: first manifest metric)")
@click.option("--expand", "-e", multiple=True, help="Expand a row, as A/B (repeatable)")
@click.option("--depth", "-d", type=click.IntRange(min=0), default=None,
              help="Expand every row down to this depth")
@click.option("--time-series/--no-time-series", default=None,
              help="Show a column per timestamp")
@click.pass_context
def table(
    ctx: click.Context,
    manifest: Path,
    metric: str | None,
    expand: tuple[str, ...],
    depth: int | None,
    time_series: bool | None,
) -> None:
    """Show the detailed breakdown table."""
    try:
        tree = _load_tree(ctx, manifest)
        config = _get_config(ctx)
        selection = _coordinator(ctx, tree, metric)
        depth = config.display.expand_depth if depth is None else depth
        if time_series is None:
            time_series = config.display.show_time_series

        rows = project_table(tree, selection.state.metric, _expanded_paths(tree, depth, expand))
        renderer = get_renderer(_output_format(ctx))
        _emit(renderer.render_table(
            tree,
            rows,
            selection.state.metric,
            precision=config.display.precision,
            show_time_series=time_series,
        ))
    except USER_ERRORS as e:
        _fail(e)


@main.command()
@click.argument("manifest", type=click.Path(path_type=Path))
@click.option("--metric", "-m", help="Metric to show (default: first manifest metric)")
@click.option("--focus", default="", help="Component whose children form the pie, as A/B")
@click.option("--rings", "-r", type=click.IntRange(min=1), default=None,
              help="Number of nested rings (default from config: 1)")
@click.pass_context
def pie(ctx: click.Context, manifest: Path, metric: str | None, focus: str, rings: int | None) -> None:
    """Show the component breakdown of one node."""
    try:
        tree = _load_tree(ctx, manifest)
        config = _get_config(ctx)
        selection = _coordinator(ctx, tree, metric)
        max_rings = rings or config.display.max_rings or 1

        metric_name = selection.state.metric
        ring_slices = project_rings(tree, metric_name, parse_path(focus), max_rings=max_rings)
        renderer = get_renderer(_output_format(ctx))
        _emit(renderer.render_pie(
            ring_slices,
            tree.unit_for(metric_name),
            precision=config.display.precision,
        ))
    except USER_ERRORS as e:
        _fail(e)


@main.command()
@click.argument("manifest", type=click.Path(path_type=Path))
@click.option("--metric", "-m", help="Metric to show (default: first manifest metric)")
@click.option("--path", "-p", "path_text", default="", help="Component to chart, as A/B")
@click.pass_context
def chart(ctx: click.Context, manifest: Path, metric: str | None, path_text: str) -> None:
    """Show a component's metric over time."""
    try:
        tree = _load_tree(ctx, manifest)
        config = _get_config(ctx)
        selection = _coordinator(ctx, tree, metric)
        node = tree.resolve(parse_path(path_text))

        renderer = get_renderer(_output_format(ctx))
        _emit(renderer.render_chart(
            project_chart(node, selection.state.metric),
            selection.state.metric,
            precision=config.display.precision,
        ))
    except USER_ERRORS as e:
        _fail(e)


@main.command()
@click.argument("manifest", type=click.Path(path_type=Path))
@click.option("--metric", "-m", help="Metric to show (default: first manifest metric)")
@click.option("--select", "-s", "select_text", default="", help="Selected component, as A/B")
@click.option("--expand", "-e", multiple=True, help="Expand a row, as A/B (repeatable)")
@click.option("--depth", "-d", type=click.IntRange(min=0), default=None,
              help="Expand every row down to this depth")
@click.option("--time-series/--no-time-series", default=None,
              help="Show a column per timestamp")
@click.pass_context
def render(
    ctx: click.Context,
    manifest: Path,
    metric: str | None,
    select_text: str,
    expand: tuple[str, ...],
    depth: int | None,
    time_series: bool | None,
) -> None:
    """Show table, pie and chart for one selection."""
    try:
        tree = _load_tree(ctx, manifest)
        config = _get_config(ctx)
        selection = _coordinator(ctx, tree, metric)
        selection.select(parse_path(select_text))
        depth = config.display.expand_depth if depth is None else depth
        if time_series is None:
            time_series = config.display.show_time_series

        views = selection.views(_expanded_paths(tree, depth, expand))
        _emit(render_views(
            tree,
            views,
            format=_output_format(ctx),
            precision=config.display.precision,
            show_time_series=time_series,
        ))
    except USER_ERRORS as e:
        _fail(e)


@main.command()
@click.argument("manifest", type=click.Path(path_type=Path))
@click.option("--line-numbers/--no-line-numbers", default=True, help="Number the source lines")
def raw(manifest: Path, line_numbers: bool) -> None:
    """Show the manifest source as written."""
    try:
        text = read_manifest_text(manifest)
    except ManifestLoadError as e:
        _fail(e)
    console.print(Syntax(text, "yaml", line_numbers=line_numbers, word_wrap=True))


@main.command()
@click.argument("manifest", type=click.Path(path_type=Path))
@click.option("--host", default="127.0.0.1", help="Interface to bind")
@click.option("--port", "-p", type=int, default=8080, help="Port to listen on")
@click.pass_context
def serve(ctx: click.Context, manifest: Path, host: str, port: int) -> None:
    """Serve the views of a manifest as a JSON API."""
    from impact_visualizer.dashboard.server import start_dashboard

    try:
        start_dashboard(manifest, _get_config(ctx), host=host, port=port)
    except USER_ERRORS as e:
        _fail(e)


@main.group()
def config() -> None:
    """Configuration management."""
    pass


@config.command("show")
@click.pass_context
def config_show(ctx: click.Context) -> None:
    """Show effective configuration (merged from all sources).

    Displays the current configuration after merging:
    - Global config (~/.impact_viz_config.json)
    - Project config (./.impact-viz.json) or --config
    - Environment variables

    Output is JSON format for easy parsing.
    """
    try:
        print(json.dumps(_get_config(ctx).to_dict(), indent=2))
    except USER_ERRORS as e:
        _fail(e)


@config.command("init")
@click.option("--global", "is_global", is_flag=True, help="Create global config at ~/.impact_viz_config.json")
@click.option("--force", is_flag=True, help="Overwrite existing config file")
def config_init(is_global: bool, force: bool) -> None:
    """Initialize a configuration file with template.

    By default, creates ./.impact-viz.json in the current directory.
    Use --global to create ~/.impact_viz_config.json instead.
    """
    if is_global:
        config_path = get_global_config_path()
    else:
        config_path = get_project_config_path(Path.cwd())

    if config_path.exists() and not force:
        console.print(f"[red]Error:[/red] Config file already exists: {config_path}")
        console.print("Use --force to overwrite")
        raise SystemExit(1)

    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(json.dumps(generate_config_template(), indent=2))

    console.print(f"[green]Created config file:[/green] {config_path}")


if __name__ == "__main__":
    main()
