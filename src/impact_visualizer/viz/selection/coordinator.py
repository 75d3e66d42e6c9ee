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

"""Selection coordinator - the single source of truth for the selected path.

The coordinator has two observable states:

    Rooted   path == ()
    Focused  path != ()

``select`` moves to either state, ``drill_up`` moves one level towards the
root, and ``change_metric`` swaps the metric without touching the path.
Each transition builds a complete new :class:`SelectionState` and swaps it
in at once, then notifies listeners, so nothing observes a half-applied
change.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any, Callable, Iterable, Mapping, Sequence

from impact_visualizer.viz.models.manifest import (
    ManifestTree,
    NodePath,
    as_path,
    format_path,
    parse_path,
)
from impact_visualizer.viz.models.views import Point, Row, SelectionState, Slice
from impact_visualizer.viz.projection.chart import project_chart
from impact_visualizer.viz.projection.pie import project_pie
from impact_visualizer.viz.projection.table import project_table

logger = logging.getLogger(__name__)

Listener = Callable[[SelectionState], None]


class UnknownMetric(LookupError):
    """Raised when a metric is not one of the manifest's metrics."""

    pass


@dataclass(frozen=True)
class ViewSet:
    """The three projections computed for one selection version."""

    version: int
    state: SelectionState
    rows: list[Row]
    slices: list[Slice]
    points: list[Point]

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "selection": self.state.to_dict(),
            "table": [row.to_dict() for row in self.rows],
            "pie": [item.to_dict() for item in self.slices],
            "chart": [point.to_dict() for point in self.points],
        }


class SelectionCoordinator:
    """Owns the selection state for one loaded manifest."""

    def __init__(self, tree: ManifestTree):
        self._tree = tree
        self._state = SelectionState(path=(), metric=tree.metric_names[0])
        self._version = 0
        self._listeners: list[Listener] = []

    @property
    def tree(self) -> ManifestTree:
        return self._tree

    @property
    def state(self) -> SelectionState:
        """Read-only snapshot of the current selection."""
        return self._state

    @property
    def version(self) -> int:
        """Logical version, bumped on every committed transition."""
        return self._version

    def is_current(self, version: int) -> bool:
        """Whether work started at ``version`` still matches the selection."""
        return version == self._version

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a callable that unregisters it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    # -- transitions ---------------------------------------------------------

    def load(self, tree: ManifestTree) -> SelectionState:
        """Switch to a new manifest, discarding the previous selection."""
        self._tree = tree
        return self._commit(SelectionState(path=(), metric=tree.metric_names[0]), force=True)

    def select(self, path: Sequence[str] | None) -> SelectionState:
        """Select a component path.

        Paths that do not resolve are clamped to their deepest valid
        prefix; stale paths are normal after data changes.
        """
        requested = as_path(path)
        clamped = self._tree.clamp_path(requested)
        if clamped != requested:
            logger.debug(
                "Clamped selection %s to %s",
                format_path(requested) or "/",
                format_path(clamped) or "/",
            )
        return self._commit(replace(self._state, path=clamped))

    def drill_up(self) -> SelectionState:
        """Move selection to the parent path; no-op at the root."""
        if self._state.is_rooted:
            return self._state
        return self._commit(replace(self._state, path=self._state.path[:-1]))

    def change_metric(self, name: str) -> SelectionState:
        """Change the metric, keeping the selected path.

        Raises:
            UnknownMetric: If ``name`` is not a manifest metric
        """
        self.check_metric(name)
        return self._commit(replace(self._state, metric=name))

    def check_metric(self, name: str) -> None:
        """Raise UnknownMetric unless ``name`` is a manifest metric."""
        if not self._tree.has_metric(name):
            raise UnknownMetric(
                f"Unknown metric '{name}'. "
                f"Valid metrics: {', '.join(self._tree.metric_names)}"
            )

    def _commit(self, new_state: SelectionState, force: bool = False) -> SelectionState:
        if new_state == self._state and not force:
            return self._state
        self._state = new_state
        self._version += 1
        for listener in list(self._listeners):
            listener(new_state)
        return new_state

    # -- projections ---------------------------------------------------------

    @property
    def pie_focus(self) -> NodePath:
        """Path whose children make up the pie.

        A selected leaf has no ring of its own, so it is shown as a slice
        of its parent's ring.
        """
        path = self._state.path
        if path and self._tree.resolve(path).is_leaf:
            return path[:-1]
        return path

    def views(self, expanded_paths: Iterable[Sequence[str]] = ()) -> ViewSet:
        """Recompute table, pie and chart for the current selection."""
        state = self._state
        return ViewSet(
            version=self._version,
            state=state,
            rows=project_table(self._tree, state.metric, expanded_paths),
            slices=project_pie(self._tree, state.metric, self.pie_focus),
            points=project_chart(self._tree.resolve(state.path), state.metric),
        )

    # -- persistence pair ----------------------------------------------------

    def export_state(self) -> dict[str, Any]:
        """Selection as plain data for an external mirror (e.g. URL params)."""
        return self._state.to_dict()

    def import_state(self, data: Mapping[str, Any]) -> SelectionState:
        """Apply a previously exported selection in a single transition.

        An unknown metric keeps the current one; the path is clamped.
        """
        metric = data.get("metric")
        if metric is None:
            metric = self._state.metric
        elif not self._tree.has_metric(str(metric)):
            logger.warning("Ignoring unknown metric '%s' in imported selection", metric)
            metric = self._state.metric

        raw_path = data.get("path")
        if isinstance(raw_path, str):
            path = parse_path(raw_path)
        else:
            path = as_path(raw_path)

        return self._commit(
            SelectionState(path=self._tree.clamp_path(path), metric=str(metric))
        )
