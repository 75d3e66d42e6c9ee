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

"""Table projection: the tree flattened into expandable rows."""

from __future__ import annotations

import logging
from typing import Iterable, Sequence

from impact_visualizer.viz.aggregation.aggregator import totals_by_path
from impact_visualizer.viz.models.manifest import (
    ROOT_NAME,
    ManifestTree,
    NodePath,
    TreeNode,
    as_path,
    timestamp_identity,
)
from impact_visualizer.viz.models.views import Row

logger = logging.getLogger(__name__)

ExpandedPaths = Iterable[Sequence[str]]


def _normalize(expanded_paths: ExpandedPaths) -> frozenset[NodePath]:
    return frozenset(as_path(path) for path in expanded_paths)


def _per_timestamp(
    node: TreeNode, metric: str, timestamps: list[str]
) -> tuple[float | None, ...]:
    """Align a node's own outputs to the canonical timestamps.

    A missing record, or a record without the metric, is None rather
    than 0 so the table can tell "not available" from a measured zero.
    """
    by_instant = {}
    for record in node.outputs:
        by_instant.setdefault(timestamp_identity(record.timestamp), record)

    values: list[float | None] = []
    for timestamp in timestamps:
        record = by_instant.get(timestamp_identity(timestamp))
        if record is None or not record.has_metric(metric):
            values.append(None)
        else:
            values.append(record.metric(metric))
    return tuple(values)


def project_table(
    tree: ManifestTree,
    metric: str,
    expanded_paths: ExpandedPaths,
) -> list[Row]:
    """Flatten the tree into visible rows.

    The root row comes first. A node's children follow it directly, in
    manifest order, only when its path is in ``expanded_paths``; collapsed
    subtrees are left out entirely.

    Args:
        tree: The manifest tree
        metric: Metric used for totals and per-timestamp values
        expanded_paths: Paths whose children are shown

    Returns:
        Visible rows in display order. Expanded rows also carry their
        child rows in ``children``.
    """
    expanded = _normalize(expanded_paths)
    totals = totals_by_path(tree.root, metric)
    timestamps = tree.timestamps

    rows: list[Row] = []
    stack: list[tuple[NodePath, TreeNode, Row | None]] = [((), tree.root, None)]
    while stack:
        path, node, parent_row = stack.pop()
        is_expanded = path in expanded and not node.is_leaf
        row = Row(
            component=path[-1] if path else ROOT_NAME,
            path=path,
            depth=len(path),
            total=totals[path],
            per_timestamp=_per_timestamp(node, metric, timestamps),
            is_leaf=node.is_leaf,
            expanded=is_expanded,
        )
        rows.append(row)
        if parent_row is not None:
            parent_row.children.append(row)

        if is_expanded:
            for name in reversed(list(node.children)):
                stack.append((path + (name,), node.children[name], row))

    logger.debug("Projected %d table rows for %s", len(rows), metric)
    return rows


def toggle_path(
    tree: ManifestTree,
    expanded_paths: ExpandedPaths,
    path: Sequence[str],
) -> frozenset[NodePath]:
    """Return ``expanded_paths`` with ``path`` toggled.

    Paths that do not exist in the tree leave the set unchanged.
    """
    expanded = _normalize(expanded_paths)
    target = as_path(path)
    if not tree.is_valid_path(target):
        logger.debug("Ignoring toggle of unknown path %s", "/".join(target))
        return expanded
    if target in expanded:
        return expanded - {target}
    return expanded | {target}


def expand_to_depth(tree: ManifestTree, depth: int) -> frozenset[NodePath]:
    """Expanded set that shows every node down to ``depth``.

    ``0`` shows only the root row, ``1`` the root and its children.
    """
    return frozenset(
        path
        for path, node in tree.iter_nodes()
        if len(path) < depth and not node.is_leaf
    )


def subtree_size(tree: ManifestTree, path: Sequence[str]) -> int:
    """Number of nodes in the subtree at ``path``, the node included."""
    count = 0
    stack = [tree.resolve(path)]
    while stack:
        node = stack.pop()
        count += 1
        stack.extend(node.children.values())
    return count


def visible_count(tree: ManifestTree, expanded_paths: ExpandedPaths) -> int:
    """Number of rows :func:`project_table` would return."""
    expanded = _normalize(expanded_paths)
    count = 0
    stack: list[tuple[NodePath, TreeNode]] = [((), tree.root)]
    while stack:
        path, node = stack.pop()
        count += 1
        if path in expanded:
            stack.extend((path + (name,), child) for name, child in node.children.items())
    return count


def expand_with_ancestors(
    tree: ManifestTree,
    expanded_paths: ExpandedPaths,
    paths: Iterable[Sequence[str]],
) -> frozenset[NodePath]:
    """``expanded_paths`` plus each of ``paths`` and all of its ancestors.

    Unknown paths are clamped to their deepest valid prefix first, so
    every added row is reachable from the root.
    """
    expanded = set(_normalize(expanded_paths))
    for path in paths:
        clamped = tree.clamp_path(path)
        expanded.update(clamped[:i] for i in range(len(clamped) + 1))
    return frozenset(expanded)
