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

"""Aggregation engine for per-node metric totals."""

from __future__ import annotations

import logging
import math

from impact_visualizer.viz.models.manifest import ManifestTree, NodePath, TreeNode
from impact_visualizer.viz.models.views import Share

logger = logging.getLogger(__name__)


def totals_by_path(node: TreeNode, metric: str) -> dict[NodePath, float]:
    """Compute the total of ``metric`` for every node under ``node``.

    Resolution order for each node:
    1. ``aggregated[metric]`` verbatim (the manifest's own roll-up, which
       may be a sum, an average or anything else)
    2. Sum of the direct children's totals
    3. For leaves, sum of ``outputs[*][metric]`` (non-numeric reads as 0)

    Args:
        node: Subtree root
        metric: Metric name

    Returns:
        Totals keyed by path relative to ``node`` (``node`` itself is ``()``)
    """
    totals: dict[NodePath, float] = {}

    # Post-order with an explicit stack: children are totalled before parents
    stack: list[tuple[NodePath, TreeNode, bool]] = [((), node, False)]
    while stack:
        path, current, visited = stack.pop()

        if not visited and not current.is_leaf:
            stack.append((path, current, True))
            for name, child in current.children.items():
                stack.append((path + (name,), child, False))
            continue

        if metric in current.aggregated:
            totals[path] = current.aggregated[metric]
        elif current.is_leaf:
            totals[path] = sum(record.metric(metric) for record in current.outputs)
        else:
            totals[path] = sum(totals[path + (name,)] for name in current.children)
            logger.debug(
                "No aggregated %s for %s; summed %d children",
                metric,
                current.name,
                len(current.children),
            )

    return totals


def total_for(node: TreeNode, metric: str) -> float:
    """Total of ``metric`` for a single node (see :func:`totals_by_path`)."""
    if metric in node.aggregated:
        return node.aggregated[metric]
    return totals_by_path(node, metric)[()]


def percentage_of(value: float, whole: float) -> float:
    """Percentage of ``value`` in ``whole``; 0 when ``whole`` is 0.

    Never returns NaN or Infinity.
    """
    if whole == 0:
        return 0.0
    result = value / whole * 100
    if not math.isfinite(result):
        return 0.0
    return result


def breakdown(tree: ManifestTree, metric: str) -> list[Share]:
    """Every non-root node's share of its parent and of the root, in pre-order."""
    totals = totals_by_path(tree.root, metric)
    grand_total = totals[()]

    shares: list[Share] = []
    for path, _ in tree.iter_nodes():
        if not path:
            continue
        value = totals[path]
        shares.append(
            Share(
                path=path,
                depth=len(path),
                value=value,
                percent_of_parent=percentage_of(value, totals[path[:-1]]),
                percent_of_total=percentage_of(value, grand_total),
            )
        )
    return shares
