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

"""Pie projection: one ring of slices for the focused node's children."""

from __future__ import annotations

import logging
from typing import Sequence

from impact_visualizer.viz.aggregation.aggregator import percentage_of, totals_by_path
from impact_visualizer.viz.models.manifest import ManifestTree
from impact_visualizer.viz.models.views import Slice

logger = logging.getLogger(__name__)


def _slice_order(item: Slice) -> tuple[float, str]:
    return (-item.value, item.name)


def project_pie(
    tree: ManifestTree,
    metric: str,
    focus_path: Sequence[str],
) -> list[Slice]:
    """Slices for the direct children of the node at ``focus_path``.

    An invalid focus path is clamped to its deepest valid prefix. Slices
    are ordered by value descending, then by name ascending.

    Args:
        tree: The manifest tree
        metric: Metric used for slice values
        focus_path: Path of the node whose children form the ring

    Returns:
        Ordered slices; empty when the focused node is a leaf
    """
    path = tree.clamp_path(focus_path)
    node = tree.resolve(path)
    totals = totals_by_path(node, metric)

    slices = [
        Slice(
            name=name,
            value=totals[(name,)],
            path=path + (name,),
            is_leaf=child.is_leaf,
        )
        for name, child in node.children.items()
    ]
    slices.sort(key=_slice_order)
    return slices


def slice_percentages(slices: Sequence[Slice]) -> list[float]:
    """Each slice's percentage of the ring total; all 0 when the total is 0."""
    whole = sum(item.value for item in slices)
    return [percentage_of(item.value, whole) for item in slices]


def project_rings(
    tree: ManifestTree,
    metric: str,
    focus_path: Sequence[str],
    max_rings: int | None = None,
) -> list[list[Slice]]:
    """Concentric rings for the nested pie presentation.

    Ring 0 is :func:`project_pie` at the focus. Each following ring
    concatenates the slices of every non-leaf slice of the ring before
    it, in that ring's order, so each ring lines up with its parents.

    Args:
        tree: The manifest tree
        metric: Metric used for slice values
        focus_path: Path of the innermost ring's parent
        max_rings: Maximum number of rings (None for all depths)

    Returns:
        Rings from innermost to outermost
    """
    rings: list[list[Slice]] = []
    ring = project_pie(tree, metric, focus_path)

    while ring and (max_rings is None or len(rings) < max_rings):
        rings.append(ring)
        next_ring: list[Slice] = []
        for item in ring:
            if not item.is_leaf:
                next_ring.extend(project_pie(tree, metric, item.path))
        ring = next_ring

    logger.debug("Projected %d pie rings for %s", len(rings), metric)
    return rings
