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

"""Chart projection: a node's outputs as a time series."""

from __future__ import annotations

from impact_visualizer.viz.models.manifest import TreeNode
from impact_visualizer.viz.models.views import Point


def project_chart(node: TreeNode, metric: str) -> list[Point]:
    """One point per output record, in the order the manifest lists them.

    Missing or non-numeric values become 0. A node without outputs
    yields an empty series.
    """
    return [
        Point(timestamp=record.timestamp, value=record.metric(metric))
        for record in node.outputs
    ]


def time_range(node: TreeNode) -> tuple[str, str] | None:
    """First and last output timestamps as listed, or None without outputs."""
    if not node.outputs:
        return None
    return node.outputs[0].timestamp, node.outputs[-1].timestamp
