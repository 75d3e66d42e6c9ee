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

"""Projection output models.

These are plain values recomputed on every input change. They compare by
value so two projections over identical inputs are equal.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from impact_visualizer.viz.models.manifest import NodePath


@dataclass(frozen=True)
class SelectionState:
    """The currently selected component path and metric."""

    path: NodePath
    metric: str

    @property
    def is_rooted(self) -> bool:
        return len(self.path) == 0

    def to_dict(self) -> dict[str, Any]:
        return {"path": list(self.path), "metric": self.metric}


@dataclass
class Row:
    """A visible table row.

    ``children`` is only materialized for expanded rows; a collapsed row
    carries an empty list even when ``is_leaf`` is False.
    """

    component: str
    path: NodePath
    depth: int
    total: float
    per_timestamp: tuple[float | None, ...] = ()
    is_leaf: bool = True
    expanded: bool = False
    children: list["Row"] = field(default_factory=list)

    def _own_dict(self) -> dict[str, Any]:
        return {
            "component": self.component,
            "path": list(self.path),
            "depth": self.depth,
            "total": self.total,
            "per_timestamp": list(self.per_timestamp),
            "is_leaf": self.is_leaf,
            "expanded": self.expanded,
        }

    def to_dict(self, include_children: bool = False) -> dict[str, Any]:
        result = self._own_dict()
        if not include_children:
            return result

        stack: list[tuple[Row, dict[str, Any]]] = [(self, result)]
        while stack:
            row, data = stack.pop()
            data["children"] = []
            for child in row.children:
                child_data = child._own_dict()
                data["children"].append(child_data)
                stack.append((child, child_data))
        return result


@dataclass(frozen=True)
class Slice:
    """A pie slice for one direct child of the focused node."""

    name: str
    value: float
    path: NodePath
    is_leaf: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "value": self.value,
            "path": list(self.path),
            "is_leaf": self.is_leaf,
        }


@dataclass(frozen=True)
class Point:
    """A chart point."""

    timestamp: str
    value: float

    def to_dict(self) -> dict[str, Any]:
        return {"timestamp": self.timestamp, "value": self.value}


@dataclass(frozen=True)
class Share:
    """A node's value with its share of its parent and of the whole tree.

    ``depth`` counts from the root at 0, the same as :class:`Row`.
    """

    path: NodePath
    depth: int
    value: float
    percent_of_parent: float
    percent_of_total: float

    @property
    def name(self) -> str:
        return self.path[-1] if self.path else ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "path": list(self.path),
            "depth": self.depth,
            "value": self.value,
            "percent_of_parent": self.percent_of_parent,
            "percent_of_total": self.percent_of_total,
        }
