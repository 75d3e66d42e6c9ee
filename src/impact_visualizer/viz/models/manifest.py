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

"""Manifest tree data models."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable, Iterator, Sequence

NodePath = tuple[str, ...]

ROOT_NAME = "root"

# Keys on an output record that are never treated as metrics
RESERVED_KEYS = ("timestamp", "duration")


def coerce_number(value: Any) -> float:
    """Coerce a raw manifest value to a finite float, defaulting to 0."""
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return 0.0
    else:
        return 0.0
    if not math.isfinite(number):
        return 0.0
    return number


def as_path(path: Iterable[str] | None) -> NodePath:
    """Normalize any sequence of component names to a NodePath."""
    if path is None:
        return ()
    if isinstance(path, str):
        return (path,) if path else ()
    return tuple(str(part) for part in path)


def parse_path(text: str | None, separator: str = "/") -> NodePath:
    """Parse ``"A/B/C"`` into a NodePath; empty text or ``"/"`` is the root."""
    if not text:
        return ()
    return tuple(part for part in text.split(separator) if part)


def format_path(path: Sequence[str], separator: str = "/") -> str:
    return separator.join(path)


def timestamp_sort_key(timestamp: str) -> tuple:
    """Chronological sort key for ISO-8601 strings.

    Parseable timestamps sort by instant (naive values are read as UTC),
    anything else sorts after them lexicographically.
    """
    text = timestamp.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return (1, 0.0, timestamp)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return (0, parsed.timestamp(), timestamp)


def timestamp_identity(timestamp: str) -> tuple:
    """Key under which two spellings of the same instant are equal.

    ``2024-01-01T00:00:00Z`` and ``2024-01-01T00:00:00+00:00`` share a key;
    unparseable strings are only equal to themselves.
    """
    order, instant, text = timestamp_sort_key(timestamp)
    if order == 0:
        return (order, instant)
    return (order, text)


@dataclass
class OutputRecord:
    """One time-series entry of a component.

    ``timestamp`` and ``duration`` are reserved; every other key of the
    source record lands in ``values`` untouched and is read through
    :meth:`metric`.
    """

    timestamp: str
    duration: float = 0.0
    values: dict[str, Any] = field(default_factory=dict)

    def has_metric(self, name: str) -> bool:
        return name in self.values

    def metric(self, name: str) -> float:
        """Numeric value for a metric; missing or non-numeric reads as 0."""
        return coerce_number(self.values.get(name))

    def to_dict(self) -> dict[str, Any]:
        return {"timestamp": self.timestamp, "duration": self.duration, **self.values}


@dataclass
class TreeNode:
    """A component of the manifest tree."""

    name: str
    children: dict[str, "TreeNode"] = field(default_factory=dict)
    outputs: list[OutputRecord] = field(default_factory=list)
    inputs: list[OutputRecord] = field(default_factory=list)
    aggregated: dict[str, float] = field(default_factory=dict)
    pipeline_steps: list[str] = field(default_factory=list)
    defaults: dict[str, Any] = field(default_factory=dict)

    @property
    def is_leaf(self) -> bool:
        """Check if this is a leaf node (no children)."""
        return len(self.children) == 0

    def _own_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "name": self.name,
            "is_leaf": self.is_leaf,
            "aggregated": dict(self.aggregated),
        }
        if self.pipeline_steps:
            result["pipeline"] = list(self.pipeline_steps)
        if self.defaults:
            result["defaults"] = dict(self.defaults)
        if self.outputs:
            result["outputs"] = [record.to_dict() for record in self.outputs]
        return result

    def to_dict(self, include_children: bool = True) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization.

        Built with an explicit stack, so any depth the builder accepts
        converts without hitting the interpreter recursion limit.
        """
        result = self._own_dict()
        if not include_children:
            return result

        stack: list[tuple[TreeNode, dict[str, Any]]] = [(self, result)]
        while stack:
            node, data = stack.pop()
            if not node.children:
                continue
            children: dict[str, Any] = {}
            for name, child in node.children.items():
                children[name] = child._own_dict()
                stack.append((child, children[name]))
            data["children"] = children
        return result


@dataclass
class ManifestTree:
    """A normalized manifest: the component tree plus metric metadata."""

    root: TreeNode
    metric_names: list[str]
    metric_units: dict[str, str] = field(default_factory=dict)
    metric_descriptions: dict[str, str] = field(default_factory=dict)

    # Manifest metadata
    name: str = ""
    description: str = ""
    aggregation_type: str | None = None

    def iter_nodes(self) -> Iterator[tuple[NodePath, TreeNode]]:
        """Iterate over (path, node) pairs in pre-order, children in manifest order."""
        stack: list[tuple[NodePath, TreeNode]] = [((), self.root)]
        while stack:
            path, node = stack.pop()
            yield path, node
            for name in reversed(list(node.children)):
                stack.append((path + (name,), node.children[name]))

    def clamp_path(self, path: Sequence[str] | None) -> NodePath:
        """Return the deepest prefix of ``path`` that resolves in this tree."""
        valid: list[str] = []
        node = self.root
        for name in as_path(path):
            child = node.children.get(name)
            if child is None:
                break
            valid.append(name)
            node = child
        return tuple(valid)

    def is_valid_path(self, path: Sequence[str] | None) -> bool:
        normalized = as_path(path)
        return self.clamp_path(normalized) == normalized

    def resolve(self, path: Sequence[str] | None) -> TreeNode:
        """Resolve a path to its node, degrading to the nearest valid ancestor."""
        node = self.root
        for name in self.clamp_path(path):
            node = node.children[name]
        return node

    def has_metric(self, name: str) -> bool:
        return name in self.metric_names

    @property
    def node_count(self) -> int:
        return sum(1 for _ in self.iter_nodes())

    @property
    def timestamps(self) -> list[str]:
        """Union of all leaf output timestamps, sorted chronologically.

        Spellings of the same instant collapse into one column, named by
        the first spelling met in pre-order.
        """
        seen: dict[tuple, str] = {}
        for _, node in self.iter_nodes():
            if not node.is_leaf:
                continue
            for record in node.outputs:
                seen.setdefault(timestamp_identity(record.timestamp), record.timestamp)
        return sorted(seen.values(), key=timestamp_sort_key)

    def unit_for(self, metric: str) -> str:
        return self.metric_units.get(metric, "")

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "name": self.name,
            "description": self.description,
            "aggregation_type": self.aggregation_type,
            "metrics": list(self.metric_names),
            "explain": {
                metric: {
                    "unit": self.metric_units.get(metric, ""),
                    "description": self.metric_descriptions.get(metric, ""),
                }
                for metric in self.metric_names
            },
            "root": self.root.to_dict(),
        }
