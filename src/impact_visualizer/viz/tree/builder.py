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

"""Tree builder for constructing a ManifestTree from a parsed manifest."""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from datetime import date, datetime, timedelta
from typing import Any

from impact_visualizer.viz.models.manifest import (
    RESERVED_KEYS,
    ROOT_NAME,
    ManifestTree,
    OutputRecord,
    TreeNode,
    coerce_number,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 256
DEFAULT_MAX_NODES = 100_000

SCALAR_TYPES = (str, int, float, bool, type(None))


class MalformedManifest(ValueError):
    """Raised when a parsed manifest cannot be turned into a tree."""

    pass


def _has_entries(value: Any, kind: type) -> bool:
    return isinstance(value, kind) and len(value) > 0


class TreeBuilder:
    """Builds a ManifestTree from a parsed manifest mapping.

    The input is whatever a YAML/JSON parser produced from a user-supplied
    file, so every field is checked before use. The input is never
    mutated; the tree is built from fresh objects.
    """

    def __init__(self, max_depth: int = DEFAULT_MAX_DEPTH, max_nodes: int = DEFAULT_MAX_NODES):
        self.max_depth = max_depth
        self.max_nodes = max_nodes

    def build(self, parsed: Any) -> ManifestTree:
        """Build a ManifestTree from a parsed manifest.

        Args:
            parsed: The parsed manifest document

        Returns:
            ManifestTree with every optional collection normalized

        Raises:
            MalformedManifest: If the document has no usable root or metrics
        """
        if not isinstance(parsed, Mapping):
            raise MalformedManifest(
                f"Manifest must be a mapping, got {type(parsed).__name__}"
            )

        metric_names = self._metric_names(parsed.get("aggregation"))

        raw_root = parsed.get("tree")
        if not isinstance(raw_root, Mapping):
            raise MalformedManifest("Manifest has no 'tree' mapping")
        if not _has_entries(raw_root.get("children"), Mapping) and not _has_entries(
            raw_root.get("outputs"), (list, tuple)
        ):
            raise MalformedManifest("Manifest root has neither children nor outputs")

        root = self._build_nodes(raw_root)
        units, descriptions = self._explain(parsed.get("explain"))

        aggregation = parsed.get("aggregation")
        aggregation_type = aggregation.get("type")

        tree = ManifestTree(
            root=root,
            metric_names=metric_names,
            metric_units=units,
            metric_descriptions=descriptions,
            name=str(parsed.get("name") or ""),
            description=str(parsed.get("description") or ""),
            aggregation_type=str(aggregation_type) if aggregation_type is not None else None,
        )

        logger.info(
            "Built manifest tree: %d nodes, %d metrics",
            tree.node_count,
            len(metric_names),
        )
        return tree

    def _metric_names(self, aggregation: Any) -> list[str]:
        """Extract the ordered, de-duplicated metric names."""
        if not isinstance(aggregation, Mapping):
            raise MalformedManifest("Manifest has no 'aggregation' section")

        raw_metrics = aggregation.get("metrics")
        if isinstance(raw_metrics, str):
            raw_metrics = [raw_metrics]
        if not isinstance(raw_metrics, (list, tuple)):
            raise MalformedManifest("'aggregation.metrics' must be a list of metric names")

        names: list[str] = []
        for raw in raw_metrics:
            if raw is None:
                continue
            name = str(raw).strip()
            if name and name not in names:
                names.append(name)

        if not names:
            raise MalformedManifest("'aggregation.metrics' is empty")
        return names

    def _build_nodes(self, raw_root: Mapping) -> TreeNode:
        """Build the node hierarchy with an explicit stack.

        Depth is bounded by ``max_depth`` and size by ``max_nodes`` so that
        pathological inputs fail cleanly. YAML aliases are expanded by the
        parser: a self-referencing alias trips the depth guard, and a chain
        of aliases that fans out trips the node guard.
        """
        root = self._create_node(ROOT_NAME, raw_root)
        created = 1
        stack: list[tuple[TreeNode, Mapping, int]] = [(root, raw_root, 0)]

        while stack:
            node, raw, depth = stack.pop()
            raw_children = raw.get("children")
            if raw_children is None:
                continue
            if not isinstance(raw_children, Mapping):
                logger.debug("Component %s has non-mapping children; ignoring", node.name)
                continue
            if raw_children and depth >= self.max_depth:
                raise MalformedManifest(
                    f"Manifest tree exceeds maximum depth of {self.max_depth}"
                )

            created += len(raw_children)
            if created > self.max_nodes:
                raise MalformedManifest(
                    f"Manifest tree exceeds maximum of {self.max_nodes} components"
                )

            for raw_name, raw_child in raw_children.items():
                name = str(raw_name)
                if not isinstance(raw_child, Mapping):
                    logger.debug("Component %s has no body; treating as empty", name)
                    raw_child = {}
                child = self._create_node(name, raw_child)
                node.children[name] = child
                stack.append((child, raw_child, depth + 1))

        return root

    def _create_node(self, name: str, raw: Mapping) -> TreeNode:
        return TreeNode(
            name=name,
            outputs=self._records(raw.get("outputs"), name, "outputs"),
            inputs=self._records(raw.get("inputs"), name, "inputs"),
            aggregated=self._aggregated(raw.get("aggregated"), name),
            pipeline_steps=self._pipeline(raw.get("pipeline")),
            defaults=self._defaults(raw.get("defaults")),
        )

    def _records(self, raw: Any, component: str, key: str) -> list[OutputRecord]:
        if raw is None:
            return []
        if not isinstance(raw, (list, tuple)):
            logger.debug("Component %s has non-list %s; ignoring", component, key)
            return []

        records: list[OutputRecord] = []
        for index, entry in enumerate(raw):
            if not isinstance(entry, Mapping):
                logger.debug("Dropping %s[%d] of %s: not a mapping", key, index, component)
                continue
            timestamp = self._timestamp(entry.get("timestamp"))
            if timestamp is None:
                logger.debug("Dropping %s[%d] of %s: no timestamp", key, index, component)
                continue
            records.append(
                OutputRecord(
                    timestamp=timestamp,
                    duration=coerce_number(entry.get("duration")),
                    values={
                        str(k): v
                        for k, v in entry.items()
                        if k not in RESERVED_KEYS and isinstance(v, SCALAR_TYPES)
                    },
                )
            )
        return records

    @staticmethod
    def _timestamp(value: Any) -> str | None:
        # YAML turns unquoted ISO timestamps into date/datetime objects;
        # UTC is written back the way manifests usually quote it
        if isinstance(value, datetime) and value.utcoffset() == timedelta(0):
            return value.replace(tzinfo=None).isoformat() + "Z"
        if isinstance(value, date):
            return value.isoformat()
        if value is None or isinstance(value, bool):
            return None
        if isinstance(value, (str, int, float)):
            text = str(value).strip()
            return text or None
        return None

    @staticmethod
    def _aggregated(raw: Any, component: str) -> dict[str, float]:
        if not isinstance(raw, Mapping):
            return {}

        aggregated: dict[str, float] = {}
        for metric, value in raw.items():
            number: float | None = None
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                number = float(value)
            elif isinstance(value, str):
                try:
                    number = float(value.strip())
                except ValueError:
                    number = None
            if number is None or not math.isfinite(number):
                logger.debug(
                    "Dropping non-numeric aggregated %s of %s: %r", metric, component, value
                )
                continue
            aggregated[str(metric)] = number
        return aggregated

    @staticmethod
    def _pipeline(raw: Any) -> list[str]:
        """Flatten a pipeline into ordered step names.

        Accepts a plain list of plugin names or the phased mapping form,
        whose steps become ``"phase:step"``.
        """
        if isinstance(raw, (list, tuple)):
            return [str(step) for step in raw if step is not None]
        if not isinstance(raw, Mapping):
            return []

        steps: list[str] = []
        for phase, phase_steps in raw.items():
            if isinstance(phase_steps, str):
                phase_steps = [phase_steps]
            if not isinstance(phase_steps, (list, tuple)):
                continue
            steps.extend(f"{phase}:{step}" for step in phase_steps if step is not None)
        return steps

    @staticmethod
    def _defaults(raw: Any) -> dict[str, Any]:
        if not isinstance(raw, Mapping):
            return {}
        return {str(k): v for k, v in raw.items() if isinstance(v, SCALAR_TYPES)}

    @staticmethod
    def _explain(raw: Any) -> tuple[dict[str, str], dict[str, str]]:
        units: dict[str, str] = {}
        descriptions: dict[str, str] = {}
        if not isinstance(raw, Mapping):
            return units, descriptions

        for metric, info in raw.items():
            if not isinstance(info, Mapping):
                continue
            if info.get("unit") is not None:
                units[str(metric)] = str(info["unit"])
            if info.get("description") is not None:
                descriptions[str(metric)] = str(info["description"])
        return units, descriptions


def build_manifest_tree(
    parsed: Any,
    *,
    max_depth: int = DEFAULT_MAX_DEPTH,
    max_nodes: int = DEFAULT_MAX_NODES,
) -> ManifestTree:
    """Convenience function to build a ManifestTree from a parsed manifest.

    Args:
        parsed: The parsed manifest document
        max_depth: Deepest component nesting accepted
        max_nodes: Most components accepted, the root included

    Returns:
        ManifestTree ready for projection
    """
    builder = TreeBuilder(max_depth=max_depth, max_nodes=max_nodes)
    return builder.build(parsed)
