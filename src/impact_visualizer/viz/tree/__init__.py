"""Tree building from parsed manifests."""

from impact_visualizer.viz.tree.builder import (
    DEFAULT_MAX_DEPTH,
    DEFAULT_MAX_NODES,
    MalformedManifest,
    TreeBuilder,
    build_manifest_tree,
)

__all__ = [
    "DEFAULT_MAX_DEPTH",
    "DEFAULT_MAX_NODES",
    "MalformedManifest",
    "TreeBuilder",
    "build_manifest_tree",
]
