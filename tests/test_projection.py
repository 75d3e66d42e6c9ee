"""Tests for the table, pie and chart projections."""

from datetime import datetime, timezone

import pytest

from impact_visualizer.viz import build_manifest_tree, total_for
from impact_visualizer.viz.models import Point, Slice, TreeNode
from impact_visualizer.viz.projection import (
    expand_to_depth,
    expand_with_ancestors,
    project_chart,
    project_pie,
    project_rings,
    project_table,
    slice_percentages,
    subtree_size,
    time_range,
    toggle_path,
    visible_count,
)

T0 = "2024-01-01T00:00:00Z"
T1 = "2024-01-01T01:00:00Z"


# -----------------------------------------------------------------------------
# Table
# -----------------------------------------------------------------------------


class TestProjectTable:
    """Tests for project_table."""

    def test_collapsed_root_shows_only_root(self, web_app_tree):
        rows = project_table(web_app_tree, "carbon", set())
        assert len(rows) == 1
        assert rows[0].component == "root"
        assert rows[0].path == ()
        assert rows[0].depth == 0
        assert rows[0].total == 17.0
        assert not rows[0].expanded
        assert not rows[0].is_leaf

    def test_expanded_root_shows_children_in_order(self, web_app_tree):
        rows = project_table(web_app_tree, "carbon", {()})
        assert [row.component for row in rows] == ["root", "server", "network"]
        assert [row.depth for row in rows] == [0, 1, 1]
        assert rows[0].expanded
        assert [child.component for child in rows[0].children] == ["server", "network"]
        assert rows[1].children == []

    def test_children_follow_their_parent(self, web_app_tree):
        rows = project_table(web_app_tree, "carbon", {(), ("server",)})
        assert [row.path for row in rows] == [
            (),
            ("server",),
            ("server", "cpu"),
            ("server", "memory"),
            ("network",),
        ]
        assert [row.total for row in rows] == [17.0, 13.0, 10.0, 3.0, 4.0]

    def test_expanded_child_of_collapsed_parent_hidden(self, web_app_tree):
        rows = project_table(web_app_tree, "carbon", {("server",)})
        assert [row.path for row in rows] == [()]

    def test_expanding_a_leaf_has_no_effect(self, web_app_tree):
        rows = project_table(web_app_tree, "carbon", {(), ("network",)})
        network = rows[-1]
        assert network.is_leaf
        assert not network.expanded

    def test_per_timestamp_aligned_to_canonical_timestamps(self, web_app_tree):
        rows = project_table(web_app_tree, "energy", {(), ("server",)})
        by_path = {row.path: row for row in rows}
        assert by_path[()].per_timestamp == (0.875, 1.0)
        assert by_path[("server", "cpu")].per_timestamp == (0.5, 0.75)
        # memory has no energy at the second timestamp
        assert by_path[("server", "memory")].per_timestamp == (0.125, None)

    def test_per_timestamp_missing_record_is_none(self):
        tree = build_manifest_tree({
            "aggregation": {"metrics": ["carbon"]},
            "tree": {
                "children": {
                    "a": {"outputs": [{"timestamp": T0, "carbon": 1}]},
                    "b": {"outputs": [{"timestamp": T1, "carbon": "bad"}]},
                },
            },
        })
        rows = project_table(tree, "carbon", {()})
        assert rows[0].per_timestamp == (None, None)
        assert rows[1].per_timestamp == (1.0, None)
        assert rows[2].per_timestamp == (None, 0.0)

    def test_spellings_of_one_instant_align(self):
        tree = build_manifest_tree({
            "aggregation": {"metrics": ["carbon"]},
            "tree": {
                "children": {
                    "a": {"outputs": [
                        {"timestamp": datetime(2024, 1, 1, tzinfo=timezone.utc), "carbon": 1},
                    ]},
                    "b": {"outputs": [{"timestamp": "2024-01-01T00:00:00+00:00", "carbon": 2}]},
                    "c": {"outputs": [{"timestamp": T0, "carbon": 3}]},
                },
            },
        })
        assert tree.timestamps == [T0]
        rows = project_table(tree, "carbon", {()})
        assert [(row.component, row.per_timestamp) for row in rows[1:]] == [
            ("a", (1.0,)),
            ("b", (2.0,)),
            ("c", (3.0,)),
        ]

    def test_idempotent(self, web_app_tree):
        expanded = {(), ("server",)}
        assert project_table(web_app_tree, "carbon", expanded) == project_table(
            web_app_tree, "carbon", expanded
        )

    def test_accepts_lists_as_paths(self, web_app_tree):
        rows = project_table(web_app_tree, "carbon", [[], ["server"]])
        assert len(rows) == 5

    def test_row_to_dict(self, web_app_tree):
        row = project_table(web_app_tree, "carbon", set())[0]
        data = row.to_dict()
        assert data["component"] == "root"
        assert data["path"] == []
        assert data["per_timestamp"] == [7.0, 10.0]
        assert "children" not in data


class TestExpandedPaths:
    """Tests for toggling and bulk expansion."""

    def test_toggle_adds_and_removes(self, web_app_tree):
        expanded = toggle_path(web_app_tree, set(), ("server",))
        assert expanded == {("server",)}
        assert toggle_path(web_app_tree, expanded, ("server",)) == frozenset()

    def test_toggle_twice_restores_rows(self, web_app_tree):
        before = project_table(web_app_tree, "carbon", {()})
        expanded = toggle_path(web_app_tree, {()}, ("server",))
        expanded = toggle_path(web_app_tree, expanded, ("server",))
        assert project_table(web_app_tree, "carbon", expanded) == before

    def test_toggle_unknown_path_unchanged(self, web_app_tree):
        assert toggle_path(web_app_tree, {()}, ("server", "ghost")) == {()}

    def test_collapse_keeps_descendants(self, web_app_tree):
        expanded = {(), ("server",)}
        collapsed = toggle_path(web_app_tree, expanded, ())
        assert ("server",) in collapsed
        assert len(project_table(web_app_tree, "carbon", collapsed)) == 1
        reopened = toggle_path(web_app_tree, collapsed, ())
        assert len(project_table(web_app_tree, "carbon", reopened)) == 5

    def test_expand_to_depth(self, web_app_tree):
        assert expand_to_depth(web_app_tree, 0) == frozenset()
        assert expand_to_depth(web_app_tree, 1) == {()}
        assert expand_to_depth(web_app_tree, 5) == {(), ("server",)}

    def test_expand_with_ancestors(self, web_app_tree):
        expanded = expand_with_ancestors(web_app_tree, set(), [("server", "cpu", "ghost")])
        assert expanded == {(), ("server",), ("server", "cpu")}

    def test_visible_count_matches_rows(self, web_app_tree):
        for depth in range(4):
            expanded = expand_to_depth(web_app_tree, depth)
            assert visible_count(web_app_tree, expanded) == len(
                project_table(web_app_tree, "carbon", expanded)
            )

    def test_subtree_size(self, web_app_tree):
        assert subtree_size(web_app_tree, ()) == 5
        assert subtree_size(web_app_tree, ("server",)) == 3
        assert subtree_size(web_app_tree, ("network",)) == 1

    @pytest.mark.parametrize("expanded", [
        set(),
        {()},
        {("server",)},
        {(), ("server",)},
        {(), ("network",)},
    ])
    def test_row_count_is_one_plus_expanded_children(self, web_app_tree, expanded):
        rows = project_table(web_app_tree, "carbon", expanded)
        visible = {row.path for row in rows}
        shown = [path for path in expanded if path in visible]
        assert len(rows) == 1 + sum(len(web_app_tree.resolve(path).children) for path in shown)

    def test_fully_expanded_shows_every_node(self, web_app_tree):
        rows = project_table(web_app_tree, "carbon", expand_to_depth(web_app_tree, 10))
        assert len(rows) == subtree_size(web_app_tree, ())

    @pytest.mark.parametrize("path", [(), ("server",)])
    def test_collapse_removes_exactly_the_subtree(self, web_app_tree, path):
        expanded = expand_to_depth(web_app_tree, 10)
        before = project_table(web_app_tree, "carbon", expanded)
        after = project_table(
            web_app_tree, "carbon", toggle_path(web_app_tree, expanded, path)
        )

        assert len(before) - len(after) == subtree_size(web_app_tree, path) - 1
        removed = {row.path for row in before} - {row.path for row in after}
        assert removed == {
            node_path
            for node_path, _ in web_app_tree.iter_nodes()
            if node_path[: len(path)] == path and node_path != path
        }


# -----------------------------------------------------------------------------
# Pie
# -----------------------------------------------------------------------------


class TestProjectPie:
    """Tests for project_pie."""

    def test_two_leaves(self, ab_tree):
        slices = project_pie(ab_tree, "carbon", ())
        assert slices == [
            Slice(name="A", value=10.0, path=("A",), is_leaf=True),
            Slice(name="B", value=5.0, path=("B",), is_leaf=True),
        ]
        percentages = slice_percentages(slices)
        assert percentages[0] == pytest.approx(66.67, abs=0.01)
        assert percentages[1] == pytest.approx(33.33, abs=0.01)

    def test_sorted_by_value_descending(self, web_app_tree):
        slices = project_pie(web_app_tree, "carbon", ())
        assert [item.name for item in slices] == ["server", "network"]
        assert not slices[0].is_leaf
        assert slices[1].is_leaf

    def test_ties_broken_by_name(self):
        tree = build_manifest_tree({
            "aggregation": {"metrics": ["carbon"]},
            "tree": {
                "children": {
                    "zeta": {"aggregated": {"carbon": 1}},
                    "alpha": {"aggregated": {"carbon": 1}},
                    "big": {"aggregated": {"carbon": 2}},
                },
            },
        })
        assert [item.name for item in project_pie(tree, "carbon", ())] == [
            "big",
            "alpha",
            "zeta",
        ]

    def test_focus_on_subtree(self, web_app_tree):
        slices = project_pie(web_app_tree, "carbon", ("server",))
        assert [(item.name, item.value) for item in slices] == [("cpu", 10.0), ("memory", 3.0)]
        assert slices[0].path == ("server", "cpu")

    def test_leaf_focus_is_empty(self, web_app_tree):
        assert project_pie(web_app_tree, "carbon", ("network",)) == []

    def test_invalid_focus_clamped(self, web_app_tree):
        assert project_pie(web_app_tree, "carbon", ("server", "ghost")) == project_pie(
            web_app_tree, "carbon", ("server",)
        )

    def test_zero_total_percentages(self):
        slices = [
            Slice(name="a", value=0.0, path=("a",), is_leaf=True),
            Slice(name="b", value=0.0, path=("b",), is_leaf=True),
        ]
        assert slice_percentages(slices) == [0.0, 0.0]

    def test_percentages_sum_to_100(self, web_app_tree):
        total = sum(slice_percentages(project_pie(web_app_tree, "carbon", ())))
        assert total == pytest.approx(100.0)

    @pytest.mark.parametrize("metric", ["carbon", "energy"])
    def test_slice_values_sum_to_focus_total(self, web_app_tree, metric):
        for path, node in web_app_tree.iter_nodes():
            if node.is_leaf:
                continue
            slices = project_pie(web_app_tree, metric, path)
            assert sum(item.value for item in slices) == pytest.approx(total_for(node, metric))

    def test_slice_values_sum_to_fallback_total(self, ab_tree):
        slices = project_pie(ab_tree, "carbon", ())
        assert sum(item.value for item in slices) == total_for(ab_tree.root, "carbon") == 15.0


class TestProjectRings:
    """Tests for the nested pie presentation."""

    def test_rings_follow_non_leaf_slices(self, web_app_tree):
        rings = project_rings(web_app_tree, "carbon", ())
        assert len(rings) == 2
        assert [item.name for item in rings[0]] == ["server", "network"]
        assert [item.name for item in rings[1]] == ["cpu", "memory"]

    def test_first_ring_is_focus_pie(self, web_app_tree):
        rings = project_rings(web_app_tree, "carbon", ())
        assert rings[0] == project_pie(web_app_tree, "carbon", ())

    def test_max_rings(self, web_app_tree):
        assert len(project_rings(web_app_tree, "carbon", (), max_rings=1)) == 1

    def test_leaf_focus_has_no_rings(self, web_app_tree):
        assert project_rings(web_app_tree, "carbon", ("network",)) == []


# -----------------------------------------------------------------------------
# Chart
# -----------------------------------------------------------------------------


class TestProjectChart:
    """Tests for project_chart."""

    def test_points_from_outputs(self, web_app_tree):
        assert project_chart(web_app_tree.root, "carbon") == [
            Point(timestamp=T0, value=7.0),
            Point(timestamp=T1, value=10.0),
        ]

    def test_missing_metric_is_zero(self, web_app_tree):
        memory = web_app_tree.resolve(("server", "memory"))
        assert [point.value for point in project_chart(memory, "energy")] == [0.125, 0.0]

    def test_keeps_manifest_order(self):
        tree = build_manifest_tree({
            "aggregation": {"metrics": ["carbon"]},
            "tree": {"outputs": [
                {"timestamp": T1, "carbon": 2},
                {"timestamp": T0, "carbon": 1},
            ]},
        })
        assert [point.timestamp for point in project_chart(tree.root, "carbon")] == [T1, T0]

    def test_no_outputs(self):
        assert project_chart(TreeNode(name="empty"), "carbon") == []

    def test_time_range(self, web_app_tree):
        assert time_range(web_app_tree.root) == (T0, T1)
        assert time_range(TreeNode(name="empty")) is None
