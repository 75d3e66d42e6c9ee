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

"""Tests for the manifest API server."""

import json

import pytest
from fastapi.testclient import TestClient

from impact_visualizer.config import DisplayConfig, LimitsConfig, VisualizerConfig
from impact_visualizer.loader import ManifestLoadError
from impact_visualizer.viz import MalformedManifest


@pytest.fixture
def client(manifest_file):
    from impact_visualizer.dashboard.server import create_app

    return TestClient(create_app(manifest_file))


def test_manifest_endpoint(client):
    response = client.get("/api/manifest")
    assert response.status_code == 200
    data = response.json()
    assert data["name"] == "Web Application"
    assert data["node_count"] == 5
    assert data["time_range"] == ["2024-01-01T00:00:00Z", "2024-01-01T01:00:00Z"]
    assert data["metrics"][0] == {
        "name": "carbon",
        "total": 17.0,
        "unit": "gCO2eq",
        "description": "Total embodied and operational carbon",
    }
    assert [node["path"] for node in data["nodes"]] == [
        [], ["server"], ["server", "cpu"], ["server", "memory"], ["network"],
    ]
    cpu = data["nodes"][2]
    assert cpu["name"] == "cpu"
    assert cpu["is_leaf"]
    assert cpu["outputs"][0]["timestamp"] == "2024-01-01T00:00:00Z"


def test_raw_endpoint(client, manifest_file):
    response = client.get("/api/raw")
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")
    assert response.text == manifest_file.read_text()
    assert response.text.startswith("name: Web Application")


def test_initial_selection(client):
    data = client.get("/api/selection").json()
    assert data == {"path": [], "metric": "carbon", "version": 0}


def test_select_path(client):
    response = client.post("/api/selection", json={"path": ["server", "cpu"]})
    assert response.status_code == 200
    assert response.json() == {"path": ["server", "cpu"], "metric": "carbon", "version": 1}


def test_select_clamps_stale_path(client):
    data = client.post("/api/selection", json={"path": ["server", "ghost"]}).json()
    assert data["path"] == ["server"]


def test_change_metric_keeps_path(client):
    client.post("/api/selection", json={"path": ["server"]})
    data = client.post("/api/selection", json={"metric": "energy"}).json()
    assert data["path"] == ["server"]
    assert data["metric"] == "energy"
    assert data["version"] == 2


def test_unknown_metric_rejected(client):
    client.post("/api/selection", json={"path": ["server"]})
    response = client.post("/api/selection", json={"path": [], "metric": "water"})
    assert response.status_code == 400
    assert "Unknown metric 'water'" in response.json()["detail"]

    data = client.get("/api/selection").json()
    assert data == {"path": ["server"], "metric": "carbon", "version": 1}


def test_drill_up(client):
    client.post("/api/selection", json={"path": ["server", "cpu"]})
    assert client.post("/api/selection/drill-up").json()["path"] == ["server"]
    assert client.post("/api/selection/drill-up").json()["path"] == []
    data = client.post("/api/selection/drill-up").json()
    assert data["path"] == []
    assert data["version"] == 3


def test_table_default_depth(client):
    data = client.get("/api/table").json()
    assert data["metric"] == "carbon"
    assert data["timestamps"] == ["2024-01-01T00:00:00Z", "2024-01-01T01:00:00Z"]
    assert [row["component"] for row in data["rows"]] == ["root", "server", "network"]


def test_table_expand(client):
    data = client.get("/api/table", params={"depth": 0, "expand": ["server"]}).json()
    assert [row["path"] for row in data["rows"]] == [
        [],
        ["server"],
        ["server", "cpu"],
        ["server", "memory"],
        ["network"],
    ]


def test_table_not_available_cells(client):
    client.post("/api/selection", json={"metric": "energy"})
    data = client.get("/api/table", params={"depth": 2}).json()
    memory = next(row for row in data["rows"] if row["component"] == "memory")
    assert memory["per_timestamp"] == [0.125, None]


def test_table_rejects_negative_depth(client):
    assert client.get("/api/table", params={"depth": -1}).status_code == 422


def test_pie_follows_selection(client):
    data = client.get("/api/pie").json()
    assert data["focus"] == []
    assert [item["name"] for item in data["rings"][0]] == ["server", "network"]

    client.post("/api/selection", json={"path": ["server", "cpu"]})
    data = client.get("/api/pie").json()
    assert data["focus"] == ["server"]
    ring = data["rings"][0]
    assert [item["name"] for item in ring] == ["cpu", "memory"]
    assert ring[0]["percentage"] == pytest.approx(10 / 13 * 100)


def test_pie_rings(client):
    data = client.get("/api/pie", params={"rings": 2}).json()
    assert len(data["rings"]) == 2
    assert data["unit"] == "gCO2eq"


def test_chart_follows_selection(client):
    client.post("/api/selection", json={"path": ["network"]})
    data = client.get("/api/chart").json()
    assert data["path"] == ["network"]
    assert [point["value"] for point in data["points"]] == [2.0, 2.0]


def test_views(client):
    client.post("/api/selection", json={"path": ["server"], "metric": "energy"})
    data = client.get("/api/views", params={"depth": 2}).json()
    assert data["selection"] == {"path": ["server"], "metric": "energy", "version": 1}
    assert len(data["table"]["rows"]) == 5
    assert [item["name"] for item in data["pie"]["rings"][0]] == ["cpu", "memory"]
    assert [point["value"] for point in data["chart"]["points"]] == [0.625, 0.75]


def test_configured_default_metric(manifest_file):
    from impact_visualizer.dashboard.server import create_app

    config = VisualizerConfig(display=DisplayConfig(default_metric="energy", max_rings=2))
    client = TestClient(create_app(manifest_file, config))
    assert client.get("/api/selection").json()["metric"] == "energy"
    assert len(client.get("/api/pie").json()["rings"]) == 2


def test_missing_manifest(tmp_path):
    from impact_visualizer.dashboard.server import create_app

    with pytest.raises(ManifestLoadError):
        create_app(tmp_path / "missing.yml")


def test_malformed_manifest(tmp_path):
    from impact_visualizer.dashboard.server import create_app

    manifest = tmp_path / "bad.yml"
    manifest.write_text("name: nothing else\n")
    with pytest.raises(MalformedManifest):
        create_app(manifest)


def test_deep_manifest_listed(tmp_path):
    from impact_visualizer.dashboard.server import create_app

    tree = {"outputs": [{"timestamp": "2024-01-01T00:00:00Z", "carbon": 1}]}
    for level in range(100):
        tree = {"children": {f"c{level}": tree}}
    manifest = tmp_path / "deep.json"
    manifest.write_text(json.dumps({"aggregation": {"metrics": ["carbon"]}, "tree": tree}))

    config = VisualizerConfig(limits=LimitsConfig(max_depth=500))
    client = TestClient(create_app(manifest, config))
    response = client.get("/api/manifest")
    assert response.status_code == 200
    nodes = response.json()["nodes"]
    assert len(nodes) == 101
    assert len(nodes[-1]["path"]) == 100


def test_node_limit(manifest_file):
    from impact_visualizer.dashboard.server import create_app

    with pytest.raises(MalformedManifest, match="maximum of 3 components"):
        create_app(manifest_file, VisualizerConfig(limits=LimitsConfig(max_nodes=3)))
