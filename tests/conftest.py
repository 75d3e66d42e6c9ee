"""Pytest configuration and shared fixtures for impact-visualizer tests."""

import shutil
from pathlib import Path

import pytest
import yaml

from impact_visualizer.viz import build_manifest_tree

FIXTURES = Path(__file__).parent / "fixtures"

T0 = "2024-01-01T00:00:00Z"
T1 = "2024-01-01T01:00:00Z"


@pytest.fixture(autouse=True)
def _isolate_environment(tmp_path, monkeypatch):
    """Keep tests away from the real home directory, cwd and env config."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.chdir(tmp_path)
    for name in (
        "IMPACT_VIZ_METRIC",
        "IMPACT_VIZ_DEFAULT_METRIC",
        "IMPACT_VIZ_EXPAND_DEPTH",
        "IMPACT_VIZ_PRECISION",
        "IMPACT_VIZ_SHOW_TIME_SERIES",
        "IMPACT_VIZ_OUTPUT_FORMAT",
        "IMPACT_VIZ_MAX_DEPTH",
        "IMPACT_VIZ_MAX_NODES",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def web_app_manifest():
    """Parsed web-app.yml: root -> server (cpu, memory), network."""
    return yaml.safe_load((FIXTURES / "web-app.yml").read_text())


@pytest.fixture
def web_app_tree(web_app_manifest):
    return build_manifest_tree(web_app_manifest)


@pytest.fixture
def manifest_file(tmp_path):
    """web-app.yml copied into the test's temp directory."""
    path = tmp_path / "web-app.yml"
    shutil.copy(FIXTURES / "web-app.yml", path)
    return path


@pytest.fixture
def ab_manifest():
    """Two leaves under the root: A with carbon 10, B with carbon 5."""
    return {
        "name": "AB",
        "aggregation": {"metrics": ["carbon"], "type": "both"},
        "tree": {
            "children": {
                "A": {"outputs": [{"timestamp": T0, "carbon": 10}]},
                "B": {"outputs": [{"timestamp": T0, "carbon": 5}]},
            }
        },
    }


@pytest.fixture
def ab_tree(ab_manifest):
    return build_manifest_tree(ab_manifest)
