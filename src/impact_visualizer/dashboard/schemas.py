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

"""Pydantic schemas for the manifest API."""

from pydantic import BaseModel
from typing import Dict, List, Optional


class MetricInfo(BaseModel):
    name: str
    total: float
    unit: str = ""
    description: str = ""


class NodeData(BaseModel):
    """One component, flattened; ``path`` places it in the tree."""

    path: List[str]
    name: str
    is_leaf: bool
    aggregated: Dict[str, float] = {}
    pipeline: List[str] = []
    defaults: dict = {}
    outputs: List[dict] = []


class ManifestOutput(BaseModel):
    name: str
    description: str
    aggregation_type: Optional[str] = None
    metrics: List[MetricInfo]
    timestamps: List[str]
    time_range: Optional[List[str]] = None
    node_count: int
    nodes: List[NodeData]


class SelectionOutput(BaseModel):
    path: List[str]
    metric: str
    version: int


class SelectionUpdate(BaseModel):
    """Body of POST /api/selection; omitted fields keep their value."""

    path: Optional[List[str]] = None
    metric: Optional[str] = None


class RowData(BaseModel):
    component: str
    path: List[str]
    depth: int
    total: float
    per_timestamp: List[Optional[float]] = []
    is_leaf: bool
    expanded: bool


class TableOutput(BaseModel):
    metric: str
    timestamps: List[str]
    rows: List[RowData]


class SliceData(BaseModel):
    name: str
    value: float
    path: List[str]
    is_leaf: bool
    percentage: float


class PieOutput(BaseModel):
    metric: str
    unit: str
    focus: List[str]
    rings: List[List[SliceData]]


class PointData(BaseModel):
    timestamp: str
    value: float


class ChartOutput(BaseModel):
    metric: str
    path: List[str]
    points: List[PointData]


class ViewsOutput(BaseModel):
    selection: SelectionOutput
    table: TableOutput
    pie: PieOutput
    chart: ChartOutput
