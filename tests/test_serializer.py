# -*- coding: utf-8 -*-
"""
PipeFlow: A PySide6 state engine for composing typed analysis
pipelines on a node canvas.
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: Apache-2.0
"""

import json
import re
from datetime import datetime, timezone

import pytest

from pipeflow.edgestyles import DATA_FEED_STYLE
from pipeflow.model import Edge, Node, Position
from pipeflow.serializer import DocumentImportError, DocumentSerializer, DocumentState


@pytest.fixture
def serializer():
    return DocumentSerializer()


@pytest.fixture
def state():
    nodes = [
        Node("dm", "dataModel", Position(0, 0), {"id": "dm", "type": "dataModel", "modelId": "M1"}),
        Node("aa", "atomicAnalysis", Position(300, 40.5), {"id": "aa", "type": "atomicAnalysis", "title": "原子"}),
    ]
    edges = [Edge("edge-dm-aa", "dm", "aa", style=DATA_FEED_STYLE)]
    tables = {
        "dataModel": [{"key": "dm", "modelId": "M1"}],
        "atomicAnalysis": [{"key": "aa"}],
    }
    return nodes, edges, tables


def test_export_schema(serializer, state):
    doc = serializer.export_document(*state)
    assert list(doc) == ["nodes", "edges", "tables"]
    assert doc["nodes"][1] == {
        "id": "aa", "type": "atomicAnalysis",
        "position": {"x": 300, "y": 40.5},
        "data": {"id": "aa", "type": "atomicAnalysis", "title": "原子"},
    }
    assert doc["edges"][0] == {
        "id": "edge-dm-aa", "source": "dm", "target": "aa",
        "sourceHandle": None, "targetHandle": None, "type": "smoothstep",
        "style": {"stroke": "#FFEB3B", "strokeWidth": 3, "strokeDasharray": "5,5"},
    }
    assert list(doc["tables"]) == [
        "prerequisiteData", "preCheckData", "atomicAnalysisData",
        "analysisResultData", "analysisResourceData", "dataModelData",
    ]
    assert doc["tables"]["preCheckData"] == []


def test_json_keeps_non_ascii(serializer, state):
    text = serializer.to_json(*state)
    assert "原子" in text
    assert text.startswith('{\n  "nodes"')


def test_round_trip(serializer, state):
    nodes, edges, tables = state
    decoded = serializer.import_document(serializer.to_json(nodes, edges, tables))
    assert decoded.nodes == nodes
    assert decoded.edges == edges
    assert decoded.tables["dataModel"] == tables["dataModel"]
    assert decoded.tables["atomicAnalysis"] == tables["atomicAnalysis"]
    assert decoded.tables["analysisResource"] == []


@pytest.mark.parametrize("payload", [
    "{not json",
    "[]",
    json.dumps({"edges": []}),
    json.dumps({"nodes": []}),
    json.dumps({"nodes": {}, "edges": []}),
    json.dumps({"nodes": [{"id": "x", "type": "nope"}], "edges": []}),
    json.dumps({"nodes": [{"type": "preCheck"}], "edges": []}),
    json.dumps({"nodes": [], "edges": [{"id": "e", "source": "a", "target": "b"}]}),
    json.dumps({"nodes": [], "edges": [], "tables": {"preCheckData": {}}}),
    json.dumps({"nodes": [], "edges": [], "tables": []}),
])
def test_malformed_documents_raise(serializer, payload):
    with pytest.raises(DocumentImportError):
        serializer.import_document(payload)


def test_missing_table_key_is_empty_table(serializer):
    doc = {
        "nodes": [{"id": "p", "type": "preCheck", "position": {"x": 1, "y": 2}, "data": {}}],
        "edges": [],
        "tables": {"preCheckData": [{"key": "p"}], "futureData": []},
    }
    decoded = serializer.import_document(doc)
    assert decoded.tables["preCheck"] == [{"key": "p"}]
    assert decoded.tables["dataModel"] == []


def test_legacy_custom_type_resolves_from_data(serializer):
    doc = {
        "nodes": [{"id": "r", "type": "custom", "position": {"x": 0, "y": 0},
                   "data": {"type": "analysisResult"}}],
        "edges": [],
    }
    assert serializer.import_document(doc).nodes[0].type == "analysisResult"


def test_default_filename(serializer):
    when = datetime(2026, 10, 19, 8, 5, 9, 123000, tzinfo=timezone.utc)
    assert serializer.default_filename(when) == "flowchart-export-2026-10-19T08-05-09-123Z.json"
    assert re.fullmatch(r"flowchart-export-[\dT-]+Z\.json", serializer.default_filename())


def test_save_and_load(tmp_path, serializer, state):
    path = tmp_path / "doc.json"
    assert serializer.save(str(path), *state)
    loaded = serializer.load(str(path))
    assert isinstance(loaded, DocumentState)
    assert loaded.nodes == state[0]


def test_load_missing_file_raises(tmp_path, serializer):
    with pytest.raises(DocumentImportError):
        serializer.load(str(tmp_path / "missing.json"))


def test_save_to_unwritable_path_returns_false(tmp_path, serializer, state):
    assert not serializer.save(str(tmp_path / "no" / "such" / "dir.json"), *state)


def test_null_tables_is_read_as_empty(serializer):
    doc = {"nodes": [], "edges": [], "tables": None}
    decoded = serializer.import_document(doc)
    assert all(rows == [] for rows in decoded.tables.values())


def test_imported_edge_style_is_exported_unchanged(serializer):
    doc = {
        "nodes": [
            {"id": "p", "type": "prerequisite", "position": {"x": 0, "y": 0}, "data": {}},
            {"id": "c", "type": "preCheck", "position": {"x": 300, "y": 0}, "data": {}},
        ],
        "edges": [{"id": "e1", "source": "p", "target": "c", "style": {"stroke": "#555"}}],
    }
    decoded = serializer.import_document(doc)
    assert decoded.edges[0].style.stroke == "#555555"

    out = serializer.export_document(decoded.nodes, decoded.edges, decoded.tables)
    assert out["edges"][0]["style"] == {"stroke": "#555"}
