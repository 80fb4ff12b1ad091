# -*- coding: utf-8 -*-
"""
PipeFlow: A PySide6 state engine for composing typed analysis
pipelines on a node canvas.
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: Apache-2.0
"""

import json

import pytest
from PySide6.QtCore import Qt

from pipeflow.editor import ConnectionDragState, IdleState
from pipeflow.model import Edge, EdgeChange, Node, NodeChange, Position

CTRL = Qt.KeyboardModifier.ControlModifier
META = Qt.KeyboardModifier.MetaModifier


@pytest.fixture
def pipeline(editor):
    """prerequisite -> preCheck -> atomicAnalysis -> analysisResult -> analysisResource, plus a dataModel."""
    ids = {}
    for i, type_name in enumerate([
        "prerequisite", "preCheck", "atomicAnalysis",
        "analysisResult", "analysisResource", "dataModel",
    ]):
        ids[type_name] = editor.drop_node(type_name, (i * 300, 0)).id
    editor.connect(ids["prerequisite"], ids["preCheck"])
    editor.connect(ids["preCheck"], ids["atomicAnalysis"])
    editor.connect(ids["atomicAnalysis"], ids["analysisResult"])
    editor.connect(ids["analysisResult"], ids["analysisResource"])
    editor.connect(ids["dataModel"], ids["atomicAnalysis"])
    return ids


# --- drop -----------------------------------------------------------------

def test_drop_creates_node_and_row(editor, record):
    added = record(editor.node_added)
    node = editor.drop_node("dataModel", Position(10, 20))
    assert node.id.startswith("dataModel-")
    assert node.data["id"] == node.id
    assert node.position == Position(10, 20)
    assert editor.rows("dataModel")[0]["key"] == node.id
    assert editor.rows("dataModel")[0]["parseType"] == "dump_table_value"
    assert added.calls == [(node.id,)]
    assert editor.check_invariants() == []


def test_drop_unknown_type_changes_nothing(editor, record):
    notes = record(editor.notification)
    assert editor.drop_node("custom", (0, 0)) is None
    assert editor.nodes == []
    assert editor.tables.row_count() == 0
    assert notes.calls[0][0] == "warning"


def test_canvas_add_of_unknown_type_rejects_whole_batch(editor, record):
    notes = record(editor.notification)
    added = record(editor.node_added)
    batch = [
        NodeChange.add(Node("preCheck-1", "preCheck", data={"type": "preCheck"})),
        NodeChange.add(Node("x-1", "bogus", Position(0, 0))),
    ]
    assert editor.apply_node_changes(batch) == []
    assert editor.nodes == []
    assert editor.tables.row_count() == 0
    assert added.calls == []
    assert notes.calls[0][0] == "warning"

    editor.graph.replace([Node("x-1", "bogus")], [])
    assert "node x-1 has unknown type bogus" in editor.check_invariants()


def test_canvas_add_fills_missing_schema_keys(editor):
    editor.apply_node_changes([
        NodeChange.add(Node("preCheck-9", "preCheck", data={"type": "preCheck"})),
    ])
    node = editor.get_node("preCheck-9")
    assert node.data["analysisItemId"] == ""
    assert node.data["checkCondition"] == ""
    assert node.data["id"] == "preCheck-9"
    assert node.data["isExpanded"] is True
    row = editor.tables.get_row("preCheck", "preCheck-9")
    assert row["analysisItemId"] == node.data["analysisItemId"]
    assert editor.check_invariants() == []


# --- connections ------------------------------------------------------------

def test_pipeline_edges_and_styles(editor, pipeline):
    assert len(editor.edges) == 5
    feed = [e for e in editor.edges if e.source == pipeline["dataModel"]][0]
    assert feed.style.stroke == "#FFEB3B"
    assert feed.style.stroke_width == 3
    assert feed.type == "smoothstep"
    assert editor.check_invariants() == []


def test_rejected_connection_is_reported(editor, pipeline, record):
    rejected = record(editor.connection_rejected)
    edge = editor.connect(pipeline["atomicAnalysis"], pipeline["dataModel"])
    assert edge is None
    assert len(editor.edges) == 5
    assert rejected.calls == [("Analysis atom nodes can only connect to analysis result nodes",)]


def test_self_loop_missing_node_and_bad_handle(editor, pipeline):
    dm = pipeline["dataModel"]
    assert editor.connect(dm, dm) is None
    assert editor.connect(dm, "ghost") is None
    aa = pipeline["atomicAnalysis"]
    assert editor.connect(dm, aa, source_handle=f"{dm}-top") is None
    assert editor.connect(dm, aa, target_handle=f"{aa}-right") is None
    assert len(editor.edges) == 5


def test_duplicate_connection_is_a_no_op(editor, pipeline, record):
    added = record(editor.edge_added)
    existing = editor.connect(pipeline["prerequisite"], pipeline["preCheck"])
    assert existing is not None
    assert len(editor.edges) == 5
    assert len(added) == 0


def test_handles_are_part_of_the_edge(editor, pipeline):
    pre, chk = pipeline["prerequisite"], pipeline["preCheck"]
    edge = editor.connect(pre, chk, f"{pre}-bottom", f"{chk}-top")
    assert edge.id == f"edge-{pre}{pre}-bottom-{chk}{chk}-top"
    assert len(editor.edges) == 6


def test_drag_highlights_and_restores(editor, pipeline):
    assert editor.begin_connection(pipeline["prerequisite"])
    assert isinstance(editor.state, ConnectionDragState)
    opacity = {n.id: n.opacity for n in editor.nodes}
    assert opacity[pipeline["prerequisite"]] == 1.0
    assert opacity[pipeline["preCheck"]] == 1.0
    assert opacity[pipeline["atomicAnalysis"]] == 0.2
    assert opacity[pipeline["dataModel"]] == 0.2

    edge = editor.end_connection(pipeline["atomicAnalysis"])
    assert edge is None
    assert isinstance(editor.state, IdleState)
    assert {n.opacity for n in editor.nodes} == {1.0}


def test_drag_escape_aborts(editor, pipeline):
    editor.set_config(dimmed_opacity=0.4)
    editor.begin_connection(pipeline["dataModel"])
    assert editor.get_node(pipeline["analysisResult"]).opacity == 0.4
    assert editor.key_press(Qt.Key.Key_Escape)
    assert not editor.is_connecting
    assert {n.opacity for n in editor.nodes} == {1.0}
    assert editor.end_connection(pipeline["atomicAnalysis"]) is None


def test_drag_onto_legal_target_connects(editor, pipeline):
    editor.begin_connection(pipeline["preCheck"])
    edge = editor.end_connection(pipeline["analysisResult"])
    assert edge is not None and edge.style.stroke == "#555555"


def test_canvas_edge_changes_are_validated(editor, pipeline):
    dm, res = pipeline["dataModel"], pipeline["analysisResult"]
    editor.apply_edge_changes([EdgeChange.add(Edge("e-bad", dm, res))])
    assert editor.graph.get_edge("e-bad") is None
    assert len(editor.edges) == 5
    first = editor.edges[0].id
    editor.apply_edge_changes([EdgeChange.remove(first)])
    assert all(e.id != first for e in editor.edges)
    assert len(editor.edges) == 4


# --- editing ----------------------------------------------------------------

def test_form_and_cell_edits_stay_paired(editor, pipeline, record):
    rows = record(editor.row_changed)
    res = pipeline["analysisResult"]
    assert editor.update_node_field(res, "weightValue", "5")
    assert editor.rows("analysisResult")[0]["weightValue"] == "5"
    assert rows.calls == [("analysisResult", res, "weightValue")]

    assert editor.edit_cell("analysisResult", res, "severityLevel", "severely_unqualified")
    assert editor.get_node(res).data["severityLevel"] == "severely_unqualified"
    assert not editor.edit_cell("analysisResult", res, "severityLevel", "bogus")
    assert editor.check_invariants() == []


def test_parse_type_switch_keeps_inactive_fields(editor, pipeline):
    dm = pipeline["dataModel"]
    editor.update_node_field(dm, "lineRegex", r"^\d+")
    editor.update_node_field(dm, "parseType", "multi_table_value")
    assert "lineRegex" not in editor.visible_fields(dm)
    assert editor.get_node(dm).data["lineRegex"] == r"^\d+"
    editor.update_node_field(dm, "parseType", "dump_table_value")
    assert "lineRegex" in editor.visible_fields(dm)


# --- delete -----------------------------------------------------------------

def test_delete_cascades(editor, pipeline, record):
    removed_edges = record(editor.edge_removed)
    removed_nodes = record(editor.node_removed)
    aa = pipeline["atomicAnalysis"]
    assert editor.delete_node(aa)
    assert editor.get_node(aa) is None
    assert editor.rows("atomicAnalysis") == []
    assert all(not e.touches(aa) for e in editor.edges)
    assert len(editor.edges) == 2
    assert len(removed_edges) == 3
    assert removed_nodes.calls == [(aa,)]
    assert editor.check_invariants() == []
    assert not editor.delete_node(aa)


def test_delete_key_removes_selection(editor, pipeline):
    editor.apply_node_changes([
        NodeChange.select(pipeline["preCheck"]),
        NodeChange.select(pipeline["dataModel"]),
    ])
    assert editor.key_press(Qt.Key.Key_Delete)
    assert len(editor.nodes) == 4
    assert editor.rows("preCheck") == [] and editor.rows("dataModel") == []
    assert not editor.key_press(Qt.Key.Key_Backspace)
    assert editor.check_invariants() == []


# --- clipboard --------------------------------------------------------------

def test_copy_paste_via_keyboard(editor, pipeline):
    chk, dm = pipeline["preCheck"], pipeline["dataModel"]
    editor.update_node_field(dm, "command", "display board")
    editor.apply_node_changes([NodeChange.select(chk), NodeChange.select(dm)])
    before = {n.id for n in editor.nodes}

    assert editor.key_press(Qt.Key.Key_C, CTRL)
    assert editor.key_press(Qt.Key.Key_V, META)

    pasted = [n for n in editor.nodes if n.id not in before]
    assert len(pasted) == 2
    originals = {chk: editor.get_node(chk), dm: editor.get_node(dm)}
    for new, old in zip(pasted, originals.values()):
        assert new.type == old.type
        assert new.position == old.position.offset(50, 50)
        assert not new.selected
    copied_dm = [n for n in pasted if n.type == "dataModel"][0]
    assert [r for r in editor.rows("dataModel") if r["key"] == copied_dm.id][0]["command"] == "display board"

    editor.update_node_field(copied_dm.id, "command", "changed")
    assert editor.get_node(dm).data["command"] == "display board"
    assert editor.check_invariants() == []


def test_shortcuts_are_no_ops_without_content(editor, pipeline):
    assert not editor.key_press(Qt.Key.Key_V, CTRL)
    assert not editor.key_press(Qt.Key.Key_C, CTRL)
    assert editor.paste() == []
    assert len(editor.nodes) == 6


def test_select_all_shortcut(editor, pipeline, record):
    changed = record(editor.selection_changed)
    assert editor.key_press(Qt.Key.Key_A, CTRL)
    assert len(editor.graph.selected_nodes()) == 6
    assert len(changed.calls[-1][0]) == 6


def test_paste_offset_is_configurable(editor, pipeline):
    editor.set_config(paste_offset_x=0, paste_offset_y=-20, bogus_key=1)
    editor.click_node(pipeline["dataModel"])
    editor.copy_selection()
    new = editor.paste()[0]
    assert new.position == Position(1500, -20)


# --- expansion --------------------------------------------------------------

def test_toggle_all_twice_restores_individual_flags(editor, pipeline, record):
    changed = record(editor.expansion_changed)
    editor.set_node_expanded(pipeline["preCheck"], False)
    before = {n.id: n.is_expanded for n in editor.nodes}

    assert editor.toggle_all_expanded() is False
    assert not any(n.is_expanded for n in editor.nodes)
    assert editor.toggle_all_expanded() is True
    assert {n.id: n.is_expanded for n in editor.nodes} == before
    assert editor.all_expanded
    assert editor.expansion_state is None
    assert changed.calls == [(False,), (True,)]


def test_set_all_expanded(editor, pipeline):
    editor.set_all_expanded(False)
    assert not editor.all_expanded
    assert editor.expansion_state is False
    assert editor.visible_fields(pipeline["preCheck"]) == ["analysisItemId"]
    editor.set_all_expanded(True)
    assert all(n.is_expanded for n in editor.nodes)
    assert editor.expansion_state is True


# --- selection --------------------------------------------------------------

def test_click_node_switches_active_table(editor, pipeline):
    assert editor.active_table == "prerequisite"
    editor.click_node(pipeline["analysisResource"])
    assert editor.active_table == "analysisResource"
    assert editor.selected_node_id == pipeline["analysisResource"]

    assert editor.select_row("dataModel", pipeline["dataModel"])
    assert editor.selected_node_id == pipeline["dataModel"]
    assert [n.id for n in editor.graph.selected_nodes()] == [pipeline["dataModel"]]
    assert not editor.select_row("dataModel", "ghost")


def test_palette_search(editor):
    assert [s.name for s in editor.palette("result")] == ["analysisResult"]
    assert len(editor.palette()) == 6


# --- documents --------------------------------------------------------------

def test_export_import_round_trip(editor, pipeline, id_generator):
    from pipeflow.editor import FlowEditor

    editor.update_node_field(pipeline["analysisResource"], "chSuggestion", "更换单板")
    text = editor.export_json()

    other = FlowEditor(id_generator=id_generator)
    assert other.import_json(text)
    assert other.nodes == editor.nodes
    assert other.edges == editor.edges
    for type_name in editor.tables.types():
        assert other.rows(type_name) == editor.rows(type_name)
    assert other.export_document() == json.loads(text)


def test_failed_import_leaves_state_untouched(editor, pipeline, record):
    failed = record(editor.import_failed)
    before = editor.export_document()
    assert not editor.import_json(json.dumps({"nodes": []}))
    assert not editor.import_json("garbage")
    assert editor.export_document() == before
    assert len(failed) == 2


def test_import_replaces_everything(editor, pipeline, record):
    replaced = record(editor.state_replaced)
    doc = {
        "nodes": [{"id": "preCheck-1-1", "type": "preCheck", "position": {"x": 0, "y": 0},
                   "data": {"id": "preCheck-1-1", "type": "preCheck", "isExpanded": True}}],
        "edges": [],
        "tables": {"preCheckData": [{"key": "preCheck-1-1", "analysisItemId": "A"}]},
    }
    assert editor.import_json(doc)
    assert [n.id for n in editor.nodes] == ["preCheck-1-1"]
    assert editor.rows("preCheck") == [{"key": "preCheck-1-1", "analysisItemId": "A"}]
    assert editor.rows("dataModel") == []
    assert len(replaced) == 1
    assert editor.ids.is_known("preCheck-1-1")


def test_file_round_trip(tmp_path, editor, pipeline):
    path = str(tmp_path / editor.default_filename())
    assert editor.save_file(path)
    editor.clear()
    assert editor.nodes == []
    assert editor.load_file(path)
    assert len(editor.nodes) == 6
    assert not editor.load_file(str(tmp_path / "missing.json"))
    assert len(editor.nodes) == 6


def test_check_invariants_reports_breakage(editor, pipeline):
    editor.tables.add_blank_row("preCheck", "orphan")
    assert editor.check_invariants() == ["row orphan in preCheck has no node"]
