# -*- coding: utf-8 -*-
"""
PipeFlow: A PySide6 state engine for composing typed analysis
pipelines on a node canvas.
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: Apache-2.0
"""

from pipeflow.editor import ClipboardManager
from pipeflow.model import Node, Position
from pipeflow.noderegistry import NODE_REGISTRY


def _make(node_id, type_name, x=0.0, y=0.0):
    data = NODE_REGISTRY.initial_node_data(type_name, node_id)
    data["nested"] = {"items": [1, 2]}
    return Node(node_id, type_name, Position(x, y), data, selected=True)


def test_empty_clipboard(id_generator):
    clipboard = ClipboardManager(id_generator)
    assert not clipboard.has_content
    assert clipboard.paste() == []
    assert clipboard.copy([]) == 0


def test_paste_makes_independent_offset_copies(id_generator):
    originals = [_make("a", "preCheck", 10, 20), _make("b", "dataModel", -5, 0)]
    clipboard = ClipboardManager(id_generator)
    assert clipboard.copy(originals) == 2

    pasted = clipboard.paste()
    assert len(pasted) == 2
    assert {p.id for p in pasted}.isdisjoint({"a", "b"})
    assert len({p.id for p in pasted}) == 2
    for original, copy_ in zip(originals, pasted):
        assert copy_.type == original.type
        assert copy_.position == Position(original.position.x + 50, original.position.y + 50)
        assert copy_.selected is False
        assert copy_.data["id"] == copy_.id
        copy_.data["nested"]["items"].append(3)
        assert original.data["nested"]["items"] == [1, 2]


def test_snapshot_is_taken_at_copy_time(id_generator):
    node = _make("a", "preCheck")
    clipboard = ClipboardManager(id_generator)
    clipboard.copy([node])
    node.data["checkCondition"] = "changed later"
    assert clipboard.paste()[0].data["checkCondition"] == ""


def test_repeated_paste_yields_fresh_ids(id_generator):
    clipboard = ClipboardManager(id_generator, offset=(10, 0))
    clipboard.copy([_make("a", "prerequisite")])
    first, second = clipboard.paste()[0], clipboard.paste()[0]
    assert first.id != second.id
    assert first.position == Position(10, 0)


def test_unknown_types_are_skipped(id_generator):
    clipboard = ClipboardManager(id_generator)
    clipboard.copy([Node("x", "custom", Position(), {}), _make("a", "preCheck")])
    pasted = clipboard.paste()
    assert [p.type for p in pasted] == ["preCheck"]
    clipboard.clear()
    assert not clipboard.has_content
