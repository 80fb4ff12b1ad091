# -*- coding: utf-8 -*-
"""
PipeFlow: A PySide6 state engine for composing typed analysis
pipelines on a node canvas.
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: Apache-2.0

Editor Interaction States

The editor hosts exactly one state at a time:
- IdleState: keyboard shortcuts (copy, paste, delete, select all).
- ConnectionDragState: a connection is being dragged from a source node;
  nodes are highlighted by admissibility until the drag ends.
"""

from typing import Optional

from PySide6.QtCore import Qt

from pipeflow.logger import get_logger
log = get_logger("States")

_COMMAND_MODIFIERS = Qt.KeyboardModifier.ControlModifier | Qt.KeyboardModifier.MetaModifier


def has_command_modifier(modifiers) -> bool:
    """True when Ctrl (or Cmd on macOS) is held."""
    return bool(modifiers & _COMMAND_MODIFIERS)


# =============================================================================
# STATE BASE CLASS
# =============================================================================

class EditorInteractionState:
    """Base class for editor interaction states."""

    def __init__(self, editor):
        self.editor = editor

    def on_enter(self):
        """Called when entering this state."""
        pass

    def on_exit(self):
        """Called when exiting this state."""
        pass

    def key_press(self, key, modifiers=Qt.KeyboardModifier.NoModifier) -> bool:
        """
        Handle a keyboard shortcut. Returns True if the key was consumed.
        """
        return False


# =============================================================================
# IDLE STATE
# =============================================================================

class IdleState(EditorInteractionState):
    """
    Shortcuts:
    - Ctrl/Cmd+C: copy selection
    - Ctrl/Cmd+V: paste with offset
    - Delete / Backspace: delete selected nodes
    - Ctrl/Cmd+A: select all nodes
    """

    def key_press(self, key, modifiers=Qt.KeyboardModifier.NoModifier) -> bool:
        command = has_command_modifier(modifiers)

        if command and key == Qt.Key.Key_C:
            # Nothing selected: leave the clipboard alone.
            return self.editor.copy_selection() > 0

        if command and key == Qt.Key.Key_V:
            if not self.editor.clipboard.has_content:
                return False
            return bool(self.editor.paste())

        if command and key == Qt.Key.Key_A:
            self.editor.select_all()
            return True

        if key in (Qt.Key.Key_Delete, Qt.Key.Key_Backspace):
            return self.editor.delete_selected() > 0

        return False


# =============================================================================
# CONNECTION DRAG STATE
# =============================================================================

class ConnectionDragState(EditorInteractionState):
    """Connection drag from ``source_id`` with admissibility highlighting."""

    def __init__(self, editor, source_id: str, source_handle: Optional[str] = None):
        super().__init__(editor)
        self.source_id = source_id
        self.source_handle = source_handle

    def on_enter(self):
        """Dim every node that cannot accept a connection from the source."""
        self.editor.highlight_targets(self.source_id)

    def on_exit(self):
        """Restore full opacity however the drag ended."""
        self.editor.graph.reset_opacity()

    def key_press(self, key, modifiers=Qt.KeyboardModifier.NoModifier) -> bool:
        if key == Qt.Key.Key_Escape:
            log.debug("Connection drag from %s aborted", self.source_id)
            self.editor.cancel_connection()
            return True
        # Swallow shortcuts while dragging.
        return True
