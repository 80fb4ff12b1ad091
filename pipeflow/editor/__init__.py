# -*- coding: utf-8 -*-
"""
PipeFlow: A PySide6 state engine for composing typed analysis
pipelines on a node canvas.
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: Apache-2.0
"""

from pipeflow.editor.editor_core import FlowEditor
from pipeflow.editor.editor_sync import Synchronizer
from pipeflow.editor.editor_clipboard import ClipboardManager
from pipeflow.editor.editor_states import (
    EditorInteractionState, IdleState, ConnectionDragState,
)

__all__ = [
    "FlowEditor", "Synchronizer", "ClipboardManager",
    "EditorInteractionState", "IdleState", "ConnectionDragState",
]
