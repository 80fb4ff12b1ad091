# -*- coding: utf-8 -*-
"""
PipeFlow: A PySide6 state engine for composing typed analysis
pipelines on a node canvas.
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: Apache-2.0
"""

from pipeflow.__about__ import __version__
from pipeflow.config import EditorConfig
from pipeflow.connectionrules import ConnectionRules, ConnectionVerdict
from pipeflow.edgestyles import EdgeStyle, DEFAULT_EDGE_STYLE, DATA_FEED_STYLE
from pipeflow.identity import IdGenerator, new_id
from pipeflow.logger import get_logger, setup_logging
from pipeflow.noderegistry import (
    NODE_REGISTRY, NodeRegistry, NodeTypeSchema, FieldSpec, FieldKind,
    UnknownNodeTypeError,
)
from pipeflow.model import (
    Edge, EdgeChange, GraphStore, Node, NodeChange, Position, TableStore,
)
from pipeflow.serializer import DocumentImportError, DocumentSerializer, DocumentState
from pipeflow.editor import ClipboardManager, FlowEditor, Synchronizer

__all__ = [
    "__version__", "EditorConfig", "ConnectionRules", "ConnectionVerdict",
    "EdgeStyle", "DEFAULT_EDGE_STYLE", "DATA_FEED_STYLE", "IdGenerator", "new_id",
    "get_logger", "setup_logging", "NODE_REGISTRY", "NodeRegistry",
    "NodeTypeSchema", "FieldSpec", "FieldKind", "UnknownNodeTypeError",
    "Edge", "EdgeChange", "GraphStore", "Node", "NodeChange", "Position",
    "TableStore", "DocumentImportError", "DocumentSerializer", "DocumentState",
    "ClipboardManager", "FlowEditor", "Synchronizer",
]
