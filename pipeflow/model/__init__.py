# -*- coding: utf-8 -*-
"""
PipeFlow: A PySide6 state engine for composing typed analysis
pipelines on a node canvas.
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: Apache-2.0
"""

from pipeflow.model.model_types import (
    ChangeKind, Edge, EdgeChange, Node, NodeChange, Position,
    make_edge_id, node_handles,
)
from pipeflow.model.model_graph import GraphStore
from pipeflow.model.model_tables import TableStore

__all__ = [
    "ChangeKind", "Edge", "EdgeChange", "Node", "NodeChange", "Position",
    "make_edge_id", "node_handles", "GraphStore", "TableStore",
]
