# -*- coding: utf-8 -*-
"""
PipeFlow: A PySide6 state engine for composing typed analysis
pipelines on a node canvas.
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: Apache-2.0

Synchronizer: keeps a node's data and its table row identical.

Edits arrive from two directions (the node form and the table cell) and
are mirrored into the other store within the same call. Deletion cascades
from the node to its row and its incident edges.
"""

from typing import Any, Optional

from pipeflow.noderegistry import NODE_REGISTRY, NodeRegistry
from pipeflow.model.model_graph import GraphStore
from pipeflow.model.model_tables import TableStore

from pipeflow.logger import get_logger
log = get_logger("Sync")

# Node data keys with no table column.
NODE_ONLY_FIELDS = frozenset({"id", "title", "type", "description", "isExpanded"})


class Synchronizer:
    """
    Bidirectional mirror between ``GraphStore`` node data and ``TableStore``
    rows. Connect it to a graph with ``bind()`` so node insertions and
    removals cascade automatically.
    """

    def __init__(
        self,
        graph: GraphStore,
        tables: TableStore,
        registry: Optional[NodeRegistry] = None,
    ) -> None:
        self.graph = graph
        self.tables = tables
        self._registry = registry or NODE_REGISTRY

    def bind(self) -> None:
        self.graph.node_removing.connect(self.on_node_deleted)
        self.graph.node_added.connect(self.on_node_added)

    def unbind(self) -> None:
        self.graph.node_removing.disconnect(self.on_node_deleted)
        self.graph.node_added.disconnect(self.on_node_added)

    # ==========================================================================
    # EDITS
    # ==========================================================================

    def on_node_field_changed(self, node_id: str, field: str, value: Any) -> bool:
        """
        Edit coming from a node form. Returns False when nothing changed
        (unknown node, read-only key or a value the schema rejects).
        """
        node = self.graph.get_node(node_id)
        if node is None:
            log.debug("Field edit for unknown node %s ignored", node_id)
            return False
        if field in ("id", "type"):
            log.warning("Field '%s' of node %s is read-only", field, node_id)
            return False

        schema = self._registry.get(node.type)
        if schema is not None and not schema.validate_value(field, value):
            log.warning("Rejected value %r for %s.%s", value, node.type, field)
            return False

        self.graph.update_node_field(node_id, field, value)

        if field in NODE_ONLY_FIELDS or schema is None or schema.field(field) is None:
            return True

        if not self.tables.update_cell(node.type, node_id, field, value):
            refreshed = self.graph.get_node(node_id)
            self.tables.ensure_row(node.type, node_id, refreshed.data)
        return True

    def on_cell_edited(self, type_name: str, key: str, field: str, value: Any) -> bool:
        """Edit coming from a table cell; mirrored into the paired node."""
        schema = self._registry.get(type_name)
        if schema is None:
            log.warning("Cell edit for unknown table '%s' ignored", type_name)
            return False
        if schema.field(field) is None:
            log.warning("'%s' is not a column of %s", field, schema.table_key)
            return False
        if not schema.validate_value(field, value):
            log.warning("Rejected value %r for %s.%s", value, type_name, field)
            return False
        if not self.tables.has_row(type_name, key):
            log.debug("Cell edit for unknown row %s ignored", key)
            return False

        self.tables.update_cell(type_name, key, field, value)
        node = self.graph.get_node(key)
        if node is not None and node.type == type_name:
            self.graph.update_node_field(key, field, value)
        return True

    # ==========================================================================
    # STRUCTURE
    # ==========================================================================

    def on_node_deleted(self, node_id: str, type_name: str) -> None:
        """
        Remove the paired row and every incident edge, then prune rows in
        all tables that no longer have a node.
        """
        self.tables.remove_row(type_name, node_id)
        removed_edges = self.graph.remove_edges_for(node_id)
        # The node itself is still listed while its removal is announced.
        live = [nid for nid in self.graph.node_ids() if nid != node_id]
        self.tables.prune(live)
        log.debug("Node %s deleted with %d edges", node_id, removed_edges)

    def on_node_added(self, node_id: str, type_name: str) -> None:
        """Make sure a freshly inserted node has its row."""
        node = self.graph.get_node(node_id)
        if node is None or not self._registry.is_registered(type_name):
            return
        self.tables.ensure_row(type_name, node_id, node.data)
