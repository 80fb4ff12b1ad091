# -*- coding: utf-8 -*-
"""
PipeFlow: A PySide6 state engine for composing typed analysis
pipelines on a node canvas.
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: Apache-2.0

Graph Store: the ordered node and edge collections.

Structural change batches are applied the way the canvas widget reports
them. Removals are announced through ``node_removing`` *before* the node
list is touched, so listeners can still look up the node being removed
and prune its table row within the same logical step.
"""

from dataclasses import replace
from typing import Any, Dict, Iterable, List, Optional

from PySide6.QtCore import QObject, Signal

from pipeflow.model.model_types import ChangeKind, Edge, EdgeChange, Node, NodeChange

from pipeflow.logger import get_logger
log = get_logger("GraphStore")


class GraphStore(QObject):
    """
    Owns the node list and the edge list, in insertion order.

    Signals:
        node_removing(node_id, node_type): emitted before a node is removed.
        node_added(node_id, node_type):    emitted after a node is inserted.
        edge_removed(edge_id):             emitted after an edge is removed.
    """

    node_removing = Signal(str, str)
    node_added = Signal(str, str)
    edge_removed = Signal(str)

    def __init__(self, parent: Optional[QObject] = None) -> None:
        super().__init__(parent)
        self._nodes: List[Node] = []
        self._edges: List[Edge] = []

    # ==========================================================================
    # QUERIES
    # ==========================================================================

    @property
    def nodes(self) -> List[Node]:
        """Returns a copy of the node list."""
        return list(self._nodes)

    @property
    def edges(self) -> List[Edge]:
        """Returns a copy of the edge list."""
        return list(self._edges)

    def get_node(self, node_id: str) -> Optional[Node]:
        for node in self._nodes:
            if node.id == node_id:
                return node
        return None

    def has_node(self, node_id: str) -> bool:
        return self.get_node(node_id) is not None

    def node_ids(self) -> List[str]:
        return [n.id for n in self._nodes]

    def get_edge(self, edge_id: str) -> Optional[Edge]:
        for edge in self._edges:
            if edge.id == edge_id:
                return edge
        return None

    def selected_nodes(self) -> List[Node]:
        return [n for n in self._nodes if n.selected]

    def incident_edges(self, node_id: str) -> List[Edge]:
        return [e for e in self._edges if e.touches(node_id)]

    def find_edge(self, candidate: Edge) -> Optional[Edge]:
        """Existing edge with the same endpoints and handles, if any."""
        for edge in self._edges:
            if edge.same_route(candidate):
                return edge
        return None

    # ==========================================================================
    # CHANGE BATCHES
    # ==========================================================================

    def apply_node_changes(self, changes: Iterable[NodeChange]) -> List[Node]:
        """
        Apply a batch of node changes and return the updated node list.

        Every REMOVE is announced before any change of the batch is applied.
        """
        changes = list(changes)

        for change in changes:
            if change.kind is not ChangeKind.REMOVE:
                continue
            doomed = self.get_node(change.id)
            if doomed is None:
                log.debug("Remove of unknown node %s skipped", change.id)
                continue
            self.node_removing.emit(doomed.id, doomed.type)

        added: List[Node] = []
        for change in changes:
            if change.kind is ChangeKind.REMOVE:
                self._nodes = [n for n in self._nodes if n.id != change.id]
            elif change.kind is ChangeKind.ADD:
                if change.item is None or self.has_node(change.item.id):
                    log.debug("Add of node %s skipped", change.id)
                    continue
                self._nodes.append(change.item)
                added.append(change.item)
            elif change.kind is ChangeKind.POSITION:
                if change.position is not None:
                    self._update_node(change.id, position=change.position)
            elif change.kind is ChangeKind.SELECT:
                if change.selected is not None:
                    self._update_node(change.id, selected=change.selected)

        for node in added:
            if self.has_node(node.id):
                self.node_added.emit(node.id, node.type)

        return self.nodes

    def apply_edge_changes(self, changes: Iterable[EdgeChange]) -> List[Edge]:
        """Same pattern as ``apply_node_changes``; edges cascade nothing."""
        for change in changes:
            if change.kind is ChangeKind.REMOVE:
                self.remove_edge(change.id)
            elif change.kind is ChangeKind.ADD:
                if change.item is not None:
                    self.add_edge(change.item)
            elif change.kind is ChangeKind.SELECT and change.selected is not None:
                self._edges = [
                    replace(e, selected=change.selected) if e.id == change.id else e
                    for e in self._edges
                ]
        return self.edges

    # ==========================================================================
    # NODE MUTATORS
    # ==========================================================================

    def update_node_field(self, node_id: str, field: str, value: Any) -> bool:
        """Merge one key into a node's data; everything else is kept."""
        node = self.get_node(node_id)
        if node is None:
            return False
        self._replace_node(node.with_data(**{field: value}))
        return True

    def set_all_expanded(self, flag: bool) -> None:
        self._nodes = [n.with_data(isExpanded=flag) for n in self._nodes]

    def set_opacities(self, opacities: Dict[str, float]) -> None:
        for node in self._nodes:
            if node.id in opacities:
                node.opacity = opacities[node.id]

    def reset_opacity(self) -> None:
        for node in self._nodes:
            node.opacity = 1.0

    def select_only(self, node_ids: Iterable[str]) -> None:
        wanted = set(node_ids)
        for node in self._nodes:
            node.selected = node.id in wanted

    def _update_node(self, node_id: str, **attrs: Any) -> None:
        node = self.get_node(node_id)
        if node is None:
            log.debug("Change for unknown node %s skipped", node_id)
            return
        for key, value in attrs.items():
            setattr(node, key, value)

    def _replace_node(self, new_node: Node) -> None:
        self._nodes = [new_node if n.id == new_node.id else n for n in self._nodes]

    # ==========================================================================
    # EDGE MUTATORS
    # ==========================================================================

    def add_edge(self, edge: Edge) -> bool:
        if self.get_edge(edge.id) is not None or self.find_edge(edge) is not None:
            log.debug("Duplicate edge %s skipped", edge.id)
            return False
        self._edges.append(edge)
        return True

    def remove_edge(self, edge_id: str) -> bool:
        before = len(self._edges)
        self._edges = [e for e in self._edges if e.id != edge_id]
        if len(self._edges) == before:
            return False
        self.edge_removed.emit(edge_id)
        return True

    def remove_edges_for(self, node_id: str) -> int:
        """Remove every edge whose source or target is ``node_id``."""
        doomed = [e.id for e in self._edges if e.touches(node_id)]
        for edge_id in doomed:
            self.remove_edge(edge_id)
        return len(doomed)

    # ==========================================================================
    # WHOLE-STATE
    # ==========================================================================

    def replace(self, nodes: Iterable[Node], edges: Iterable[Edge]) -> None:
        """Swap in a complete node/edge set without per-item signals."""
        self._nodes = list(nodes)
        self._edges = list(edges)
