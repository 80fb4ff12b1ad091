# -*- coding: utf-8 -*-
"""
PipeFlow: A PySide6 state engine for composing typed analysis
pipelines on a node canvas.
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: Apache-2.0

FlowEditor - the editor aggregate.

Every user-level operation (drop, edit, connect, delete, paste, import)
enters through exactly one method of this class. The graph store, the
table store and the clipboard are never mutated from outside, which keeps
the node/row pairing intact after every call.

Responsibilities:
- Hosting the interaction state machine (IdleState, ConnectionDragState)
- Validating connections before an edge exists
- Relaying store changes to the front end as Qt signals
- Whole-document import/export
"""

from dataclasses import replace
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from PySide6.QtCore import QObject, Qt, Signal

from pipeflow.config import EditorConfig
from pipeflow.connectionrules import ConnectionRules
from pipeflow.identity import IdGenerator
from pipeflow.noderegistry import NODE_REGISTRY, NodeRegistry, NodeTypeSchema
from pipeflow.serializer import DocumentImportError, DocumentSerializer, DocumentState
from pipeflow.model.model_graph import GraphStore
from pipeflow.model.model_tables import TableStore
from pipeflow.model.model_types import (
    ChangeKind, Edge, EdgeChange, Node, NodeChange, Position,
    make_edge_id, node_handles,
)
from pipeflow.editor.editor_clipboard import ClipboardManager
from pipeflow.editor.editor_states import (
    ConnectionDragState, EditorInteractionState, IdleState,
)
from pipeflow.editor.editor_sync import NODE_ONLY_FIELDS, Synchronizer

from pipeflow.logger import get_logger
log = get_logger("Editor")

PositionLike = Union[Position, Tuple[float, float], Dict[str, float]]


def _as_position(pos: Optional[PositionLike]) -> Position:
    if pos is None:
        return Position()
    if isinstance(pos, Position):
        return pos
    if isinstance(pos, dict):
        return Position.from_dict(pos)
    x, y = pos
    return Position(float(x), float(y))


class FlowEditor(QObject):
    """
    State engine of the pipeline editor.

    The front end connects to the signals below and calls the public
    methods; it never touches ``graph`` or ``tables`` directly.
    """

    # Signals
    node_added = Signal(str)
    node_removed = Signal(str)
    edge_added = Signal(str)
    edge_removed = Signal(str)
    connection_rejected = Signal(str)
    node_data_changed = Signal(str, str)          # (node_id, field)
    row_changed = Signal(str, str, str)           # (type, key, field)
    selection_changed = Signal(list)
    expansion_changed = Signal(bool)
    state_replaced = Signal()
    import_failed = Signal(str)
    notification = Signal(str, str)               # (level, message)

    def __init__(
        self,
        parent: Optional[QObject] = None,
        config: Optional[EditorConfig] = None,
        registry: Optional[NodeRegistry] = None,
        id_generator: Optional[IdGenerator] = None,
    ) -> None:
        super().__init__(parent)

        self._config = config or EditorConfig()
        self._registry = registry or NODE_REGISTRY

        # Core subsystems
        self.ids = id_generator or IdGenerator(random_bound=self._config.id_random_bound)
        self.graph = GraphStore(self)
        self.tables = TableStore(self._registry)
        self.sync = Synchronizer(self.graph, self.tables, self._registry)
        self.sync.bind()
        self.clipboard = ClipboardManager(
            self.ids,
            offset=(self._config.paste_offset_x, self._config.paste_offset_y),
            registry=self._registry,
        )
        self.serializer = DocumentSerializer(
            self._registry,
            indent=self._config.export_indent,
            filename_prefix=self._config.export_filename_prefix,
        )

        # Collapse/expand-all
        self._all_expanded = True
        self._expansion_snapshot: Optional[Dict[str, bool]] = None

        # Table view follows the clicked node
        names = self._registry.names()
        self._active_table: Optional[str] = names[0] if names else None
        self._selected_node_id: Optional[str] = None

        self.graph.edge_removed.connect(self.edge_removed)

        # State Machine
        self._current_state: EditorInteractionState = IdleState(self)

    def set_state(self, state: EditorInteractionState) -> None:
        """Transition to a new interaction state."""
        self._current_state.on_exit()
        self._current_state = state
        self._current_state.on_enter()

    @property
    def state(self) -> EditorInteractionState:
        return self._current_state

    # ==========================================================================
    # CONFIGURATION API
    # ==========================================================================

    @property
    def config(self) -> EditorConfig:
        return self._config

    @property
    def registry(self) -> NodeRegistry:
        return self._registry

    def set_config(self, **kwargs: Any) -> EditorConfig:
        """Apply config changes at runtime. Unknown keys are logged and skipped."""
        self._config = self._config.updated(**kwargs)
        self.clipboard.offset = (self._config.paste_offset_x, self._config.paste_offset_y)
        self.ids.random_bound = max(1, int(self._config.id_random_bound))
        self.serializer.indent = self._config.export_indent
        self.serializer.filename_prefix = self._config.export_filename_prefix
        return self._config

    # ==========================================================================
    # READ ACCESS
    # ==========================================================================

    @property
    def nodes(self) -> List[Node]:
        return self.graph.nodes

    @property
    def edges(self) -> List[Edge]:
        return self.graph.edges

    def get_node(self, node_id: str) -> Optional[Node]:
        return self.graph.get_node(node_id)

    def rows(self, type_name: str) -> List[Dict[str, Any]]:
        return self.tables.rows(type_name)

    def palette(self, search_text: str = "") -> List[NodeTypeSchema]:
        return self._registry.search(search_text)

    def visible_fields(self, node_id: str) -> List[str]:
        """Form fields to render for a node, given its parse type and expansion."""
        node = self.graph.get_node(node_id)
        if node is None:
            return []
        return self._registry.visible_fields(node.type, node.data)

    # ==========================================================================
    # NODE LIFECYCLE
    # ==========================================================================

    def drop_node(self, type_name: str, position: Optional[PositionLike] = None) -> Optional[Node]:
        """Palette drop: create a node of ``type_name`` and its row."""
        if not self._registry.is_registered(type_name):
            message = f"Unknown node type '{type_name}' dropped"
            log.warning(message)
            self.notification.emit("warning", message)
            return None

        pos = _as_position(position)
        node_id = self.ids.new_id(type_name)
        node = Node(
            id=node_id,
            type=type_name,
            position=pos,
            data=self._registry.initial_node_data(type_name, node_id),
        )
        self.apply_node_changes([NodeChange.add(node)])
        log.info("Dropped %s at (%.0f, %.0f)", node_id, pos.x, pos.y)
        return self.graph.get_node(node_id)

    def delete_node(self, node_id: str) -> bool:
        if not self.graph.has_node(node_id):
            return False
        self.apply_node_changes([NodeChange.remove(node_id)])
        return True

    def delete_selected(self) -> int:
        doomed = [n.id for n in self.graph.selected_nodes()]
        if doomed:
            self.apply_node_changes([NodeChange.remove(i) for i in doomed])
            log.info("Deleted %d selected nodes", len(doomed))
        return len(doomed)

    def apply_node_changes(self, changes: Sequence[NodeChange]) -> List[Node]:
        """
        Structural change batch from the canvas widget. A batch adding a node
        of an unregistered type is rejected whole; added nodes get the schema
        keys their data lacks before insertion.
        """
        changes = list(changes)
        unknown = [
            c.item.type for c in changes
            if c.kind is ChangeKind.ADD and c.item is not None
            and not self._registry.is_registered(c.item.type)
        ]
        if unknown:
            message = f"Node batch rejected: unknown node type '{unknown[0]}'"
            log.warning(message)
            self.notification.emit("warning", message)
            return self.graph.nodes
        changes = [self._completed(c) for c in changes]
        before = set(self.graph.node_ids())

        nodes = self.graph.apply_node_changes(changes)

        after = [n.id for n in nodes]
        after_set = set(after)
        for node_id in before - after_set:
            if node_id == self._selected_node_id:
                self._selected_node_id = None
            self.node_removed.emit(node_id)
        for node_id in after:
            if node_id not in before:
                self.node_added.emit(node_id)

        if any(c.kind in (ChangeKind.SELECT, ChangeKind.REMOVE) for c in changes):
            self.selection_changed.emit([n.id for n in self.graph.selected_nodes()])
        return nodes

    def _completed(self, change: NodeChange) -> NodeChange:
        if change.kind is not ChangeKind.ADD or change.item is None:
            return change
        item = change.item
        data = self._registry.initial_node_data(item.type, item.id)
        data.update(item.data)
        return NodeChange.add(replace(item, data=data))

    def apply_edge_changes(self, changes: Sequence[EdgeChange]) -> List[Edge]:
        """
        Edge change batch from the canvas widget. Added edges pass the same
        validation as ``connect``; rejected ones are dropped from the batch.
        """
        accepted: List[EdgeChange] = []
        for change in changes:
            if change.kind is ChangeKind.ADD and change.item is not None:
                edge = change.item
                self.connect(edge.source, edge.target, edge.source_handle, edge.target_handle)
                continue
            accepted.append(change)
        return self.graph.apply_edge_changes(accepted)

    # ==========================================================================
    # EDITING
    # ==========================================================================

    def update_node_field(self, node_id: str, field: str, value: Any) -> bool:
        """Edit from a node form, mirrored into the paired row."""
        node = self.graph.get_node(node_id)
        if node is None:
            return False
        if not self.sync.on_node_field_changed(node_id, field, value):
            return False

        if field == "isExpanded":
            self._expansion_snapshot = None
        self.node_data_changed.emit(node_id, field)
        if field not in NODE_ONLY_FIELDS and self.tables.has_row(node.type, node_id):
            self.row_changed.emit(node.type, node_id, field)
        return True

    def edit_cell(self, type_name: str, key: str, field: str, value: Any) -> bool:
        """Edit from a table cell, mirrored into the paired node."""
        if not self.sync.on_cell_edited(type_name, key, field, value):
            return False
        self.row_changed.emit(type_name, key, field)
        if self.graph.has_node(key):
            self.node_data_changed.emit(key, field)
        return True

    def set_node_expanded(self, node_id: str, flag: bool) -> bool:
        return self.update_node_field(node_id, "isExpanded", bool(flag))

    # ==========================================================================
    # CONNECTIONS
    # ==========================================================================

    @property
    def is_connecting(self) -> bool:
        return isinstance(self._current_state, ConnectionDragState)

    def begin_connection(self, node_id: str, source_handle: Optional[str] = None) -> bool:
        """Start dragging a connection; candidate nodes are highlighted."""
        if not self.graph.has_node(node_id):
            return False
        self.set_state(ConnectionDragState(self, node_id, source_handle))
        return True

    def highlight_targets(self, source_id: str) -> None:
        source = self.graph.get_node(source_id)
        if source is None:
            return
        opacities = ConnectionRules.opacity_map(
            source.id,
            source.type,
            ((n.id, n.type) for n in self.graph.nodes),
            dimmed=self._config.dimmed_opacity,
        )
        self.graph.set_opacities(opacities)

    def end_connection(
        self,
        target_id: Optional[str] = None,
        target_handle: Optional[str] = None,
    ) -> Optional[Edge]:
        """
        Finish the drag. Dropping onto nothing (``target_id`` None) just
        ends it. Opacity is restored in every case.
        """
        if not isinstance(self._current_state, ConnectionDragState):
            return None
        source_id = self._current_state.source_id
        source_handle = self._current_state.source_handle
        self.set_state(IdleState(self))

        if target_id is None:
            return None
        return self.connect(source_id, target_id, source_handle, target_handle)

    def cancel_connection(self) -> None:
        if self.is_connecting:
            self.set_state(IdleState(self))

    def connect(
        self,
        source: str,
        target: str,
        source_handle: Optional[str] = None,
        target_handle: Optional[str] = None,
    ) -> Optional[Edge]:
        """
        Create an edge if the type pair is admissible. Returns the edge
        (the existing one for a duplicate) or None when rejected.
        """
        src = self.graph.get_node(source)
        tgt = self.graph.get_node(target)
        if src is None or tgt is None:
            return self._reject(ConnectionRules.check(None, None).reason)
        if source == target:
            return self._reject("A node cannot connect to itself")
        if source_handle is not None and source_handle not in node_handles(source)["source"]:
            return self._reject(f"'{source_handle}' is not a source handle of {source}")
        if target_handle is not None and target_handle not in node_handles(target)["target"]:
            return self._reject(f"'{target_handle}' is not a target handle of {target}")

        verdict = ConnectionRules.check(src.type, tgt.type)
        if not verdict:
            return self._reject(verdict.reason)

        edge = Edge(
            id=make_edge_id(source, target, source_handle, target_handle),
            source=source,
            target=target,
            source_handle=source_handle,
            target_handle=target_handle,
            type=self._config.default_edge_type,
            style=verdict.style,
        )
        existing = self.graph.find_edge(edge)
        if existing is not None:
            return existing

        self.graph.add_edge(edge)
        self.edge_added.emit(edge.id)
        log.info("Connected %s -> %s", source, target)
        return edge

    def remove_edge(self, edge_id: str) -> bool:
        return self.graph.remove_edge(edge_id)

    def _reject(self, message: str) -> None:
        log.warning("Connection rejected: %s", message)
        self.connection_rejected.emit(message)
        self.notification.emit("warning", message)
        return None

    # ==========================================================================
    # CLIPBOARD & KEYBOARD
    # ==========================================================================

    def copy_selection(self) -> int:
        count = self.clipboard.copy(self.graph.selected_nodes())
        if count:
            log.info("Copied %d nodes", count)
        return count

    def paste(self) -> List[Node]:
        """Insert the clipboard content under fresh ids, offset from the originals."""
        if not self.clipboard.has_content:
            return []
        fresh = self.clipboard.paste()
        if not fresh:
            return []
        self.apply_node_changes([NodeChange.add(n) for n in fresh])
        log.info("Pasted %d nodes", len(fresh))
        return [self.graph.get_node(n.id) for n in fresh]

    def key_press(self, key, modifiers=Qt.KeyboardModifier.NoModifier) -> bool:
        return self._current_state.key_press(key, modifiers)

    # ==========================================================================
    # COLLAPSE / EXPAND
    # ==========================================================================

    @property
    def all_expanded(self) -> bool:
        return self._all_expanded

    @property
    def expansion_state(self) -> Optional[bool]:
        """
        True or False when every node agrees, None for a mixed canvas. An
        empty canvas reports the global flag.
        """
        flags = {n.is_expanded for n in self.graph.nodes}
        if not flags:
            return self._all_expanded
        if len(flags) > 1:
            return None
        return flags.pop()

    def set_all_expanded(self, flag: bool) -> None:
        self._all_expanded = bool(flag)
        self._expansion_snapshot = None
        self.graph.set_all_expanded(self._all_expanded)
        self.expansion_changed.emit(self._all_expanded)

    def toggle_all_expanded(self) -> bool:
        """
        Flip the global flag. The per-node flags overwritten by one toggle
        are restored by the next, unless a node was changed in between.
        """
        flag = not self._all_expanded
        snapshot = self._expansion_snapshot

        if snapshot is not None:
            self.graph.set_all_expanded(flag)
            for node_id, expanded in snapshot.items():
                self.graph.update_node_field(node_id, "isExpanded", expanded)
            self._expansion_snapshot = None
        else:
            self._expansion_snapshot = {n.id: n.is_expanded for n in self.graph.nodes}
            self.graph.set_all_expanded(flag)

        self._all_expanded = flag
        self.expansion_changed.emit(flag)
        return flag

    # ==========================================================================
    # SELECTION
    # ==========================================================================

    @property
    def active_table(self) -> Optional[str]:
        return self._active_table

    @property
    def selected_node_id(self) -> Optional[str]:
        return self._selected_node_id

    def click_node(self, node_id: str) -> bool:
        """Select one node and switch the table view to its type."""
        node = self.graph.get_node(node_id)
        if node is None:
            return False
        self._selected_node_id = node_id
        self._active_table = node.type
        self.graph.select_only([node_id])
        self.selection_changed.emit([node_id])
        return True

    def select_row(self, type_name: str, key: str) -> bool:
        """Select a table row; the paired node becomes the selected node."""
        if not self.tables.has_row(type_name, key):
            return False
        self._active_table = type_name
        if self.graph.has_node(key):
            return self.click_node(key)
        return True

    def select_all(self) -> None:
        ids = self.graph.node_ids()
        self.graph.select_only(ids)
        self.selection_changed.emit(ids)

    # ==========================================================================
    # DOCUMENT
    # ==========================================================================

    def export_document(self) -> Dict[str, Any]:
        doc = self.serializer.export_document(
            self.graph.nodes, self.graph.edges, self.tables.snapshot()
        )
        log.info("Exported %d nodes, %d edges", len(doc["nodes"]), len(doc["edges"]))
        return doc

    def export_json(self) -> str:
        return self.serializer.to_json(self.graph.nodes, self.graph.edges, self.tables.snapshot())

    def default_filename(self) -> str:
        return self.serializer.default_filename()

    def save_file(self, filepath: str) -> bool:
        return self.serializer.save(
            filepath, self.graph.nodes, self.graph.edges, self.tables.snapshot()
        )

    def import_json(self, payload: Union[str, bytes, Dict[str, Any]]) -> bool:
        """Replace the whole state with a document. On failure nothing changes."""
        try:
            state = self.serializer.import_document(payload)
        except DocumentImportError as e:
            return self._import_failure(str(e))
        self.import_document(state)
        return True

    def load_file(self, filepath: str) -> bool:
        try:
            state = self.serializer.load(filepath)
        except DocumentImportError as e:
            return self._import_failure(str(e))
        self.import_document(state)
        return True

    def import_document(self, state: DocumentState) -> None:
        """Atomic replacement of nodes, edges and tables."""
        if self.is_connecting:
            self.set_state(IdleState(self))
        self.graph.replace(state.nodes, state.edges)
        self.tables.replace_all(state.tables)
        self.ids.reserve(n.id for n in state.nodes)

        self._selected_node_id = None
        self._expansion_snapshot = None
        self._all_expanded = True
        self.state_replaced.emit()
        log.info("Imported %d nodes, %d edges", len(state.nodes), len(state.edges))

    def clear(self) -> None:
        self.import_document(DocumentState())

    def _import_failure(self, message: str) -> bool:
        log.error("Import failed: %s", message)
        self.import_failed.emit(message)
        self.notification.emit("error", message)
        return False

    # ==========================================================================
    # DIAGNOSTICS
    # ==========================================================================

    def check_invariants(self) -> List[str]:
        """List every violation of the node/row/edge pairing rules."""
        problems: List[str] = []
        nodes = self.graph.nodes
        by_id: Dict[str, Node] = {}

        for node in nodes:
            if node.id in by_id:
                problems.append(f"duplicate node id {node.id}")
            by_id[node.id] = node

        for node in nodes:
            schema = self._registry.get(node.type)
            if schema is None:
                problems.append(f"node {node.id} has unknown type {node.type}")
                continue
            if not schema.has_table:
                continue
            matches = [k for k in self.tables.keys(node.type) if k == node.id]
            if len(matches) != 1:
                problems.append(f"node {node.id} has {len(matches)} rows")

        for type_name in self.tables.types():
            for key in self.tables.keys(type_name):
                node = by_id.get(key)
                if node is None or node.type != type_name:
                    problems.append(f"row {key} in {type_name} has no node")

        for edge in self.graph.edges:
            src, tgt = by_id.get(edge.source), by_id.get(edge.target)
            if src is None or tgt is None:
                problems.append(f"edge {edge.id} is dangling")
            elif not ConnectionRules.is_allowed(src.type, tgt.type):
                problems.append(f"edge {edge.id} connects {src.type} -> {tgt.type}")

        return problems
