# -*- coding: utf-8 -*-
"""
PipeFlow: A PySide6 state engine for composing typed analysis
pipelines on a node canvas.
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: Apache-2.0

serializer.py - Flowchart Document Serializer
----------------------------------------------
Converts the complete editor state to and from one JSON document.

Format:
{
    "nodes": [ { "id", "type", "position": {"x", "y"}, "data": {...} } ],
    "edges": [ { "id", "source", "target", "sourceHandle", "targetHandle",
                 "type", "style" } ],
    "tables": {
        "prerequisiteData": [...], "preCheckData": [...],
        "atomicAnalysisData": [...], "analysisResultData": [...],
        "analysisResourceData": [...], "dataModelData": [...]
    }
}

Import is all-or-nothing: the whole payload is validated and decoded into
a ``DocumentState`` before the caller replaces anything. ``nodes`` and
``edges`` are required; a missing or null
``tables`` and a missing table key are empty tables.
"""

import copy
import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from pipeflow.edgestyles import EdgeStyle
from pipeflow.noderegistry import NODE_REGISTRY, NodeRegistry
from pipeflow.model.model_types import Edge, Node, Position

from pipeflow.logger import get_logger
log = get_logger("Serializer")

# Node type written by older editor builds; the real type lives in data.type.
LEGACY_NODE_TYPE = "custom"


class DocumentImportError(ValueError):
    """Raised when a payload is not a valid flowchart document."""


@dataclass
class DocumentState:
    """Decoded document. ``tables`` is keyed by node type name."""
    nodes: List[Node] = field(default_factory=list)
    edges: List[Edge] = field(default_factory=list)
    tables: Dict[str, List[Dict[str, Any]]] = field(default_factory=dict)


class DocumentSerializer:
    """
    Encodes and decodes flowchart documents for one node registry.
    """

    def __init__(
        self,
        registry: Optional[NodeRegistry] = None,
        indent: int = 2,
        filename_prefix: str = "flowchart-export",
    ) -> None:
        self._registry = registry or NODE_REGISTRY
        self.indent = indent
        self.filename_prefix = filename_prefix

    # =======================================================================
    # EXPORT
    # =======================================================================

    def export_document(
        self,
        nodes: List[Node],
        edges: List[Edge],
        tables: Dict[str, List[Dict[str, Any]]],
    ) -> Dict[str, Any]:
        """Order-preserving snapshot; rows are emitted verbatim."""
        return {
            "nodes": [self._encode_node(n) for n in nodes],
            "edges": [self._encode_edge(e) for e in edges],
            "tables": {
                schema.table_key: copy.deepcopy(tables.get(schema.name, []))
                for schema in self._registry.all_schemas()
                if schema.has_table
            },
        }

    def to_json(
        self,
        nodes: List[Node],
        edges: List[Edge],
        tables: Dict[str, List[Dict[str, Any]]],
    ) -> str:
        return json.dumps(
            self.export_document(nodes, edges, tables),
            indent=self.indent,
            ensure_ascii=False,
        )

    @staticmethod
    def _encode_node(node: Node) -> Dict[str, Any]:
        return {
            "id": node.id,
            "type": node.type,
            "position": node.position.to_dict(),
            "data": copy.deepcopy(node.data),
        }

    @staticmethod
    def _encode_edge(edge: Edge) -> Dict[str, Any]:
        return {
            "id": edge.id,
            "source": edge.source,
            "target": edge.target,
            "sourceHandle": edge.source_handle,
            "targetHandle": edge.target_handle,
            "type": edge.type,
            "style": edge.style.to_dict(),
        }

    # =======================================================================
    # IMPORT
    # =======================================================================

    def import_document(self, payload: Union[str, bytes, Dict[str, Any]]) -> DocumentState:
        """
        Decode a document. Raises ``DocumentImportError`` on any defect;
        nothing is returned partially.
        """
        if isinstance(payload, (str, bytes, bytearray)):
            try:
                payload = json.loads(payload)
            except (ValueError, UnicodeDecodeError) as e:
                raise DocumentImportError(f"Document is not valid JSON: {e}") from e

        if not isinstance(payload, dict):
            raise DocumentImportError("Document must be a JSON object")
        for key in ("nodes", "edges"):
            if key not in payload:
                raise DocumentImportError(f"Document is missing the '{key}' key")
            if not isinstance(payload[key], list):
                raise DocumentImportError(f"'{key}' must be a list")

        nodes = [self._decode_node(i, raw) for i, raw in enumerate(payload["nodes"])]
        ids = [n.id for n in nodes]
        if len(set(ids)) != len(ids):
            raise DocumentImportError("Document contains duplicate node ids")

        known = set(ids)
        edges = [self._decode_edge(i, raw, known) for i, raw in enumerate(payload["edges"])]
        raw_tables = payload.get("tables")
        # A null "tables" is read like an absent one.
        tables = self._decode_tables({} if raw_tables is None else raw_tables)

        log.debug("Decoded %d nodes, %d edges", len(nodes), len(edges))
        return DocumentState(nodes=nodes, edges=edges, tables=tables)

    def _decode_node(self, index: int, raw: Any) -> Node:
        if not isinstance(raw, dict):
            raise DocumentImportError(f"nodes[{index}] must be an object")

        node_id = raw.get("id")
        if not isinstance(node_id, str) or not node_id:
            raise DocumentImportError(f"nodes[{index}] has no valid id")

        data = raw.get("data", {})
        if not isinstance(data, dict):
            raise DocumentImportError(f"nodes[{index}].data must be an object")

        node_type = raw.get("type")
        if node_type == LEGACY_NODE_TYPE:
            node_type = data.get("type")
        if not self._registry.is_registered(node_type):
            raise DocumentImportError(f"nodes[{index}] has unknown type {node_type!r}")

        try:
            position = Position.from_dict(raw.get("position", {"x": 0, "y": 0}))
        except ValueError as e:
            raise DocumentImportError(f"nodes[{index}]: {e}") from e

        return Node(id=node_id, type=node_type, position=position, data=copy.deepcopy(data))

    def _decode_edge(self, index: int, raw: Any, known_ids: set) -> Edge:
        if not isinstance(raw, dict):
            raise DocumentImportError(f"edges[{index}] must be an object")

        source, target = raw.get("source"), raw.get("target")
        if source not in known_ids or target not in known_ids:
            raise DocumentImportError(
                f"edges[{index}] references a missing node ({source!r} -> {target!r})"
            )

        edge_id = raw.get("id")
        if not isinstance(edge_id, str) or not edge_id:
            raise DocumentImportError(f"edges[{index}] has no valid id")

        return Edge(
            id=edge_id,
            source=source,
            target=target,
            source_handle=raw.get("sourceHandle"),
            target_handle=raw.get("targetHandle"),
            type=raw.get("type") or "smoothstep",
            style=EdgeStyle.from_dict(raw.get("style")),
        )

    def _decode_tables(self, raw: Any) -> Dict[str, List[Dict[str, Any]]]:
        if not isinstance(raw, dict):
            raise DocumentImportError("'tables' must be an object")

        tables: Dict[str, List[Dict[str, Any]]] = {}
        for schema in self._registry.all_schemas():
            rows = raw.get(schema.table_key)
            if rows is None:
                tables[schema.name] = []
                continue
            if not isinstance(rows, list) or not all(isinstance(r, dict) for r in rows):
                raise DocumentImportError(f"'{schema.table_key}' must be a list of objects")
            tables[schema.name] = copy.deepcopy(rows)

        for key in raw:
            if self._registry.type_for_table_key(key) is None:
                log.debug("Ignoring unknown table key '%s'", key)
        return tables

    # =======================================================================
    # FILE I/O
    # =======================================================================

    def default_filename(self, now: Optional[datetime] = None) -> str:
        """``<prefix>-<UTC ISO timestamp with ':' and '.' replaced by '-'>.json``"""
        now = now or datetime.now(timezone.utc)
        stamp = now.strftime("%Y-%m-%dT%H:%M:%S") + f".{now.microsecond // 1000:03d}Z"
        return f"{self.filename_prefix}-{stamp.replace(':', '-').replace('.', '-')}.json"

    def save(
        self,
        filepath: str,
        nodes: List[Node],
        edges: List[Edge],
        tables: Dict[str, List[Dict[str, Any]]],
    ) -> bool:
        """Serialize and write to a file."""
        try:
            json_str = self.to_json(nodes, edges, tables)
            with open(filepath, "w", encoding="utf-8") as f:
                f.write(json_str)
            log.info("Saved to: %s", filepath)
            return True
        except OSError as e:
            log.error("Save failed: %s", e)
            return False

    def load(self, filepath: str) -> DocumentState:
        """Read a file fully, then decode it."""
        try:
            with open(filepath, "r", encoding="utf-8") as f:
                json_str = f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise DocumentImportError(f"Cannot read {filepath}: {e}") from e
        return self.import_document(json_str)
