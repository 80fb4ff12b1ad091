# -*- coding: utf-8 -*-
"""
PipeFlow: A PySide6 state engine for composing typed analysis
pipelines on a node canvas.
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: Apache-2.0

Table Store: one ordered list of rows per node type.

Rows are plain dicts keyed by ``key`` (the id of the paired node) and are
kept verbatim so an export emits them unchanged.
"""

import copy
from typing import Any, Dict, Iterable, List, Optional

from pipeflow.noderegistry import NODE_REGISTRY, NodeRegistry

from pipeflow.logger import get_logger
log = get_logger("TableStore")


class TableStore:
    """
    Per-type row tables, in insertion order.
    """

    def __init__(self, registry: Optional[NodeRegistry] = None) -> None:
        self._registry = registry or NODE_REGISTRY
        self._tables: Dict[str, List[Dict[str, Any]]] = {
            name: [] for name in self._registry.names()
        }

    # ==========================================================================
    # QUERIES
    # ==========================================================================

    def types(self) -> List[str]:
        return list(self._tables)

    def rows(self, type_name: str) -> List[Dict[str, Any]]:
        """Returns a copy of one table."""
        return list(self._tables.get(type_name, []))

    def get_row(self, type_name: str, key: str) -> Optional[Dict[str, Any]]:
        for row in self._tables.get(type_name, []):
            if row.get("key") == key:
                return row
        return None

    def has_row(self, type_name: str, key: str) -> bool:
        return self.get_row(type_name, key) is not None

    def keys(self, type_name: str) -> List[str]:
        return [row.get("key") for row in self._tables.get(type_name, [])]

    def row_count(self) -> int:
        return sum(len(rows) for rows in self._tables.values())

    # ==========================================================================
    # MUTATORS
    # ==========================================================================

    def add_blank_row(self, type_name: str, key: str) -> Dict[str, Any]:
        """Append a row filled from the schema defaults."""
        schema = self._registry.require(type_name)
        row = {"key": key}
        row.update(schema.defaults())
        self._tables.setdefault(type_name, []).append(row)
        return row

    def ensure_row(
        self,
        type_name: str,
        key: str,
        values: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Return the row for ``key``, creating it when absent. ``values`` that
        name schema columns are copied into a freshly created row.
        """
        row = self.get_row(type_name, key)
        if row is not None:
            return row

        row = self.add_blank_row(type_name, key)
        if values:
            columns = set(self._registry.require(type_name).columns())
            for name, value in values.items():
                if name in columns:
                    row[name] = copy.deepcopy(value)
        log.debug("Row %s created in %s", key, type_name)
        return row

    def update_cell(self, type_name: str, key: str, field: str, value: Any) -> bool:
        """Set one cell; other rows and other cells are untouched."""
        row = self.get_row(type_name, key)
        if row is None:
            return False
        row[field] = value
        return True

    def remove_row(self, type_name: str, key: str) -> bool:
        rows = self._tables.get(type_name, [])
        kept = [row for row in rows if row.get("key") != key]
        if len(kept) == len(rows):
            return False
        self._tables[type_name] = kept
        return True

    def prune(self, live_keys: Iterable[str]) -> int:
        """Drop rows in every table whose key is not a live node id."""
        live = set(live_keys)
        removed = 0
        for type_name, rows in self._tables.items():
            kept = [row for row in rows if row.get("key") in live]
            removed += len(rows) - len(kept)
            self._tables[type_name] = kept
        if removed:
            log.debug("Pruned %d orphaned rows", removed)
        return removed

    def replace_all(self, tables: Dict[str, List[Dict[str, Any]]]) -> None:
        """Swap in a complete set of tables; missing types become empty."""
        self._tables = {name: [] for name in self._registry.names()}
        for type_name, rows in tables.items():
            self._tables[type_name] = [dict(row) for row in rows]

    # ==========================================================================
    # DOCUMENT KEYS
    # ==========================================================================

    def to_dict(self) -> Dict[str, List[Dict[str, Any]]]:
        """Tables under their document keys (``<type>Data``)."""
        return {
            self._registry.require(name).table_key: copy.deepcopy(rows)
            for name, rows in self._tables.items()
            if self._registry.is_registered(name)
        }

    def snapshot(self) -> Dict[str, List[Dict[str, Any]]]:
        """Deep copy keyed by type name."""
        return copy.deepcopy(self._tables)
