# -*- coding: utf-8 -*-
"""
PipeFlow: A PySide6 state engine for composing typed analysis
pipelines on a node canvas.
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: Apache-2.0

Record types shared by the stores: positions, nodes, edges and the change
records the canvas widget reports.

Node ``data`` is a plain value. Behaviour (delete/change handlers) is never
stored on a node; callers address nodes by id through the editor.
"""

import copy
from dataclasses import dataclass, field, replace
from enum import Enum, auto
from typing import Any, Dict, List, Optional

from pipeflow.edgestyles import EdgeStyle, DEFAULT_EDGE_STYLE


@dataclass(frozen=True)
class Position:
    x: float = 0.0
    y: float = 0.0

    def offset(self, dx: float, dy: float) -> "Position":
        return Position(self.x + dx, self.y + dy)

    def to_dict(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y}

    @classmethod
    def from_dict(cls, data: Any) -> "Position":
        if not isinstance(data, dict):
            raise ValueError(f"position must be an object, got {type(data).__name__}")
        x, y = data.get("x", 0), data.get("y", 0)
        if not all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in (x, y)):
            raise ValueError(f"position coordinates must be numbers, got {data!r}")
        return cls(x, y)


def node_handles(node_id: str) -> Dict[str, List[str]]:
    """Connection handles of a node: targets on top/left, sources on right/bottom."""
    return {
        "target": [f"{node_id}-top", f"{node_id}-left"],
        "source": [f"{node_id}-right", f"{node_id}-bottom"],
    }


@dataclass
class Node:
    id: str
    type: str
    position: Position = field(default_factory=Position)
    data: Dict[str, Any] = field(default_factory=dict)
    # View state, not part of the document.
    selected: bool = field(default=False, compare=False)
    opacity: float = field(default=1.0, compare=False)

    @property
    def is_expanded(self) -> bool:
        return bool(self.data.get("isExpanded", True))

    def with_data(self, **changes: Any) -> "Node":
        """Return a copy whose data has ``changes`` merged in."""
        merged = dict(self.data)
        merged.update(changes)
        return replace(self, data=merged)

    def clone(self) -> "Node":
        """Fully independent copy (nested data included)."""
        return replace(self, data=copy.deepcopy(self.data))


def make_edge_id(
    source: str,
    target: str,
    source_handle: Optional[str] = None,
    target_handle: Optional[str] = None,
) -> str:
    return f"edge-{source}{source_handle or ''}-{target}{target_handle or ''}"


@dataclass
class Edge:
    id: str
    source: str
    target: str
    source_handle: Optional[str] = None
    target_handle: Optional[str] = None
    type: str = "smoothstep"
    style: EdgeStyle = DEFAULT_EDGE_STYLE
    selected: bool = field(default=False, compare=False)

    def touches(self, node_id: str) -> bool:
        return self.source == node_id or self.target == node_id

    def same_route(self, other: "Edge") -> bool:
        return (
            self.source == other.source and self.target == other.target
            and self.source_handle == other.source_handle
            and self.target_handle == other.target_handle
        )


class ChangeKind(Enum):
    ADD = auto()
    REMOVE = auto()
    POSITION = auto()
    SELECT = auto()


@dataclass(frozen=True)
class NodeChange:
    """One structural change reported by the canvas for a node."""
    kind: ChangeKind
    id: str = ""
    position: Optional[Position] = None
    selected: Optional[bool] = None
    item: Optional[Node] = None

    @classmethod
    def add(cls, node: Node) -> "NodeChange":
        return cls(ChangeKind.ADD, node.id, item=node)

    @classmethod
    def remove(cls, node_id: str) -> "NodeChange":
        return cls(ChangeKind.REMOVE, node_id)

    @classmethod
    def move(cls, node_id: str, position: Position) -> "NodeChange":
        return cls(ChangeKind.POSITION, node_id, position=position)

    @classmethod
    def select(cls, node_id: str, selected: bool = True) -> "NodeChange":
        return cls(ChangeKind.SELECT, node_id, selected=selected)


@dataclass(frozen=True)
class EdgeChange:
    """One structural change reported by the canvas for an edge."""
    kind: ChangeKind
    id: str = ""
    selected: Optional[bool] = None
    item: Optional[Edge] = None

    @classmethod
    def add(cls, edge: Edge) -> "EdgeChange":
        return cls(ChangeKind.ADD, edge.id, item=edge)

    @classmethod
    def remove(cls, edge_id: str) -> "EdgeChange":
        return cls(ChangeKind.REMOVE, edge_id)

    @classmethod
    def select(cls, edge_id: str, selected: bool = True) -> "EdgeChange":
        return cls(ChangeKind.SELECT, edge_id, selected=selected)
