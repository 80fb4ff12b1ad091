# -*- coding: utf-8 -*-
"""
PipeFlow: A PySide6 state engine for composing typed analysis
pipelines on a node canvas.
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: Apache-2.0

Connection rules between pipeline node types.

The rules are a pure function of the (source type, target type) pair:

    prerequisite     -> preCheck
    preCheck         -> atomicAnalysis, analysisResult
    atomicAnalysis   -> analysisResult            (never dataModel)
    dataModel        -> atomicAnalysis, dataModel
    analysisResult   -> analysisResource
    analysisResource -> (terminal)

A target-side rule is checked first: ``analysisResult`` accepts sources of
type ``preCheck`` or ``atomicAnalysis`` only.
"""

from dataclasses import dataclass
from typing import ClassVar, Dict, FrozenSet, Iterable, Optional, Tuple

from pipeflow.edgestyles import EdgeStyle, DEFAULT_EDGE_STYLE, PAIR_STYLES
from pipeflow.logger import get_logger
log = get_logger("Rules")


@dataclass(frozen=True)
class ConnectionVerdict:
    """Outcome of a connection check. ``style`` is set only when allowed."""
    allowed: bool
    reason: str = ""
    style: Optional[EdgeStyle] = None

    def __bool__(self) -> bool:
        return self.allowed


class ConnectionRules:
    """
    Central table of admissible connections.
    """
    _targets: ClassVar[Dict[str, FrozenSet[str]]] = {
        "prerequisite": frozenset({"preCheck"}),
        "preCheck": frozenset({"atomicAnalysis", "analysisResult"}),
        "atomicAnalysis": frozenset({"analysisResult"}),
        "dataModel": frozenset({"atomicAnalysis", "dataModel"}),
        "analysisResult": frozenset({"analysisResource"}),
        "analysisResource": frozenset(),
    }

    # Target-side restrictions take precedence over the source-side table.
    _sources_for_target: ClassVar[Dict[str, FrozenSet[str]]] = {
        "analysisResult": frozenset({"preCheck", "atomicAnalysis"}),
    }

    _rejections: ClassVar[Dict[str, str]] = {
        "prerequisite": "Prerequisite nodes can only connect to pre-execution check nodes",
        "preCheck": "Pre-execution check nodes can only connect to analysis atom or analysis result nodes",
        "atomicAnalysis": "Analysis atom nodes can only connect to analysis result nodes",
        "dataModel": "Data model nodes can only connect to analysis atom or other data model nodes",
        "analysisResult": "Analysis result nodes can only connect to analysis resource nodes",
        "analysisResource": "Analysis resource nodes cannot start a connection",
    }

    _target_rejections: ClassVar[Dict[str, str]] = {
        "analysisResult": "Analysis result nodes only accept connections from pre-execution check or analysis atom nodes",
    }

    @classmethod
    def legal_targets(cls, source_type: Optional[str]) -> FrozenSet[str]:
        """Target types reachable from ``source_type`` with both rules applied."""
        candidates = cls._targets.get(source_type, frozenset())
        return frozenset(
            t for t in candidates
            if source_type in cls._sources_for_target.get(t, frozenset({source_type}))
        )

    @classmethod
    def is_allowed(cls, source_type: Optional[str], target_type: Optional[str]) -> bool:
        return cls.check(source_type, target_type).allowed

    @classmethod
    def check(cls, source_type: Optional[str], target_type: Optional[str]) -> ConnectionVerdict:
        """
        O(1) admissibility check for a (source type, target type) pair.
        """
        if source_type is None or target_type is None:
            return ConnectionVerdict(False, "Both endpoints must be existing nodes")

        # 1. Target-side restriction
        allowed_sources = cls._sources_for_target.get(target_type)
        if allowed_sources is not None and source_type not in allowed_sources:
            return ConnectionVerdict(False, cls._target_rejections[target_type])

        # 2. Source-side table
        if source_type not in cls._targets:
            return ConnectionVerdict(False, f"Unknown source node type '{source_type}'")
        if target_type not in cls._targets[source_type]:
            return ConnectionVerdict(False, cls._rejections[source_type])

        return ConnectionVerdict(True, style=cls.style_for(source_type, target_type))

    @classmethod
    def style_for(cls, source_type: Optional[str], target_type: Optional[str]) -> EdgeStyle:
        """Type-specific style of a pair, or the neutral default."""
        return PAIR_STYLES.get((source_type, target_type), DEFAULT_EDGE_STYLE)

    @classmethod
    def opacity_for(
        cls,
        source_type: Optional[str],
        candidate_type: Optional[str],
        dimmed: float = 0.2,
    ) -> float:
        """Highlight weight of a candidate node while dragging from ``source_type``."""
        return 1.0 if candidate_type in cls.legal_targets(source_type) else dimmed

    @classmethod
    def opacity_map(
        cls,
        source_id: str,
        source_type: Optional[str],
        nodes: Iterable[Tuple[str, Optional[str]]],
        dimmed: float = 0.2,
    ) -> Dict[str, float]:
        """
        Opacity for every ``(node_id, node_type)`` pair. The drag source
        itself always stays fully opaque.
        """
        result: Dict[str, float] = {}
        for node_id, node_type in nodes:
            if node_id == source_id:
                result[node_id] = 1.0
            else:
                result[node_id] = cls.opacity_for(source_type, node_type, dimmed)
        return result
