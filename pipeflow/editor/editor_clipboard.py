# -*- coding: utf-8 -*-
"""
PipeFlow: A PySide6 state engine for composing typed analysis
pipelines on a node canvas.
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: Apache-2.0

Clipboard Manager: captures nodes and re-materializes them under new ids.
"""

import copy
from typing import Iterable, List, Optional, Tuple

from pipeflow.identity import IdGenerator
from pipeflow.noderegistry import NODE_REGISTRY, NodeRegistry
from pipeflow.model.model_types import Node

from pipeflow.logger import get_logger
log = get_logger("Clipboard")


class ClipboardManager:
    """
    Holds a deep snapshot of copied nodes. Pasting never touches the
    snapshot, so the same content can be pasted repeatedly.
    """

    def __init__(
        self,
        id_generator: IdGenerator,
        offset: Tuple[float, float] = (50.0, 50.0),
        registry: Optional[NodeRegistry] = None,
    ) -> None:
        self._ids = id_generator
        self.offset = offset
        self._registry = registry or NODE_REGISTRY
        self._snapshot: List[Node] = []

    def copy(self, nodes: Iterable[Node]) -> int:
        """
        Replace the clipboard with a snapshot of ``nodes``. An empty
        selection leaves the previous content in place.
        """
        captured = [node.clone() for node in nodes]
        if not captured:
            return 0
        self._snapshot = captured
        log.debug("Copied %d nodes", len(captured))
        return len(captured)

    @property
    def has_content(self) -> bool:
        return bool(self._snapshot)

    def __len__(self) -> int:
        return len(self._snapshot)

    def clear(self) -> None:
        self._snapshot = []

    def paste(self) -> List[Node]:
        """
        Build fresh copies of the snapshot: new ids, offset positions,
        unselected, with independent data. The caller inserts them.
        """
        dx, dy = self.offset
        pasted: List[Node] = []
        for original in self._snapshot:
            if not self._registry.is_registered(original.type):
                log.warning("Skipping paste of unknown node type '%s'", original.type)
                continue
            new_id = self._ids.new_id(original.type)
            data = copy.deepcopy(original.data)
            data["id"] = new_id
            pasted.append(Node(
                id=new_id,
                type=original.type,
                position=original.position.offset(dx, dy),
                data=data,
                selected=False,
            ))
        return pasted
