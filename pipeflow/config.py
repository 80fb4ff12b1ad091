# -*- coding: utf-8 -*-
"""
PipeFlow: A PySide6 state engine for composing typed analysis
pipelines on a node canvas.
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: Apache-2.0

Editor configuration schema.
"""

from dataclasses import dataclass, fields, asdict, replace
from typing import Any, Dict

from pipeflow.logger import get_logger
log = get_logger("Config")


@dataclass(frozen=True)
class EditorConfig:
    """Tunable editor behaviour. Defaults match the shipped editor."""
    # Clipboard
    paste_offset_x: float = 50.0
    paste_offset_y: float = 50.0

    # Connection drag highlighting
    dimmed_opacity: float = 0.2

    # Identity
    id_random_bound: int = 1000

    # Edges
    default_edge_type: str = "smoothstep"

    # Export
    export_indent: int = 2
    export_filename_prefix: str = "flowchart-export"

    @classmethod
    def field_names(cls) -> set:
        return {f.name for f in fields(cls)}

    @classmethod
    def from_dict(cls, values: Dict[str, Any]) -> "EditorConfig":
        """Build a config from a plain dict, ignoring unknown keys."""
        return cls().updated(**values)

    def updated(self, **kwargs: Any) -> "EditorConfig":
        """Return a copy with the given keys replaced. Unknown keys are skipped."""
        known = self.field_names()
        accepted = {}
        for key, value in kwargs.items():
            if key not in known:
                log.warning("Unknown config key: %s", key)
                continue
            accepted[key] = value
        return replace(self, **accepted)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
