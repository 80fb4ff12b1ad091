# -*- coding: utf-8 -*-
"""
PipeFlow: A PySide6 state engine for composing typed analysis
pipelines on a node canvas.
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: Apache-2.0

Edge style values with automatic front-end conversion.

Conversion strategy:
  - Storage:     Always raw Python types (hex colour string, width, dasharray).
  - Export:      ``to_dict()`` emits the canvas keys ``stroke``, ``strokeWidth``
                 and ``strokeDasharray``; a style read by ``from_dict()`` is
                 emitted exactly as it was read.
  - Read-time:   ``qcolor()`` / ``pen_style()`` convert raw → Qt on demand.
"""

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from PySide6.QtCore import Qt

# QColor lives in QtGui; import it lazily so the engine stays importable
# in headless environments where the GUI libraries are absent.
_QColor = None

def _ensure_qcolor():
    global _QColor
    if _QColor is None:
        from PySide6.QtGui import QColor
        _QColor = QColor
    return _QColor


# ============================================================================
# VALUE-SHAPE HELPERS
# ============================================================================

def _is_color_list(val: Any) -> bool:
    """True if val looks like [r, g, b] or [r, g, b, a]."""
    return (isinstance(val, (list, tuple))
            and 3 <= len(val) <= 4
            and all(isinstance(c, (int, float)) for c in val))


def normalize_hex(val: Any, fallback: str = "#555555") -> str:
    """Coerce '#rgb', '#rrggbb' or an [r, g, b] list to upper-case '#RRGGBB'."""
    if isinstance(val, str) and val.startswith("#"):
        digits = val[1:]
        if len(digits) == 3:
            digits = "".join(c * 2 for c in digits)
        if len(digits) == 6 and all(c in "0123456789abcdefABCDEF" for c in digits):
            return f"#{digits.upper()}"
        return fallback
    if _is_color_list(val):
        r, g, b = (max(0, min(255, int(c))) for c in val[:3])
        return f"#{r:02X}{g:02X}{b:02X}"
    return fallback


def to_qcolor(val):
    """Convert a hex string or [r, g, b(, a)] list to ``QColor``."""
    QColor = _ensure_qcolor()
    if isinstance(val, QColor):
        return val
    if isinstance(val, str) and val.startswith("#"):
        return QColor(val)
    if _is_color_list(val):
        a = int(val[3]) if len(val) > 3 else 255
        return QColor(int(val[0]), int(val[1]), int(val[2]), a)
    return QColor(0, 0, 0, 255)


def to_pen_style(dash: Optional[str]) -> Qt.PenStyle:
    """An SVG-style dasharray becomes a dashed pen; no dasharray is solid."""
    if not dash:
        return Qt.PenStyle.SolidLine
    parts = [p for p in str(dash).replace(" ", ",").split(",") if p]
    if len(parts) >= 4:
        return Qt.PenStyle.DashDotLine
    if parts and all(p == parts[0] for p in parts) and parts[0] in ("1", "2"):
        return Qt.PenStyle.DotLine
    return Qt.PenStyle.DashLine


# ============================================================================
# EDGE STYLE
# ============================================================================

@dataclass(frozen=True)
class EdgeStyle:
    """Visual treatment of one edge."""
    stroke: str = "#555555"
    stroke_width: float = 2
    dash: Optional[str] = None
    # Style object as read from a document; exported back unchanged.
    raw: Optional[Dict[str, Any]] = field(default=None, compare=False, repr=False)

    @property
    def is_dashed(self) -> bool:
        return bool(self.dash)

    def qcolor(self):
        return to_qcolor(self.stroke)

    def pen_style(self) -> Qt.PenStyle:
        return to_pen_style(self.dash)

    def to_dict(self) -> Dict[str, Any]:
        if self.raw is not None:
            return copy.deepcopy(self.raw)
        result: Dict[str, Any] = {
            "stroke": self.stroke,
            "strokeWidth": self.stroke_width,
        }
        if self.dash:
            result["strokeDasharray"] = self.dash
        return result

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "EdgeStyle":
        if not isinstance(data, dict):
            return DEFAULT_EDGE_STYLE
        width = data.get("strokeWidth", DEFAULT_EDGE_STYLE.stroke_width)
        if not isinstance(width, (int, float)) or isinstance(width, bool):
            width = DEFAULT_EDGE_STYLE.stroke_width
        return cls(
            stroke=normalize_hex(data.get("stroke"), DEFAULT_EDGE_STYLE.stroke),
            stroke_width=width,
            dash=data.get("strokeDasharray") or None,
            raw=copy.deepcopy(data),
        )


DEFAULT_EDGE_STYLE = EdgeStyle()

# Heavier, dashed stroke for the dataModel → atomicAnalysis "data feed" relation.
DATA_FEED_STYLE = EdgeStyle(stroke="#FFEB3B", stroke_width=3, dash="5,5")

PAIR_STYLES: Dict[tuple, EdgeStyle] = {
    ("dataModel", "atomicAnalysis"): DATA_FEED_STYLE,
    ("prerequisite", "preCheck"): EdgeStyle(stroke="#1890FF", stroke_width=2),
    ("preCheck", "atomicAnalysis"): EdgeStyle(stroke="#52C41A", stroke_width=2),
    ("atomicAnalysis", "analysisResult"): EdgeStyle(stroke="#722ED1", stroke_width=2),
    ("analysisResult", "analysisResource"): EdgeStyle(stroke="#F5222D", stroke_width=2),
}
