# -*- coding: utf-8 -*-
"""
PipeFlow: A PySide6 state engine for composing typed analysis
pipelines on a node canvas.
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: Apache-2.0

noderegistry.py
------------------
Singleton catalogue of pipeline node types.

Every node type carries a label, a palette colour pair, and a schema of
fields with defaults. The schema doubles as the column list of the type's
table view, so a node and its table row always agree on which fields
exist. The ``dataModel`` type additionally has a parse-type discriminant
that decides which of its fields are active.
"""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, Dict, List, Optional, Tuple

from pipeflow.logger import get_logger
log = get_logger("Registry")


class UnknownNodeTypeError(KeyError):
    """Raised when a node type name is not in the registry."""


class FieldKind(Enum):
    """How a field is edited in node forms and table cells."""
    TEXT = auto()
    TEXTAREA = auto()
    SELECT = auto()
    BOOL = auto()


@dataclass(frozen=True)
class FieldSpec:
    """
    One structured field of a node type.

    Attributes:
        name: Key in node ``data`` and column key in the table row.
        label: Human-readable caption.
        kind: Editor kind.
        default: Value used for blank rows and freshly dropped nodes.
        options: Allowed values for ``SELECT`` fields.
        primary: Shown even when the node is collapsed.
    """
    name: str
    label: str
    kind: FieldKind = FieldKind.TEXTAREA
    default: Any = ""
    options: Tuple[Tuple[str, Any], ...] = ()
    primary: bool = False

    def option_values(self) -> List[Any]:
        return [value for _, value in self.options]

    def accepts(self, value: Any) -> bool:
        """Enumerated kinds are checked; free text is never validated."""
        if self.kind is FieldKind.BOOL:
            return isinstance(value, bool)
        if self.kind is FieldKind.SELECT:
            return value in self.option_values()
        return True


@dataclass(frozen=True)
class NodeTypeSchema:
    """Registry entry for a single node type."""
    name: str
    label: str
    color: str
    border_color: str
    icon: str = ""
    fields: Tuple[FieldSpec, ...] = ()
    width: int = 300

    @property
    def table_key(self) -> str:
        """Key of this type's table in the exported ``tables`` object."""
        return f"{self.name}Data"

    @property
    def has_table(self) -> bool:
        return bool(self.fields)

    def columns(self) -> List[str]:
        return [f.name for f in self.fields]

    def field(self, name: str) -> Optional[FieldSpec]:
        for spec in self.fields:
            if spec.name == name:
                return spec
        return None

    def defaults(self) -> Dict[str, Any]:
        """Fresh dict of field defaults (never shared between callers)."""
        return {f.name: f.default for f in self.fields}

    def primary_fields(self) -> List[str]:
        return [f.name for f in self.fields if f.primary]

    def validate_value(self, field_name: str, value: Any) -> bool:
        spec = self.field(field_name)
        if spec is None:
            return True
        return spec.accepts(value)

    def qcolors(self):
        """Return the (fill, border) pair as ``QColor`` objects."""
        from pipeflow.edgestyles import to_qcolor
        return to_qcolor(self.color), to_qcolor(self.border_color)


# ==============================================================================
# OPTION LISTS
# ==============================================================================

ANALYSIS_TYPE_OPTIONS = (
    ("Expression analysis", "expression"),
    ("Raw analysis", "raw"),
    ("Custom analysis", "custom"),
)

SEVERITY_OPTIONS = (
    ("Hint", "hint"),
    ("Unqualified", "unqualified"),
    ("Severely unqualified", "severely_unqualified"),
)

PARSE_TYPE_OPTIONS = (
    ("dump_table_value", "dump_table_value"),
    ("custom_table_value", "custom_table_value"),
    ("chipreg_table_value", "chipreg_table_value"),
    ("multi_table_value", "multi_table_value"),
    ("ctx_table_value", "ctx_table_value"),
)

JOIN_TYPE_OPTIONS = (
    ("Left join", "left_join"),
    ("Right join", "right_join"),
    ("Inner join", "inner_join"),
    ("Outer join", "outer_join"),
    ("Vertical join", "vertical_join"),
)

YES_NO_OPTIONS = (("Yes", True), ("No", False))

# Fields active for each dataModel parse type, besides modelId/parseType.
PARSE_TYPE_FIELDS: Dict[str, Tuple[str, ...]] = {
    "dump_table_value": (
        "command", "parameters", "startMark", "endMark",
        "lineRegex", "tableHeader", "extraOperation",
    ),
    "custom_table_value": ("command", "parameters", "tableHeader", "extraOperation"),
    "chipreg_table_value": ("command", "parameters", "tableHeader", "extraOperation"),
    "multi_table_value": ("joinType", "joinFields", "extraOperation"),
    "ctx_table_value": ("systemParams", "tableHeader", "extraOperation"),
}

# Keys every node's data carries in addition to its schema fields.
BASE_DATA_KEYS = ("id", "title", "type", "description", "isExpanded")


# ==============================================================================
# REGISTRY
# ==============================================================================

class NodeRegistry:
    """
    Central repository for all available node types, kept in palette order.
    """

    def __init__(self) -> None:
        self._schemas: Dict[str, NodeTypeSchema] = {}

    def register(self, schema: NodeTypeSchema) -> NodeTypeSchema:
        if schema.name in self._schemas:
            log.warning("Overwriting node type '%s'", schema.name)
        self._schemas[schema.name] = schema
        return schema

    def get(self, name: Optional[str]) -> Optional[NodeTypeSchema]:
        if name is None:
            return None
        return self._schemas.get(name)

    def require(self, name: Optional[str]) -> NodeTypeSchema:
        schema = self.get(name)
        if schema is None:
            raise UnknownNodeTypeError(name)
        return schema

    def is_registered(self, name: Optional[str]) -> bool:
        return name in self._schemas

    def names(self) -> List[str]:
        return list(self._schemas)

    def all_schemas(self) -> List[NodeTypeSchema]:
        return list(self._schemas.values())

    def table_keys(self) -> Dict[str, str]:
        """Map of node type name to its export table key."""
        return {s.name: s.table_key for s in self._schemas.values() if s.has_table}

    def type_for_table_key(self, table_key: str) -> Optional[str]:
        for name, key in self.table_keys().items():
            if key == table_key:
                return name
        return None

    def search(self, query: str = "") -> List[NodeTypeSchema]:
        """
        Palette filter. Matches the query case-insensitively against the
        label and the type name; an empty query returns every type.
        """
        needle = (query or "").strip().lower()
        if not needle:
            return self.all_schemas()
        return [
            s for s in self._schemas.values()
            if needle in s.label.lower() or needle in s.name.lower()
        ]

    def initial_node_data(self, name: str, node_id: str = "") -> Dict[str, Any]:
        """Data dict for a freshly dropped node of type ``name``."""
        schema = self.require(name)
        data: Dict[str, Any] = {
            "id": node_id,
            "title": schema.label,
            "type": schema.name,
            "description": "Double-click to edit description",
            "isExpanded": True,
        }
        data.update(schema.defaults())
        return data

    def relevant_fields(self, name: str, data: Optional[Dict[str, Any]] = None) -> List[str]:
        """
        Fields a form should render for a node of type ``name``.

        For ``dataModel`` the answer depends on the ``parseType`` value;
        inactive fields keep their values, they are only hidden.
        """
        schema = self.require(name)
        if name != "dataModel":
            return schema.columns()

        data = data or {}
        parse_type = data.get("parseType", schema.field("parseType").default)
        extra = PARSE_TYPE_FIELDS.get(parse_type, ())
        return ["modelId", "parseType", *extra]

    def visible_fields(self, name: str, data: Optional[Dict[str, Any]] = None) -> List[str]:
        """``relevant_fields`` reduced to primary fields when collapsed."""
        data = data or {}
        fields_ = self.relevant_fields(name, data)
        if data.get("isExpanded", True):
            return fields_
        primary = set(self.require(name).primary_fields())
        return [f for f in fields_ if f in primary]


def _text(name: str, label: str, primary: bool = False, kind: FieldKind = FieldKind.TEXTAREA) -> FieldSpec:
    return FieldSpec(name=name, label=label, kind=kind, default="", primary=primary)


def setup_default_types(registry: NodeRegistry) -> None:
    """Register the six built-in pipeline node types in palette order."""
    _reg = registry.register

    _reg(NodeTypeSchema(
        name="prerequisite", label="Prerequisite",
        color="#e6f4ff", border_color="#69b1ff", icon="📋",
        fields=(
            _text("caseId", "Case ID", primary=True, kind=FieldKind.TEXT),
            FieldSpec("isEnabled", "Enabled", FieldKind.BOOL, True, YES_NO_OPTIONS),
            _text("devicePrerequisite", "Device prerequisite"),
            _text("subRackPrerequisite", "Sub-rack prerequisite"),
            _text("boardPrerequisite", "Board prerequisite"),
        ),
    ))

    _reg(NodeTypeSchema(
        name="preCheck", label="Pre-execution check",
        color="#fff7e6", border_color="#ffd591", icon="🔍",
        fields=(
            _text("analysisItemId", "Analysis item ID", primary=True, kind=FieldKind.TEXT),
            _text("checkCondition", "Check condition"),
        ),
    ))

    _reg(NodeTypeSchema(
        name="atomicAnalysis", label="Analysis atom",
        color="#f6ffed", border_color="#b7eb8f", icon="⚛️",
        fields=(
            _text("atomicId", "Atom ID", primary=True, kind=FieldKind.TEXT),
            FieldSpec("analysisType", "Analysis type", FieldKind.SELECT,
                      "expression", ANALYSIS_TYPE_OPTIONS),
            FieldSpec("ignoreResult", "Ignore result", FieldKind.BOOL, False, YES_NO_OPTIONS),
            _text("analysisRule", "Analysis rule"),
            _text("parameterRefresh", "Parameter refresh"),
        ),
    ))

    _reg(NodeTypeSchema(
        name="analysisResult", label="Analysis result",
        color="#f9f0ff", border_color="#d3adf7", icon="📊",
        fields=(
            _text("resultId", "Result ID", primary=True, kind=FieldKind.TEXT),
            FieldSpec("severityLevel", "Severity", FieldKind.SELECT, "hint", SEVERITY_OPTIONS),
            _text("weightValue", "Weight", kind=FieldKind.TEXT),
            _text("resultOutput", "Result output"),
            _text("branchCondition", "Branch condition"),
        ),
    ))

    _reg(NodeTypeSchema(
        name="analysisResource", label="Analysis resource",
        color="#fff2f0", border_color="#ffccc7", icon="📊", width=200,
        fields=(
            _text("resourceId", "Resource ID", primary=True, kind=FieldKind.TEXT),
            _text("chCurrentValue", "Current value (zh)"),
            _text("chSuggestion", "Suggestion (zh)"),
            _text("enCurrentValue", "Current value (en)"),
            _text("enSuggestion", "Suggestion (en)"),
        ),
    ))

    _reg(NodeTypeSchema(
        name="dataModel", label="Data model",
        color="#e6fffb", border_color="#87e8de", icon="💾",
        fields=(
            _text("modelId", "Model ID", primary=True, kind=FieldKind.TEXT),
            FieldSpec("parseType", "Parse type", FieldKind.SELECT,
                      "dump_table_value", PARSE_TYPE_OPTIONS),
            _text("command", "Command"),
            _text("parameters", "Parameters"),
            _text("tableHeader", "Table header"),
            _text("startMark", "Start mark"),
            _text("endMark", "End mark"),
            _text("lineRegex", "Line regex"),
            _text("systemParams", "System parameters"),
            FieldSpec("joinType", "Join type", FieldKind.SELECT, "left_join", JOIN_TYPE_OPTIONS),
            _text("joinFields", "Join fields"),
            _text("extraOperation", "Extra operation"),
        ),
    ))


# --- Global Singleton ---
NODE_REGISTRY = NodeRegistry()
setup_default_types(NODE_REGISTRY)
