"""JSON interchange for syntax trees and check results.

A tree document is the module node wrapped with a schema id::

    {"schema": "typecore-tree-json-v0.1",
     "file": "shapes.tc",
     "module": {"node": "Module", "span": [1, 1], "name": "shapes", ...}}

Every node is an object naming its class in ``"node"``, with its position
in ``"span"`` (``[line, column]`` or ``[line, column, end_line,
end_column]``) and one key per field. Operators and literal kinds are
written as their surface values (``"+"``, ``"int"``).
"""

from __future__ import annotations

import dataclasses
import json
import typing
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from . import ast
from .checker import CheckResult
from .source import NO_SPAN, SourceLocation, SourceSpan

TREE_SCHEMA_ID = "typecore-tree-json-v0.1"
RESULT_SCHEMA_ID = "typecore-result-json-v0.1"

_ENUM_FIELDS = {
    "operator": ast.Operator,
    "literal_kind": ast.LiteralKind,
}

_NODE_CLASSES: Dict[str, type] = {
    name: cls for name, cls in vars(ast).items()
    if isinstance(cls, type) and issubclass(cls, ast.AstNode)
    and dataclasses.is_dataclass(cls) and not cls.__subclasses__()
}


class TreeFormatError(ValueError):
    """Raised when a JSON document does not describe a valid tree."""


# =============================================================================
# Loading
# =============================================================================

def _span_from_json(raw: Any, filename: Optional[str]) -> SourceSpan:
    if raw is None:
        return NO_SPAN
    if not isinstance(raw, list) or len(raw) not in (2, 4) or not all(isinstance(v, int) for v in raw):
        raise TreeFormatError(f"span must be [line, column] or [line, column, end_line, end_column], got {raw!r}")
    start = SourceLocation(raw[0], raw[1], 0, filename)
    if len(raw) == 2:
        return SourceSpan(start, start)
    return SourceSpan(start, SourceLocation(raw[2], raw[3], 0, filename))


_HINTS: Dict[type, Dict[str, Any]] = {}


def _field_hints(cls: type) -> Dict[str, Any]:
    hints = _HINTS.get(cls)
    if hints is None:
        hints = _HINTS[cls] = typing.get_type_hints(cls)
    return hints


def _conforms(value: Any, hint: Any) -> bool:
    """Check a loaded field value against the node field's annotation."""
    origin = typing.get_origin(hint)
    if origin is Union:
        return any(_conforms(value, arg) for arg in typing.get_args(hint))
    if origin is list:
        (item,) = typing.get_args(hint)
        return isinstance(value, list) and all(_conforms(v, item) for v in value)
    if origin is dict:
        key, item = typing.get_args(hint)
        return isinstance(value, dict) and all(
            _conforms(k, key) and _conforms(v, item) for k, v in value.items())
    if hint is type(None):
        return value is None
    if hint is int:
        return isinstance(value, int) and not isinstance(value, bool)
    if isinstance(hint, type):
        return isinstance(value, hint)
    return True


def _describe(hint: Any) -> str:
    origin = typing.get_origin(hint)
    if origin is Union:
        return " or ".join(_describe(arg) for arg in typing.get_args(hint))
    if origin is list:
        return f"a list of {_describe(typing.get_args(hint)[0])}"
    if origin is dict:
        return f"an object of {_describe(typing.get_args(hint)[1])}"
    if hint is type(None):
        return "null"
    if isinstance(hint, type) and issubclass(hint, ast.AstNode):
        return f"{hint.__name__} node"
    return getattr(hint, "__name__", str(hint))


def _describe_value(value: Any) -> str:
    if isinstance(value, ast.AstNode):
        return f"{type(value).__name__} node"
    if value is None:
        return "null"
    if isinstance(value, (list, dict)):
        return type(value).__name__
    return f"{type(value).__name__} {value!r}"


def _literal_value_matches(value: Any, kind: ast.LiteralKind) -> bool:
    if kind == ast.LiteralKind.BOOL:
        return isinstance(value, bool)
    if isinstance(value, bool):
        return False
    if kind == ast.LiteralKind.INT:
        return isinstance(value, int)
    if kind == ast.LiteralKind.FLOAT:
        return isinstance(value, (int, float))
    return isinstance(value, str)


def _value_from_json(name: str, raw: Any, filename: Optional[str]) -> Any:
    enum_cls = _ENUM_FIELDS.get(name)
    if enum_cls is not None:
        try:
            return enum_cls(raw)
        except ValueError as exc:
            raise TreeFormatError(f"invalid {name}: {raw!r}") from exc
    if isinstance(raw, dict) and "node" in raw:
        return node_from_json(raw, filename)
    if isinstance(raw, list):
        return [_value_from_json("", item, filename) for item in raw]
    if isinstance(raw, dict):
        return {key: _value_from_json("", value, filename) for key, value in raw.items()}
    return raw


def node_from_json(doc: Dict[str, Any], filename: Optional[str] = None) -> ast.AstNode:
    """Rebuild one node (and its children) from its JSON form."""
    if not isinstance(doc, dict):
        raise TreeFormatError(f"node must be an object, got {type(doc).__name__}")
    kind = doc.get("node")
    cls = _NODE_CLASSES.get(kind)
    if cls is None:
        raise TreeFormatError(f"unknown node type: {kind!r}")

    node_fields = {f.name: f for f in dataclasses.fields(cls)}
    unknown = set(doc) - set(node_fields) - {"node"}
    if unknown:
        raise TreeFormatError(f"{kind} has no field(s): {', '.join(sorted(unknown))}")

    hints = _field_hints(cls)
    kwargs: Dict[str, Any] = {"span": _span_from_json(doc.get("span"), filename)}
    for name, f in node_fields.items():
        if name == "span":
            continue
        if name in doc:
            value = _value_from_json(name, doc[name], filename)
            if not _conforms(value, hints[name]):
                raise TreeFormatError(
                    f"{kind}.{name} must be {_describe(hints[name])}, got {_describe_value(value)}")
            kwargs[name] = value
        elif f.default is dataclasses.MISSING and f.default_factory is dataclasses.MISSING:
            raise TreeFormatError(f"{kind} is missing field '{name}'")
    if cls is ast.Literal and not _literal_value_matches(kwargs["value"], kwargs["literal_kind"]):
        raise TreeFormatError(
            f"Literal value {kwargs['value']!r} does not match literal_kind '{kwargs['literal_kind'].value}'")
    try:
        return cls(**kwargs)
    except TypeError as exc:
        raise TreeFormatError(f"invalid {kind}: {exc}") from exc


def module_from_json(doc: Union[str, Dict[str, Any]]) -> ast.Module:
    """Load a module from a tree document (a dict or its JSON text)."""
    if isinstance(doc, str):
        try:
            doc = json.loads(doc)
        except json.JSONDecodeError as exc:
            raise TreeFormatError(f"invalid JSON: {exc}") from exc
    if not isinstance(doc, dict):
        raise TreeFormatError(f"tree document must be an object, got {type(doc).__name__}")

    schema = doc.get("schema", TREE_SCHEMA_ID)
    if schema != TREE_SCHEMA_ID:
        raise TreeFormatError(f"unsupported tree schema: {schema}")
    if "module" not in doc:
        raise TreeFormatError("tree document missing 'module'")

    module = node_from_json(doc["module"], doc.get("file"))
    if not isinstance(module, ast.Module):
        raise TreeFormatError(f"root node must be a Module, got {type(module).__name__}")
    return module


# =============================================================================
# Writing
# =============================================================================

def _span_to_json(span: SourceSpan) -> Optional[List[int]]:
    if span == NO_SPAN:
        return None
    if span.start == span.end:
        return [span.start.line, span.start.column]
    return [span.start.line, span.start.column, span.end.line, span.end.column]


def _value_to_json(value: Any) -> Any:
    if isinstance(value, ast.AstNode):
        return node_to_json(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, list):
        return [_value_to_json(item) for item in value]
    if isinstance(value, dict):
        return {key: _value_to_json(item) for key, item in value.items()}
    return value


def node_to_json(node: ast.AstNode) -> Dict[str, Any]:
    """Render a node (and its children) in the tree interchange form."""
    data: Dict[str, Any] = {"node": type(node).__name__}
    span = _span_to_json(node.span)
    if span is not None:
        data["span"] = span
    for f in dataclasses.fields(node):
        if f.name != "span":
            data[f.name] = _value_to_json(getattr(node, f.name))
    return data


def module_to_json(module: ast.Module, filename: Optional[str] = None) -> Dict[str, Any]:
    doc: Dict[str, Any] = {"schema": TREE_SCHEMA_ID, "module": node_to_json(module)}
    if filename is not None:
        doc["file"] = filename
    return doc


def _jsonable(value: Any) -> Any:
    """Default and constant values as JSON (sets become sorted lists)."""
    if isinstance(value, (set, frozenset)):
        return sorted(_jsonable(v) for v in value)
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    return value


def result_to_json(result: CheckResult) -> Dict[str, Any]:
    """Render a check result: verdict, diagnostics, types and annotations."""
    annotations = result.annotations

    variables = []
    for key, events in annotations.events.items():
        node = annotations.node(key)
        name = getattr(node, "name", None) or getattr(node, "variable", None)
        variables.append({
            "name": name,
            "span": _span_to_json(node.span),
            "type": annotations.types[key].name if key in annotations.types else None,
            "events": [
                {"kind": e.kind.name.lower(), "type": e.type.name, "value": _jsonable(e.value)}
                for e in events
            ],
        })

    backings = []
    for key, backing in annotations.backings.items():
        entry: Dict[str, Any] = {
            "span": _span_to_json(annotations.node(key).span),
            "abstract": backing.abstract.name,
            "concrete": backing.concrete.name,
        }
        if backing.layout is not None:
            entry["layout"] = {
                "length": backing.layout.length,
                "length_field_bytes": backing.layout.length_field_bytes,
                "element_bytes": backing.layout.element_bytes,
                "elements": _jsonable(backing.layout.elements),
            }
        backings.append(entry)

    return {
        "schema": RESULT_SCHEMA_ID,
        "accepted": result.accepted,
        "diagnostics": [d.to_json() for d in result.diagnostics],
        "truncated": result.truncated,
        "skipped": result.skipped,
        "types": {t.name: type(t).__name__ for t in result.registry.user_types()},
        "functions": sorted(s.describe() for s in annotations.signatures.values()),
        "variables": variables,
        "backings": backings,
    }
