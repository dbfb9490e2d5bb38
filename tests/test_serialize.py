"""
Tests for the JSON tree and result interchange.

Tests cover:
- Loading hand-written tree documents
- Writing and re-reading trees built in Python
- Rejection of malformed documents
- The check result document
"""

import json

import pytest

from typecore import check, ErrorKind
from typecore.ast import FunctionDef, IfStatement, Operator
from typecore.builders import (
    binop, ret, var, assign, if_, func, alias, struct, module, list_lit,
    unary, struct_lit, map_lit, lit,
)
from typecore.serialize import (
    TREE_SCHEMA_ID, RESULT_SCHEMA_ID, TreeFormatError,
    module_from_json, module_to_json, node_from_json, node_to_json, result_to_json,
)
from typecore.source import NO_SPAN


def ident(name):
    return {"node": "Identifier", "name": name}


def int_lit(value):
    return {"node": "Literal", "value": value, "literal_kind": "int"}


INVALID_DOC = {
    "schema": TREE_SCHEMA_ID,
    "file": "invalid.tc",
    "module": {
        "node": "Module",
        "span": [1, 1],
        "name": "invalid",
        "functions": [{
            "node": "FunctionDef",
            "span": [1, 1, 3, 2],
            "name": "invalid",
            "parameters": [{
                "node": "Parameter",
                "name": "n",
                "type_annotation": {"node": "SimpleType", "name": "int"},
            }],
            "return_type": {"node": "SimpleType", "name": "int"},
            "body": {"node": "Block", "statements": [{
                "node": "IfStatement",
                "span": [2, 5],
                "condition": {"node": "BinaryOp", "left": ident("n"), "operator": "<",
                              "right": int_lit(100)},
                "then_branch": {"node": "Block", "statements": [{
                    "node": "ReturnStatement",
                    "value": {"node": "BinaryOp", "left": ident("n"), "operator": "*",
                              "right": int_lit(2)},
                }]},
            }]},
        }],
    },
}


class TestLoading:
    """Test reading tree documents."""

    def test_hand_written_document(self):
        """A document loads into the matching node classes."""
        mod = module_from_json(INVALID_DOC)
        assert mod.name == "invalid"
        fn = mod.functions[0]
        assert isinstance(fn, FunctionDef)
        assert fn.span.start.filename == "invalid.tc"
        assert (fn.span.end.line, fn.span.end.column) == (3, 2)
        stmt = fn.body.statements[0]
        assert isinstance(stmt, IfStatement)
        assert stmt.condition.operator == Operator.LT
        assert stmt.else_branch is None
        assert stmt.then_branch.span == NO_SPAN

    def test_loaded_document_checks(self):
        """The loaded invalid(n) is rejected for a missing return."""
        result = check(module_from_json(json.dumps(INVALID_DOC)))
        assert [d.kind for d in result.errors] == [ErrorKind.NON_EXHAUSTIVE_RETURN]
        assert result.errors[0].span.start.filename == "invalid.tc"

    def test_schema_is_optional(self):
        """A document without a schema id is read as the current schema."""
        doc = {"module": {"node": "Module", "name": None}}
        assert module_from_json(doc).functions == []


class TestRoundTrip:
    """Test writing trees built in Python."""

    def test_builder_tree_survives(self):
        """Writing, reading and writing again gives the same document."""
        mod = module(
            alias("Celsius", "float", span=1),
            struct("Point", {"x": "float", "y": "float"}, span=2),
            var("origin", "Point", struct_lit("Point", x=0.0, y=0.0), span=3),
            func("main", {"n": "int"}, None, [
                var("xs", "list[int]", list_lit(4, unary("-", 1), 8, 10), span=5),
                var("m", init=map_lit([(lit("a"), 1)]), span=6),
                if_(binop("n", ">=", 0), [assign("n", 0)], else_=[ret()], span=7),
            ], span=4),
            name="demo",
        )
        first = module_to_json(mod)
        second = module_to_json(module_from_json(json.loads(json.dumps(first))))
        assert first == second

    def test_spans(self):
        """Point spans are written as [line, column]; missing spans are omitted."""
        assert node_to_json(lit(1, span=4))["span"] == [4, 1]
        assert "span" not in node_to_json(lit(1))

    def test_enums_as_surface_values(self):
        """Operators and literal kinds are written as text."""
        data = node_to_json(binop(1, "+", 2.5))
        assert data["operator"] == "+"
        assert data["right"]["literal_kind"] == "float"
        assert node_from_json(data).right.value == 2.5


class TestMalformedDocuments:
    """Test rejection of invalid documents."""

    @pytest.mark.parametrize("doc, message", [
        ({"node": "Lambda"}, "unknown node type"),
        ({"node": "Identifier", "name": "x", "colour": "red"}, "no field(s): colour"),
        ({"node": "Identifier"}, "missing field 'name'"),
        ({"node": "Identifier", "name": "x", "span": [1]}, "span must be"),
        ({"node": "BinaryOp", "left": int_lit(1), "operator": "**", "right": int_lit(2)},
         "invalid operator"),
        ({"node": "Expression"}, "unknown node type"),
        ({"node": "ExpressionStatement", "expression": 5},
         "ExpressionStatement.expression must be Expression node, got int 5"),
        ({"node": "Module", "name": None, "functions": ["oops"]},
         "Module.functions must be a list of FunctionDef node, got list"),
        ({"node": "Identifier", "name": 3}, "Identifier.name must be str, got int 3"),
        ({"node": "ReturnStatement", "value": {"node": "Block"}},
         "ReturnStatement.value must be Expression node or null, got Block node"),
        ({"node": "GenericType", "name": "array", "type_args": [], "length": True},
         "GenericType.length must be int or null"),
        ({"node": "Literal", "value": "7", "literal_kind": "int"},
         "Literal value '7' does not match literal_kind 'int'"),
    ])
    def test_bad_nodes(self, doc, message):
        """Node-level problems name what is wrong."""
        with pytest.raises(TreeFormatError, match=message.replace("(", r"\(").replace(")", r"\)")):
            node_from_json(doc)

    def test_wrong_schema(self):
        """Other schema ids are refused."""
        with pytest.raises(TreeFormatError, match="unsupported tree schema"):
            module_from_json({"schema": "other-v9", "module": {"node": "Module", "name": None}})

    def test_root_must_be_module(self):
        """The root node is a Module."""
        with pytest.raises(TreeFormatError, match="root node must be a Module"):
            module_from_json({"module": ident("x")})

    def test_invalid_json_text(self):
        """Unparseable text raises TreeFormatError."""
        with pytest.raises(TreeFormatError, match="invalid JSON"):
            module_from_json("{not json")

    def test_missing_module(self):
        """The module key is required."""
        with pytest.raises(TreeFormatError, match="missing 'module'"):
            module_from_json({"schema": TREE_SCHEMA_ID})


class TestResultDocument:
    """Test result_to_json."""

    def test_accepted_result(self):
        """Variables, events and backings are reported."""
        mod = module(
            alias("Celsius", "float"),
            func("main", {}, None, [
                var("n", "int", span=2),
                assign("n", 50, span=3),
                var("xs", init=list_lit(4, unary("-", 1), 8, 10), span=4),
            ]),
        )
        doc = result_to_json(check(mod))
        assert doc["schema"] == RESULT_SCHEMA_ID
        assert doc["accepted"] is True
        assert doc["diagnostics"] == []
        assert doc["truncated"] is False
        assert doc["types"] == {"Celsius": "AliasType"}
        assert doc["functions"] == ["main()"]

        n = next(v for v in doc["variables"] if v["name"] == "n")
        assert n["type"] == "int"
        assert n["events"] == [
            {"kind": "default", "type": "int", "value": 0},
            {"kind": "assignment", "type": "int", "value": 50},
        ]
        layout = next(b for b in doc["backings"] if "layout" in b)
        assert layout["abstract"] == "list[int]"
        assert layout["concrete"] == "array[int]"
        assert layout["layout"]["elements"] == [4, -1, 8, 10]
        json.dumps(doc)

    def test_rejected_result(self):
        """Diagnostics carry their code and kind."""
        doc = result_to_json(check(module_from_json(INVALID_DOC)))
        assert doc["accepted"] is False
        assert doc["diagnostics"][0]["code"] == "E230"
