"""
Unit tests for type inference.

Tests cover:
- Declarations, default values and assignment events
- Nominal aliases and explicit conversions
- Interface-typed locations
- Composed literals and their backings
- Statement rules (conditions, loops, returns, procedures)
"""

import pytest

from typecore import check, ErrorKind
from typecore.builders import (
    lit, binop, unary, call, method_call, member, index, cast,
    list_lit, map_lit, set_lit, struct_lit,
    var, assign, expr_stmt, ret, brk, if_, match, case, while_, for_,
    func, method, alias, struct, interface, method_req, module,
)
from typecore.composed import ArrayLayout
from typecore.inference import EventKind, default_value, constant_value
from typecore.types import (
    AliasType, ArrayType, HashMapType, HashSetType, StructType,
    INT, INT8, FLOAT, FLOAT32, BOOL, STRING, ANY, list_of, map_of, set_of,
)


def main(*body, decls=()):
    """Check a module holding one procedure 'main' with the given body."""
    return check(module(*decls, func("main", {}, None, list(body))))


def only_error(result):
    assert len(result.errors) == 1, [d.message for d in result.errors]
    return result.errors[0]


SHAPES = (
    struct("Circle", {"radius": "float"}),
    struct("Square", {"side": "float"}),
    interface("Shape", method_req("area", returns="float")),
    method(("c", "Circle"), "area", {}, "float", [
        ret(binop(binop(3.14159, "*", member("c", "radius")), "*", member("c", "radius"))),
    ]),
)


# =============================================================================
# Declarations
# =============================================================================

class TestDeclarations:
    """Test variable declarations and assignment events."""

    def test_default_then_assignment(self):
        """n: int then n = 50 records the default 0 and then 50."""
        decl = var("n", "int")
        result = main(decl, assign("n", 50))
        assert result.accepted
        events = result.annotations.events_for(decl)
        assert [(e.kind, e.type, e.value) for e in events] == [
            (EventKind.DEFAULT, INT, 0),
            (EventKind.ASSIGNMENT, INT, 50),
        ]
        assert result.annotations.type_of(decl) == INT

    def test_initializer_infers_type(self):
        """Without an annotation the initializer's type is used."""
        decl = var("ratio", init=0.5)
        result = main(decl)
        assert result.accepted
        assert result.annotations.type_of(decl) == FLOAT
        events = result.annotations.events_for(decl)
        assert events[0].kind == EventKind.INITIALIZER
        assert events[0].value == 0.5

    def test_runtime_value_is_unknown(self):
        """Assignments of non-constant expressions record no value."""
        decl = var("n", "int", 1)
        result = main(decl, assign("n", binop("n", "+", 1)))
        assert result.accepted
        assert result.annotations.events_for(decl)[1].value is None

    def test_needs_type_or_initializer(self):
        """A bare declaration with neither is rejected."""
        result = main(var("x"))
        assert "needs a type or an initializer" in only_error(result).message

    def test_mismatched_initializer(self):
        """An int initializer does not fit a string declaration."""
        result = main(var("s", "string", 5))
        error = only_error(result)
        assert error.kind == ErrorKind.TYPE_MISMATCH
        assert error.message == "type mismatch: expected 'string', found 'int'"

    def test_annotation_narrows_literals(self):
        """x: int8 = 5 and f: float32 = 1.5 give the literals the declared width."""
        small = var("x", "int8", 5)
        single = var("f", "float32", 1.5)
        result = main(small, single, var("u", "uint16", 65535), var("low", "int8", unary("-", 128)))
        assert result.accepted, [d.message for d in result.errors]
        assert result.annotations.type_of(small.initializer) == INT8
        assert result.annotations.type_of(single.initializer) == FLOAT32
        assert result.annotations.events_for(small)[0].type == INT8

    def test_narrow_literal_out_of_range(self):
        """An integer constant must fit the declared width."""
        error = only_error(main(var("x", "int8", 300)))
        assert error.kind == ErrorKind.TYPE_MISMATCH
        assert error.message == "constant 300 does not fit in 'int8' (-128 to 127)"
        assert "does not fit in 'uint8'" in only_error(main(var("u", "uint8", unary("-", 1)))).message

    def test_literal_kinds_do_not_cross(self):
        """A float literal never becomes an integer, and aliases still need a conversion."""
        assert only_error(main(var("x", "int8", 1.5))).message == \
            "type mismatch: expected 'int8', found 'float'"
        result = main(var("c", "Celsius", 21.5), decls=(alias("Celsius", "float"),))
        assert only_error(result).message == "type mismatch: expected 'Celsius', found 'float'"

    def test_literal_operand_takes_other_operand_type(self):
        """Arithmetic and comparisons between a narrow value and a literal keep the width."""
        result = main(
            var("x", "int8", 5),
            var("y", "int8", binop("x", "+", 1)),
            var("small", "bool", binop(100, ">", "x")),
        )
        assert result.accepted, [d.message for d in result.errors]

    def test_duplicate_in_scope(self):
        """A name may be declared once per scope."""
        result = main(var("x", "int", 1), var("x", "int", 2))
        assert only_error(result).kind == ErrorKind.DUPLICATE_DEFINITION

    def test_shadowing_in_nested_block(self):
        """Nested blocks may shadow outer names."""
        result = main(var("x", "int", 1), if_(True, [var("x", "string", lit("inner"))]))
        assert result.accepted

    def test_undefined_variable(self):
        """Using an undeclared name is an unknown-type error."""
        result = main(assign("missing", 1))
        assert only_error(result).kind == ErrorKind.UNKNOWN_TYPE

    def test_module_variables_visible_in_functions(self):
        """Module-level declarations are in scope in every body."""
        result = check(module(
            var("limit", "int", 100),
            func("under", {"n": "int"}, "bool", [ret(binop("n", "<", "limit"))]),
        ))
        assert result.accepted


class TestDefaultValues:
    """Test the values declarations start with."""

    def test_scalars(self):
        """Scalars default to zero, false and the empty string."""
        assert default_value(INT) == 0
        assert default_value(FLOAT) == 0.0
        assert default_value(BOOL) is False
        assert default_value(STRING) == ""

    def test_composed(self):
        """Collections default to empty; fixed arrays to zeroed elements."""
        assert default_value(list_of(INT)) == []
        assert default_value(map_of(STRING, INT)) == {}
        assert default_value(set_of(INT)) == set()
        assert default_value(ArrayType(FLOAT, 3)) == [0.0, 0.0, 0.0]

    def test_nominal(self):
        """Aliases use their underlying default; structs default per field; interfaces have none."""
        assert default_value(AliasType("Celsius", FLOAT)) == 0.0
        point = StructType("Point", {"x": FLOAT, "y": FLOAT})
        assert default_value(point) == {"x": 0.0, "y": 0.0}
        assert default_value(ANY) is None

    def test_constant_values(self):
        """Literals and negated literals are constants; other expressions are not."""
        assert constant_value(lit(4)) == 4
        assert constant_value(unary("-", 1)) == -1
        assert constant_value(unary("not", True)) is False
        assert constant_value(binop(1, "+", 2)) is None


# =============================================================================
# Aliases and Conversions
# =============================================================================

class TestAliases:
    """Test nominal alias rules."""

    TEMPS = (alias("Celsius", "float"), alias("Fahrenheit", "float"))

    def test_underlying_value_needs_conversion(self):
        """A float is not a Celsius without a conversion."""
        result = main(var("c", "Celsius", 21.5), decls=self.TEMPS)
        error = only_error(result)
        assert error.message == "type mismatch: expected 'Celsius', found 'float'"
        assert error.hints == ["use an explicit conversion: Celsius(...)"]

    def test_sibling_aliases_differ(self):
        """Two aliases of float are not interchangeable."""
        result = main(
            var("c", "Celsius", call("Celsius", 21.5)),
            var("f", "Fahrenheit", "c"),
            decls=self.TEMPS,
        )
        assert only_error(result).kind == ErrorKind.TYPE_MISMATCH

    def test_conversion_call(self):
        """T(x) converts between types sharing an underlying type."""
        result = main(
            var("c", "Celsius", call("Celsius", 21.5)),
            var("f", "Fahrenheit", call("Fahrenheit", "c")),
            var("raw", "float", call("float", "f")),
            decls=self.TEMPS,
        )
        assert result.accepted

    def test_cast_expression(self):
        """The cast form behaves like the call form."""
        result = main(var("c", "Celsius", cast("Celsius", 21.5)), decls=self.TEMPS)
        assert result.accepted

    def test_numeric_conversion(self):
        """Numeric primitives convert to each other explicitly."""
        result = main(var("n", "int", call("int", 2.5)), var("x", "uint8", call("uint8", "n")))
        assert result.accepted

    def test_invalid_conversion(self):
        """A string cannot be converted to a number."""
        result = main(var("n", "int", call("int", lit("12"))))
        assert "cannot convert 'string' to 'int'" in only_error(result).message

    def test_conversion_takes_one_argument(self):
        """A conversion call has exactly one argument."""
        result = main(var("n", "int", call("int", 1, 2)))
        assert only_error(result).kind == ErrorKind.TYPE_MISMATCH

    def test_operators_on_aliases(self):
        """Arithmetic keeps the alias type when both operands share it."""
        result = main(
            var("a", "Celsius", call("Celsius", 1.0)),
            var("b", "Celsius", binop("a", "+", "a")),
            decls=self.TEMPS,
        )
        assert result.accepted

    def test_mixed_operands(self):
        """Operands of different types are rejected."""
        result = main(var("x", init=binop(1, "+", 2.0)))
        assert "must have the same type" in only_error(result).message


# =============================================================================
# Interfaces, Structs and Methods
# =============================================================================

class TestInterfaceLocations:
    """Test storing values in interface-typed locations."""

    def test_satisfying_value(self):
        """A Circle can be stored in a Shape."""
        result = main(var("s", "Shape", struct_lit("Circle", radius=1.0)), decls=SHAPES)
        assert result.accepted

    def test_unsatisfying_value(self):
        """A Square without area() cannot be stored in a Shape."""
        result = main(var("s", "Shape", struct_lit("Square", side=2.0)), decls=SHAPES)
        error = only_error(result)
        assert error.kind == ErrorKind.INTERFACE_NOT_SATISFIED
        assert "member 'area' is missing" in error.message

    def test_unsatisfying_list_element(self):
        """An element slot typed as an interface reports the missing member."""
        result = main(var("s", "list[Shape]", list_lit(struct_lit("Square", side=1.0))), decls=SHAPES)
        error = only_error(result)
        assert error.kind == ErrorKind.INTERFACE_NOT_SATISFIED
        assert "'Square' does not satisfy 'Shape': member 'area' is missing" in error.message
        result = main(var("m", "{string: Shape}", map_lit([(lit("a"), struct_lit("Square", side=1.0))])),
                      decls=SHAPES)
        assert only_error(result).kind == ErrorKind.INTERFACE_NOT_SATISFIED

    def test_alias_of_interface(self):
        """Values of an alias of an interface have the interface's methods."""
        result = check(module(
            *SHAPES,
            alias("Outline", "Shape"),
            func("measure", {"o": "Outline"}, "float", [ret(method_call("o", "area"))]),
            func("widen", {"o": "Outline"}, "Shape", [ret("o")]),
        ))
        assert result.accepted, [d.message for d in result.errors]

    def test_any_accepts_everything(self):
        """Every value can be stored in any."""
        result = main(
            var("a", "any", 1),
            var("b", "any", lit("text")),
            var("c", "any", struct_lit("Square", side=2.0)),
            decls=SHAPES,
        )
        assert result.accepted

    def test_argument_passing(self):
        """Arguments are checked against interface parameters."""
        result = check(module(
            *SHAPES,
            func("measure", {"s": "Shape"}, "float", [ret(method_call("s", "area"))]),
            func("main", {}, "float", [ret(call("measure", struct_lit("Circle", radius=2.0)))]),
        ))
        assert result.accepted

    def test_method_and_field_access(self):
        """Methods are called and fields are read through the member table."""
        result = main(
            var("c", "Circle", struct_lit("Circle", radius=1.0)),
            var("a", "float", method_call("c", "area")),
            var("r", "float", member("c", "radius")),
            decls=SHAPES,
        )
        assert result.accepted

    def test_unknown_member(self):
        """Reading a field a struct does not have is a mismatch."""
        result = main(
            var("c", "Circle", struct_lit("Circle", radius=1.0)),
            var("d", "float", member("c", "diameter")),
            decls=SHAPES,
        )
        assert "has no field 'diameter'" in only_error(result).message

    def test_struct_literal_needs_all_fields(self):
        """Struct literals must name every field."""
        result = main(var("p", init=struct_lit("Point", x=1.0)),
                      decls=(struct("Point", {"x": "float", "y": "float"}),))
        assert "missing field(s): 'y'" in only_error(result).message


# =============================================================================
# Composed Literals
# =============================================================================

class TestComposedLiterals:
    """Test literal backings recorded during inference."""

    def test_list_literal_backing(self):
        """[4, -1, 8, 10] is backed by a dynamic int array with a known layout."""
        literal = list_lit(4, unary("-", 1), 8, 10)
        decl = var("xs", init=literal)
        result = main(decl)
        assert result.accepted
        assert result.annotations.type_of(decl) == list_of(INT)
        backing = result.annotations.backing_of(literal)
        assert backing.concrete == ArrayType(INT)
        assert backing.layout == ArrayLayout(INT, 4, 8, 8, (4, -1, 8, 10))

    def test_mixed_list_literal(self):
        """[1, "x"] has no element type."""
        result = main(var("xs", init=list_lit(1, lit("x"))))
        assert only_error(result).message == "literal elements have no common type: 'int', 'string'"

    def test_empty_literal_with_annotation(self):
        """An annotation gives an empty literal its element type."""
        literal = list_lit()
        result = main(var("xs", "list[float]", literal))
        assert result.accepted
        assert result.annotations.backing_of(literal).concrete == ArrayType(FLOAT)

    def test_empty_literal_without_annotation(self):
        """An empty literal alone cannot be typed."""
        result = main(var("xs", init=list_lit()))
        assert "empty literal" in only_error(result).message

    def test_fixed_array_declaration(self):
        """A fixed array annotation takes a literal of the same length."""
        result = main(var("v", "array[float, 3]", list_lit(1.0, 2.0, 3.0)))
        assert result.accepted
        result = main(var("v", "array[float, 3]", list_lit(1.0, 2.0)))
        assert only_error(result).kind == ErrorKind.TYPE_MISMATCH

    def test_declaration_without_literal_gets_backing(self):
        """A declared collection with no initializer records its default backing."""
        decl = var("table", "{string: int}")
        result = main(decl)
        assert result.annotations.backing_of(decl).concrete == HashMapType(STRING, INT)

    def test_map_and_set_literals(self):
        """Maps and sets are backed by hashed types."""
        mapping = map_lit([(lit("a"), 1), (lit("b"), 2)])
        numbers = set_lit(1, 2, 3)
        result = main(var("m", init=mapping), var("s", init=numbers))
        assert result.accepted
        assert result.annotations.backing_of(mapping).concrete == HashMapType(STRING, INT)
        assert result.annotations.backing_of(numbers).concrete == HashSetType(INT)

    def test_indexing(self):
        """Lists take integer indexes; maps take their key type."""
        result = main(
            var("xs", init=list_lit(1, 2)),
            var("m", init=map_lit([(lit("a"), 1.5)])),
            var("first", "int", index("xs", 0)),
            var("a", "float", index("m", lit("a"))),
        )
        assert result.accepted
        result = main(var("xs", init=list_lit(1, 2)), var("y", "int", index("xs", lit("0"))))
        assert "index must be an integer" in only_error(result).message


# =============================================================================
# Statements
# =============================================================================

class TestStatements:
    """Test statement-level rules."""

    def test_condition_must_be_bool(self):
        """if and while conditions are exactly bool."""
        result = main(if_(1, [expr_stmt(call("main"))]))
        assert only_error(result).message == "if condition must be 'bool', found 'int'"
        result = main(while_(lit("yes"), brk()))
        assert "while condition must be 'bool'" in only_error(result).message

    def test_break_outside_loop(self):
        """break needs an enclosing loop."""
        result = main(brk())
        assert only_error(result).message == "'break' outside of a loop"

    def test_bare_return_in_function(self):
        """A function must return a value."""
        result = check(module(func("f", {}, "int", [ret()])))
        assert "must return a value" in only_error(result).message

    def test_value_return_in_procedure(self):
        """A procedure cannot return a value."""
        result = check(module(func("p", {}, None, [ret(1)])))
        assert "cannot return a value" in only_error(result).message

    def test_procedure_in_value_position(self):
        """A procedure call can be a statement but not a value."""
        log = func("log", {"msg": "string"}, None, [])
        assert check(module(log, func("main", {}, None, [expr_stmt(call("log", lit("hi")))]))).accepted
        result = check(module(log, func("main", {}, None, [var("x", "int", call("log", lit("hi")))])))
        assert only_error(result).message == "procedure 'log' does not produce a value"

    def test_argument_count(self):
        """Calls check the number of arguments."""
        result = check(module(
            func("double", {"n": "int"}, "int", [ret(binop("n", "*", 2))]),
            func("main", {}, None, [var("x", "int", call("double", 1, 2))]),
        ))
        assert "takes 1 argument(s), got 2" in only_error(result).message

    def test_for_over_map_yields_keys(self):
        """Iterating a map binds its keys."""
        result = main(
            var("m", "{string: int}"),
            for_("k", "m", var("name", "string", "k")),
        )
        assert result.accepted

    def test_for_over_scalar(self):
        """Scalars cannot be iterated."""
        result = main(for_("i", 10))
        assert "cannot iterate over 'int'" in only_error(result).message

    def test_match_value_types(self):
        """Case values must have the subject's type."""
        result = main(
            var("n", "int", 1),
            match("n", [case([1, 2], expr_stmt(call("main"))), case([lit("three")])]),
        )
        assert only_error(result).message == "type mismatch: expected 'int', found 'string'"

    def test_assignment_to_function(self):
        """A function name is not an assignable location."""
        result = check(module(
            func("g", {}, "int", [ret(1)]),
            func("h", {}, "int", [ret(2)]),
            func("main", {}, None, [assign("g", "h")]),
        ))
        error = only_error(result)
        assert error.kind == ErrorKind.TYPE_MISMATCH
        assert error.message == "cannot assign to function 'g'"

    def test_assignment_to_variable_shadowing_function(self):
        """A variable named like a function is still assignable."""
        result = check(module(
            func("g", {}, "int", [ret(1)]),
            func("main", {}, None, [var("g", "int", 0), assign("g", 5)]),
        ))
        assert result.accepted

    def test_parameter_redeclared_in_body(self):
        """The body shares the parameter scope."""
        result = check(module(func("f", {"n": "int"}, None, [var("n", "int", 0)])))
        assert only_error(result).kind == ErrorKind.DUPLICATE_DEFINITION
