"""
Type inference for declarations, statements and expressions.

The engine walks one declaration at a time, depth-first, operands before
operators and declarations before uses, and records what it learns in an
Annotations side table. The first fatal error raises a CheckError, which
aborts the declaration being checked; the caller collects it.
"""

import logging
from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, Dict, List, Optional

from .ast import (
    AstNode, Block, Statement, VarDecl, AssignmentStatement, ExpressionStatement,
    ReturnStatement, PanicStatement, BreakStatement, ContinueStatement,
    PassStatement, IfStatement, MatchStatement, WhileStatement, ForStatement,
    FunctionDef,
    Expression, Literal, LiteralKind, Identifier, BinaryOp, UnaryOp,
    FunctionCall, MethodCall, MemberAccess, IndexAccess, CastExpr,
    ListLiteral, MapLiteral, SetLiteral, StructLiteral, Operator,
    ARITHMETIC_OPERATORS, ORDERING_OPERATORS, EQUALITY_OPERATORS, LOGICAL_OPERATORS,
)
from .composed import Backing, ComposedTypeResolver, is_assignable
from .errors import (
    error_duplicate_definition, error_not_assignable, error_type_mismatch,
    error_undefined_variable,
)
from .interfaces import InterfaceChecker
from .registry import TypeRegistry
from .source import NO_SPAN, SourceSpan
from .symbols import FunctionSignature, Symbol, SymbolKind, SymbolTable
from .types import (
    Type, PrimitiveType, PrimitiveKind, AliasType, StructType, InterfaceType,
    FunctionType, ArrayType, HashMapType, HashSetType, AbstractComposedType,
    ComposedKind, MemberKind, Width,
    INT, FLOAT, BOOL, STRING,
    is_numeric, is_integer,
)

logger = logging.getLogger(__name__)


class EventKind(Enum):
    """How a variable received a value."""
    DEFAULT = auto()      # Declared with a type and no initializer
    INITIALIZER = auto()  # Declared with an initializer
    ASSIGNMENT = auto()   # Assigned after its declaration


@dataclass(frozen=True)
class AssignmentEvent:
    """One write to a variable. value is None unless statically known."""
    kind: EventKind
    type: Type
    value: Any
    span: SourceSpan


class Annotations:
    """
    Side table of everything the checker learns about the tree.

    Keyed by node identity; the syntax tree itself is never modified.
    """

    def __init__(self):
        self._nodes: Dict[int, AstNode] = {}  # Keeps ids stable
        self.types: Dict[int, Type] = {}
        self.backings: Dict[int, Backing] = {}
        self.signatures: Dict[int, FunctionSignature] = {}
        self.events: Dict[int, List[AssignmentEvent]] = {}

    def _keep(self, node: AstNode) -> int:
        key = id(node)
        self._nodes[key] = node
        return key

    def record_type(self, node: AstNode, type_: Type) -> None:
        self.types[self._keep(node)] = type_

    def record_backing(self, node: AstNode, backing: Backing) -> None:
        self.backings[self._keep(node)] = backing

    def record_signature(self, node: AstNode, signature: FunctionSignature) -> None:
        self.signatures[self._keep(node)] = signature

    def record_event(self, declaration: AstNode, event: AssignmentEvent) -> None:
        self.events.setdefault(self._keep(declaration), []).append(event)

    def type_of(self, node: AstNode) -> Optional[Type]:
        return self.types.get(id(node))

    def backing_of(self, node: AstNode) -> Optional[Backing]:
        return self.backings.get(id(node))

    def signature_of(self, node: AstNode) -> Optional[FunctionSignature]:
        return self.signatures.get(id(node))

    def events_for(self, declaration: AstNode) -> List[AssignmentEvent]:
        return list(self.events.get(id(declaration), []))

    def node(self, key: int) -> Optional[AstNode]:
        return self._nodes.get(key)

    def merge(self, other: "Annotations") -> None:
        """Fold another table into this one (events are appended)."""
        self._nodes.update(other._nodes)
        self.types.update(other.types)
        self.backings.update(other.backings)
        self.signatures.update(other.signatures)
        for key, events in other.events.items():
            self.events.setdefault(key, []).extend(events)

    def __len__(self) -> int:
        return len(self.types)


def default_value(type_: Type) -> Any:
    """
    The value a declaration with a type and no initializer starts with.

    Interfaces have no default (None): there is no concrete value yet.
    """
    return _default_value(type_, frozenset())


def _default_value(type_: Type, visiting: frozenset) -> Any:
    while isinstance(type_, AliasType):
        type_ = type_.underlying
    if isinstance(type_, PrimitiveType):
        if type_.kind == PrimitiveKind.FLOAT:
            return 0.0
        if type_.kind == PrimitiveKind.BOOL:
            return False
        if type_.kind == PrimitiveKind.STRING:
            return ""
        return 0
    if isinstance(type_, ArrayType):
        if type_.length is None:
            return []
        return [_default_value(type_.element, visiting) for _ in range(type_.length)]
    if isinstance(type_, HashMapType):
        return {}
    if isinstance(type_, HashSetType):
        return set()
    if isinstance(type_, AbstractComposedType):
        if type_.kind == ComposedKind.LIST:
            return []
        if type_.kind == ComposedKind.MAP:
            return {}
        return set()
    if isinstance(type_, StructType):
        if type_.type_id in visiting:
            return None
        inner = visiting | {type_.type_id}
        return {name: _default_value(t, inner) for name, t in type_.fields.items()}
    return None


def constant_value(expr: Expression) -> Any:
    """The statically known value of a literal (or negated literal), else None."""
    if isinstance(expr, Literal):
        return expr.value
    if isinstance(expr, UnaryOp) and isinstance(expr.operand, Literal):
        value = expr.operand.value
        if expr.operator == Operator.MINUS and expr.operand.literal_kind in (LiteralKind.INT, LiteralKind.FLOAT):
            return -value
        if expr.operator == Operator.NOT and expr.operand.literal_kind == LiteralKind.BOOL:
            return not value
    return None


_LITERAL_TYPES = {
    LiteralKind.INT: INT,
    LiteralKind.FLOAT: FLOAT,
    LiteralKind.STRING: STRING,
    LiteralKind.BOOL: BOOL,
}


def _is_literal(expr: Expression) -> bool:
    """A literal, or a literal under a unary sign."""
    return isinstance(expr, Literal) or (
        isinstance(expr, UnaryOp) and isinstance(expr.operand, Literal))


def _literal_adopts(literal_type: Type, expected: Optional[Type]) -> bool:
    """Whether a literal takes the primitive type of the location it flows into."""
    if not isinstance(expected, PrimitiveType):
        return False
    if literal_type == INT:
        return expected.is_integer
    if literal_type == FLOAT:
        return expected.kind == PrimitiveKind.FLOAT
    return False


class InferenceEngine:
    """
    Assigns a type to every expression and declaration it visits.

    One engine checks one declaration at a time against a frozen registry;
    the symbol table it is given belongs to that check alone.
    """

    def __init__(self, registry: TypeRegistry, symbols: SymbolTable,
                 interfaces: InterfaceChecker, composed: ComposedTypeResolver,
                 annotations: Optional[Annotations] = None):
        self.registry = registry
        self.symbols = symbols
        self.interfaces = interfaces
        self.composed = composed
        self.annotations = annotations if annotations is not None else Annotations()
        self._signature: Optional[FunctionSignature] = None
        self._loop_depth = 0

    # =========================================================================
    # Assignability
    # =========================================================================

    def is_assignable(self, target: Type, source: Type) -> bool:
        return is_assignable(target, source, self.interfaces)

    def require_assignable(self, target: Type, source: Type, span: SourceSpan) -> None:
        """Raise unless a source value may be stored in a target location."""
        if self.is_assignable(target, source):
            return
        if isinstance(target, InterfaceType):
            self.interfaces.require(source, target, span)
        hints = []
        if self._same_underlying(target, source):
            hints.append(f"use an explicit conversion: {target}(...)")
        raise error_not_assignable(target.name, source.name, span, hints)

    def _same_underlying(self, a: Type, b: Type) -> bool:
        return (isinstance(a, AliasType) or isinstance(b, AliasType)) and \
            self.registry.resolve_underlying(a) == self.registry.resolve_underlying(b)

    # =========================================================================
    # Functions
    # =========================================================================

    def check_function(self, func: FunctionDef, signature: FunctionSignature) -> None:
        """Check a function body with its parameters in scope."""
        self._signature = signature
        self._loop_depth = 0
        self.symbols.push_scope(f"func {func.qualified_name}")
        try:
            if func.receiver is not None:
                self._define(Symbol(func.receiver.name, SymbolKind.RECEIVER, signature.receiver,
                                    func.receiver.span, func.receiver), "receiver")
                self.annotations.record_type(func.receiver, signature.receiver)
            for param, (_, param_type) in zip(func.parameters, signature.params):
                self._define(Symbol(param.name, SymbolKind.PARAMETER, param_type,
                                    param.span, param), "parameter")
                self.annotations.record_type(param, param_type)
            # The body shares the parameter scope: redeclaring a parameter is a duplicate
            for stmt in func.body.statements:
                self.check_statement(stmt)
        finally:
            self.symbols.pop_scope()
            self._signature = None

    def _define(self, symbol: Symbol, what: str) -> None:
        previous = self.symbols.lookup_local(symbol.name)
        if not self.symbols.define(symbol):
            raise error_duplicate_definition(what, symbol.name, symbol.span, previous.span)

    # =========================================================================
    # Statements
    # =========================================================================

    def check_block(self, block: Block, scope_name: str = "block") -> None:
        """Check a block in its own scope."""
        self.symbols.push_scope(scope_name)
        try:
            for stmt in block.statements:
                self.check_statement(stmt)
        finally:
            self.symbols.pop_scope()

    def check_statement(self, stmt: Statement) -> None:
        """Check a statement."""
        if isinstance(stmt, VarDecl):
            self.check_var_decl(stmt)
        elif isinstance(stmt, AssignmentStatement):
            self._check_assignment_statement(stmt)
        elif isinstance(stmt, ExpressionStatement):
            self.check_expression(stmt.expression, allow_procedure=True)
        elif isinstance(stmt, ReturnStatement):
            self._check_return_statement(stmt)
        elif isinstance(stmt, PanicStatement):
            if stmt.message is not None:
                message_type = self.check_expression(stmt.message)
                if message_type != STRING:
                    raise error_not_assignable(STRING.name, message_type.name, stmt.message.span)
        elif isinstance(stmt, (BreakStatement, ContinueStatement)):
            if self._loop_depth == 0:
                keyword = "break" if isinstance(stmt, BreakStatement) else "continue"
                raise error_type_mismatch(f"'{keyword}' outside of a loop", stmt.span)
        elif isinstance(stmt, PassStatement):
            pass
        elif isinstance(stmt, IfStatement):
            self._check_if_statement(stmt)
        elif isinstance(stmt, MatchStatement):
            self._check_match_statement(stmt)
        elif isinstance(stmt, WhileStatement):
            self._check_while_statement(stmt)
        elif isinstance(stmt, ForStatement):
            self._check_for_statement(stmt)
        elif isinstance(stmt, Block):
            self.check_block(stmt)
        else:
            raise error_type_mismatch(f"unsupported statement: {type(stmt).__name__}",
                                      getattr(stmt, "span", NO_SPAN))

    def check_var_decl(self, stmt: VarDecl) -> Type:
        """Check a declaration and define its variable in the current scope."""
        declared = None
        if stmt.type_annotation is not None:
            declared = self.registry.type_from_node(stmt.type_annotation)

        if stmt.initializer is None:
            if declared is None:
                raise error_type_mismatch(
                    f"declaration of '{stmt.name}' needs a type or an initializer", stmt.span)
            var_type = declared
            event = AssignmentEvent(EventKind.DEFAULT, declared, default_value(declared), stmt.span)
            backing = self.composed.backing_for(declared)
            if backing is not None:
                self.annotations.record_backing(stmt, backing)
        else:
            init_type = self.check_expression(stmt.initializer, expected=declared)
            if declared is not None:
                self.require_assignable(declared, init_type, stmt.initializer.span)
            var_type = declared if declared is not None else init_type
            event = AssignmentEvent(EventKind.INITIALIZER, init_type,
                                    constant_value(stmt.initializer), stmt.span)
            if declared is not None and self.annotations.backing_of(stmt.initializer) is None:
                backing = self.composed.backing_for(declared)
                if backing is not None:
                    self.annotations.record_backing(stmt, backing)

        self._define(Symbol(stmt.name, SymbolKind.VARIABLE, var_type, stmt.span, stmt), "variable")
        self.annotations.record_type(stmt, var_type)
        self.annotations.record_event(stmt, event)
        logger.debug("declared %s: %s (%s)", stmt.name, var_type, event.kind.name.lower())
        return var_type

    def _check_assignment_statement(self, stmt: AssignmentStatement) -> None:
        if not isinstance(stmt.target, (Identifier, MemberAccess, IndexAccess)):
            raise error_type_mismatch("cannot assign to this expression", stmt.target.span)
        if isinstance(stmt.target, Identifier) and self.symbols.lookup(stmt.target.name) is None \
                and self.symbols.lookup_function(stmt.target.name) is not None:
            raise error_type_mismatch(
                f"cannot assign to function '{stmt.target.name}'", stmt.target.span)
        target_type = self.check_expression(stmt.target)
        value_type = self.check_expression(stmt.value, expected=target_type)
        self.require_assignable(target_type, value_type, stmt.value.span)

        if isinstance(stmt.target, Identifier):
            symbol = self.symbols.lookup(stmt.target.name)
            if symbol is not None and symbol.declaration is not None:
                self.annotations.record_event(symbol.declaration, AssignmentEvent(
                    EventKind.ASSIGNMENT, value_type, constant_value(stmt.value), stmt.span))

    def _check_return_statement(self, stmt: ReturnStatement) -> None:
        signature = self._signature
        if signature is None:
            raise error_type_mismatch("'return' outside of a function", stmt.span)
        if stmt.value is None:
            if not signature.is_procedure:
                raise error_type_mismatch(
                    f"function '{signature.qualified_name}' must return a value of type "
                    f"'{signature.return_type}'", stmt.span)
            return
        if signature.is_procedure:
            raise error_type_mismatch(
                f"procedure '{signature.qualified_name}' cannot return a value", stmt.value.span)
        value_type = self.check_expression(stmt.value, expected=signature.return_type)
        self.require_assignable(signature.return_type, value_type, stmt.value.span)

    def _require_bool(self, expr: Expression, what: str) -> None:
        cond_type = self.check_expression(expr)
        if cond_type != BOOL:
            raise error_type_mismatch(
                f"{what} must be 'bool', found '{cond_type}'", expr.span)

    def _check_if_statement(self, stmt: IfStatement) -> None:
        self._require_bool(stmt.condition, "if condition")
        self.check_block(stmt.then_branch, "if branch")
        for elif_branch in stmt.elif_branches:
            self._require_bool(elif_branch.condition, "elif condition")
            self.check_block(elif_branch.body, "elif branch")
        if stmt.else_branch is not None:
            self.check_block(stmt.else_branch, "else branch")

    def _check_match_statement(self, stmt: MatchStatement) -> None:
        subject_type = self.check_expression(stmt.subject)
        for case in stmt.cases:
            for value in case.values:
                value_type = self.check_expression(value, expected=subject_type)
                if value_type != subject_type:
                    raise error_not_assignable(subject_type.name, value_type.name, value.span)
            self.check_block(case.body, "match case")
        if stmt.default is not None:
            self.check_block(stmt.default, "match default")

    def _check_while_statement(self, stmt: WhileStatement) -> None:
        self._require_bool(stmt.condition, "while condition")
        self._loop_depth += 1
        try:
            self.check_block(stmt.body, "while loop")
        finally:
            self._loop_depth -= 1

    def _check_for_statement(self, stmt: ForStatement) -> None:
        iterable_type = self.check_expression(stmt.iterable)
        element_type = self._element_type(iterable_type)
        if element_type is None:
            raise error_type_mismatch(f"cannot iterate over '{iterable_type}'", stmt.iterable.span)

        self._loop_depth += 1
        self.symbols.push_scope("for loop")
        try:
            self._define(Symbol(stmt.variable, SymbolKind.VARIABLE, element_type, stmt.span, stmt),
                         "variable")
            self.annotations.record_type(stmt, element_type)
            self.check_block(stmt.body, "for body")
        finally:
            self.symbols.pop_scope()
            self._loop_depth -= 1

    def _element_type(self, type_: Type) -> Optional[Type]:
        """What iterating over a composed value yields (map keys for maps)."""
        resolved = self.registry.resolve_underlying(type_)
        if isinstance(resolved, (ArrayType, HashSetType)):
            return resolved.element
        if isinstance(resolved, HashMapType):
            return resolved.key
        if isinstance(resolved, AbstractComposedType):
            return resolved.params[0]
        return None

    # =========================================================================
    # Expressions
    # =========================================================================

    def check_expression(self, expr: Expression, expected: Optional[Type] = None,
                         allow_procedure: bool = False) -> Optional[Type]:
        """
        Infer and record the type of an expression.

        expected is the type of the location the value flows into, if any;
        it guides composed literals and lets numeric literals take a
        narrower primitive width. Returns None only for a procedure call
        with allow_procedure set.
        """
        if isinstance(expr, Literal):
            result = self._check_literal(expr, expected)
        elif isinstance(expr, Identifier):
            result = self._check_identifier(expr)
        elif isinstance(expr, BinaryOp):
            result = self._check_binary_op(expr)
        elif isinstance(expr, UnaryOp):
            result = self._check_unary_op(expr, expected)
        elif isinstance(expr, FunctionCall):
            result = self._check_function_call(expr, allow_procedure)
        elif isinstance(expr, MethodCall):
            result = self._check_method_call(expr, allow_procedure)
        elif isinstance(expr, MemberAccess):
            result = self._check_member_access(expr)
        elif isinstance(expr, IndexAccess):
            result = self._check_index_access(expr)
        elif isinstance(expr, CastExpr):
            result = self._check_conversion(
                self.registry.type_from_node(expr.target), expr.operand, expr.span)
        elif isinstance(expr, ListLiteral):
            result = self._check_list_literal(expr, expected)
        elif isinstance(expr, MapLiteral):
            result = self._check_map_literal(expr, expected)
        elif isinstance(expr, SetLiteral):
            result = self._check_set_literal(expr, expected)
        elif isinstance(expr, StructLiteral):
            result = self._check_struct_literal(expr)
        else:
            raise error_type_mismatch(f"unsupported expression: {type(expr).__name__}",
                                      getattr(expr, "span", NO_SPAN))

        if result is not None:
            self.annotations.record_type(expr, result)
        return result

    def _check_identifier(self, expr: Identifier) -> Type:
        symbol = self.symbols.lookup(expr.name)
        if symbol is not None:
            return symbol.type
        signature = self.symbols.lookup_function(expr.name)
        if signature is not None:
            return signature.as_function_type()
        raise error_undefined_variable(expr.name, expr.span)

    def _check_literal(self, expr: Literal, expected: Optional[Type],
                       negated: bool = False) -> Type:
        """
        Literals infer to the machine-width type of their kind, unless the
        location expects a primitive of the same kind. Integer constants
        must fit the width they end up with.
        """
        result = _LITERAL_TYPES[expr.literal_kind]
        if _literal_adopts(result, expected):
            result = expected
        if result.is_integer and isinstance(expr.value, int):
            self._require_in_range(-expr.value if negated else expr.value, result, expr.span)
        return result

    def _require_in_range(self, value: int, type_: PrimitiveType, span: SourceSpan) -> None:
        bits = self.composed.word_bits if type_.width == Width.MACHINE else type_.width.value
        if type_.kind == PrimitiveKind.UNSIGNED_INT:
            low, high = 0, 2 ** bits - 1
        else:
            low, high = -2 ** (bits - 1), 2 ** (bits - 1) - 1
        if not low <= value <= high:
            raise error_type_mismatch(
                f"constant {value} does not fit in '{type_}' ({low} to {high})", span)

    def _check_binary_op(self, expr: BinaryOp) -> Type:
        # A literal operand takes the type of the other operand
        if _is_literal(expr.left) and not _is_literal(expr.right):
            right = self.check_expression(expr.right)
            left = self.check_expression(expr.left, expected=right)
        else:
            left = self.check_expression(expr.left)
            right = self.check_expression(expr.right, expected=left)
        op = expr.operator

        if left != right:
            raise error_type_mismatch(
                f"operands of '{op.value}' must have the same type, found '{left}' and '{right}'",
                expr.span)
        resolved = self.registry.resolve_underlying(left)

        if op in ARITHMETIC_OPERATORS:
            if is_numeric(resolved) or (op == Operator.PLUS and resolved == STRING):
                return left
        elif op in ORDERING_OPERATORS:
            if is_numeric(resolved) or resolved == STRING:
                return BOOL
        elif op in EQUALITY_OPERATORS:
            return BOOL
        elif op in LOGICAL_OPERATORS:
            if left == BOOL:
                return BOOL

        raise error_type_mismatch(f"operator '{op.value}' is not defined for '{left}'", expr.span)

    def _check_unary_op(self, expr: UnaryOp, expected: Optional[Type] = None) -> Type:
        if isinstance(expr.operand, Literal) and expr.operator in (Operator.MINUS, Operator.PLUS):
            operand = self._check_literal(expr.operand, expected,
                                          negated=expr.operator == Operator.MINUS)
            self.annotations.record_type(expr.operand, operand)
        else:
            operand = self.check_expression(expr.operand)
        resolved = self.registry.resolve_underlying(operand)

        if expr.operator == Operator.NOT and operand == BOOL:
            return BOOL
        if expr.operator == Operator.MINUS and is_numeric(resolved) and resolved.is_signed:
            return operand
        if expr.operator == Operator.PLUS and is_numeric(resolved):
            return operand
        raise error_type_mismatch(
            f"operator '{expr.operator.value}' is not defined for '{operand}'", expr.span)

    def _check_arguments(self, name: str, params: List[Type],
                         arguments: List[Expression], span: SourceSpan) -> None:
        if len(arguments) != len(params):
            raise error_type_mismatch(
                f"'{name}' takes {len(params)} argument(s), got {len(arguments)}", span)
        for arg, param_type in zip(arguments, params):
            arg_type = self.check_expression(arg, expected=param_type)
            self.require_assignable(param_type, arg_type, arg.span)

    def _call_result(self, name: str, return_type: Optional[Type], allow_procedure: bool,
                     span: SourceSpan) -> Optional[Type]:
        if return_type is None and not allow_procedure:
            raise error_type_mismatch(
                f"procedure '{name}' does not produce a value", span)
        return return_type

    def _check_function_call(self, expr: FunctionCall, allow_procedure: bool) -> Optional[Type]:
        if not isinstance(expr.callee, Identifier):
            raise error_type_mismatch("only named functions can be called", expr.callee.span)
        name = expr.callee.name

        signature = self.symbols.lookup_function(name)
        if signature is not None and self.symbols.lookup(name) is None:
            self.annotations.record_type(expr.callee, signature.as_function_type())
            self._check_arguments(name, [t for _, t in signature.params], expr.arguments, expr.span)
            return self._call_result(name, signature.return_type, allow_procedure, expr.span)

        symbol = self.symbols.lookup(name)
        if symbol is None and name in self.registry:
            # T(x) where T names a type is a conversion
            if len(expr.arguments) != 1:
                raise error_type_mismatch(
                    f"conversion to '{name}' takes exactly one argument", expr.span)
            return self._check_conversion(self.registry.resolve(name, expr.span),
                                          expr.arguments[0], expr.span)

        callee_type = self._check_identifier(expr.callee)
        if not isinstance(callee_type, FunctionType):
            raise error_type_mismatch(f"'{name}' of type '{callee_type}' is not callable",
                                      expr.callee.span)
        self.annotations.record_type(expr.callee, callee_type)
        self._check_arguments(name, list(callee_type.params), expr.arguments, expr.span)
        return self._call_result(name, callee_type.return_type, allow_procedure, expr.span)

    def _check_method_call(self, expr: MethodCall, allow_procedure: bool) -> Optional[Type]:
        object_type = self.check_expression(expr.object)
        member = self.registry.members_of(object_type).get(expr.method)
        if member is None:
            raise error_type_mismatch(f"'{object_type}' has no method '{expr.method}'", expr.span)
        if member.kind != MemberKind.METHOD:
            raise error_type_mismatch(
                f"'{expr.method}' is a field of '{object_type}', not a method", expr.span)
        qualified = f"{object_type}.{expr.method}"
        self._check_arguments(qualified, list(member.type.params), expr.arguments, expr.span)
        return self._call_result(qualified, member.type.return_type, allow_procedure, expr.span)

    def _check_member_access(self, expr: MemberAccess) -> Type:
        object_type = self.check_expression(expr.object)
        member = self.registry.members_of(object_type).get(expr.member)
        if member is None:
            raise error_type_mismatch(f"'{object_type}' has no field '{expr.member}'", expr.span)
        if member.kind != MemberKind.FIELD:
            raise error_type_mismatch(
                f"method '{expr.member}' of '{object_type}' must be called", expr.span)
        return member.type

    def _check_index_access(self, expr: IndexAccess) -> Type:
        object_type = self.check_expression(expr.object)
        resolved = self.registry.resolve_underlying(object_type)

        is_sequence = isinstance(resolved, ArrayType) or (
            isinstance(resolved, AbstractComposedType) and resolved.kind == ComposedKind.LIST)
        is_mapping = isinstance(resolved, HashMapType) or (
            isinstance(resolved, AbstractComposedType) and resolved.kind == ComposedKind.MAP)

        if is_sequence:
            index_type = self.check_expression(expr.index)
            if not is_integer(index_type):
                raise error_type_mismatch(
                    f"index must be an integer, found '{index_type}'", expr.index.span)
            return resolved.element
        if is_mapping:
            index_type = self.check_expression(expr.index, expected=resolved.key)
            self.require_assignable(resolved.key, index_type, expr.index.span)
            return resolved.value
        raise error_type_mismatch(f"'{object_type}' cannot be indexed", expr.span)

    def _check_conversion(self, target: Type, operand: Expression, span: SourceSpan) -> Type:
        """
        Explicit conversion: between types sharing a resolved underlying
        type, between numeric primitives, or to a satisfied interface.
        """
        resolved_target = self.registry.resolve_underlying(target)
        expected = resolved_target if isinstance(operand, (ListLiteral, MapLiteral, SetLiteral)) else None
        source = self.check_expression(operand, expected=expected)
        resolved_source = self.registry.resolve_underlying(source)

        if source == target or resolved_source == resolved_target:
            return target
        if is_numeric(resolved_source) and is_numeric(resolved_target):
            return target
        if isinstance(target, InterfaceType) and self.interfaces.satisfies(source, target):
            return target
        if self.is_assignable(resolved_target, resolved_source):
            return target
        raise error_type_mismatch(f"cannot convert '{source}' to '{target}'", span)

    # =========================================================================
    # Composed Literals
    # =========================================================================

    def _check_list_literal(self, expr: ListLiteral, expected: Optional[Type]) -> Type:
        element_expected = None
        if isinstance(expected, ArrayType) or (
                isinstance(expected, AbstractComposedType) and expected.kind == ComposedKind.LIST):
            element_expected = expected.element
        else:
            expected = None

        element_types = [self.check_expression(e, expected=element_expected) for e in expr.elements]
        backing = self.composed.resolve_list_literal(
            element_types, expected,
            constants=[constant_value(e) for e in expr.elements],
            span=expr.span)
        self.annotations.record_backing(expr, backing)
        if isinstance(expected, ArrayType):
            return backing.concrete
        return backing.abstract

    def _check_map_literal(self, expr: MapLiteral, expected: Optional[Type]) -> Type:
        key_expected = value_expected = None
        if isinstance(expected, HashMapType) or (
                isinstance(expected, AbstractComposedType) and expected.kind == ComposedKind.MAP):
            key_expected, value_expected = expected.key, expected.value
        else:
            expected = None

        key_types = []
        value_types = []
        for entry in expr.entries:
            key_types.append(self.check_expression(entry.key, expected=key_expected))
            value_types.append(self.check_expression(entry.value, expected=value_expected))
        backing = self.composed.resolve_map_literal(key_types, value_types, expected, expr.span)
        self.annotations.record_backing(expr, backing)
        if isinstance(expected, HashMapType):
            return backing.concrete
        return backing.abstract

    def _check_set_literal(self, expr: SetLiteral, expected: Optional[Type]) -> Type:
        element_expected = None
        if isinstance(expected, HashSetType) or (
                isinstance(expected, AbstractComposedType) and expected.kind == ComposedKind.SET):
            element_expected = expected.element
        else:
            expected = None

        element_types = [self.check_expression(e, expected=element_expected) for e in expr.elements]
        backing = self.composed.resolve_set_literal(element_types, expected, expr.span)
        self.annotations.record_backing(expr, backing)
        if isinstance(expected, HashSetType):
            return backing.concrete
        return backing.abstract

    def _check_struct_literal(self, expr: StructLiteral) -> Type:
        struct_type = self.registry.resolve(expr.type_name, expr.span)
        resolved = self.registry.resolve_underlying(struct_type)
        if not isinstance(resolved, StructType):
            raise error_type_mismatch(f"'{struct_type}' is not a struct type", expr.span)

        for name, value in expr.fields.items():
            field_type = resolved.fields.get(name)
            if field_type is None:
                raise error_type_mismatch(f"'{struct_type}' has no field '{name}'", value.span)
            value_type = self.check_expression(value, expected=field_type)
            self.require_assignable(field_type, value_type, value.span)

        missing = [name for name in resolved.fields if name not in expr.fields]
        if missing:
            raise error_type_mismatch(
                f"'{struct_type}' literal is missing field(s): " + ", ".join(f"'{m}'" for m in missing),
                expr.span)
        return struct_type
