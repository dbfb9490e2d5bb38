"""Convenience constructors for syntax trees.

For embedding the checker behind a parser, and for tests. Expression
arguments accept plain Python values: ``str`` is an identifier reference,
``bool``/``int``/``float`` are literals; use :func:`lit` for string
literals. Type arguments accept either a TypeNode or a type string such
as ``"int"``, ``"list[int]"``, ``"{string: int}"``, ``"{int}"`` or
``"array[float, 3]"``.

Every constructor takes an optional ``span`` keyword: a SourceSpan, or a
line number.
"""

from __future__ import annotations

import re
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

from .ast import (
    AstNode, TypeNode, SimpleType, GenericType,
    Expression, Literal, LiteralKind, Identifier, BinaryOp, UnaryOp, Operator,
    FunctionCall, MethodCall, MemberAccess, IndexAccess, CastExpr,
    ListLiteral, MapEntry, MapLiteral, SetLiteral, StructLiteral,
    Statement, VarDecl, AssignmentStatement, ExpressionStatement, ReturnStatement,
    PanicStatement, BreakStatement, ContinueStatement, PassStatement, Block,
    ElifBranch, IfStatement, MatchCase, MatchStatement, WhileStatement, ForStatement,
    Parameter, FunctionDef, TypeAliasDecl, FieldDecl, MethodSig, StructDecl,
    InterfaceDecl, Module,
)
from .source import NO_SPAN, SourceSpan

__all__ = [
    "type_ref", "lit", "ident", "binop", "unary", "call", "method_call", "member",
    "index", "cast", "list_lit", "map_lit", "set_lit", "struct_lit",
    "var", "assign", "expr_stmt", "ret", "panic", "brk", "cont", "pass_", "block",
    "if_", "elif_", "match", "case", "while_", "for_",
    "param", "func", "method", "alias", "struct", "interface", "field_req",
    "method_req", "module",
]

SpanLike = Union[SourceSpan, int, None]
TypeLike = Union[TypeNode, str]
ExprLike = Union[Expression, str, int, float, bool]


def _span(span: SpanLike) -> SourceSpan:
    if span is None:
        return NO_SPAN
    if isinstance(span, int):
        return SourceSpan.at(span)
    return span


# =============================================================================
# Types
# =============================================================================

_TOKEN = re.compile(r"\s*([A-Za-z_][A-Za-z0-9_]*|\d+|[\[\]{},:])")


def _tokenize_type(text: str) -> List[str]:
    tokens = []
    pos = 0
    text = text.rstrip()
    while pos < len(text):
        m = _TOKEN.match(text, pos)
        if m is None:
            raise ValueError(f"invalid type string {text!r} at {pos}")
        tokens.append(m.group(1))
        pos = m.end()
    return tokens


class _TypeReader:
    def __init__(self, text: str, span: SourceSpan):
        self.text = text
        self.tokens = _tokenize_type(text)
        self.pos = 0
        self.span = span

    def peek(self) -> Optional[str]:
        return self.tokens[self.pos] if self.pos < len(self.tokens) else None

    def take(self, expected: Optional[str] = None) -> str:
        tok = self.peek()
        if tok is None or (expected is not None and tok != expected):
            raise ValueError(f"invalid type string {self.text!r}: expected {expected or 'a type'}")
        self.pos += 1
        return tok

    def read(self) -> TypeNode:
        tok = self.take()
        if tok == "{":
            first = self.read()
            if self.peek() == ":":
                self.take(":")
                value = self.read()
                self.take("}")
                return GenericType(self.span, "map", [first, value])
            self.take("}")
            return GenericType(self.span, "set", [first])
        if not (tok[0].isalpha() or tok[0] == "_"):
            raise ValueError(f"invalid type string {self.text!r}: unexpected {tok!r}")
        if self.peek() != "[":
            return SimpleType(self.span, tok)
        self.take("[")
        args = [self.read()]
        length = None
        while self.peek() == ",":
            self.take(",")
            if self.peek() is not None and self.peek().isdigit():
                length = int(self.take())
            else:
                args.append(self.read())
        self.take("]")
        return GenericType(self.span, tok, args, length)


def type_ref(t: TypeLike, span: SpanLike = None) -> TypeNode:
    """A type annotation node from a TypeNode or a type string."""
    if isinstance(t, TypeNode):
        return t
    reader = _TypeReader(t, _span(span))
    node = reader.read()
    if reader.peek() is not None:
        raise ValueError(f"invalid type string {t!r}: trailing {reader.peek()!r}")
    return node


def _type_or_none(t: Optional[TypeLike], span: SpanLike) -> Optional[TypeNode]:
    return None if t is None else type_ref(t, span)


# =============================================================================
# Expressions
# =============================================================================

def lit(value: Union[int, float, str, bool], span: SpanLike = None) -> Literal:
    """A literal; the kind follows the Python type of value."""
    if isinstance(value, bool):
        kind = LiteralKind.BOOL
    elif isinstance(value, int):
        kind = LiteralKind.INT
    elif isinstance(value, float):
        kind = LiteralKind.FLOAT
    elif isinstance(value, str):
        kind = LiteralKind.STRING
    else:
        raise TypeError(f"no literal for {type(value).__name__}")
    return Literal(_span(span), value, kind)


def ident(name: str, span: SpanLike = None) -> Identifier:
    return Identifier(_span(span), name)


def _expr(value: ExprLike, span: SpanLike = None) -> Expression:
    if isinstance(value, Expression):
        return value
    if isinstance(value, str):
        return ident(value, span)
    return lit(value, span)


def _exprs(values: Iterable[ExprLike], span: SpanLike) -> List[Expression]:
    return [_expr(v, span) for v in values]


def binop(left: ExprLike, op: Union[Operator, str], right: ExprLike, span: SpanLike = None) -> BinaryOp:
    return BinaryOp(_span(span), _expr(left, span), Operator(op), _expr(right, span))


def unary(op: Union[Operator, str], operand: ExprLike, span: SpanLike = None) -> UnaryOp:
    return UnaryOp(_span(span), Operator(op), _expr(operand, span))


def call(name: str, *args: ExprLike, span: SpanLike = None) -> FunctionCall:
    return FunctionCall(_span(span), ident(name, span), _exprs(args, span))


def method_call(obj: ExprLike, name: str, *args: ExprLike, span: SpanLike = None) -> MethodCall:
    return MethodCall(_span(span), _expr(obj, span), name, _exprs(args, span))


def member(obj: ExprLike, name: str, span: SpanLike = None) -> MemberAccess:
    return MemberAccess(_span(span), _expr(obj, span), name)


def index(obj: ExprLike, i: ExprLike, span: SpanLike = None) -> IndexAccess:
    return IndexAccess(_span(span), _expr(obj, span), _expr(i, span))


def cast(target: TypeLike, operand: ExprLike, span: SpanLike = None) -> CastExpr:
    return CastExpr(_span(span), type_ref(target, span), _expr(operand, span))


def list_lit(*elements: ExprLike, span: SpanLike = None) -> ListLiteral:
    return ListLiteral(_span(span), _exprs(elements, span))


def map_lit(entries: Sequence[Tuple[ExprLike, ExprLike]] = (), span: SpanLike = None) -> MapLiteral:
    return MapLiteral(_span(span), [
        MapEntry(_span(span), _expr(k, span), _expr(v, span)) for k, v in entries
    ])


def set_lit(*elements: ExprLike, span: SpanLike = None) -> SetLiteral:
    return SetLiteral(_span(span), _exprs(elements, span))


def struct_lit(type_name: str, span: SpanLike = None, **fields: ExprLike) -> StructLiteral:
    return StructLiteral(_span(span), type_name, {k: _expr(v, span) for k, v in fields.items()})


# =============================================================================
# Statements
# =============================================================================

def var(name: str, type_: Optional[TypeLike] = None, init: Optional[ExprLike] = None,
        span: SpanLike = None) -> VarDecl:
    """x: T = init, x: T, or x = init."""
    return VarDecl(_span(span), name, _type_or_none(type_, span),
                   None if init is None else _expr(init, span))


def assign(target: ExprLike, value: ExprLike, span: SpanLike = None) -> AssignmentStatement:
    return AssignmentStatement(_span(span), _expr(target, span), _expr(value, span))


def expr_stmt(expression: ExprLike, span: SpanLike = None) -> ExpressionStatement:
    return ExpressionStatement(_span(span), _expr(expression, span))


def ret(value: Optional[ExprLike] = None, span: SpanLike = None) -> ReturnStatement:
    return ReturnStatement(_span(span), None if value is None else _expr(value, span))


def panic(message: Optional[ExprLike] = None, span: SpanLike = None) -> PanicStatement:
    return PanicStatement(_span(span), None if message is None else _expr(message, span))


def brk(span: SpanLike = None) -> BreakStatement:
    return BreakStatement(_span(span))


def cont(span: SpanLike = None) -> ContinueStatement:
    return ContinueStatement(_span(span))


def pass_(span: SpanLike = None) -> PassStatement:
    return PassStatement(_span(span))


def block(*statements: Statement, span: SpanLike = None) -> Block:
    return Block(_span(span), list(statements))


def _block(body: Union[Block, Sequence[Statement]], span: SpanLike) -> Block:
    if isinstance(body, Block):
        return body
    return block(*body, span=span)


def elif_(condition: ExprLike, *body: Statement, span: SpanLike = None) -> ElifBranch:
    return ElifBranch(_span(span), _expr(condition, span), block(*body, span=span))


def if_(condition: ExprLike, then: Union[Block, Sequence[Statement]],
        elifs: Sequence[ElifBranch] = (),
        else_: Optional[Union[Block, Sequence[Statement]]] = None,
        span: SpanLike = None) -> IfStatement:
    return IfStatement(_span(span), _expr(condition, span), _block(then, span), list(elifs),
                       None if else_ is None else _block(else_, span))


def case(values: Sequence[ExprLike], *body: Statement, span: SpanLike = None) -> MatchCase:
    return MatchCase(_span(span), _exprs(values, span), block(*body, span=span))


def match(subject: ExprLike, cases: Sequence[MatchCase],
          default: Optional[Union[Block, Sequence[Statement]]] = None,
          span: SpanLike = None) -> MatchStatement:
    return MatchStatement(_span(span), _expr(subject, span), list(cases),
                          None if default is None else _block(default, span))


def while_(condition: ExprLike, *body: Statement, span: SpanLike = None) -> WhileStatement:
    return WhileStatement(_span(span), _expr(condition, span), block(*body, span=span))


def for_(variable: str, iterable: ExprLike, *body: Statement, span: SpanLike = None) -> ForStatement:
    return ForStatement(_span(span), variable, _expr(iterable, span), block(*body, span=span))


# =============================================================================
# Declarations
# =============================================================================

Params = Union[Dict[str, TypeLike], Sequence[Tuple[str, TypeLike]]]


def param(name: str, type_: TypeLike, span: SpanLike = None) -> Parameter:
    return Parameter(_span(span), name, type_ref(type_, span))


def _params(params: Params, span: SpanLike) -> List[Parameter]:
    items = params.items() if isinstance(params, dict) else params
    return [param(name, t, span) for name, t in items]


def func(name: str, params: Params = (), returns: Optional[TypeLike] = None,
         body: Sequence[Statement] = (), span: SpanLike = None) -> FunctionDef:
    """A function (returns set) or procedure (returns None)."""
    return FunctionDef(_span(span), name, _params(params, span),
                       _type_or_none(returns, span), block(*body, span=span))


def method(receiver: Tuple[str, str], name: str, params: Params = (),
           returns: Optional[TypeLike] = None, body: Sequence[Statement] = (),
           span: SpanLike = None) -> FunctionDef:
    """A method; receiver is (name, type name)."""
    fn = func(name, params, returns, body, span)
    fn.receiver = param(receiver[0], receiver[1], span)
    return fn


def alias(name: str, underlying: TypeLike, span: SpanLike = None) -> TypeAliasDecl:
    return TypeAliasDecl(_span(span), name, type_ref(underlying, span))


def struct(name: str, fields: Params = (), span: SpanLike = None) -> StructDecl:
    items = fields.items() if isinstance(fields, dict) else fields
    return StructDecl(_span(span), name, [
        FieldDecl(_span(span), fname, type_ref(ftype, span)) for fname, ftype in items
    ])


def field_req(name: str, type_: TypeLike, span: SpanLike = None) -> FieldDecl:
    return FieldDecl(_span(span), name, type_ref(type_, span))


def method_req(name: str, params: Params = (), returns: Optional[TypeLike] = None,
               span: SpanLike = None) -> MethodSig:
    return MethodSig(_span(span), name, _params(params, span), _type_or_none(returns, span))


def interface(name: str, *members: Union[FieldDecl, MethodSig], span: SpanLike = None) -> InterfaceDecl:
    return InterfaceDecl(_span(span), name, list(members))


def module(*decls: AstNode, name: Optional[str] = None, span: SpanLike = None) -> Module:
    """A module; declarations are sorted into types, variables and functions."""
    mod = Module(_span(span), name)
    for decl in decls:
        if isinstance(decl, (TypeAliasDecl, StructDecl, InterfaceDecl)):
            mod.types.append(decl)
        elif isinstance(decl, VarDecl):
            mod.variables.append(decl)
        elif isinstance(decl, FunctionDef):
            mod.functions.append(decl)
        else:
            raise TypeError(f"not a module-level declaration: {type(decl).__name__}")
    return mod
