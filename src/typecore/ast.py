"""
Syntax tree node definitions consumed by the checker.

The tree is produced by an external parser (or by typecore.builders, or
loaded from JSON by typecore.serialize) and is never modified by the
checker: inferred types and composed-type backings are recorded in a
separate Annotations table keyed by node identity.

Surface syntax shown in docstrings is illustrative only.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union
from abc import ABC

from .source import SourceSpan


# =============================================================================
# Base Classes
# =============================================================================

@dataclass(eq=False)
class AstNode(ABC):
    """Base class for all AST nodes."""
    span: SourceSpan  # Source location for error reporting

    def accept(self, visitor: "AstVisitor") -> Any:
        """Accept a visitor for traversal."""
        method_name = f"visit_{self.__class__.__name__}"
        method = getattr(visitor, method_name, visitor.generic_visit)
        return method(self)


class AstVisitor(ABC):
    """Base class for AST visitors."""

    def generic_visit(self, node: AstNode) -> Any:
        """Default visit method."""
        raise NotImplementedError(f"No visitor for {node.__class__.__name__}")


class LiteralKind(Enum):
    """Kinds of literal values."""
    INT = "int"
    FLOAT = "float"
    STRING = "string"
    BOOL = "bool"


class Operator(Enum):
    """Unary and binary operators."""
    PLUS = "+"
    MINUS = "-"
    STAR = "*"
    SLASH = "/"
    PERCENT = "%"
    EQ = "=="
    NE = "!="
    LT = "<"
    LE = "<="
    GT = ">"
    GE = ">="
    AND = "and"
    OR = "or"
    NOT = "not"


ARITHMETIC_OPERATORS = frozenset({
    Operator.PLUS, Operator.MINUS, Operator.STAR, Operator.SLASH, Operator.PERCENT,
})
ORDERING_OPERATORS = frozenset({Operator.LT, Operator.LE, Operator.GT, Operator.GE})
EQUALITY_OPERATORS = frozenset({Operator.EQ, Operator.NE})
LOGICAL_OPERATORS = frozenset({Operator.AND, Operator.OR})


# =============================================================================
# Type Nodes
# =============================================================================

@dataclass(eq=False)
class TypeNode(AstNode):
    """Base class for type annotations."""
    pass


@dataclass(eq=False)
class SimpleType(TypeNode):
    """A named type like 'int', 'Celsius' or 'Shape'."""
    name: str


@dataclass(eq=False)
class GenericType(TypeNode):
    """A composed type annotation.

    name is one of:
        list      list[T]
        map       {K: V}
        set       {T}
        array     array[T] or array[T, N] (length set)
        hashmap   hashmap[K, V]
        hashset   hashset[T]
    """
    name: str
    type_args: List[TypeNode]
    length: Optional[int] = None  # Fixed-size arrays only


# =============================================================================
# Expression Nodes
# =============================================================================

@dataclass(eq=False)
class Expression(AstNode):
    """Base class for all expressions."""
    pass


@dataclass(eq=False)
class Literal(Expression):
    """A literal value (int, float, string, bool)."""
    value: Union[int, float, str, bool]
    literal_kind: LiteralKind


@dataclass(eq=False)
class Identifier(Expression):
    """A variable name reference."""
    name: str


@dataclass(eq=False)
class BinaryOp(Expression):
    """A binary operation (e.g., a + b, x and y)."""
    left: Expression
    operator: Operator
    right: Expression


@dataclass(eq=False)
class UnaryOp(Expression):
    """A unary operation (e.g., not x, -n)."""
    operator: Operator
    operand: Expression


@dataclass(eq=False)
class FunctionCall(Expression):
    """A function call, or a conversion when the callee names a type."""
    callee: Expression  # Identifier
    arguments: List[Expression] = field(default_factory=list)


@dataclass(eq=False)
class MethodCall(Expression):
    """A method call (e.g., shape.area())."""
    object: Expression
    method: str
    arguments: List[Expression] = field(default_factory=list)


@dataclass(eq=False)
class MemberAccess(Expression):
    """Field access (e.g., point.x)."""
    object: Expression
    member: str


@dataclass(eq=False)
class IndexAccess(Expression):
    """Index access (e.g., items[0], ages["bob"])."""
    object: Expression
    index: Expression


@dataclass(eq=False)
class CastExpr(Expression):
    """An explicit conversion (e.g., Celsius(21.5) or x as int32)."""
    target: TypeNode
    operand: Expression


@dataclass(eq=False)
class ListLiteral(Expression):
    """A list literal (e.g., [4, -1, 8, 10])."""
    elements: List[Expression]


@dataclass(eq=False)
class MapEntry(AstNode):
    """One key: value pair of a map literal."""
    key: Expression
    value: Expression


@dataclass(eq=False)
class MapLiteral(Expression):
    """A map literal (e.g., {"bob": 42})."""
    entries: List[MapEntry]


@dataclass(eq=False)
class SetLiteral(Expression):
    """A set literal (e.g., {1, 2, 3})."""
    elements: List[Expression]


@dataclass(eq=False)
class StructLiteral(Expression):
    """A struct construction (e.g., Point{x: 1.0, y: 2.0})."""
    type_name: str
    fields: Dict[str, Expression] = field(default_factory=dict)


# =============================================================================
# Statement Nodes
# =============================================================================

@dataclass(eq=False)
class Statement(AstNode):
    """Base class for all statements."""
    pass


@dataclass(eq=False)
class VarDecl(Statement):
    """A variable declaration.

    Syntax options:
        x = 42              # Type inferred
        x: int = 42         # Explicit type, assignability checked
        x: int              # Explicit type, default value (0)
    """
    name: str
    type_annotation: Optional[TypeNode] = None
    initializer: Optional[Expression] = None


@dataclass(eq=False)
class AssignmentStatement(Statement):
    """An assignment to an existing location (e.g., x = 5)."""
    target: Expression  # Identifier or member/index access
    value: Expression


@dataclass(eq=False)
class ExpressionStatement(Statement):
    """An expression used as a statement."""
    expression: Expression


@dataclass(eq=False)
class ReturnStatement(Statement):
    """A return statement; value is None for a bare return."""
    value: Optional[Expression] = None


@dataclass(eq=False)
class PanicStatement(Statement):
    """An unconditional failure; control never continues past it."""
    message: Optional[Expression] = None


@dataclass(eq=False)
class BreakStatement(Statement):
    """Leave the innermost loop."""
    pass


@dataclass(eq=False)
class ContinueStatement(Statement):
    """Skip to the next iteration of the innermost loop."""
    pass


@dataclass(eq=False)
class PassStatement(Statement):
    """A pass statement (placeholder for empty blocks)."""
    pass


@dataclass(eq=False)
class Block(AstNode):
    """A block of statements; opens a new scope."""
    statements: List[Statement] = field(default_factory=list)


@dataclass(eq=False)
class ElifBranch(AstNode):
    """An elif branch of an if statement."""
    condition: Expression
    body: Block


@dataclass(eq=False)
class IfStatement(Statement):
    """An if statement.

    Syntax:
        if condition { ... } elif condition { ... } else { ... }
    """
    condition: Expression
    then_branch: Block
    elif_branches: List[ElifBranch] = field(default_factory=list)
    else_branch: Optional[Block] = None


@dataclass(eq=False)
class MatchCase(AstNode):
    """One arm of a match statement; matches any of its values."""
    values: List[Expression]
    body: Block


@dataclass(eq=False)
class MatchStatement(Statement):
    """A match statement with an optional default arm."""
    subject: Expression
    cases: List[MatchCase] = field(default_factory=list)
    default: Optional[Block] = None


@dataclass(eq=False)
class WhileStatement(Statement):
    """A while loop (e.g., while condition { ... })."""
    condition: Expression
    body: Block


@dataclass(eq=False)
class ForStatement(Statement):
    """A for loop over a composed value (e.g., for x in items { ... })."""
    variable: str
    iterable: Expression
    body: Block


# =============================================================================
# Declarations
# =============================================================================

@dataclass(eq=False)
class Parameter(AstNode):
    """A function parameter (or method receiver)."""
    name: str
    type_annotation: TypeNode


@dataclass(eq=False)
class FunctionDef(AstNode):
    """A function, procedure or method definition.

    Syntax:
        func name(a: int, b: int): int { ... }      # function
        func name(a: int) { ... }                   # procedure
        func (c Celsius) name(): string { ... }     # method on Celsius
    """
    name: str
    parameters: List[Parameter]
    return_type: Optional[TypeNode]  # None for procedures
    body: Block
    receiver: Optional[Parameter] = None

    @property
    def qualified_name(self) -> str:
        if self.receiver is not None and isinstance(self.receiver.type_annotation, SimpleType):
            return f"{self.receiver.type_annotation.name}.{self.name}"
        return self.name


@dataclass(eq=False)
class TypeAliasDecl(AstNode):
    """A nominal alias (e.g., type Celsius: float)."""
    name: str
    underlying: TypeNode


@dataclass(eq=False)
class FieldDecl(AstNode):
    """A struct field, or a field an interface requires."""
    name: str
    type_annotation: TypeNode


@dataclass(eq=False)
class MethodSig(AstNode):
    """A method an interface requires (signature only)."""
    name: str
    parameters: List[Parameter]
    return_type: Optional[TypeNode] = None


@dataclass(eq=False)
class StructDecl(AstNode):
    """A struct type (e.g., struct Point { x: float, y: float })."""
    name: str
    fields: List[FieldDecl] = field(default_factory=list)


@dataclass(eq=False)
class InterfaceDecl(AstNode):
    """An interface (e.g., interface Shape { area(): float })."""
    name: str
    members: List[Union[FieldDecl, MethodSig]] = field(default_factory=list)


TypeDecl = Union[TypeAliasDecl, StructDecl, InterfaceDecl]


@dataclass(eq=False)
class Module(AstNode):
    """A complete compilation unit."""
    name: Optional[str]
    types: List[TypeDecl] = field(default_factory=list)
    variables: List[VarDecl] = field(default_factory=list)  # Module-level declarations
    functions: List[FunctionDef] = field(default_factory=list)  # Includes methods
