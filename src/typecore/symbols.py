"""
Symbol table management for the type checker.

Variables live in scopes; types live in the TypeRegistry, so a variable
may share its name with a type. Function signatures live in a separate
module-wide table that is filled during registration and only read while
function bodies are checked.
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Optional, Dict, List, Tuple, Any

from .source import SourceSpan
from .types import Type, FunctionType


class SymbolKind(Enum):
    """The kind of symbol being tracked."""
    VARIABLE = auto()
    PARAMETER = auto()
    RECEIVER = auto()


@dataclass(eq=False)
class Symbol:
    """A variable in the symbol table."""
    name: str
    kind: SymbolKind
    type: Type
    span: Optional[SourceSpan] = None  # Where it was defined
    declaration: Optional[Any] = None  # The VarDecl/Parameter node


@dataclass
class FunctionSignature:
    """Type signature for a function, procedure or method."""
    name: str
    params: List[Tuple[str, Type]]
    return_type: Optional[Type] = None  # None for procedures
    receiver: Optional[Type] = None     # Set for methods
    span: Optional[SourceSpan] = None

    @property
    def is_procedure(self) -> bool:
        return self.return_type is None

    @property
    def is_method(self) -> bool:
        return self.receiver is not None

    @property
    def qualified_name(self) -> str:
        if self.receiver is not None:
            return f"{self.receiver.name}.{self.name}"
        return self.name

    def as_function_type(self) -> FunctionType:
        """The signature as a type (parameter types in order, return type)."""
        return FunctionType(tuple(t for _, t in self.params), self.return_type)

    def describe(self) -> str:
        params = ", ".join(f"{n}: {t}" for n, t in self.params)
        if self.return_type is None:
            return f"{self.qualified_name}({params})"
        return f"{self.qualified_name}({params}): {self.return_type}"


@dataclass
class Scope:
    """A single scope in the scope stack."""
    symbols: Dict[str, Symbol] = field(default_factory=dict)
    parent: Optional["Scope"] = None
    name: str = ""  # For debugging: "func area", "while loop", etc.
    frozen: bool = False

    def define(self, symbol: Symbol) -> None:
        """Define a symbol in this scope."""
        if self.frozen:
            raise RuntimeError(f"scope '{self.name}' is frozen")
        self.symbols[symbol.name] = symbol

    def lookup_local(self, name: str) -> Optional[Symbol]:
        """Look up a symbol in this scope only."""
        return self.symbols.get(name)

    def lookup(self, name: str) -> Optional[Symbol]:
        """Look up a symbol in this scope or any parent scope."""
        symbol = self.symbols.get(name)
        if symbol is not None:
            return symbol
        if self.parent is not None:
            return self.parent.lookup(name)
        return None

    def freeze(self) -> None:
        self.frozen = True


class SymbolTable:
    """
    Manages scopes and symbol definitions for one checking task.

    Provides:
    - Nested scope management (push/pop)
    - Symbol definition and lookup
    - Function signature lookup

    Each per-function check owns its own SymbolTable; the global scope and
    the function table are shared between them and never written during
    body checking.
    """

    def __init__(self, global_scope: Optional[Scope] = None,
                 functions: Optional[Dict[str, FunctionSignature]] = None):
        self._global_scope = global_scope if global_scope is not None else Scope(name="global")
        self._current_scope = self._global_scope
        self._functions: Dict[str, FunctionSignature] = functions if functions is not None else {}

    @property
    def global_scope(self) -> Scope:
        return self._global_scope

    @property
    def depth(self) -> int:
        depth = 0
        scope = self._current_scope
        while scope.parent is not None:
            depth += 1
            scope = scope.parent
        return depth

    def push_scope(self, name: str = "") -> None:
        """Push a new scope onto the stack."""
        self._current_scope = Scope(parent=self._current_scope, name=name)

    def pop_scope(self) -> None:
        """Pop the current scope."""
        if self._current_scope.parent is not None:
            self._current_scope = self._current_scope.parent

    def define(self, symbol: Symbol) -> bool:
        """
        Define a symbol in the current scope.

        Returns True if successful, False if already defined in current scope.
        Shadowing a name from an enclosing scope is allowed.
        """
        if self._current_scope.lookup_local(symbol.name) is not None:
            return False
        self._current_scope.define(symbol)
        return True

    def lookup(self, name: str) -> Optional[Symbol]:
        """Look up a symbol in the current scope chain."""
        return self._current_scope.lookup(name)

    def lookup_local(self, name: str) -> Optional[Symbol]:
        return self._current_scope.lookup_local(name)

    def lookup_function(self, name: str) -> Optional[FunctionSignature]:
        """Look up a free function signature."""
        return self._functions.get(name)

    def current_scope_name(self) -> str:
        """Get the name of the current scope (for debugging)."""
        return self._current_scope.name
