"""
typecore: a static type checker core.

This package provides:
- Type representation: primitives, nominal aliases, structs, interfaces,
  abstract composed types (list/map/set) and their concrete backings
- Type registry: named types, alias resolution, cycle detection
- Type inference: declarations, assignments, expressions
- Interface satisfaction: structural, first-mismatch reporting
- Function verification: exhaustive returns and reachability

Usage:
    from typecore import check
    from typecore.builders import module, func, var, ret, if_, binop

    mod = module(
        func("invalid", {"n": "int"}, "int", [
            if_(binop("n", "<", 100), [ret(binop("n", "*", 2))]),
        ]),
    )
    result = check(mod)
    if not result.accepted:
        for diag in result.diagnostics:
            print(diag.format())
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("typecore")
except PackageNotFoundError:  # pragma: no cover - handled when package not installed
    __version__ = "unknown"

from .source import (
    SourceLocation,
    SourceSpan,
    NO_SPAN,
)

from .types import (
    Type,
    PrimitiveType,
    PrimitiveKind,
    Width,
    AliasType,
    StructType,
    InterfaceType,
    FunctionType,
    ArrayType,
    HashMapType,
    HashSetType,
    AbstractComposedType,
    ComposedKind,
    MemberKind,
    MemberSignature,
    INT, INT8, INT16, INT32, INT64,
    UINT, UINT8, UINT16, UINT32, UINT64,
    FLOAT, FLOAT32, FLOAT64,
    BOOL, STRING, ANY,
    BUILTIN_TYPES,
    list_of,
    map_of,
    set_of,
)

from .errors import (
    ErrorKind,
    ErrorSeverity,
    Diagnostic,
    DiagnosticCollector,
    CheckError,
    UnknownTypeError,
    DuplicateDefinitionError,
    CyclicAliasError,
    TypeMismatchError,
    InterfaceNotSatisfiedError,
    NonExhaustiveReturnError,
    RegistryFrozenError,
)

from .symbols import (
    Symbol,
    SymbolKind,
    Scope,
    SymbolTable,
    FunctionSignature,
)

from .registry import (
    TypeRegistry,
    RegistryBuilder,
)

from .interfaces import (
    InterfaceChecker,
    MemberMismatch,
)

from .composed import (
    ComposedTypeResolver,
    Backing,
    ArrayLayout,
    default_backing,
    is_assignable,
)

from .inference import (
    InferenceEngine,
    Annotations,
    AssignmentEvent,
    EventKind,
    default_value,
    constant_value,
)

from .verifier import (
    Flow,
    FunctionVerifier,
)

from .config import (
    CheckerConfig,
    ConfigError,
    load_config,
)

from .checker import (
    TypeChecker,
    CheckResult,
    check,
)

from .serialize import (
    TreeFormatError,
    module_from_json,
    module_to_json,
    result_to_json,
)

__all__ = [
    "__version__",
    # Source
    "SourceLocation", "SourceSpan", "NO_SPAN",
    # Types
    "Type", "PrimitiveType", "PrimitiveKind", "Width",
    "AliasType", "StructType", "InterfaceType", "FunctionType",
    "ArrayType", "HashMapType", "HashSetType", "AbstractComposedType",
    "ComposedKind", "MemberKind", "MemberSignature",
    "INT", "INT8", "INT16", "INT32", "INT64",
    "UINT", "UINT8", "UINT16", "UINT32", "UINT64",
    "FLOAT", "FLOAT32", "FLOAT64", "BOOL", "STRING", "ANY",
    "BUILTIN_TYPES", "list_of", "map_of", "set_of",
    # Errors
    "ErrorKind", "ErrorSeverity", "Diagnostic", "DiagnosticCollector",
    "CheckError", "UnknownTypeError", "DuplicateDefinitionError",
    "CyclicAliasError", "TypeMismatchError", "InterfaceNotSatisfiedError",
    "NonExhaustiveReturnError", "RegistryFrozenError",
    # Symbols
    "Symbol", "SymbolKind", "Scope", "SymbolTable", "FunctionSignature",
    # Components
    "TypeRegistry", "RegistryBuilder",
    "InterfaceChecker", "MemberMismatch",
    "ComposedTypeResolver", "Backing", "ArrayLayout", "default_backing", "is_assignable",
    "InferenceEngine", "Annotations", "AssignmentEvent", "EventKind",
    "default_value", "constant_value",
    "Flow", "FunctionVerifier",
    # Configuration
    "CheckerConfig", "ConfigError", "load_config",
    # Checker
    "TypeChecker", "CheckResult", "check",
    # Interchange
    "TreeFormatError", "module_from_json", "module_to_json", "result_to_json",
]
