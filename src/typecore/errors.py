"""
Checker diagnostics and error handling.

Error code ranges:
- E20x: Type registry errors (unknown, duplicate, cyclic)
- E21x: Type mismatches found during inference
- E22x: Interface satisfaction failures
- E23x: Control-flow (exhaustive return) failures
- W3xx: Warnings (never change the verdict)
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, List

from .source import SourceSpan


class ErrorKind(Enum):
    """The closed set of fatal diagnostic kinds."""
    UNKNOWN_TYPE = "UnknownType"
    DUPLICATE_DEFINITION = "DuplicateDefinition"
    CYCLIC_ALIAS = "CyclicAlias"
    TYPE_MISMATCH = "TypeMismatch"
    INTERFACE_NOT_SATISFIED = "InterfaceNotSatisfied"
    NON_EXHAUSTIVE_RETURN = "NonExhaustiveReturn"


ERROR_CODES = {
    ErrorKind.UNKNOWN_TYPE: "E201",
    ErrorKind.DUPLICATE_DEFINITION: "E202",
    ErrorKind.CYCLIC_ALIAS: "E203",
    ErrorKind.TYPE_MISMATCH: "E210",
    ErrorKind.INTERFACE_NOT_SATISFIED: "E220",
    ErrorKind.NON_EXHAUSTIVE_RETURN: "E230",
}


class ErrorSeverity(Enum):
    """Severity levels for diagnostics."""
    ERROR = "error"
    WARNING = "warning"


@dataclass
class Diagnostic:
    """A single diagnostic message (error or warning)."""
    kind: Optional[ErrorKind]       # None for warnings
    code: str                       # E201, W301, etc.
    message: str                    # Human-readable message
    span: SourceSpan
    severity: ErrorSeverity = ErrorSeverity.ERROR
    secondary_span: Optional[SourceSpan] = None  # The conflicting definition, if any
    hints: List[str] = field(default_factory=list)

    def format(self) -> str:
        """Format the diagnostic for display."""
        parts = [f"{self.span.start}: {self.severity.value}[{self.code}]: {self.message}"]
        if self.secondary_span is not None:
            parts.append(f"    --> {self.secondary_span.start}: previous definition here")
        for hint in self.hints:
            parts.append(f"    = hint: {hint}")
        return "\n".join(parts)

    def to_json(self) -> dict:
        """Convert to JSON-serializable dict for tooling integration."""
        data = {
            "kind": self.kind.value if self.kind is not None else None,
            "code": self.code,
            "message": self.message,
            "severity": self.severity.value,
            "range": _span_to_json(self.span),
            "hints": list(self.hints),
        }
        if self.secondary_span is not None:
            data["secondary_range"] = _span_to_json(self.secondary_span)
        return data


def _span_to_json(span: SourceSpan) -> dict:
    return {
        "start": {"line": span.start.line, "column": span.start.column},
        "end": {"line": span.end.line, "column": span.end.column},
        "file": span.start.filename,
    }


class CheckError(Exception):
    """Base exception for fatal checking errors; carries its diagnostic."""

    def __init__(self, diagnostic: Diagnostic):
        self.diagnostic = diagnostic
        super().__init__(diagnostic.message)

    @property
    def kind(self) -> ErrorKind:
        return self.diagnostic.kind

    def __str__(self) -> str:
        return self.diagnostic.format()


class UnknownTypeError(CheckError):
    """A type (or variable) name that nothing defines (E201)."""


class DuplicateDefinitionError(CheckError):
    """A name defined twice in the same namespace (E202)."""


class CyclicAliasError(CheckError):
    """An alias chain that names itself (E203)."""


class TypeMismatchError(CheckError):
    """A value of one type used where another is required (E210)."""


class InterfaceNotSatisfiedError(CheckError):
    """A concrete type missing an interface member (E220)."""


class NonExhaustiveReturnError(CheckError):
    """A function with a reachable exit that returns nothing (E230)."""


class RegistryFrozenError(RuntimeError):
    """Raised when a frozen TypeRegistry is mutated (a programming error)."""


def _diag(kind: ErrorKind, message: str, span: SourceSpan,
          secondary_span: Optional[SourceSpan] = None,
          hints: Optional[List[str]] = None) -> Diagnostic:
    return Diagnostic(
        kind=kind,
        code=ERROR_CODES[kind],
        message=message,
        span=span,
        secondary_span=secondary_span,
        hints=hints or [],
    )


# --- Registry errors ---

def error_unknown_type(name: str, span: SourceSpan) -> UnknownTypeError:
    """E201: Unknown type name."""
    return UnknownTypeError(_diag(
        ErrorKind.UNKNOWN_TYPE, f"unknown type '{name}'", span))


def error_undefined_variable(name: str, span: SourceSpan) -> UnknownTypeError:
    """E201: No type is known for an identifier."""
    return UnknownTypeError(_diag(
        ErrorKind.UNKNOWN_TYPE, f"no type is known for '{name}'", span,
        hints=["variables must be declared before use"]))


def error_duplicate_definition(what: str, name: str, span: SourceSpan,
                               previous: Optional[SourceSpan] = None) -> DuplicateDefinitionError:
    """E202: Duplicate definition."""
    return DuplicateDefinitionError(_diag(
        ErrorKind.DUPLICATE_DEFINITION, f"{what} '{name}' is already defined",
        span, secondary_span=previous))


def error_cyclic_alias(chain: List[str], span: SourceSpan) -> CyclicAliasError:
    """E203: Alias chain names itself."""
    return CyclicAliasError(_diag(
        ErrorKind.CYCLIC_ALIAS,
        f"alias '{chain[0]}' resolves to itself: {' -> '.join(chain)}",
        span))


# --- Inference errors ---

def error_type_mismatch(message: str, span: SourceSpan,
                        hints: Optional[List[str]] = None) -> TypeMismatchError:
    """E210: Type mismatch."""
    return TypeMismatchError(_diag(ErrorKind.TYPE_MISMATCH, message, span, hints=hints))


def error_not_assignable(expected: str, found: str, span: SourceSpan,
                         hints: Optional[List[str]] = None) -> TypeMismatchError:
    """E210: Value of one type where another was required."""
    return TypeMismatchError(_diag(
        ErrorKind.TYPE_MISMATCH,
        f"type mismatch: expected '{expected}', found '{found}'",
        span, hints=hints))


# --- Interface errors ---

def error_interface_not_satisfied(type_name: str, interface_name: str, member: str,
                                  reason: str, span: SourceSpan) -> InterfaceNotSatisfiedError:
    """E220: Interface not satisfied."""
    return InterfaceNotSatisfiedError(_diag(
        ErrorKind.INTERFACE_NOT_SATISFIED,
        f"'{type_name}' does not satisfy '{interface_name}': member '{member}' {reason}",
        span))


# --- Control-flow errors ---

def error_non_exhaustive_return(function: str, return_type: str,
                                span: SourceSpan) -> NonExhaustiveReturnError:
    """E230: Not every path returns."""
    return NonExhaustiveReturnError(_diag(
        ErrorKind.NON_EXHAUSTIVE_RETURN,
        f"function '{function}' does not return a '{return_type}' on every path",
        span,
        hints=["a conditional only returns on every path when it has a default branch"]))


# --- Warnings ---

def warning_unreachable(span: SourceSpan) -> Diagnostic:
    """W301: Statement can never execute."""
    return Diagnostic(
        kind=None,
        code="W301",
        message="unreachable statement",
        span=span,
        severity=ErrorSeverity.WARNING,
    )


class DiagnosticCollector:
    """Collects diagnostics during checking."""

    def __init__(self, max_errors: int = 50):
        self.diagnostics: List[Diagnostic] = []
        self.max_errors = max_errors
        self._error_count = 0

    def add(self, diagnostic: Diagnostic) -> None:
        """Add a diagnostic."""
        self.diagnostics.append(diagnostic)
        if diagnostic.severity == ErrorSeverity.ERROR:
            self._error_count += 1

    def add_error(self, error: CheckError) -> None:
        """Add an error exception as a diagnostic."""
        self.add(error.diagnostic)

    def extend(self, diagnostics: List[Diagnostic]) -> None:
        for diagnostic in diagnostics:
            self.add(diagnostic)

    @property
    def error_count(self) -> int:
        return self._error_count

    @property
    def warning_count(self) -> int:
        return sum(1 for d in self.diagnostics if d.severity == ErrorSeverity.WARNING)

    @property
    def has_errors(self) -> bool:
        return self._error_count > 0

    @property
    def has_warnings(self) -> bool:
        return self.warning_count > 0

    @property
    def should_stop(self) -> bool:
        """Check if we've hit the max error limit."""
        return self._error_count >= self.max_errors

    def of_kind(self, kind: ErrorKind) -> List[Diagnostic]:
        return [d for d in self.diagnostics if d.kind == kind]

    def format_all(self) -> str:
        """Format all diagnostics for display."""
        parts = [d.format() for d in self.diagnostics]
        if self._error_count > 0:
            parts.append(f"\n{self._error_count} error(s), {self.warning_count} warning(s)")
        elif self.warning_count > 0:
            parts.append(f"\n{self.warning_count} warning(s)")
        return "\n\n".join(parts)

    def to_json(self) -> dict:
        """Convert all diagnostics to JSON format."""
        return {
            "diagnostics": [d.to_json() for d in self.diagnostics],
            "error_count": self._error_count,
            "warning_count": self.warning_count,
        }
