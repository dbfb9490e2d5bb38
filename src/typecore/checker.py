"""
Type checker entry point.

Runs the registration phase (types, methods, function signatures), freezes
the registry, checks module-level declarations in order, then checks every
function body, optionally on a thread pool. A fatal error aborts only the
declaration it was found in; every other declaration is still checked.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple

from .ast import Module, FunctionDef, VarDecl
from .composed import ComposedTypeResolver
from .config import CheckerConfig
from .errors import (
    CheckError, Diagnostic, DiagnosticCollector, ErrorKind, ErrorSeverity,
    error_duplicate_definition, error_type_mismatch,
)
from .inference import Annotations, InferenceEngine
from .interfaces import InterfaceChecker
from .registry import RegistryBuilder, TypeRegistry
from .source import NO_SPAN
from .symbols import FunctionSignature, Scope, SymbolTable
from .verifier import FunctionVerifier

logger = logging.getLogger(__name__)


@dataclass
class CheckResult:
    """Result of type checking a module."""
    diagnostics: List[Diagnostic]
    annotations: Annotations
    registry: TypeRegistry
    skipped: int = 0  # Declarations left unchecked once max_errors was reached

    @property
    def truncated(self) -> bool:
        """True when checking stopped early at the error limit."""
        return self.skipped > 0

    @property
    def has_errors(self) -> bool:
        return any(d.severity == ErrorSeverity.ERROR for d in self.diagnostics)

    @property
    def has_warnings(self) -> bool:
        return any(d.severity == ErrorSeverity.WARNING for d in self.diagnostics)

    @property
    def accepted(self) -> bool:
        """The verdict: warnings never reject a module."""
        return not self.has_errors

    @property
    def errors(self) -> List[Diagnostic]:
        return [d for d in self.diagnostics if d.severity == ErrorSeverity.ERROR]

    @property
    def warnings(self) -> List[Diagnostic]:
        return [d for d in self.diagnostics if d.severity == ErrorSeverity.WARNING]

    def of_kind(self, kind: ErrorKind) -> List[Diagnostic]:
        return [d for d in self.diagnostics if d.kind == kind]


@dataclass
class _FunctionOutcome:
    diagnostics: List[Diagnostic] = field(default_factory=list)
    annotations: Annotations = field(default_factory=Annotations)


class TypeChecker:
    """
    Type checker for one compilation unit.

    Validates:
    - Type declarations (unknown names, duplicates, alias cycles)
    - Declarations and assignments against the assignability rules
    - Interface satisfaction wherever an interface-typed location is filled
    - Composed literal element types and their backings
    - Exhaustive returns in every normal function
    """

    def __init__(self, config: Optional[CheckerConfig] = None):
        self.config = config if config is not None else CheckerConfig()
        self.registry = TypeRegistry()
        self.diagnostics = DiagnosticCollector(max_errors=self.config.max_errors)
        self.annotations = Annotations()
        self._global_scope = Scope(name="global")
        self._functions: Dict[str, FunctionSignature] = {}
        self._bodies: List[Tuple[FunctionDef, FunctionSignature]] = []
        self.interfaces: Optional[InterfaceChecker] = None
        self.composed: Optional[ComposedTypeResolver] = None
        self.skipped = 0

    def check(self, module: Module) -> CheckResult:
        """Type check a complete module."""
        self._check_module(module)

        result = CheckResult(
            diagnostics=list(self.diagnostics.diagnostics),
            annotations=self.annotations,
            registry=self.registry,
            skipped=self.skipped,
        )
        logger.info("module %s %s: %d error(s), %d warning(s)",
                    module.name or "<anonymous>",
                    "accepted" if result.accepted else "rejected",
                    self.diagnostics.error_count, self.diagnostics.warning_count)
        return result

    # =========================================================================
    # Module Checking
    # =========================================================================

    def _check_module(self, module: Module) -> None:
        """Check a complete module."""
        # First pass: register types, then methods and function signatures
        RegistryBuilder(self.registry, self.diagnostics).build(module)
        for func in module.functions:
            self._register_function(func)
        self.registry.freeze()

        self.interfaces = InterfaceChecker(self.registry)
        self.composed = ComposedTypeResolver(self.registry, self.interfaces, self.config.word_bits)

        # Second pass: module-level declarations, in order
        engine = InferenceEngine(self.registry, SymbolTable(self._global_scope, self._functions),
                                 self.interfaces, self.composed, self.annotations)
        for position, decl in enumerate(module.variables):
            if self.diagnostics.should_stop:
                self.skipped += len(module.variables) - position
                break
            try:
                if not isinstance(decl, VarDecl):
                    raise error_type_mismatch(
                        f"not a variable declaration: {type(decl).__name__}",
                        getattr(decl, "span", NO_SPAN))
                engine.check_var_decl(decl)
            except CheckError as e:
                self.diagnostics.add_error(e)
        self._global_scope.freeze()

        # Third pass: function bodies
        merged = 0
        for outcome in self._check_bodies():
            if self.diagnostics.should_stop:
                break
            self.diagnostics.extend(outcome.diagnostics)
            self.annotations.merge(outcome.annotations)
            merged += 1
        self.skipped += len(self._bodies) - merged

        if self.skipped:
            logger.warning("stopped after %d error(s); %d declaration(s) not checked",
                           self.diagnostics.error_count, self.skipped)
        self.interfaces.log_stats()

    def _register_function(self, func: FunctionDef) -> None:
        """Resolve a function's signature and register it (methods on their receiver)."""
        if not isinstance(func, FunctionDef):
            self.diagnostics.add_error(error_type_mismatch(
                f"not a function definition: {type(func).__name__}",
                getattr(func, "span", NO_SPAN)))
            return
        try:
            params = [(p.name, self.registry.type_from_node(p.type_annotation))
                      for p in func.parameters]
            return_type = None
            if func.return_type is not None:
                return_type = self.registry.type_from_node(func.return_type)

            receiver = None
            if func.receiver is not None:
                receiver = self.registry.type_from_node(func.receiver.type_annotation)

            signature = FunctionSignature(func.name, params, return_type, receiver, func.span)
            if receiver is not None:
                self.registry.add_method(receiver, func.name, signature.as_function_type(), func.span)
            else:
                previous = self._functions.get(func.name)
                if previous is not None:
                    raise error_duplicate_definition("function", func.name, func.span, previous.span)
                self._functions[func.name] = signature
        except CheckError as e:
            self.diagnostics.add_error(e)
            return

        self.annotations.record_signature(func, signature)
        self._bodies.append((func, signature))
        logger.debug("registered %s", signature.describe())

    def _check_bodies(self) -> Iterator[_FunctionOutcome]:
        """Check every registered function; outcomes come back in declaration order."""
        workers = self.config.workers
        if workers > 1 and len(self._bodies) > 1:
            logger.debug("checking %d function(s) on %d worker(s)", len(self._bodies), workers)
            with ThreadPoolExecutor(max_workers=workers) as pool:
                yield from list(pool.map(self._check_function, self._bodies))
            return

        # Lazily, so checking stops once the caller reaches max_errors
        for body in self._bodies:
            yield self._check_function(body)

    def _check_function(self, body: Tuple[FunctionDef, FunctionSignature]) -> _FunctionOutcome:
        """Infer, then verify, one function. Touches no shared mutable state."""
        func, signature = body
        outcome = _FunctionOutcome()
        symbols = SymbolTable(self._global_scope, self._functions)
        engine = InferenceEngine(self.registry, symbols, self.interfaces, self.composed,
                                 outcome.annotations)
        verifier = FunctionVerifier(warn_unreachable=self.config.warn_unreachable)
        try:
            engine.check_function(func, signature)
            verifier.verify(func, signature)
        except CheckError as e:
            outcome.diagnostics.extend(verifier.warnings)
            outcome.diagnostics.append(e.diagnostic)
            logger.debug("function %s rejected: %s", signature.qualified_name, e.diagnostic.message)
        else:
            outcome.diagnostics.extend(verifier.warnings)
        return outcome


def check(module: Module, config: Optional[CheckerConfig] = None) -> CheckResult:
    """Convenience function to type check a module."""
    checker = TypeChecker(config)
    return checker.check(module)
