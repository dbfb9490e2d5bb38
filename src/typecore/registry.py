"""
Type registry: the table of named types for one compilation unit.

The registry is filled during the registration phase (built-ins first,
then every type declaration of the module, then methods), frozen, and
only read afterwards. Lookups preserve nominal identity; structural
questions go through resolve_underlying, which walks alias chains with a
visited set so a chain that names itself is reported instead of looping.
"""

import logging
from typing import Dict, Iterator, List, Optional, Set, Union

from .ast import (
    Module, TypeNode, SimpleType, GenericType,
    TypeAliasDecl, StructDecl, InterfaceDecl, FieldDecl, MethodSig,
)
from .errors import (
    CheckError, CyclicAliasError, DiagnosticCollector, RegistryFrozenError,
    error_cyclic_alias, error_duplicate_definition, error_type_mismatch,
    error_unknown_type,
)
from .source import NO_SPAN, SourceSpan
from .types import (
    Type, AliasType, StructType, InterfaceType, FunctionType,
    ArrayType, HashMapType, HashSetType, AbstractComposedType,
    MemberKind, MemberSignature, BUILTIN_TYPES,
    list_of, map_of, set_of, is_nominal,
)

logger = logging.getLogger(__name__)

# Arity of each composed annotation name
_GENERIC_ARITY = {
    "list": 1,
    "map": 2,
    "set": 1,
    "array": 1,
    "hashmap": 2,
    "hashset": 1,
}


class TypeRegistry:
    """
    Maps type names to Type definitions.

    Provides:
    - define/resolve with DuplicateDefinition and UnknownType errors
    - alias chain resolution with cycle detection
    - member tables (fields, methods, interface requirements)
    - freezing once registration is complete
    """

    def __init__(self):
        self._types: Dict[str, Type] = dict(BUILTIN_TYPES)
        self._spans: Dict[str, SourceSpan] = {}
        self._methods: Dict[Type, Dict[str, MemberSignature]] = {}
        self._method_spans: Dict[tuple, SourceSpan] = {}
        self._frozen = False

    # =========================================================================
    # Registration
    # =========================================================================

    def define(self, name: str, type_: Type, span: SourceSpan = NO_SPAN) -> None:
        """Register a named type. Fails with DuplicateDefinition if taken."""
        self._check_mutable()
        if name in self._types:
            raise error_duplicate_definition("type", name, span, self._spans.get(name))
        self._types[name] = type_
        self._spans[name] = span

    def remove(self, name: str) -> None:
        """Drop a definition that failed registration."""
        self._check_mutable()
        type_ = self._types.pop(name, None)
        self._spans.pop(name, None)
        if type_ is not None:
            self._methods.pop(type_, None)

    def add_method(self, receiver: Union[Type, str], name: str, signature: FunctionType,
                   span: SourceSpan = NO_SPAN) -> None:
        """Attach a method to a user-defined alias or struct type."""
        self._check_mutable()
        if isinstance(receiver, str):
            receiver = self.resolve(receiver, span)
        if not isinstance(receiver, (AliasType, StructType)):
            raise error_type_mismatch(
                f"methods can only be declared on alias or struct types, not '{receiver}'",
                span)
        if self._types.get(receiver.name) != receiver:
            raise error_unknown_type(receiver.name, span)
        if name in self._structural_members(receiver):
            raise error_duplicate_definition(f"member of '{receiver}'", name, span)
        methods = self._methods.setdefault(receiver, {})
        if name in methods:
            raise error_duplicate_definition(
                f"method of '{receiver}'", name, span,
                self._method_spans.get((receiver, name)))
        methods[name] = MemberSignature(name, MemberKind.METHOD, signature)
        self._method_spans[(receiver, name)] = span
        logger.debug("registered method %s.%s: %s", receiver, name, signature)

    def freeze(self) -> None:
        """End the registration phase; the registry is read-only afterwards."""
        self._frozen = True
        logger.debug("type registry frozen with %d names", len(self._types))

    @property
    def frozen(self) -> bool:
        return self._frozen

    def _check_mutable(self) -> None:
        if self._frozen:
            raise RegistryFrozenError("type registry is frozen")

    # =========================================================================
    # Lookup
    # =========================================================================

    def lookup(self, name: str) -> Optional[Type]:
        """Look up a type by name, or None."""
        return self._types.get(name)

    def resolve(self, name: str, span: SourceSpan = NO_SPAN) -> Type:
        """Look up a type by name, keeping its nominal identity."""
        type_ = self._types.get(name)
        if type_ is None:
            raise error_unknown_type(name, span)
        return type_

    def resolve_underlying(self, type_or_name: Union[Type, str],
                           span: SourceSpan = NO_SPAN) -> Type:
        """Follow an alias chain to the first non-alias type."""
        current = self.resolve(type_or_name, span) if isinstance(type_or_name, str) else type_or_name
        chain: List[str] = []
        seen: Set[int] = set()
        while isinstance(current, AliasType):
            if current.type_id in seen:
                chain.append(current.name)
                raise error_cyclic_alias(chain, span)
            seen.add(current.type_id)
            chain.append(current.name)
            if current.underlying is None:
                raise error_unknown_type(current.name, span)
            current = current.underlying
        return current

    def definition_span(self, name: str) -> Optional[SourceSpan]:
        return self._spans.get(name)

    def contains_type(self, type_: Type) -> bool:
        """Check that a nominal type is the one registered under its name."""
        return self._types.get(type_.name) == type_

    def is_builtin(self, name: str) -> bool:
        return name in BUILTIN_TYPES

    def names(self) -> List[str]:
        return list(self._types)

    def user_types(self) -> Iterator[Type]:
        for name, type_ in self._types.items():
            if name not in BUILTIN_TYPES:
                yield type_

    def __contains__(self, name: str) -> bool:
        return name in self._types

    def __len__(self) -> int:
        return len(self._types)

    # =========================================================================
    # Member Tables
    # =========================================================================

    def _fields_of(self, type_: Type) -> Dict[str, Type]:
        if isinstance(type_, AliasType):
            type_ = self.resolve_underlying(type_)
        if isinstance(type_, StructType):
            return type_.fields
        return {}

    def _structural_members(self, type_: Type) -> Dict[str, MemberSignature]:
        """Fields of an underlying struct, or requirements of an underlying interface."""
        if isinstance(type_, AliasType):
            type_ = self.resolve_underlying(type_)
        if isinstance(type_, InterfaceType):
            return dict(type_.members)
        return {name: MemberSignature(name, MemberKind.FIELD, field_type)
                for name, field_type in self._fields_of(type_).items()}

    def methods_of(self, type_: Type) -> Dict[str, MemberSignature]:
        return dict(self._methods.get(type_, {}))

    def members_of(self, type_: Type) -> Dict[str, MemberSignature]:
        """
        The member table a type exposes for interface satisfaction.

        Aliases expose the fields of an underlying struct, or the members
        of an underlying interface, but only their own methods: an alias
        is a distinct nominal type.
        """
        if isinstance(type_, InterfaceType):
            return dict(type_.members)
        members: Dict[str, MemberSignature] = {}
        if isinstance(type_, (AliasType, StructType)):
            members.update(self._structural_members(type_))
        members.update(self._methods.get(type_, {}))
        return members

    # =========================================================================
    # Type Annotations
    # =========================================================================

    def type_from_node(self, node: TypeNode) -> Type:
        """Resolve a type annotation node to a Type."""
        if isinstance(node, SimpleType):
            return self.resolve(node.name, node.span)

        if isinstance(node, GenericType):
            arity = _GENERIC_ARITY.get(node.name)
            if arity is None:
                raise error_unknown_type(node.name, node.span)
            if len(node.type_args) != arity:
                raise error_type_mismatch(
                    f"'{node.name}' takes {arity} type argument(s), got {len(node.type_args)}",
                    node.span)
            args = [self.type_from_node(arg) for arg in node.type_args]
            if node.length is not None and node.name != "array":
                raise error_type_mismatch(
                    f"only arrays have a fixed length, not '{node.name}'", node.span)

            if node.name == "list":
                return list_of(args[0])
            if node.name == "map":
                return map_of(args[0], args[1])
            if node.name == "set":
                return set_of(args[0])
            if node.name == "hashmap":
                return HashMapType(args[0], args[1])
            if node.name == "hashset":
                return HashSetType(args[0])

            if node.length is not None:
                if node.length < 0:
                    raise error_type_mismatch(
                        f"array length must not be negative, got {node.length}", node.span)
                if isinstance(args[0], ArrayType) and args[0].length is not None:
                    raise error_type_mismatch(
                        "multidimensional fixed-size arrays are not supported", node.span)
            return ArrayType(args[0], node.length)

        raise error_type_mismatch(
            f"not a type annotation: {type(node).__name__}", node.span)

    def function_type(self, parameters, return_type: Optional[TypeNode]) -> FunctionType:
        """Build a FunctionType from parameter and return annotations."""
        params = tuple(self.type_from_node(p.type_annotation) for p in parameters)
        ret = self.type_from_node(return_type) if return_type is not None else None
        return FunctionType(params, ret)


def referenced_nominals(type_: Type) -> List[Type]:
    """Nominal types a definition refers to directly (not through their members)."""
    found: List[Type] = []

    def visit(t: Optional[Type]) -> None:
        if t is None:
            return
        if is_nominal(t):
            found.append(t)
        elif isinstance(t, ArrayType):
            visit(t.element)
        elif isinstance(t, HashSetType):
            visit(t.element)
        elif isinstance(t, HashMapType):
            visit(t.key)
            visit(t.value)
        elif isinstance(t, AbstractComposedType):
            for param in t.params:
                visit(param)
        elif isinstance(t, FunctionType):
            for param in t.params:
                visit(param)
            visit(t.return_type)

    if isinstance(type_, AliasType):
        visit(type_.underlying)
    elif isinstance(type_, StructType):
        for field_type in type_.fields.values():
            visit(field_type)
    elif isinstance(type_, InterfaceType):
        for member in type_.members.values():
            visit(member.type)
    return found


class RegistryBuilder:
    """
    Runs the registration phase for a module's type declarations.

    Every declaration gets a shell type first so declarations may refer to
    each other in any order; bodies are linked against the shells, alias
    chains are walked for cycles, and definitions left referring to a
    removed definition are removed in turn. A faulty definition never
    stops its siblings from registering.
    """

    def __init__(self, registry: TypeRegistry, diagnostics: DiagnosticCollector):
        self.registry = registry
        self.diagnostics = diagnostics
        self._declared: Dict[str, tuple] = {}

    def build(self, module: Module) -> TypeRegistry:
        for decl in module.types:
            self._declare(decl)

        failed: Set[str] = set()
        for name, (decl, shell) in self._declared.items():
            try:
                self._link(decl, shell)
            except CheckError as e:
                self.diagnostics.add_error(e)
                failed.add(name)

        for name, (decl, shell) in self._declared.items():
            if name in failed or not isinstance(shell, AliasType):
                continue
            try:
                self.registry.resolve_underlying(shell, decl.span)
            except CyclicAliasError as e:
                self.diagnostics.add_error(e)
                failed.add(name)

        for name in failed:
            self.registry.remove(name)
        self._remove_dangling(failed)

        logger.debug("registered %d type declaration(s), %d rejected",
                     len(self._declared) - len(failed), len(failed))
        return self.registry

    def _declare(self, decl) -> None:
        if isinstance(decl, TypeAliasDecl):
            shell = AliasType(decl.name)
        elif isinstance(decl, StructDecl):
            shell = StructType(decl.name)
        elif isinstance(decl, InterfaceDecl):
            shell = InterfaceType(decl.name)
        else:
            self.diagnostics.add_error(error_type_mismatch(
                f"not a type declaration: {type(decl).__name__}",
                getattr(decl, "span", NO_SPAN)))
            return
        try:
            self.registry.define(decl.name, shell, decl.span)
        except CheckError as e:
            self.diagnostics.add_error(e)
            return
        self._declared[decl.name] = (decl, shell)

    def _link(self, decl, shell: Type) -> None:
        registry = self.registry
        if isinstance(decl, TypeAliasDecl):
            shell.underlying = registry.type_from_node(decl.underlying)
        elif isinstance(decl, StructDecl):
            for field_decl in decl.fields:
                if field_decl.name in shell.fields:
                    raise error_duplicate_definition(
                        f"field of '{decl.name}'", field_decl.name, field_decl.span)
                shell.fields[field_decl.name] = registry.type_from_node(field_decl.type_annotation)
        elif isinstance(decl, InterfaceDecl):
            for member in decl.members:
                if member.name in shell.members:
                    raise error_duplicate_definition(
                        f"member of '{decl.name}'", member.name, member.span)
                if isinstance(member, FieldDecl):
                    sig = MemberSignature(member.name, MemberKind.FIELD,
                                          registry.type_from_node(member.type_annotation))
                elif isinstance(member, MethodSig):
                    sig = MemberSignature(member.name, MemberKind.METHOD,
                                          registry.function_type(member.parameters, member.return_type))
                else:
                    raise error_type_mismatch(
                        f"not an interface member: {type(member).__name__}", member.span)
                shell.members[member.name] = sig

    def _remove_dangling(self, failed: Set[str]) -> None:
        changed = True
        while changed:
            changed = False
            for name, (decl, shell) in self._declared.items():
                if name in failed:
                    continue
                for ref in referenced_nominals(shell):
                    if not self.registry.contains_type(ref):
                        self.diagnostics.add_error(error_unknown_type(ref.name, decl.span))
                        self.registry.remove(name)
                        failed.add(name)
                        changed = True
                        break
