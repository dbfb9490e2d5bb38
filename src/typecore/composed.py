"""
Composed-type resolution: abstract list/map/set types to concrete backings.

The backing table is fixed:

    list[T]   -> array[T]        (dynamic)
    {K: V}    -> hashmap[K, V]
    {T}       -> hashset[T]

Construction-site literals are resolved against the type the site expects
(declaration annotation, parameter or field type) when there is one, and
otherwise against the least common type of their elements. Layout facts
(array length header, element sizes, statically known element values) are
computed here for collaborators that lay out memory; they never take part
in type identity.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional, Sequence, Set, Tuple

from .errors import error_not_assignable, error_type_mismatch
from .interfaces import InterfaceChecker
from .registry import TypeRegistry
from .source import NO_SPAN, SourceSpan
from .types import (
    Type, PrimitiveType, AliasType, StructType, InterfaceType, FunctionType,
    ArrayType, HashMapType, HashSetType, AbstractComposedType, ComposedKind,
    Width, list_of, map_of, set_of,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ArrayLayout:
    """
    Memory layout of an array value.

    One machine-word length field followed by `length` elements stored
    contiguously in declaration order. `elements` holds the statically
    known element values (None where an element is not a constant).
    """
    element_type: Type
    length: int
    length_field_bytes: int
    element_bytes: int
    elements: Tuple[Any, ...] = ()

    @property
    def total_bytes(self) -> int:
        return self.length_field_bytes + self.length * self.element_bytes


@dataclass(frozen=True)
class Backing:
    """The concrete type chosen for a composed value at its construction site."""
    concrete: Type
    abstract: AbstractComposedType
    layout: Optional[ArrayLayout] = None


def default_backing(abstract: AbstractComposedType) -> Type:
    """The fixed concrete backing of an abstract composed type."""
    if abstract.kind == ComposedKind.LIST:
        return ArrayType(abstract.element)
    if abstract.kind == ComposedKind.MAP:
        return HashMapType(abstract.key, abstract.value)
    return HashSetType(abstract.element)


def abstract_of(concrete: Type) -> Optional[AbstractComposedType]:
    """The abstract composed type a concrete backing implements, if any."""
    if isinstance(concrete, ArrayType):
        return list_of(concrete.element)
    if isinstance(concrete, HashMapType):
        return map_of(concrete.key, concrete.value)
    if isinstance(concrete, HashSetType):
        return set_of(concrete.element)
    return None


def is_assignable(target: Type, source: Type, interfaces: InterfaceChecker) -> bool:
    """
    Check whether a value of type source may be stored where target is declared.

    - identical types (aliases only from the identical alias)
    - target is an interface that source satisfies
    - target is an abstract composed type whose backing is source
    - source is an abstract composed type whose backing is target
    """
    if target == source:
        return True
    if isinstance(target, InterfaceType):
        return interfaces.satisfies(source, target)
    if isinstance(target, AbstractComposedType):
        return default_backing(target) == source
    if isinstance(source, AbstractComposedType):
        return default_backing(source) == target
    return False


class ComposedTypeResolver:
    """Chooses backings for composed literals and declarations."""

    def __init__(self, registry: TypeRegistry, interfaces: InterfaceChecker,
                 word_bits: int = 64):
        self.registry = registry
        self.interfaces = interfaces
        self.word_bits = word_bits

    @property
    def word_bytes(self) -> int:
        return self.word_bits // 8

    # =========================================================================
    # Backings
    # =========================================================================

    def backing_for(self, type_: Type) -> Optional[Backing]:
        """The backing of a declared composed type, or None for other types."""
        if isinstance(type_, AbstractComposedType):
            return Backing(default_backing(type_), type_)
        abstract = abstract_of(type_)
        if abstract is not None:
            return Backing(type_, abstract)
        return None

    def common_type(self, types: Sequence[Type], expected: Optional[Type] = None,
                    span: SourceSpan = NO_SPAN, what: str = "element") -> Type:
        """
        The single type shared by a literal's elements.

        With an expected type every element must be assignable to it.
        Otherwise the elements must be identical, or one of them must be
        an interface every other element satisfies.
        """
        if expected is not None:
            for t in types:
                if not is_assignable(expected, t, self.interfaces):
                    if isinstance(expected, InterfaceType):
                        self.interfaces.require(t, expected, span)
                    raise error_not_assignable(expected.name, t.name, span)
            return expected

        if not types:
            raise error_type_mismatch(
                f"cannot infer the {what} type of an empty literal", span,
                hints=["add a type annotation to the declaration"])

        first = types[0]
        if all(t == first for t in types):
            return first

        for candidate in types:
            if isinstance(candidate, InterfaceType) and all(
                    t == candidate or self.interfaces.satisfies(t, candidate) for t in types):
                return candidate

        names = []
        for t in types:
            if t.name not in names:
                names.append(t.name)
        raise error_type_mismatch(
            f"literal {what}s have no common type: " + ", ".join(f"'{n}'" for n in names),
            span)

    # =========================================================================
    # Literals
    # =========================================================================

    def resolve_list_literal(self, element_types: Sequence[Type],
                             expected: Optional[Type] = None,
                             constants: Optional[Sequence[Any]] = None,
                             span: SourceSpan = NO_SPAN) -> Backing:
        """Resolve a list literal to its array backing and layout."""
        concrete: Optional[ArrayType] = None
        element_expected = None
        if isinstance(expected, AbstractComposedType) and expected.kind == ComposedKind.LIST:
            element_expected = expected.element
        elif isinstance(expected, ArrayType):
            concrete = expected
            element_expected = expected.element
            if expected.length is not None and expected.length != len(element_types):
                raise error_type_mismatch(
                    f"array literal has {len(element_types)} element(s), "
                    f"'{expected}' holds {expected.length}", span)

        element = self.common_type(element_types, element_expected, span)
        if concrete is None:
            concrete = ArrayType(element)

        values = tuple(constants) if constants is not None else (None,) * len(element_types)
        layout = ArrayLayout(
            element_type=element,
            length=len(element_types),
            length_field_bytes=self.word_bytes,
            element_bytes=self.size_of(element),
            elements=values,
        )
        logger.debug("list literal -> %s (%d elements)", concrete, layout.length)
        return Backing(concrete, list_of(element), layout)

    def resolve_map_literal(self, key_types: Sequence[Type], value_types: Sequence[Type],
                            expected: Optional[Type] = None,
                            span: SourceSpan = NO_SPAN) -> Backing:
        """Resolve a map literal to its hashmap backing."""
        key_expected = value_expected = None
        if isinstance(expected, AbstractComposedType) and expected.kind == ComposedKind.MAP:
            key_expected, value_expected = expected.key, expected.value
        elif isinstance(expected, HashMapType):
            key_expected, value_expected = expected.key, expected.value

        key = self.common_type(key_types, key_expected, span, what="key")
        value = self.common_type(value_types, value_expected, span, what="value")
        return Backing(HashMapType(key, value), map_of(key, value))

    def resolve_set_literal(self, element_types: Sequence[Type],
                            expected: Optional[Type] = None,
                            span: SourceSpan = NO_SPAN) -> Backing:
        """Resolve a set literal to its hashset backing."""
        element_expected = None
        if isinstance(expected, AbstractComposedType) and expected.kind == ComposedKind.SET:
            element_expected = expected.element
        elif isinstance(expected, HashSetType):
            element_expected = expected.element

        element = self.common_type(element_types, element_expected, span)
        return Backing(HashSetType(element), set_of(element))

    # =========================================================================
    # Sizes
    # =========================================================================

    def size_of(self, type_: Type) -> int:
        """
        Byte size of a value of the given type.

        Dynamic arrays, hashed backings and strings are one-word handles;
        interface values are a (type id, data) pair of words. Structs are
        packed field by field.
        """
        return self._size_of(type_, set())

    def _size_of(self, type_: Type, visiting: Set[int]) -> int:
        if isinstance(type_, PrimitiveType):
            if type_.width == Width.MACHINE:
                return self.word_bytes
            return type_.width.value // 8
        if isinstance(type_, AliasType):
            return self._size_of(self.registry.resolve_underlying(type_), visiting)
        if isinstance(type_, ArrayType):
            if type_.length is None:
                return self.word_bytes
            return type_.length * self._size_of(type_.element, visiting)
        if isinstance(type_, AbstractComposedType):
            return self._size_of(default_backing(type_), visiting)
        if isinstance(type_, (HashMapType, HashSetType, FunctionType)):
            return self.word_bytes
        if isinstance(type_, InterfaceType):
            return 2 * self.word_bytes
        if isinstance(type_, StructType):
            if type_.type_id in visiting:
                raise error_type_mismatch(
                    f"struct '{type_}' contains itself and has no finite size", NO_SPAN)
            visiting = visiting | {type_.type_id}
            return sum(self._size_of(t, visiting) for t in type_.fields.values())
        raise error_type_mismatch(f"no size is known for '{type_}'", NO_SPAN)
