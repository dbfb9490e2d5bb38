"""
Type representation for the checker.

Types fall into four families:
    Primitive: machine-defined scalars (signed/unsigned ints, floats, bool, string)
    Nominal:   user-named types whose identity is a unique type id
               (aliases, structs, interfaces)
    Composed:  arrays, hashmaps, hashsets (concrete) and list/map/set (abstract)
    Function:  parameter types plus an optional return type

Primitive and composed types compare structurally. Nominal types compare
by type id only, so two aliases of the same underlying type are never
equal, and recursive member graphs (a struct field naming its own
struct) do not recurse during comparison or hashing.
"""

import itertools
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Dict, Optional, Tuple


class PrimitiveKind(Enum):
    """Kinds of primitive types."""
    SIGNED_INT = "int"
    UNSIGNED_INT = "uint"
    FLOAT = "float"
    BOOL = "bool"
    STRING = "string"


class Width(Enum):
    """Bit widths of primitive types."""
    W8 = 8
    W16 = 16
    W32 = 32
    W64 = 64
    MACHINE = "machine"


class ComposedKind(Enum):
    """Kinds of abstract composed types."""
    LIST = auto()
    MAP = auto()
    SET = auto()


class MemberKind(Enum):
    """What an interface requires, or a type exposes, under a member name."""
    FIELD = "field"
    METHOD = "method"


_type_ids = itertools.count(1)


def new_type_id() -> int:
    """Allocate an identity token for a nominal type."""
    return next(_type_ids)


# =============================================================================
# Type Classes
# =============================================================================

class Type(ABC):
    """Base class for all types."""

    @property
    @abstractmethod
    def name(self) -> str:
        """The type name for display/errors."""

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class PrimitiveType(Type):
    """A primitive type. Equal iff kind and width match exactly."""
    kind: PrimitiveKind
    width: Width

    @property
    def name(self) -> str:
        if self.kind in (PrimitiveKind.BOOL, PrimitiveKind.STRING):
            return self.kind.value
        if self.width == Width.MACHINE:
            return self.kind.value
        return f"{self.kind.value}{self.width.value}"

    @property
    def is_integer(self) -> bool:
        return self.kind in (PrimitiveKind.SIGNED_INT, PrimitiveKind.UNSIGNED_INT)

    @property
    def is_numeric(self) -> bool:
        return self.is_integer or self.kind == PrimitiveKind.FLOAT

    @property
    def is_signed(self) -> bool:
        return self.kind in (PrimitiveKind.SIGNED_INT, PrimitiveKind.FLOAT)


@dataclass(frozen=True)
class FunctionType(Type):
    """A function signature type; a None return type marks a procedure."""
    params: Tuple[Type, ...]
    return_type: Optional[Type] = None

    @property
    def name(self) -> str:
        params = ", ".join(t.name for t in self.params)
        if self.return_type is None:
            return f"func({params})"
        return f"func({params}): {self.return_type.name}"

    @property
    def is_procedure(self) -> bool:
        return self.return_type is None


@dataclass(frozen=True)
class MemberSignature:
    """A named field or method in a member table."""
    name: str
    kind: MemberKind
    type: Type  # the field type, or a FunctionType for methods

    def describe(self) -> str:
        if self.kind == MemberKind.METHOD:
            return f"method {self.name}: {self.type.name}"
        return f"field {self.name}: {self.type.name}"


@dataclass(eq=False)
class AliasType(Type):
    """
    A nominal wrapper around another type.

    Bit-identical to its underlying type but never interchangeable with it
    (or with another alias of the same underlying type) without a cast.
    """
    alias_name: str
    underlying: Optional[Type] = field(default=None, repr=False)
    type_id: int = field(default_factory=new_type_id)

    @property
    def name(self) -> str:
        return self.alias_name

    def __eq__(self, other: object) -> bool:
        return isinstance(other, AliasType) and other.type_id == self.type_id

    def __hash__(self) -> int:
        return hash(("alias", self.type_id))


@dataclass(eq=False)
class StructType(Type):
    """A nominal record type with ordered, named fields."""
    struct_name: str
    fields: Dict[str, Type] = field(default_factory=dict, repr=False)
    type_id: int = field(default_factory=new_type_id)

    @property
    def name(self) -> str:
        return self.struct_name

    def __eq__(self, other: object) -> bool:
        return isinstance(other, StructType) and other.type_id == self.type_id

    def __hash__(self) -> int:
        return hash(("struct", self.type_id))


@dataclass(eq=False)
class InterfaceType(Type):
    """
    A named set of required members, satisfied structurally.

    Member order is the declaration order; satisfaction failures report
    the first unmet member in that order.
    """
    interface_name: str
    members: Dict[str, MemberSignature] = field(default_factory=dict, repr=False)
    type_id: int = field(default_factory=new_type_id)

    @property
    def name(self) -> str:
        return self.interface_name

    @property
    def is_empty(self) -> bool:
        return not self.members

    def __eq__(self, other: object) -> bool:
        return isinstance(other, InterfaceType) and other.type_id == self.type_id

    def __hash__(self) -> int:
        return hash(("interface", self.type_id))


@dataclass(frozen=True)
class ArrayType(Type):
    """An array: dynamic (length None) or fixed with a compile-time length."""
    element: Type
    length: Optional[int] = None

    @property
    def name(self) -> str:
        if self.length is None:
            return f"array[{self.element.name}]"
        return f"array[{self.element.name}, {self.length}]"

    @property
    def is_dynamic(self) -> bool:
        return self.length is None


@dataclass(frozen=True)
class HashMapType(Type):
    """The concrete hashed key/value backing."""
    key: Type
    value: Type

    @property
    def name(self) -> str:
        return f"hashmap[{self.key.name}, {self.value.name}]"


@dataclass(frozen=True)
class HashSetType(Type):
    """The concrete hashed set backing."""
    element: Type

    @property
    def name(self) -> str:
        return f"hashset[{self.element.name}]"


@dataclass(frozen=True)
class AbstractComposedType(Type):
    """
    An abstract list, map or set.

    Has no layout of its own; every value is backed by the concrete type
    the composed-type resolver picks at the construction site.
    """
    kind: ComposedKind
    params: Tuple[Type, ...]

    @property
    def name(self) -> str:
        if self.kind == ComposedKind.LIST:
            return f"list[{self.params[0].name}]"
        if self.kind == ComposedKind.MAP:
            return "{" + f"{self.params[0].name}: {self.params[1].name}" + "}"
        return "{" + self.params[0].name + "}"

    @property
    def element(self) -> Type:
        """Element type of a list or set."""
        if self.kind == ComposedKind.MAP:
            raise AttributeError("map types have key and value, not element")
        return self.params[0]

    @property
    def key(self) -> Type:
        if self.kind != ComposedKind.MAP:
            raise AttributeError(f"{self.name} has no key type")
        return self.params[0]

    @property
    def value(self) -> Type:
        if self.kind != ComposedKind.MAP:
            raise AttributeError(f"{self.name} has no value type")
        return self.params[1]


# =============================================================================
# Built-in Type Instances
# =============================================================================

INT = PrimitiveType(PrimitiveKind.SIGNED_INT, Width.MACHINE)
INT8 = PrimitiveType(PrimitiveKind.SIGNED_INT, Width.W8)
INT16 = PrimitiveType(PrimitiveKind.SIGNED_INT, Width.W16)
INT32 = PrimitiveType(PrimitiveKind.SIGNED_INT, Width.W32)
INT64 = PrimitiveType(PrimitiveKind.SIGNED_INT, Width.W64)

UINT = PrimitiveType(PrimitiveKind.UNSIGNED_INT, Width.MACHINE)
UINT8 = PrimitiveType(PrimitiveKind.UNSIGNED_INT, Width.W8)
UINT16 = PrimitiveType(PrimitiveKind.UNSIGNED_INT, Width.W16)
UINT32 = PrimitiveType(PrimitiveKind.UNSIGNED_INT, Width.W32)
UINT64 = PrimitiveType(PrimitiveKind.UNSIGNED_INT, Width.W64)

FLOAT = PrimitiveType(PrimitiveKind.FLOAT, Width.MACHINE)
FLOAT32 = PrimitiveType(PrimitiveKind.FLOAT, Width.W32)
FLOAT64 = PrimitiveType(PrimitiveKind.FLOAT, Width.W64)

BOOL = PrimitiveType(PrimitiveKind.BOOL, Width.W8)
STRING = PrimitiveType(PrimitiveKind.STRING, Width.MACHINE)

# The empty interface: satisfied by every type
ANY = InterfaceType("any", {}, type_id=0)


BUILTIN_TYPES: Dict[str, Type] = {
    t.name: t for t in (
        INT, INT8, INT16, INT32, INT64,
        UINT, UINT8, UINT16, UINT32, UINT64,
        FLOAT, FLOAT32, FLOAT64,
        BOOL, STRING,
    )
}
BUILTIN_TYPES["any"] = ANY


def list_of(element: Type) -> AbstractComposedType:
    """Create the abstract list type list[element]."""
    return AbstractComposedType(ComposedKind.LIST, (element,))


def map_of(key: Type, value: Type) -> AbstractComposedType:
    """Create the abstract map type {key: value}."""
    return AbstractComposedType(ComposedKind.MAP, (key, value))


def set_of(element: Type) -> AbstractComposedType:
    """Create the abstract set type {element}."""
    return AbstractComposedType(ComposedKind.SET, (element,))


def is_nominal(t: Type) -> bool:
    return isinstance(t, (AliasType, StructType, InterfaceType))


def is_numeric(t: Type) -> bool:
    """Check if a (resolved) type is an integer or float primitive."""
    return isinstance(t, PrimitiveType) and t.is_numeric


def is_integer(t: Type) -> bool:
    return isinstance(t, PrimitiveType) and t.is_integer


def is_composed(t: Type) -> bool:
    return isinstance(t, (ArrayType, HashMapType, HashSetType, AbstractComposedType))
