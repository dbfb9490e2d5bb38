"""
Structural interface satisfaction.

A type satisfies an interface when it exposes, for every member the
interface requires, a member of the same name and kind with an identical
signature (parameter types in order, return type, or field type). There
is no variance: a method returning an alias does not match a requirement
returning the alias's underlying type.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Dict, NamedTuple, Optional, Tuple

from .errors import error_interface_not_satisfied
from .registry import TypeRegistry
from .source import NO_SPAN, SourceSpan
from .types import Type, InterfaceType, MemberSignature

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MemberMismatch:
    """The first interface member a type fails to provide."""
    member: str
    required: MemberSignature
    found: Optional[MemberSignature] = None

    @property
    def reason(self) -> str:
        if self.found is None:
            return f"is missing (requires {self.required.describe()})"
        return f"has {self.found.describe()}, requires {self.required.describe()}"


class CacheInfo(NamedTuple):
    hits: int
    misses: int
    size: int


class InterfaceChecker:
    """
    Decides interface satisfaction against the registry's member tables.

    Results are cached per (type, interface) pair for the lifetime of the
    checker, which is one checking pass over a frozen registry. The cache
    only saves work; every answer is the one a fresh computation gives.
    """

    def __init__(self, registry: TypeRegistry):
        self.registry = registry
        self._cache: Dict[Tuple[Type, InterfaceType], Optional[MemberMismatch]] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    def satisfies(self, concrete: Type, interface: InterfaceType) -> bool:
        """Check whether concrete exposes every member interface requires."""
        return self.first_mismatch(concrete, interface) is None

    def first_mismatch(self, concrete: Type, interface: InterfaceType) -> Optional[MemberMismatch]:
        """The first unmet member in declared order, or None when satisfied."""
        if interface.is_empty:
            return None
        if concrete == interface:
            return None

        key = (concrete, interface)
        with self._lock:
            if key in self._cache:
                self._hits += 1
                return self._cache[key]
            self._misses += 1

        result = self._compute(concrete, interface)
        with self._lock:
            self._cache[key] = result
        return result

    def _compute(self, concrete: Type, interface: InterfaceType) -> Optional[MemberMismatch]:
        members = self.registry.members_of(concrete)
        for name, required in interface.members.items():
            found = members.get(name)
            if found is None:
                return MemberMismatch(name, required)
            if found.kind != required.kind or found.type != required.type:
                return MemberMismatch(name, required, found)
        return None

    def require(self, concrete: Type, interface: InterfaceType,
                span: SourceSpan = NO_SPAN) -> None:
        """Raise InterfaceNotSatisfied unless concrete satisfies interface."""
        mismatch = self.first_mismatch(concrete, interface)
        if mismatch is not None:
            raise error_interface_not_satisfied(
                concrete.name, interface.name, mismatch.member, mismatch.reason, span)

    def cache_info(self) -> CacheInfo:
        with self._lock:
            return CacheInfo(self._hits, self._misses, len(self._cache))

    def log_stats(self) -> None:
        info = self.cache_info()
        logger.debug("interface cache: %d hits, %d misses, %d entries",
                     info.hits, info.misses, info.size)
