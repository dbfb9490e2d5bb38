"""
Source positions for diagnostics.

The parser that produces syntax trees is external to this package; every
node it hands over carries a SourceSpan so diagnostics can point back
into the original text.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class SourceLocation:
    """Represents a position in source code."""
    line: int           # 1-indexed line number
    column: int         # 1-indexed column number
    offset: int = 0     # 0-indexed character offset from start
    filename: Optional[str] = None

    def __str__(self) -> str:
        if self.filename:
            return f"{self.filename}:{self.line}:{self.column}"
        return f"{self.line}:{self.column}"


@dataclass(frozen=True)
class SourceSpan:
    """Represents a range in source code."""
    start: SourceLocation
    end: SourceLocation

    def __str__(self) -> str:
        if self.start.filename:
            return f"{self.start.filename}:{self.start.line}:{self.start.column}-{self.end.line}:{self.end.column}"
        return f"{self.start.line}:{self.start.column}-{self.end.line}:{self.end.column}"

    @classmethod
    def at(cls, line: int, column: int = 1, filename: Optional[str] = None) -> "SourceSpan":
        """A zero-width span at a single line/column."""
        loc = SourceLocation(line, column, 0, filename)
        return cls(loc, loc)


# Used for nodes synthesized without source text (built-ins, builders)
NO_SPAN = SourceSpan.at(0, 0)
