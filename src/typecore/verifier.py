"""
Reachability and exhaustive-return analysis for function bodies.

The body is treated as a structured control-flow tree, not a graph: each
statement is summarized by the set of ways control can leave it (falling
through to the next statement, returning, breaking out of or continuing
the innermost loop). An empty set means the statement diverges. The set
for a whole body gives its Flow classification.
"""

import logging
from enum import Enum
from typing import FrozenSet, List, Optional

from .ast import (
    AstVisitor, Block, Statement, FunctionDef,
    VarDecl, AssignmentStatement, ExpressionStatement, PassStatement,
    ReturnStatement, PanicStatement, BreakStatement, ContinueStatement,
    IfStatement, MatchStatement, WhileStatement, ForStatement,
)
from .errors import Diagnostic, error_non_exhaustive_return, warning_unreachable
from .inference import constant_value
from .symbols import FunctionSignature

logger = logging.getLogger(__name__)


class Flow(Enum):
    """Classification of a statement or body."""
    RETURNS = "returns"
    FALLS_THROUGH = "falls-through"
    DIVERGES = "diverges"

    @property
    def terminates(self) -> bool:
        """True when control never reaches the end of the body."""
        return self is not Flow.FALLS_THROUGH


class Exit(Enum):
    """One way control can leave a statement."""
    NORMAL = "normal"
    RETURN = "return"
    BREAK = "break"
    CONTINUE = "continue"


Exits = FrozenSet[Exit]

_NORMAL: Exits = frozenset({Exit.NORMAL})
_LOOP_EXITS = frozenset({Exit.NORMAL, Exit.BREAK, Exit.CONTINUE})


def classify(exits: Exits) -> Flow:
    if exits & _LOOP_EXITS:
        return Flow.FALLS_THROUGH
    if Exit.RETURN in exits:
        return Flow.RETURNS
    return Flow.DIVERGES


class FunctionVerifier(AstVisitor):
    """
    Classifies function bodies as returning, falling through or diverging.

    Rules:
    - return returns; panic diverges; break and continue leave the
      innermost loop, so the rest of its body is unreachable
    - a sequence stops at the first statement that cannot fall through;
      what follows is unreachable and ignored
    - if/elif/else and match only avoid falling through when they have a
      default branch and no branch falls through
    - a loop whose condition is the constant true never falls through
      unless its body has a reachable break; every other loop may run
      zero times and falls through

    Unreachable statements are not errors. When warn_unreachable is set,
    the first unreachable statement of each block gets a W301 warning.
    """

    def __init__(self, warn_unreachable: bool = False):
        self.warn_unreachable = warn_unreachable
        self.warnings: List[Diagnostic] = []

    def verify(self, func: FunctionDef, signature: FunctionSignature) -> Flow:
        """Classify a function body; a normal function must not fall through."""
        flow = self.classify_block(func.body)
        logger.debug("function %s: body %s", signature.qualified_name, flow.value)
        if not signature.is_procedure and flow == Flow.FALLS_THROUGH:
            raise error_non_exhaustive_return(
                signature.qualified_name, signature.return_type.name, func.span)
        return flow

    def classify_block(self, block: Block) -> Flow:
        return classify(self.exits(block))

    def classify_statement(self, stmt: Statement) -> Flow:
        return classify(self.exits(stmt))

    def exits(self, node) -> Exits:
        return node.accept(self)

    # =========================================================================
    # Sequences
    # =========================================================================

    def visit_Block(self, block: Block) -> Exits:
        return self._sequence(block.statements)

    def _sequence(self, statements: List[Statement]) -> Exits:
        exits = set()
        for index, stmt in enumerate(statements):
            stmt_exits = self.exits(stmt)
            exits |= stmt_exits - _NORMAL
            if Exit.NORMAL not in stmt_exits:
                rest = statements[index + 1:]
                if rest and self.warn_unreachable:
                    self.warnings.append(warning_unreachable(rest[0].span))
                return frozenset(exits)
        exits.add(Exit.NORMAL)
        return frozenset(exits)

    # =========================================================================
    # Simple Statements
    # =========================================================================

    def visit_VarDecl(self, stmt: VarDecl) -> Exits:
        return _NORMAL

    def visit_AssignmentStatement(self, stmt: AssignmentStatement) -> Exits:
        return _NORMAL

    def visit_ExpressionStatement(self, stmt: ExpressionStatement) -> Exits:
        return _NORMAL

    def visit_PassStatement(self, stmt: PassStatement) -> Exits:
        return _NORMAL

    def visit_ReturnStatement(self, stmt: ReturnStatement) -> Exits:
        return frozenset({Exit.RETURN})

    def visit_PanicStatement(self, stmt: PanicStatement) -> Exits:
        return frozenset()

    def visit_BreakStatement(self, stmt: BreakStatement) -> Exits:
        return frozenset({Exit.BREAK})

    def visit_ContinueStatement(self, stmt: ContinueStatement) -> Exits:
        return frozenset({Exit.CONTINUE})

    # =========================================================================
    # Conditionals
    # =========================================================================

    def _branches(self, bodies: List[Block], default: Optional[Block]) -> Exits:
        exits = set()
        for body in bodies:
            exits |= self.exits(body)
        if default is None:
            exits.add(Exit.NORMAL)
        else:
            exits |= self.exits(default)
        return frozenset(exits)

    def visit_IfStatement(self, stmt: IfStatement) -> Exits:
        bodies = [stmt.then_branch] + [branch.body for branch in stmt.elif_branches]
        return self._branches(bodies, stmt.else_branch)

    def visit_MatchStatement(self, stmt: MatchStatement) -> Exits:
        return self._branches([case.body for case in stmt.cases], stmt.default)

    # =========================================================================
    # Loops
    # =========================================================================

    def _loop(self, body_exits: Exits, runs_forever: bool) -> Exits:
        exits = set(body_exits - _LOOP_EXITS)
        if not runs_forever or Exit.BREAK in body_exits:
            exits.add(Exit.NORMAL)
        return frozenset(exits)

    def visit_WhileStatement(self, stmt: WhileStatement) -> Exits:
        condition = constant_value(stmt.condition)
        if condition is False:
            # The body never runs: returns inside it do not count
            if stmt.body.statements and self.warn_unreachable:
                self.warnings.append(warning_unreachable(stmt.body.statements[0].span))
            return _NORMAL
        return self._loop(self.exits(stmt.body), runs_forever=condition is True)

    def visit_ForStatement(self, stmt: ForStatement) -> Exits:
        return self._loop(self.exits(stmt.body), runs_forever=False)
