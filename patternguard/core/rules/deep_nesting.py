"""
Deep Nesting Rule — Detects conditionals and loops nested too deeply inside a function.

An `else` block holding nothing but another `if` is an else-if chain and does
not add a level. Nested functions and classes are measured on their own.
"""

from __future__ import annotations

from patternguard.core.rules.base import BaseRule
from patternguard.core.scope import ScopeStack
from patternguard.models import node_kinds as K
from patternguard.models.ast_models import Node
from patternguard.models.rule_models import RawFinding, Severity

RULE_ID = "deep-nesting"

NESTING_KINDS = frozenset({K.IF, K.FOR, K.WHILE, K.WITH, K.TRY})


def _head(node: Node) -> Node:
    """The part of a statement worth pointing at: its condition, not its body."""
    if node.children and node.children[0].kind not in (K.BLOCK, K.ELSE):
        return node.children[0]
    return node


class DeepNesting(BaseRule):
    id = RULE_ID
    description = "Control flow nested deeper than the configured maximum"
    interested_kinds = frozenset({K.FUNCTION_DEF})
    severity = Severity.WARNING
    default_options = {"max_depth": 3}

    def match(self, node: Node, scopes: ScopeStack) -> list[RawFinding]:
        body = node.child(K.BLOCK)
        if body is None:
            return []
        limit = int(self.options["max_depth"])
        offender = self._first_too_deep(body, 0, limit)
        if offender is None:
            return []
        culprit, depth = offender
        return [
            self.finding(
                _head(culprit).span,
                f"Function '{node.value}' nests control flow {depth} levels deep "
                f"(maximum {limit}); extract the inner block or return early",
            )
        ]

    def _first_too_deep(self, node: Node, depth: int, limit: int) -> tuple[Node, int] | None:
        for child in node.children:
            if child.kind in K.NESTED_UNIT_KINDS:
                continue
            child_depth = depth
            if child.kind in NESTING_KINDS and not self._is_else_if(node, child):
                child_depth = depth + 1
                if child_depth > limit:
                    return child, child_depth
            found = self._first_too_deep(child, child_depth, limit)
            if found is not None:
                return found
        return None

    @staticmethod
    def _is_else_if(parent: Node, child: Node) -> bool:
        return parent.kind == K.ELSE and child.kind == K.IF and len(parent.children) == 1
