"""
Global Mutable Write Rule — Detects functions that assign to module-level names.

A write is flagged when the assigned name resolves, through the scope stack,
to the module frame while the assignment sits inside a function. Removing
such side effects needs knowledge of every caller, so no fix is proposed.
"""

from __future__ import annotations

from typing import Iterator

from patternguard.core.rules.base import BaseRule
from patternguard.core.scope import ScopeStack
from patternguard.models import node_kinds as K
from patternguard.models.ast_models import Node, ScopeKind
from patternguard.models.rule_models import RawFinding, Severity

RULE_ID = "global-mutable-write"

_DESTRUCTURING_KINDS = frozenset({K.TUPLE, K.LIST, K.STARRED})


def assignment_targets(node: Node) -> list[Node]:
    """
    Target expressions of an assignment node.

    Assignments are laid out as [target, ..., value]; a lone child is a
    target without a value. Augmented assignments have exactly one target.
    """
    if node.kind == K.AUGMENTED_ASSIGNMENT or len(node.children) < 2:
        return list(node.children[:1])
    return list(node.children[:-1])


def target_names(target: Node) -> Iterator[Node]:
    """Plain name nodes written by a target, looking through destructuring."""
    if target.kind == K.NAME:
        yield target
    elif target.kind in _DESTRUCTURING_KINDS:
        for child in target.children:
            yield from target_names(child)


class GlobalMutableWrite(BaseRule):
    id = RULE_ID
    description = "Function writes to a module-level variable"
    interested_kinds = frozenset({K.ASSIGNMENT, K.AUGMENTED_ASSIGNMENT})
    severity = Severity.ERROR

    def match(self, node: Node, scopes: ScopeStack) -> list[RawFinding]:
        function = scopes.enclosing(ScopeKind.FUNCTION)
        if function is None:
            return []

        findings: list[RawFinding] = []
        for target in assignment_targets(node):
            for name_node in target_names(target):
                frame = scopes.resolve(name_node.value or "")
                if frame is None or frame.kind != ScopeKind.MODULE:
                    continue
                findings.append(
                    self.finding(
                        name_node.span,
                        f"Assignment to module-level '{name_node.value}' from inside a "
                        f"function; return the value or pass state explicitly",
                    )
                )
        return findings
