"""
Flag Argument Rule — Detects boolean parameters that switch a function's behaviour.

A boolean parameter that decides which branch of the body runs means the
function does two things. Split it into two functions instead.
"""

from __future__ import annotations

from patternguard.core.rules.base import BaseRule
from patternguard.core.scope import ScopeStack
from patternguard.models import node_kinds as K
from patternguard.models.ast_models import Node
from patternguard.models.rule_models import RawFinding, Severity

RULE_ID = "flag-argument"

BOOLEAN_LITERALS = frozenset({"True", "False", "true", "false"})
BRANCH_KINDS = frozenset({K.IF, K.IF_EXP})


def _is_boolean(param: Node, type_names: list[str]) -> bool:
    annotation = param.child(K.ANNOTATION)
    if annotation is not None:
        for child in annotation.children:
            if child.kind == K.NAME and child.value in type_names:
                return True
    default = param.child(K.DEFAULT)
    if default is not None:
        for child in default.children:
            if child.kind == K.CONSTANT and child.value in BOOLEAN_LITERALS:
                return True
    return False


def _tests_name(test: Node, name: str) -> bool:
    """`name` or `not name` as a branch condition."""
    if test.kind == K.NAME:
        return test.value == name
    if test.kind == K.UNARY_NOT and test.children:
        return _tests_name(test.children[0], name)
    return False


class FlagArgument(BaseRule):
    id = RULE_ID
    description = "Boolean parameter selects between divergent code paths"
    interested_kinds = frozenset({K.FUNCTION_DEF})
    severity = Severity.WARNING
    default_options = {"boolean_types": ["bool", "boolean"]}

    def match(self, node: Node, scopes: ScopeStack) -> list[RawFinding]:
        params_node = node.child(K.PARAMETERS)
        body = node.child(K.BLOCK)
        if params_node is None or body is None:
            return []

        flags = [
            p for p in params_node.children_of(K.PARAMETER)
            if p.value and _is_boolean(p, self.options["boolean_types"])
        ]
        if not flags:
            return []

        branches = [
            n for n in body.descendants(stop_kinds=K.NESTED_UNIT_KINDS)
            if n.kind in BRANCH_KINDS and n.children
        ]

        findings: list[RawFinding] = []
        for param in flags:
            if any(_tests_name(b.children[0], param.value) for b in branches):
                findings.append(
                    self.finding(
                        param.span,
                        f"Parameter '{param.value}' of '{node.value}' is a flag argument "
                        f"that selects between code paths; split the function instead",
                    )
                )
        return findings
