"""
Negated Conditional Name Rule — Flags predicates named for a negative ("is_not_valid").

Negated names force readers through double negatives (`if not is_not_valid`).
When the function body is a single `return` of a boolean expression whose
negation can be written down statically, the rule proposes one edit that
renames the definition to the affirmative form and inverts the returned
expression, so behaviour matches the new name. Call sites still need their
conditions inverted; the message says so.
"""

from __future__ import annotations

import re

from patternguard.core.rules.base import BaseRule
from patternguard.core.scope import ScopeStack
from patternguard.models import node_kinds as K
from patternguard.models.ast_models import Node, Span
from patternguard.models.rule_models import Edit, RawFinding, Severity

RULE_ID = "negated-conditional-name"

_PREFIXES = "is|has|can|should|was|were|are|does|did|will|must"
_SNAKE = re.compile(rf"^(?P<lead>_*)(?P<prefix>(?:{_PREFIXES})_)?not_(?P<rest>[A-Za-z0-9]\w*)$")
_CAMEL = re.compile(rf"^(?P<lead>_*)(?P<prefix>{_PREFIXES})Not(?P<rest>[A-Z]\w*)$")
_BARE_CAMEL = re.compile(r"^(?P<lead>_*)not(?P<rest>[A-Z]\w*)$")

INVERSE_OPERATORS: dict[str, str] = {
    "==": "!=",
    "!=": "==",
    "<": ">=",
    ">=": "<",
    ">": "<=",
    "<=": ">",
    "is": "is not",
    "is not": "is",
    "in": "not in",
    "not in": "in",
}

# Operands that would change meaning once the comparison loses its brackets
_LOOSE_OPERANDS = frozenset({K.BOOL_OP, K.UNARY_NOT, K.COMPARE, K.IF_EXP, K.LAMBDA})

_BOOLEAN_FLIP = {"True": "False", "False": "True", "true": "false", "false": "true"}


def affirmative_name(name: str) -> str | None:
    """`is_not_valid` -> `is_valid`, `isNotEmpty` -> `isEmpty`, `notReady` -> `ready`."""
    m = _SNAKE.match(name)
    if m:
        return f"{m['lead']}{m['prefix'] or ''}{m['rest']}"
    m = _CAMEL.match(name)
    if m:
        return f"{m['lead']}{m['prefix']}{m['rest']}"
    m = _BARE_CAMEL.match(name)
    if m:
        rest = m["rest"]
        return f"{m['lead']}{rest[0].lower()}{rest[1:]}"
    return None


def inverted_expression(expr: Node) -> str | None:
    """Source text of the logical negation of expr, or None if not statically known."""
    if expr.kind == K.UNARY_NOT and len(expr.children) == 1:
        return expr.children[0].text or None
    if expr.kind == K.COMPARE and len(expr.children) == 2:
        inverse = INVERSE_OPERATORS.get(expr.value or "")
        left, right = expr.children
        if inverse is None or left.kind in _LOOSE_OPERANDS or right.kind in _LOOSE_OPERANDS:
            return None
        if not left.text or not right.text:
            return None
        return f"{left.text} {inverse} {right.text}"
    if expr.kind == K.CONSTANT and expr.value in _BOOLEAN_FLIP:
        return _BOOLEAN_FLIP[expr.value]
    if expr.kind == K.BOOL_OP and expr.text:
        return f"not ({expr.text})"
    return None


def _single_return(body: Node) -> Node | None:
    """The returned expression if body is one return statement (after a docstring)."""
    statements = list(body.children)
    if statements and statements[0].kind == K.CONSTANT:
        statements = statements[1:]
    if len(statements) != 1 or statements[0].kind != K.RETURN:
        return None
    ret = statements[0]
    return ret.children[0] if len(ret.children) == 1 else None


class NegatedConditionalName(BaseRule):
    id = RULE_ID
    description = "Predicate is named for a negated condition"
    interested_kinds = frozenset({K.FUNCTION_DEF})
    severity = Severity.INFO
    default_options = {"allowed_names": []}

    def match(self, node: Node, scopes: ScopeStack) -> list[RawFinding]:
        name = node.value or ""
        if not name or name in self.options["allowed_names"]:
            return []
        affirmative = affirmative_name(name)
        if affirmative is None:
            return []

        identifier = node.child(K.IDENTIFIER)
        span = identifier.span if identifier is not None else node.span
        fix = self._build_fix(node, identifier, affirmative)

        message = f"Function '{name}' is named for a negated condition; prefer '{affirmative}'"
        if fix is not None:
            message += " (fix inverts the returned expression; invert conditions at call sites)"
        return [self.finding(span, message, fix=fix)]

    @staticmethod
    def _build_fix(node: Node, identifier: Node | None, affirmative: str) -> Edit | None:
        if identifier is None or node.source is None:
            return None
        body = node.child(K.BLOCK)
        if body is None:
            return None
        expr = _single_return(body)
        if expr is None:
            return None
        inverted = inverted_expression(expr)
        if inverted is None or expr.span.start < identifier.span.end:
            return None

        between = node.source[identifier.span.end : expr.span.start]
        return Edit(
            span=Span(start=identifier.span.start, end=expr.span.end),
            replacement=f"{affirmative}{between}{inverted}",
        )
