"""
Duplicate Logic Rule — Detects functions whose bodies are structurally identical.

Each body is reduced to a fingerprint of node kinds and payloads, with local
names replaced by their order of first appearance so that renamed copies
still match. Fingerprints live on the rule instance for one pass only.
"""

from __future__ import annotations

import hashlib

from patternguard.core.rules.base import BaseRule
from patternguard.core.scope import ScopeStack
from patternguard.models import node_kinds as K
from patternguard.models.ast_models import Node, Span
from patternguard.models.rule_models import RawFinding, Severity

RULE_ID = "duplicate-logic"

_RENAMEABLE_KINDS = frozenset({K.NAME, K.DECLARATION, K.PARAMETER})


def body_fingerprint(body: Node, normalize_names: bool = True) -> tuple[str, int]:
    """SHA-256 of the body's structure, and the number of nodes it covers."""
    aliases: dict[str, str] = {}
    parts: list[str] = []
    count = 0

    def visit(node: Node) -> None:
        nonlocal count
        count += 1
        value = node.value or ""
        if normalize_names and node.kind in _RENAMEABLE_KINDS and value:
            value = aliases.setdefault(value, f"${len(aliases)}")
        parts.append(f"({node.kind}:{value}")
        for child in node.children:
            visit(child)
        parts.append(")")

    visit(body)
    digest = hashlib.sha256("".join(parts).encode("utf-8")).hexdigest()
    return digest, count


class DuplicateLogic(BaseRule):
    id = RULE_ID
    description = "Function body duplicates another function in the same file"
    interested_kinds = frozenset({K.FUNCTION_DEF})
    severity = Severity.WARNING
    default_options = {"min_nodes": 8, "normalize_names": True}

    def __init__(self, options=None) -> None:
        super().__init__(options)
        self._seen: dict[str, tuple[str, Span]] = {}

    def reset(self) -> None:
        self._seen.clear()

    def match(self, node: Node, scopes: ScopeStack) -> list[RawFinding]:
        body = node.child(K.BLOCK)
        if body is None:
            return []
        digest, size = body_fingerprint(body, bool(self.options["normalize_names"]))
        if size < int(self.options["min_nodes"]):
            return []

        name = node.value or "<anonymous>"
        original = self._seen.get(digest)
        if original is None:
            self._seen[digest] = (name, node.span)
            return []

        identifier = node.child(K.IDENTIFIER)
        return [
            self.finding(
                identifier.span if identifier is not None else node.span,
                f"Function '{name}' duplicates the logic of '{original[0]}'; "
                f"extract the shared body into one function",
            )
        ]
