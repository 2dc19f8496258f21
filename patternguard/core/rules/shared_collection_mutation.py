"""
Shared Collection Mutation Rule — Detects functions mutating module-level containers.

Module-level lists, dicts and sets changed from inside functions create hidden
coupling between callers and are unsafe under concurrent access. Flags
mutating method calls (`cache.update(...)`) and item writes (`cache[k] = v`)
whose receiver resolves to the module frame.
"""

from __future__ import annotations

from patternguard.core.rules.base import BaseRule
from patternguard.core.rules.global_mutable_write import assignment_targets
from patternguard.core.scope import ScopeStack
from patternguard.models import node_kinds as K
from patternguard.models.ast_models import Node, ScopeKind
from patternguard.models.rule_models import RawFinding, Severity

RULE_ID = "shared-collection-mutation"

MUTATING_METHODS = (
    "append",
    "extend",
    "insert",
    "remove",
    "pop",
    "popitem",
    "clear",
    "update",
    "setdefault",
    "add",
    "discard",
    "sort",
    "reverse",
)


class SharedCollectionMutation(BaseRule):
    id = RULE_ID
    description = "Function mutates a module-level collection in place"
    interested_kinds = frozenset({K.CALL, K.ASSIGNMENT, K.AUGMENTED_ASSIGNMENT})
    severity = Severity.ERROR
    default_options = {"methods": list(MUTATING_METHODS)}

    def match(self, node: Node, scopes: ScopeStack) -> list[RawFinding]:
        if not scopes.in_function():
            return []
        if node.kind == K.CALL:
            return self._check_call(node, scopes)
        return self._check_item_write(node, scopes)

    def _check_call(self, node: Node, scopes: ScopeStack) -> list[RawFinding]:
        if not node.children:
            return []
        callee = node.children[0]
        if callee.kind != K.ATTRIBUTE or callee.value not in self.options["methods"]:
            return []
        receiver = callee.children[0] if callee.children else None
        if not self._is_module_name(receiver, scopes):
            return []
        return [
            self.finding(
                callee.span,
                f"In-place '{callee.value}' on module-level collection "
                f"'{receiver.value}' from inside a function; pass the collection "
                f"in or return a new one",
            )
        ]

    def _check_item_write(self, node: Node, scopes: ScopeStack) -> list[RawFinding]:
        findings: list[RawFinding] = []
        for target in assignment_targets(node):
            if target.kind != K.SUBSCRIPT or not target.children:
                continue
            receiver = target.children[0]
            if not self._is_module_name(receiver, scopes):
                continue
            findings.append(
                self.finding(
                    target.span,
                    f"Item write to module-level collection '{receiver.value}' "
                    f"from inside a function",
                )
            )
        return findings

    @staticmethod
    def _is_module_name(node: Node | None, scopes: ScopeStack) -> bool:
        if node is None or node.kind != K.NAME or not node.value:
            return False
        frame = scopes.resolve(node.value)
        return frame is not None and frame.kind == ScopeKind.MODULE
