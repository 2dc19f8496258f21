"""
Too Many Parameters Rule — Flags functions with long parameter lists.

Long parameter lists are hard to call correctly and usually mean several
values belong together in one object. No automatic fix: regrouping
parameters changes every call site.
"""

from __future__ import annotations

from patternguard.core.rules.base import BaseRule
from patternguard.core.scope import ScopeStack
from patternguard.models import node_kinds as K
from patternguard.models.ast_models import Node
from patternguard.models.rule_models import RawFinding, Severity

RULE_ID = "too-many-parameters"


class TooManyParameters(BaseRule):
    id = RULE_ID
    description = "Function declares more parameters than the configured maximum"
    interested_kinds = frozenset({K.FUNCTION_DEF})
    severity = Severity.WARNING
    default_options = {
        "max_parameters": 3,
        # A leading receiver parameter is not counted
        "ignore_names": ["self", "cls"],
    }

    def match(self, node: Node, scopes: ScopeStack) -> list[RawFinding]:
        params_node = node.child(K.PARAMETERS)
        if params_node is None:
            return []

        params = params_node.children_of(K.PARAMETER)
        if params and params[0].value in self.options["ignore_names"]:
            params = params[1:]

        limit = int(self.options["max_parameters"])
        if len(params) <= limit:
            return []

        name = node.value or "<anonymous>"
        return [
            self.finding(
                params_node.span,
                f"Function '{name}' declares {len(params)} parameters "
                f"(maximum {limit}); group related values into an object",
            )
        ]
