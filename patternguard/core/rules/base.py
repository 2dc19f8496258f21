"""
Rule Protocol — The capability interface every detector implements.

A rule declares the node kinds it wants to see and returns RawFindings from
match(). It is instantiated once per pass with its opaque options, so any
state it keeps (fingerprints, counters) belongs to that pass alone.
"""

from __future__ import annotations

from typing import Any, ClassVar, Mapping, Protocol, Sequence, runtime_checkable

from patternguard.core.scope import ScopeStack
from patternguard.models.ast_models import Node, Span
from patternguard.models.rule_models import Edit, RawFinding, Severity


@runtime_checkable
class Rule(Protocol):
    id: str
    interested_kinds: frozenset[str]
    severity: Severity

    def reset(self) -> None: ...

    def match(self, node: Node, scopes: ScopeStack) -> Sequence[RawFinding]: ...


class BaseRule:
    """Convenience base: merges default options and stamps findings with the rule id."""

    id: ClassVar[str] = ""
    description: ClassVar[str] = ""
    interested_kinds: ClassVar[frozenset[str]] = frozenset()
    severity: ClassVar[Severity] = Severity.WARNING
    default_options: ClassVar[Mapping[str, Any]] = {}

    def __init__(self, options: Mapping[str, Any] | None = None) -> None:
        self.options: dict[str, Any] = {**self.default_options, **(options or {})}

    def reset(self) -> None:
        """Clear pass-local state. Stateless rules need not override."""

    def match(self, node: Node, scopes: ScopeStack) -> Sequence[RawFinding]:
        raise NotImplementedError

    def finding(self, span: Span, message: str, fix: Edit | None = None) -> RawFinding:
        return RawFinding(rule_id=self.id, span=span, message=message, fix=fix)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.id!r})"
