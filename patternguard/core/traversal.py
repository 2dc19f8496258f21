"""
Traversal Engine — One deterministic pre-order walk per pass.

The walk maintains the scope stack, collects suppression markers, and hands
each node to the rules interested in its kind. It reads nothing but `kind`
and `children`, except the payload of declaring and suppression nodes, which
is what those kinds exist to carry.

Rule invocations produce a MatchOk or MatchFailed value. A rule that fails is
recorded once and skipped for the rest of the pass; the other rules go on.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Sequence, Union

from patternguard.core.errors import MalformedTree
from patternguard.core.rules.base import Rule
from patternguard.core.scope import ScopeStack
from patternguard.models.ast_models import NodeView, ScopeKind, Span, SyntaxTree
from patternguard.models.rule_models import RawFinding, RuleMatchFailure, Suppression

logger = logging.getLogger("patternguard.traversal")


@dataclass(frozen=True)
class MatchOk:
    findings: tuple[RawFinding, ...] = ()


@dataclass(frozen=True)
class MatchFailed:
    failure: RuleMatchFailure


MatchOutcome = Union[MatchOk, MatchFailed]


@dataclass
class TraversalOutcome:
    """Everything one walk produced, before finalization."""

    findings: list[RawFinding] = field(default_factory=list)
    failures: list[RuleMatchFailure] = field(default_factory=list)
    suppressions: list[Suppression] = field(default_factory=list)
    nodes_visited: int = 0
    invocations: int = 0
    scopes_opened: int = 0


# Marker placed on the work stack to close a node after its subtree.
_EXIT = object()


class TraversalEngine:
    """Walks a SyntaxTree once, dispatching nodes to rules by kind."""

    def __init__(self, rules: Sequence[Rule]) -> None:
        self.rules = list(rules)
        self._dispatch: dict[str, list[Rule]] = {}
        for rule in self.rules:
            for kind in rule.interested_kinds:
                self._dispatch.setdefault(kind, []).append(rule)

    def walk(self, tree: SyntaxTree) -> TraversalOutcome:
        """
        Run one pass over tree.

        Raises:
            MalformedTree: a node re-appears on its own ancestor path, or a
                node lacks the kind/span/children the facade promises.
        """
        for rule in self.rules:
            rule.reset()

        outcome = TraversalOutcome()
        root = tree.root
        root_span = self._span_of(root)
        scopes = ScopeStack()
        disabled: set[str] = set()

        # Identity of every node on the current root-to-node path.
        active: set[int] = set()
        # Entries are (node, opened_scope) for exits, or the node itself for entries.
        work: list[object] = [root]
        exit_info: list[tuple[NodeView, bool]] = []

        while work:
            item = work.pop()
            if item is _EXIT:
                node, opened = exit_info.pop()
                active.discard(id(node))
                if opened:
                    scopes.pop()
                continue

            node = item  # type: ignore[assignment]
            if id(node) in active:
                raise MalformedTree(
                    f"Node of kind '{node.kind}' at {node.span} is its own ancestor",
                    kind=node.kind,
                )
            active.add(id(node))
            outcome.nodes_visited += 1

            kind = node.kind
            span = self._span_of(node)
            opened = False
            if node is root:
                scopes.push(tree.scope_kinds.get(kind, ScopeKind.MODULE), root_span)
                opened = True
            elif kind in tree.scope_kinds:
                scopes.push(tree.scope_kinds[kind], span)
                opened = True

            if kind in tree.declaring_kinds:
                name = getattr(node, "value", None)
                if name:
                    scopes.declare(name)

            if kind in tree.suppression_kinds:
                outcome.suppressions.append(
                    Suppression(span=span, rule_id=getattr(node, "value", None))
                )

            for rule in self._dispatch.get(kind, ()):
                if rule.id in disabled:
                    continue
                outcome.invocations += 1
                result = self._invoke(rule, node, scopes, root_span)
                if isinstance(result, MatchFailed):
                    disabled.add(rule.id)
                    outcome.failures.append(result.failure)
                    logger.warning(
                        f"Rule '{rule.id}' crashed on {kind} at {span}: "
                        f"{result.failure.cause}; disabled for the rest of the pass"
                    )
                else:
                    outcome.findings.extend(result.findings)

            exit_info.append((node, opened))
            work.append(_EXIT)
            children = self._children_of(node)
            for child in reversed(children):
                work.append(child)

        outcome.scopes_opened = scopes.frames_opened
        logger.debug(
            f"Walked {outcome.nodes_visited} nodes, {outcome.invocations} rule "
            f"invocations, {len(outcome.findings)} raw findings"
        )
        return outcome

    @staticmethod
    def _invoke(
        rule: Rule, node: NodeView, scopes: ScopeStack, root_span: Span
    ) -> MatchOutcome:
        try:
            findings = tuple(rule.match(node, scopes) or ())  # type: ignore[arg-type]
            for f in findings:
                if not isinstance(f, RawFinding):
                    raise TypeError(f"match() returned {type(f).__name__}, not RawFinding")
                if f.rule_id != rule.id:
                    raise ValueError(f"finding attributed to '{f.rule_id}'")
                if not root_span.contains(f.span):
                    raise ValueError(f"finding span {f.span} outside tree {root_span}")
                if f.fix is not None and not root_span.contains(f.fix.span):
                    raise ValueError(f"fix span {f.fix.span} outside tree {root_span}")
        except Exception as e:
            return MatchFailed(
                RuleMatchFailure(
                    rule_id=rule.id,
                    span=node.span,
                    node_kind=node.kind,
                    cause=f"{type(e).__name__}: {e}",
                )
            )
        return MatchOk(findings)

    @staticmethod
    def _span_of(node: NodeView) -> Span:
        span = getattr(node, "span", None)
        if not isinstance(span, Span):
            raise MalformedTree(
                f"Node of kind '{getattr(node, 'kind', '?')}' has no valid span",
                kind=str(getattr(node, "kind", "")),
            )
        return span

    @staticmethod
    def _children_of(node: NodeView) -> Sequence[NodeView]:
        children = getattr(node, "children", None)
        if children is None:
            return ()
        if isinstance(children, (str, bytes)):
            raise MalformedTree(
                f"Node of kind '{node.kind}' has non-sequence children", kind=node.kind
            )
        return children
