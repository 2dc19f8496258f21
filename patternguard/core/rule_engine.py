"""
Rule Engine — Runs one analysis pass: traversal, collection, fix planning.

AST → TraversalEngine → RawFindings → DiagnosticCollector → FixEngine.
A pass is synchronous and self-contained; rule instances and the scope table
are created for it and discarded with it.
"""

from __future__ import annotations

import logging
import time

from patternguard.core.collector import DiagnosticCollector
from patternguard.core.registry import RegistrySnapshot, RuleRegistry, default_registry
from patternguard.core.traversal import TraversalEngine
from patternguard.engine.fix_engine import FixEngine
from patternguard.models.analysis_models import AnalysisConfig, AnalysisResult
from patternguard.models.ast_models import SyntaxTree

logger = logging.getLogger("patternguard.engine")


class RuleEngine:
    """
    Deterministic rule engine.

    Same tree and same configuration always give the same diagnostics and the
    same fix plan.
    """

    def __init__(
        self,
        registry: RuleRegistry | None = None,
        config: AnalysisConfig | None = None,
    ) -> None:
        self.config = config or AnalysisConfig()
        registry = registry or default_registry()
        if self.config.rules:
            # Overrides belong to this engine, not to the caller's registry
            registry = registry.copy()
            registry.apply(self.config.rules)
        self.snapshot = registry.resolve()
        self.fix_engine = FixEngine(self.config.fix_policy)

    @classmethod
    def from_snapshot(
        cls, snapshot: RegistrySnapshot, config: AnalysisConfig | None = None
    ) -> RuleEngine:
        """Engine over an already-resolved snapshot (shared between workers)."""
        engine = cls.__new__(cls)
        engine.config = config or AnalysisConfig()
        engine.snapshot = snapshot
        engine.fix_engine = FixEngine(engine.config.fix_policy)
        return engine

    @property
    def rule_ids(self) -> tuple[str, ...]:
        return self.snapshot.rule_ids

    def run(self, tree: SyntaxTree) -> AnalysisResult:
        """
        Run every enabled rule over tree.

        Raises:
            MalformedTree: the tree is cyclic or invalid; no partial result.
        """
        start = time.monotonic()

        rules = self.snapshot.instantiate()
        outcome = TraversalEngine(rules).walk(tree)

        collector = DiagnosticCollector(self.snapshot)
        diagnostics = collector.finalize(
            outcome.findings,
            [*outcome.suppressions, *self.config.suppressions],
        )
        fix_plan = self.fix_engine.plan(diagnostics)

        elapsed = (time.monotonic() - start) * 1000
        logger.debug(
            f"{tree.file_path}: {len(diagnostics)} diagnostics, "
            f"{len(outcome.failures)} rule failures ({elapsed:.1f}ms)"
        )

        return AnalysisResult(
            file_path=tree.file_path,
            diagnostics=diagnostics,
            failures=tuple(outcome.failures),
            fix_plan=fix_plan,
            rules_executed=self.snapshot.rule_ids,
            nodes_visited=outcome.nodes_visited,
            duration_ms=round(elapsed, 3),
            parse_errors=tuple(tree.parse_errors),
        )

    def run_single_rule(self, rule_id: str, tree: SyntaxTree) -> AnalysisResult:
        """Run one enabled rule against one tree."""
        spec = self.snapshot.spec(rule_id)
        single = RuleEngine.from_snapshot(RegistrySnapshot(specs=(spec,)), self.config)
        return single.run(tree)
