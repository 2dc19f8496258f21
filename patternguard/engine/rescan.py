"""
Re-Scan Module — Re-runs the rule engine on patched source to verify fixes.

After applying a fix plan:
1. Re-parse the patched source
2. Re-run the same rule set
3. Map every accepted edit to the span its replacement occupies now
4. Confirm no diagnostic of the fixing rule reappears on a rewritten span
5. Confirm no new error-severity diagnostics appeared
6. Return pass/fail verdict
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field

from patternguard.core.ast_parser import parse_file
from patternguard.core.rule_engine import RuleEngine
from patternguard.models.analysis_models import AnalysisResult
from patternguard.models.ast_models import Span
from patternguard.models.patch_models import AcceptedEdit, FixPlan
from patternguard.models.rule_models import Severity

logger = logging.getLogger("patternguard.engine.rescan")


@dataclass
class RescanResult:
    """Result of re-analysing patched code."""

    passed: bool = False
    fixes_verified: int = 0
    regenerated: list[str] = field(default_factory=list)
    new_errors_introduced: list[str] = field(default_factory=list)
    result: AnalysisResult | None = None
    details: str = ""


def rewritten_spans(plan: FixPlan) -> list[tuple[AcceptedEdit, Span]]:
    """
    Where each accepted edit's replacement text sits in the patched source.

    Accepted edits never overlap and are stored in ascending order, so each
    one is shifted by the length change of the edits before it.
    """
    shift = 0
    placed: list[tuple[AcceptedEdit, Span]] = []
    for accepted in sorted(plan.accepted, key=lambda a: a.edit.span.key):
        span = accepted.edit.span
        start = span.start + shift
        placed.append((accepted, Span(start=start, end=start + len(accepted.edit.replacement))))
        shift += len(accepted.edit.replacement) - (span.end - span.start)
    return placed


def _hits(rewritten: Span, diagnostic_span: Span) -> bool:
    return rewritten.overlaps(diagnostic_span) or rewritten.contains(diagnostic_span)


def rescan_patched_source(
    original: AnalysisResult,
    patched_source: str,
    file_path: str,
    rule_engine: RuleEngine | None = None,
) -> RescanResult:
    """
    Re-analyse patched source to verify the applied fixes.

    Args:
        original: Result of the pass whose fix plan produced patched_source
        patched_source: Source with the accepted edits applied
        file_path: File path for context
        rule_engine: Engine to re-run (should match the original pass)

    Returns:
        RescanResult with pass/fail verdict
    """
    engine = rule_engine or RuleEngine()
    outcome = RescanResult()

    # Step 1: Parse patched source
    tree = parse_file(patched_source, file_path)
    if tree.parse_errors:
        outcome.details = f"Patched source does not parse: {tree.parse_errors[0]}"
        logger.error(outcome.details)
        return outcome

    # Step 2: Run rule engine
    result = engine.run(tree)
    outcome.result = result

    # Step 3–4: Check no fixed diagnostic was regenerated
    for accepted, rewritten in rewritten_spans(original.fix_plan):
        rule_id = accepted.diagnostic.rule_id
        again = [d for d in result.by_rule(rule_id) if _hits(rewritten, d.span)]
        if again:
            outcome.regenerated.append(f"{rule_id} at {rewritten}")
        else:
            outcome.fixes_verified += 1

    # Step 5: Check for new error-severity diagnostics
    before = Counter(d.rule_id for d in original.diagnostics if d.severity == Severity.ERROR)
    after = Counter(d.rule_id for d in result.diagnostics if d.severity == Severity.ERROR)
    outcome.new_errors_introduced = [
        f"{rule_id}: +{count - before[rule_id]}"
        for rule_id, count in sorted(after.items())
        if count > before[rule_id]
    ]

    # Step 6: Determine pass/fail
    outcome.passed = not outcome.regenerated and not outcome.new_errors_introduced

    if outcome.passed:
        outcome.details = f"Re-scan passed: {outcome.fixes_verified} fix(es) verified"
        logger.info(f"{file_path}: {outcome.details}")
    else:
        parts = []
        if outcome.regenerated:
            parts.append(f"{len(outcome.regenerated)} fixed diagnostic(s) regenerated")
        if outcome.new_errors_introduced:
            parts.append(f"new errors ({', '.join(outcome.new_errors_introduced)})")
        outcome.details = f"Re-scan failed: {'; '.join(parts)}"
        logger.warning(f"{file_path}: {outcome.details}")

    return outcome
