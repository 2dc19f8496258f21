"""
Diagnostic Collector — Turns a pass's raw findings into the final diagnostic list.

Pure: the same findings, snapshot and suppressions always produce the same
ordered output.
"""

from __future__ import annotations

import logging
from typing import Iterable

from patternguard.core.registry import RegistrySnapshot
from patternguard.models.rule_models import Diagnostic, RawFinding, Suppression

logger = logging.getLogger("patternguard.collector")


class DiagnosticCollector:
    """Resolves severity, deduplicates, applies suppressions and sorts."""

    def __init__(self, snapshot: RegistrySnapshot) -> None:
        self.snapshot = snapshot

    def finalize(
        self,
        findings: Iterable[RawFinding],
        suppressions: Iterable[Suppression] = (),
    ) -> tuple[Diagnostic, ...]:
        diagnostics = self._deduplicate(self._to_diagnostic(f) for f in findings)
        active_suppressions = list(suppressions)
        kept = [
            d for d in diagnostics
            if not any(s.suppresses(d) for s in active_suppressions)
        ]
        dropped = len(diagnostics) - len(kept)
        if dropped:
            logger.debug(f"Suppressed {dropped} diagnostic(s)")
        return tuple(sorted(kept, key=_order))

    def _to_diagnostic(self, finding: RawFinding) -> Diagnostic:
        return Diagnostic(
            rule_id=finding.rule_id,
            severity=self.snapshot.severity_for(finding.rule_id),
            span=finding.span,
            message=finding.message,
            fix=finding.fix,
        )

    @staticmethod
    def _deduplicate(diagnostics: Iterable[Diagnostic]) -> list[Diagnostic]:
        """Keep the first diagnostic for each (rule_id, span)."""
        seen: set[tuple[str, int, int]] = set()
        unique: list[Diagnostic] = []
        for d in diagnostics:
            key = (d.rule_id, d.span.start, d.span.end)
            if key in seen:
                continue
            seen.add(key)
            unique.append(d)
        return unique


def _order(diagnostic: Diagnostic) -> tuple[int, int, str, str]:
    # message breaks the remaining ties so output never depends on input order
    return (*diagnostic.sort_key, diagnostic.message)
