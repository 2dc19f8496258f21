"""
Fix Engine — Chooses a non-overlapping subset of the edits diagnostics propose.

Policy (leftmost-greedy): edits are considered in ascending
(span.start, span.end, diagnostic order). An edit is accepted unless it
conflicts with one already accepted, in which case it is rejected and the
pair is reported as a FixConflict. Nothing is ever partially applied.

Conflict means:
  * two non-empty spans share at least one position, or
  * a zero-width insertion falls strictly inside an accepted non-empty span
    (or the reverse).
Distinct zero-width insertions at the same offset never conflict; they are
applied in diagnostic order. An edit identical to an accepted one is rejected
as a duplicate.
"""

from __future__ import annotations

import logging
from typing import Sequence

from patternguard.models.ast_models import Span
from patternguard.models.patch_models import (
    AcceptedEdit,
    ConflictReason,
    FixConflict,
    FixPlan,
    FixPolicy,
)
from patternguard.models.rule_models import Diagnostic, Edit

logger = logging.getLogger("patternguard.engine.fix_engine")


def spans_conflict(a: Span, b: Span) -> bool:
    """True if edits over a and b cannot both be applied unambiguously."""
    if a.is_empty and b.is_empty:
        return False
    if a.is_empty:
        return b.start < a.start < b.end
    if b.is_empty:
        return a.start < b.start < a.end
    return a.overlaps(b)


class FixEngine:
    """Resolves competing edits into an applicable plan."""

    def __init__(self, policy: FixPolicy | str = FixPolicy.LEFTMOST_GREEDY) -> None:
        # FixPolicy() raises ValueError for names it does not know
        policy = FixPolicy(policy)
        if policy is not FixPolicy.LEFTMOST_GREEDY:
            raise ValueError(f"Unsupported fix policy: {policy}")
        self.policy = policy

    def plan(self, diagnostics: Sequence[Diagnostic]) -> FixPlan:
        candidates = [
            (order, d, d.fix) for order, d in enumerate(diagnostics) if d.fix is not None
        ]
        candidates.sort(key=lambda c: (c[2].span.start, c[2].span.end, c[0]))

        accepted: list[AcceptedEdit] = []
        rejected: list[FixConflict] = []

        for _, diagnostic, edit in candidates:
            blocker = self._first_conflict(edit, accepted)
            if blocker is None:
                accepted.append(AcceptedEdit(edit=edit, diagnostic=diagnostic))
                continue

            reason = (
                ConflictReason.DUPLICATE_OF_ACCEPTED
                if blocker.edit == edit
                else ConflictReason.OVERLAPS_ACCEPTED
            )
            rejected.append(
                FixConflict(
                    rejected=diagnostic,
                    accepted=blocker.diagnostic,
                    reason=reason,
                    edit=edit,
                )
            )
            logger.debug(
                f"Rejected fix from '{diagnostic.rule_id}' at {edit.span}: "
                f"{reason.value} ('{blocker.diagnostic.rule_id}' at {blocker.edit.span})"
            )

        if candidates:
            logger.info(
                f"Fix plan: {len(accepted)} accepted, {len(rejected)} rejected "
                f"of {len(candidates)} proposed"
            )
        return FixPlan(policy=self.policy, accepted=tuple(accepted), rejected=tuple(rejected))

    @staticmethod
    def _first_conflict(edit: Edit, accepted: Sequence[AcceptedEdit]) -> AcceptedEdit | None:
        for candidate in accepted:
            if candidate.edit == edit:
                return candidate
            if spans_conflict(candidate.edit.span, edit.span):
                return candidate
        return None
