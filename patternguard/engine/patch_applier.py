"""
Patch Applier — Applies an accepted edit set to source text.

Operates on source strings in memory. Edits are substituted right-to-left by
descending span start, so offsets of edits still to be applied are never
shifted by edits already applied.
"""

from __future__ import annotations

import ast
import logging
from typing import Sequence

from patternguard.core.errors import EditApplicationError
from patternguard.engine.fix_engine import spans_conflict
from patternguard.models.patch_models import FixPlan
from patternguard.models.rule_models import Edit

logger = logging.getLogger("patternguard.engine.patch_applier")


def apply_edits(source: str, edits: Sequence[Edit]) -> str:
    """
    Apply non-overlapping edits to source.

    Args:
        source: Original full file source
        edits: Edits in acceptance order (as produced by the fix engine)

    Returns:
        The rewritten source.

    Raises:
        EditApplicationError: an edit lies outside the source or two edits conflict.
    """
    for edit in edits:
        if edit.span.end > len(source):
            raise EditApplicationError(
                f"Edit {edit.span} outside source of length {len(source)}"
            )

    widest: Edit | None = None
    for edit in sorted(edits, key=lambda e: (e.span.start, e.span.end)):
        if widest is not None and spans_conflict(widest.span, edit.span):
            raise EditApplicationError(f"Edits {widest.span} and {edit.span} overlap")
        if not edit.span.is_empty and (widest is None or edit.span.end > widest.span.end):
            widest = edit

    # Descending start; among equal starts the later edit goes first so that
    # insertions at one offset end up in acceptance order.
    result = source
    for _, edit in sorted(
        enumerate(edits),
        key=lambda pair: (pair[1].span.start, pair[1].span.end, pair[0]),
        reverse=True,
    ):
        result = result[: edit.span.start] + edit.replacement + result[edit.span.end :]
    return result


def apply_fix_plan(source: str, plan: FixPlan) -> str:
    """Apply every accepted edit of a fix plan."""
    patched = apply_edits(source, plan.edits)
    if plan.accepted:
        logger.info(f"Applied {len(plan.accepted)} edit(s) to source")
    return patched


def apply_python_fixes(source: str, plan: FixPlan, file_path: str = "<unknown>") -> str | None:
    """
    Apply a fix plan to Python source and check the result still parses.

    Returns:
        Patched source string, or None if the edits cannot be applied or
        produce a syntax error.
    """
    try:
        patched = apply_fix_plan(source, plan)
    except EditApplicationError as e:
        logger.error(f"Cannot apply fixes to {file_path}: {e}")
        return None

    try:
        ast.parse(patched, filename=file_path)
    except SyntaxError as e:
        logger.error(f"Patched source for {file_path} has syntax error: {e}")
        return None

    return patched


def offset_to_line_col(source: str, offset: int) -> tuple[int, int]:
    """1-indexed line and 0-indexed column of a character offset."""
    if offset < 0 or offset > len(source):
        raise ValueError(f"Offset {offset} outside source of length {len(source)}")
    line = source.count("\n", 0, offset) + 1
    line_start = source.rfind("\n", 0, offset) + 1
    return line, offset - line_start
