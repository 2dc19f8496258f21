"""
Engine Errors — Structural and configuration failures.

Per-rule crashes are not exceptions at this level; they travel as
RuleMatchFailure records inside the analysis result.
"""

from __future__ import annotations


class PatternGuardError(Exception):
    """Base class for every error the engine raises."""


class MalformedTree(PatternGuardError):
    """The tree handed to the traversal is cyclic or structurally invalid."""

    def __init__(self, message: str, kind: str = "") -> None:
        super().__init__(message)
        self.kind = kind


class DuplicateRuleId(PatternGuardError):
    """Two rules registered under the same id."""

    def __init__(self, rule_id: str) -> None:
        super().__init__(f"Rule '{rule_id}' is already registered")
        self.rule_id = rule_id


class UnknownRuleId(PatternGuardError):
    """Configuration names a rule that was never registered."""

    def __init__(self, rule_id: str, available: list[str] | None = None) -> None:
        message = f"Unknown rule '{rule_id}'"
        if available:
            message += f". Available: {', '.join(sorted(available))}"
        super().__init__(message)
        self.rule_id = rule_id


class EditApplicationError(PatternGuardError):
    """Edits cannot be applied to the given source text."""
