"""
Rule Engine Data Models — Findings, diagnostics, suppressions and rule configuration.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from patternguard.models.ast_models import Span


class Severity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class Edit(BaseModel):
    """A proposed textual replacement of a half-open source span."""

    model_config = ConfigDict(frozen=True)

    span: Span
    replacement: str = Field(default="", description="Text that replaces the span")


class RawFinding(BaseModel):
    """What a rule returns from match(); severity is resolved later."""

    model_config = ConfigDict(frozen=True)

    rule_id: str
    span: Span = Field(..., description="The offending code range")
    message: str
    fix: Edit | None = None


class Diagnostic(BaseModel):
    """A finalized, deduplicated, unsuppressed finding."""

    model_config = ConfigDict(frozen=True)

    rule_id: str
    severity: Severity
    span: Span
    message: str
    fix: Edit | None = None

    @property
    def sort_key(self) -> tuple[int, int, str]:
        return (self.span.start, self.span.end, self.rule_id)


class Suppression(BaseModel):
    """Removes diagnostics wholly inside `span`, optionally for one rule only."""

    model_config = ConfigDict(frozen=True)

    span: Span
    rule_id: str | None = Field(
        default=None, description="Only suppress this rule; None suppresses all rules"
    )

    def suppresses(self, diagnostic: Diagnostic) -> bool:
        if self.rule_id is not None and self.rule_id != diagnostic.rule_id:
            return False
        return self.span.contains(diagnostic.span)


class RuleConfig(BaseModel):
    """Per-rule project configuration."""

    enabled: bool = True
    severity: Severity | None = Field(
        default=None, description="Overrides the rule's default severity"
    )
    options: dict[str, Any] = Field(
        default_factory=dict, description="Opaque options handed to the rule constructor"
    )


class RuleMatchFailure(BaseModel):
    """A rule raised while matching; recorded as data, the pass continues."""

    model_config = ConfigDict(frozen=True)

    rule_id: str
    span: Span = Field(..., description="Span of the node being matched")
    node_kind: str = ""
    message: str = "rule crashed"
    cause: str = Field(default="", description="Exception type and text")
