"""
Analysis Models — Per-pass configuration and results, plus the HTTP API contract.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from patternguard.models.patch_models import FixPlan, FixPolicy
from patternguard.models.rule_models import (
    Diagnostic,
    RuleConfig,
    RuleMatchFailure,
    Suppression,
)


class AnalysisConfig(BaseModel):
    """Everything besides the tree that determines the outcome of a pass."""

    rules: dict[str, RuleConfig] = Field(
        default_factory=dict, description="Per-rule overrides keyed by rule id"
    )
    suppressions: list[Suppression] = Field(
        default_factory=list, description="Global suppression markers"
    )
    fix_policy: FixPolicy = FixPolicy.LEFTMOST_GREEDY


class AnalysisResult(BaseModel):
    """The complete, immutable outcome of one pass over one tree."""

    model_config = ConfigDict(frozen=True)

    file_path: str = "<unknown>"
    diagnostics: tuple[Diagnostic, ...] = Field(default_factory=tuple)
    failures: tuple[RuleMatchFailure, ...] = Field(default_factory=tuple)
    fix_plan: FixPlan = Field(default_factory=FixPlan)
    rules_executed: tuple[str, ...] = Field(default_factory=tuple)
    nodes_visited: int = 0
    duration_ms: float = 0.0
    parse_errors: tuple[str, ...] = Field(default_factory=tuple)

    def by_rule(self, rule_id: str) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.rule_id == rule_id]


class FileInput(BaseModel):
    """A single source file submitted for analysis."""

    path: str = Field(..., description="File path (absolute or relative)")
    content: str = Field(..., description="File source content")


class AnalyzeRequest(BaseModel):
    """Request body for POST /analyze."""

    files: list[FileInput] = Field(default_factory=list)
    rules: dict[str, RuleConfig] = Field(default_factory=dict)
    apply_fixes: bool = Field(
        default=False, description="Return sources with the accepted edits applied"
    )


class FileReport(BaseModel):
    """Result for one submitted file."""

    path: str
    result: AnalysisResult | None = None
    error: str = ""
    patched_source: str | None = None
    rescan_passed: bool | None = Field(
        default=None, description="Whether re-analysing patched_source confirmed the fixes"
    )
    cached: bool = False


class AnalyzeResponse(BaseModel):
    """Response body for POST /analyze."""

    message: str = "analysis_complete"
    analysis_id: str = ""
    reports: list[FileReport] = Field(default_factory=list)
    total_diagnostics: int = 0
    total_failures: int = 0
    duration_ms: float = 0.0
