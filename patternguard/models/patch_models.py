"""
Fix Data Models — Outcome of resolving the edits proposed by diagnostics.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from patternguard.models.rule_models import Diagnostic, Edit


class FixPolicy(str, Enum):
    """How competing edits are chosen. Only leftmost-greedy exists today."""

    LEFTMOST_GREEDY = "leftmost_greedy"


class ConflictReason(str, Enum):
    OVERLAPS_ACCEPTED = "overlaps_accepted"
    DUPLICATE_OF_ACCEPTED = "duplicate_of_accepted"


class AcceptedEdit(BaseModel):
    """An edit chosen for application, with the diagnostic that proposed it."""

    model_config = ConfigDict(frozen=True)

    edit: Edit
    diagnostic: Diagnostic


class FixConflict(BaseModel):
    """A rejected edit and the accepted edit it collided with."""

    model_config = ConfigDict(frozen=True)

    rejected: Diagnostic
    accepted: Diagnostic
    reason: ConflictReason
    edit: Edit = Field(..., description="The rejected edit")


class FixPlan(BaseModel):
    """Accepted edits in ascending span order plus every rejected edit."""

    model_config = ConfigDict(frozen=True)

    policy: FixPolicy = FixPolicy.LEFTMOST_GREEDY
    accepted: tuple[AcceptedEdit, ...] = Field(default_factory=tuple)
    rejected: tuple[FixConflict, ...] = Field(default_factory=tuple)

    @property
    def edits(self) -> list[Edit]:
        return [a.edit for a in self.accepted]

    @property
    def has_fixes(self) -> bool:
        return bool(self.accepted)
