"""
Scope Tracking — Lexical scope frames owned by a single pass.

Frames refer to their parent by index into the pass's scope table, so a frame
never owns the frame that encloses it and nothing outlives the pass.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator

from patternguard.models.ast_models import ScopeKind, Span


@dataclass
class ScopeFrame:
    """One lexical scope: module, function or block."""

    index: int
    kind: ScopeKind
    node_span: Span
    parent: int | None = None
    declared_names: set[str] = field(default_factory=set)

    def declares(self, name: str) -> bool:
        return name in self.declared_names


class ScopeStack:
    """
    The active chain of frames plus the table of every frame opened in the pass.

    Rules receive this object read-only; only the traversal pushes and pops.
    """

    def __init__(self) -> None:
        self._table: list[ScopeFrame] = []
        self._active: list[int] = []

    # ── Engine side ──

    def push(self, kind: ScopeKind, node_span: Span) -> ScopeFrame:
        parent = self._active[-1] if self._active else None
        frame = ScopeFrame(
            index=len(self._table), kind=kind, node_span=node_span, parent=parent
        )
        self._table.append(frame)
        self._active.append(frame.index)
        return frame

    def pop(self) -> ScopeFrame:
        if not self._active:
            raise IndexError("pop from empty scope stack")
        return self._table[self._active.pop()]

    def declare(self, name: str) -> None:
        if self._active:
            self.current.declared_names.add(name)

    # ── Rule side ──

    @property
    def current(self) -> ScopeFrame:
        return self._table[self._active[-1]]

    @property
    def module(self) -> ScopeFrame:
        return self._table[self._active[0]]

    @property
    def depth(self) -> int:
        return len(self._active)

    def __len__(self) -> int:
        return len(self._active)

    def __iter__(self) -> Iterator[ScopeFrame]:
        """Innermost frame first."""
        for index in reversed(self._active):
            yield self._table[index]

    def parent_of(self, frame: ScopeFrame) -> ScopeFrame | None:
        return None if frame.parent is None else self._table[frame.parent]

    def resolve(self, name: str) -> ScopeFrame | None:
        """Innermost active frame that declares name, or None if undeclared."""
        for frame in self:
            if frame.declares(name):
                return frame
        return None

    def enclosing(self, kind: ScopeKind) -> ScopeFrame | None:
        for frame in self:
            if frame.kind == kind:
                return frame
        return None

    def in_function(self) -> bool:
        return self.enclosing(ScopeKind.FUNCTION) is not None

    @property
    def frames_opened(self) -> int:
        return len(self._table)
