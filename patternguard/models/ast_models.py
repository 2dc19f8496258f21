"""
AST Facade Models — Language-agnostic view over a parsed syntax tree.

The engine never parses text. An external parser (or one of the adapters in
patternguard.core.ast_parser) builds a tree of Node objects and describes,
through SyntaxTree, which node kinds open scopes, declare names, or carry
suppression markers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, Mapping, Protocol, Sequence

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Span(BaseModel):
    """Half-open [start, end) range of character offsets into the source."""

    model_config = ConfigDict(frozen=True)

    start: int = Field(..., ge=0, description="Inclusive start offset")
    end: int = Field(..., ge=0, description="Exclusive end offset")

    @model_validator(mode="after")
    def _check_order(self) -> "Span":
        if self.start > self.end:
            raise ValueError(f"span start {self.start} is after end {self.end}")
        return self

    @property
    def key(self) -> tuple[int, int]:
        return (self.start, self.end)

    @property
    def is_empty(self) -> bool:
        return self.start == self.end

    def contains(self, other: Span) -> bool:
        """True if other lies wholly inside this span."""
        return self.start <= other.start and other.end <= self.end

    def overlaps(self, other: Span) -> bool:
        """True if both spans share at least one position."""
        return self.start < other.end and other.start < self.end

    def __str__(self) -> str:
        return f"[{self.start},{self.end})"


class ScopeKind(str, Enum):
    MODULE = "module"
    FUNCTION = "function"
    BLOCK = "block"


class NodeView(Protocol):
    """Anything the traversal can walk: a kind tag, a span and ordered children."""

    @property
    def kind(self) -> str: ...

    @property
    def span(self) -> Span: ...

    @property
    def children(self) -> Sequence[NodeView]: ...


@dataclass(frozen=True, eq=False)
class Node:
    """
    Immutable view of one AST element.

    Nodes compare and hash by identity, which is what the traversal uses to
    detect re-visits. `source` is a shared reference to the whole source text,
    never a copy, so `text` can slice out what the node covers.
    """

    kind: str
    span: Span
    children: tuple[Node, ...] = ()
    value: str | None = None
    source: str | None = field(default=None, repr=False)

    @property
    def text(self) -> str:
        if self.source is None:
            return self.value or ""
        return self.source[self.span.start : self.span.end]

    def child(self, kind: str) -> Node | None:
        """First direct child of the given kind."""
        for c in self.children:
            if c.kind == kind:
                return c
        return None

    def children_of(self, kind: str) -> list[Node]:
        return [c for c in self.children if c.kind == kind]

    def descendants(self, stop_kinds: frozenset[str] = frozenset()) -> Iterator[Node]:
        """
        Pre-order walk of everything below this node.

        Nodes whose kind is in stop_kinds are yielded but not descended into,
        which lets function-level rules ignore nested function bodies.
        """
        stack = list(reversed(self.children))
        while stack:
            node = stack.pop()
            yield node
            if node.kind not in stop_kinds:
                stack.extend(reversed(node.children))


@dataclass(frozen=True)
class SyntaxTree:
    """A parsed source handed to the engine, plus the parser's kind vocabulary."""

    root: NodeView
    source: str = ""
    file_path: str = "<unknown>"
    language: str = "unknown"
    scope_kinds: Mapping[str, ScopeKind] = field(default_factory=dict)
    declaring_kinds: frozenset[str] = frozenset()
    suppression_kinds: frozenset[str] = frozenset()
    parse_errors: tuple[str, ...] = ()
