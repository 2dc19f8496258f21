"""
Test fixtures shared across all PatternGuard tests.
"""

import pytest

from patternguard.models.ast_models import Node, Span


@pytest.fixture
def sample_python_code():
    """Sample Python code with one known smell per bundled rule family."""
    return '''import os

registry = {}
counter = 0
handlers = []


def register(name, handler, priority, tags, enabled):
    """Too many parameters, and mutates module-level collections."""
    registry[name] = handler
    handlers.append(handler)


def bump():
    global counter
    counter += 1
    return counter


def render(text, upper=False):
    if upper:
        return text.upper()
    return text


def is_not_ready(job):
    return job.state != "done"
'''


@pytest.fixture
def clean_python_code():
    """Clean Python code with no diagnostics."""
    return '''
def add(a: int, b: int) -> int:
    """Simple pure function."""
    return a + b


def greet(name: str) -> str:
    return "Hello, " + name
'''


@pytest.fixture
def sample_files(sample_python_code, clean_python_code):
    """Sample file inputs for worker and API testing."""
    from patternguard.models.analysis_models import FileInput
    return [
        FileInput(path="smelly.py", content=sample_python_code),
        FileInput(path="clean.py", content=clean_python_code),
    ]


@pytest.fixture
def make_node():
    """Build facade nodes by hand: make_node(kind, start, end, *children, value=None)."""

    def _make(kind, start, end, *children, value=None, source=None):
        return Node(
            kind=kind,
            span=Span(start=start, end=end),
            children=tuple(children),
            value=value,
            source=source,
        )

    return _make
