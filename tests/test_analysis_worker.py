"""
Tests for the Analysis Worker — concurrent multi-file passes, caching, audit and fixes.
"""

import asyncio

import pytest

from patternguard.audit.logger import AuditLogger
from patternguard.cache.file_cache import FileCache
from patternguard.config import settings
from patternguard.core.errors import UnknownRuleId
from patternguard.core.registry import default_registry
from patternguard.core.rules.base import BaseRule
from patternguard.models.analysis_models import FileInput
from patternguard.models.rule_models import RuleConfig
from patternguard.workers.analysis_worker import AnalysisWorker


@pytest.fixture
def worker(tmp_path):
    return AnalysisWorker(
        cache=FileCache(),
        audit_logger=AuditLogger(str(tmp_path / "audit.jsonl")),
    )


def test_reports_returned_in_input_order(worker, sample_files):
    response = asyncio.run(worker.analyze_many(sample_files))
    assert response.message == "analysis_complete"
    assert [r.path for r in response.reports] == ["smelly.py", "clean.py"]
    smelly, clean = response.reports
    assert smelly.result is not None and smelly.result.diagnostics
    assert clean.result is not None and clean.result.diagnostics == ()
    assert response.total_diagnostics == len(smelly.result.diagnostics)
    assert response.total_failures == 0


def test_many_files_analysed_concurrently(worker, sample_python_code):
    files = [FileInput(path=f"f{i}.py", content=sample_python_code) for i in range(12)]
    response = asyncio.run(worker.analyze_many(files))
    counts = {len(r.result.diagnostics) for r in response.reports}
    assert len(counts) == 1
    assert response.total_diagnostics == 12 * counts.pop()


def test_second_run_served_from_cache(worker, sample_files):
    asyncio.run(worker.analyze_many(sample_files))
    response = asyncio.run(worker.analyze_many(sample_files))
    assert all(r.cached for r in response.reports)
    assert worker.cache.stats()["hits"] == 2


def test_rule_overrides_bypass_cached_results(worker, sample_files):
    asyncio.run(worker.analyze_many(sample_files))
    rules = {"flag-argument": RuleConfig(enabled=False)}
    response = asyncio.run(worker.analyze_many(sample_files, rules))
    assert not any(r.cached for r in response.reports)
    assert response.reports[0].result.by_rule("flag-argument") == []


def test_unknown_rule_override_raises(worker, sample_files):
    with pytest.raises(UnknownRuleId):
        asyncio.run(worker.analyze_many(sample_files, {"no-such-rule": RuleConfig()}))


def test_parse_error_reported_per_file(worker, clean_python_code):
    files = [
        FileInput(path="broken.py", content="def broken(:\n"),
        FileInput(path="clean.py", content=clean_python_code),
    ]
    response = asyncio.run(worker.analyze_many(files))
    broken, clean = response.reports
    assert broken.result is None
    assert "SyntaxError" in broken.error
    assert clean.error == ""


def test_oversized_file_rejected(worker, monkeypatch):
    monkeypatch.setattr(settings, "max_source_bytes", 10)
    report = worker.analyze_source("big.py", "x = 1\n" * 10)
    assert report.result is None
    assert "maximum size" in report.error


def test_apply_fixes_returns_verified_patch(worker):
    source = 'def is_not_ready(job):\n    return job.state != "done"\n'
    report = worker.analyze_source("ready.py", source, apply_fixes=True)
    assert report.patched_source == 'def is_ready(job):\n    return job.state == "done"\n'
    assert report.rescan_passed is True


def test_no_patch_without_fixes(worker, clean_python_code):
    report = worker.analyze_source("clean.py", clean_python_code, apply_fixes=True)
    assert report.patched_source is None
    assert report.rescan_passed is None


def test_audit_entry_written(worker, sample_files):
    response = asyncio.run(worker.analyze_many(sample_files))
    entries = worker.audit_logger.read_recent()
    assert len(entries) == 1
    entry = entries[0]
    assert entry["analysis_id"] == response.analysis_id
    assert entry["files_analyzed"] == 2
    assert entry["diagnostics_found"] == response.total_diagnostics
    assert entry["fixes_accepted"] == 1
    assert "timestamp" in entry


class FunctionMarker(BaseRule):
    id = "function-marker"
    interested_kinds = frozenset({"function_def"})

    def match(self, node, scopes):
        return [self.finding(node.span, "function found")]


def test_custom_rule_survives_overrides(tmp_path, sample_files):
    registry = default_registry()
    registry.register(FunctionMarker)
    worker = AnalysisWorker(
        audit_logger=AuditLogger(str(tmp_path / "audit.jsonl")),
        registry=registry,
    )

    engine = worker.engine_for({"deep-nesting": RuleConfig(enabled=False)})
    assert "function-marker" in engine.rule_ids
    assert "deep-nesting" not in engine.rule_ids

    response = asyncio.run(
        worker.analyze_many(sample_files, {"flag-argument": RuleConfig(enabled=False)})
    )
    smelly = response.reports[0].result
    assert smelly.by_rule("function-marker")
    assert smelly.by_rule("flag-argument") == []
    assert "deep-nesting" in worker.rule_engine.rule_ids
    assert registry.config("deep-nesting").enabled
