"""
Tests for the File Cache and the Audit Logger.
"""

from concurrent.futures import ThreadPoolExecutor

from patternguard.audit.logger import AuditEntry, AuditLogger
from patternguard.cache.file_cache import FileCache
from patternguard.models.analysis_models import AnalysisResult


def test_cache_roundtrip():
    cache = FileCache()
    result = AnalysisResult(file_path="a.py")
    cache.put("a.py", "x = 1\n", "fp1", result)

    entry = cache.get("a.py", "x = 1\n", "fp1")
    assert entry is not None
    assert entry.result is result
    assert entry.content_hash == FileCache.hash_content("x = 1\n")


def test_cache_miss_on_changed_content_or_config():
    cache = FileCache()
    cache.put("a.py", "x = 1\n", "fp1", AnalysisResult(file_path="a.py"))
    assert cache.get("a.py", "x = 2\n", "fp1") is None
    assert cache.get("a.py", "x = 1\n", "fp2") is None
    assert cache.stats()["misses"] == 2


def test_expired_entries_dropped():
    cache = FileCache(ttl_seconds=-1)
    cache.put("a.py", "x = 1\n", "fp1", AnalysisResult(file_path="a.py"))
    assert cache.get("a.py", "x = 1\n", "fp1") is None
    assert cache.size == 0


def test_invalidate_by_path():
    cache = FileCache()
    cache.put("a.py", "x = 1\n", "fp1", AnalysisResult(file_path="a.py"))
    cache.put("a.py", "x = 2\n", "fp1", AnalysisResult(file_path="a.py"))
    cache.put("b.py", "x = 1\n", "fp1", AnalysisResult(file_path="b.py"))
    assert cache.invalidate("a.py") == 2
    assert cache.size == 1
    cache.clear()
    assert cache.size == 0


def test_audit_log_appends_jsonl(tmp_path):
    audit = AuditLogger(str(tmp_path / "audit.jsonl"))
    for i in range(3):
        audit.log(AuditEntry(analysis_id=f"run{i}", files_analyzed=1, diagnostics_found=i))

    recent = audit.read_recent(count=2)
    assert [e["analysis_id"] for e in recent] == ["run1", "run2"]


def test_audit_log_skips_corrupt_lines(tmp_path):
    path = tmp_path / "audit.jsonl"
    audit = AuditLogger(str(path))
    audit.log(AuditEntry(analysis_id="good", files_analyzed=1, diagnostics_found=0))
    with open(path, "a") as f:
        f.write("{not json\n")

    assert [e["analysis_id"] for e in audit.read_recent()] == ["good"]


def test_audit_log_missing_file(tmp_path):
    assert AuditLogger(str(tmp_path / "none.jsonl")).read_recent() == []


class EvictedAfterRead(dict):
    """Store where another worker evicts an entry right after it is read."""

    def get(self, key, default=None):
        entry = super().get(key, default)
        self.pop(key, None)
        return entry


def test_expired_entry_already_evicted():
    cache = FileCache(ttl_seconds=-1)
    cache._store = EvictedAfterRead()
    cache.put("a.py", "x = 1\n", "fp1", AnalysisResult(file_path="a.py"))
    assert cache.get("a.py", "x = 1\n", "fp1") is None
    assert cache.misses == 1


def test_cache_shared_between_threads():
    cache = FileCache(ttl_seconds=-1)
    result = AnalysisResult(file_path="a.py")

    def churn(i):
        for _ in range(200):
            cache.put("a.py", "x = 1\n", "fp1", result)
            cache.get("a.py", "x = 1\n", "fp1")
            cache.invalidate("b.py")
            cache.stats()
        return i

    with ThreadPoolExecutor(max_workers=8) as pool:
        assert sorted(pool.map(churn, range(8))) == list(range(8))
