"""
Analysis Worker — Async orchestrator running one pass per file.

Pipeline per file:
1. Size guard
2. Cache lookup (content hash + rule configuration fingerprint)
3. Parse into the Node facade
4. Run the rule engine (traversal → collector → fix plan)
5. Optionally apply accepted fixes and re-scan the patched source
6. Cache the result

Files run concurrently in worker threads; they share only the immutable
registry snapshot, never rule instances or scope tables.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from collections.abc import Mapping

from patternguard.audit.logger import AuditEntry, AuditLogger
from patternguard.cache.file_cache import FileCache
from patternguard.config import settings
from patternguard.core.ast_parser import parse_file
from patternguard.core.errors import PatternGuardError
from patternguard.core.registry import RuleRegistry, default_registry
from patternguard.core.rule_engine import RuleEngine
from patternguard.engine.patch_applier import apply_python_fixes
from patternguard.engine.rescan import rescan_patched_source
from patternguard.models.analysis_models import (
    AnalysisConfig,
    AnalyzeResponse,
    FileInput,
    FileReport,
)
from patternguard.models.rule_models import RuleConfig

logger = logging.getLogger("patternguard.worker")


class AnalysisWorker:
    """Runs analysis passes for batches of files."""

    def __init__(
        self,
        cache: FileCache | None = None,
        audit_logger: AuditLogger | None = None,
        registry: RuleRegistry | None = None,
        max_workers: int | None = None,
    ) -> None:
        self.cache = cache or FileCache()
        self.audit_logger = audit_logger
        self.max_workers = max_workers or settings.max_workers
        self.registry = registry or default_registry()
        self.rule_engine = RuleEngine(self.registry, AnalysisConfig(fix_policy=settings.fix_policy))

    def engine_for(self, rules: Mapping[str, RuleConfig] | None = None) -> RuleEngine:
        """The shared engine, or one built for per-request rule overrides."""
        if not rules:
            return self.rule_engine
        config = AnalysisConfig(rules=dict(rules), fix_policy=settings.fix_policy)
        return RuleEngine(self.registry, config)

    def analyze_source(
        self,
        path: str,
        content: str,
        engine: RuleEngine | None = None,
        apply_fixes: bool = False,
    ) -> FileReport:
        """Run one synchronous pass over one file."""
        engine = engine or self.rule_engine

        if len(content.encode("utf-8")) > settings.max_source_bytes:
            return FileReport(
                path=path,
                error=f"File exceeds maximum size of {settings.max_source_bytes} bytes",
            )

        fingerprint = engine.snapshot.fingerprint()
        cached = self.cache.get(path, content, fingerprint)
        if cached:
            logger.debug(f"Cache hit: {path}")
            report = FileReport(path=path, result=cached.result, cached=True)
        else:
            tree = parse_file(content, path)
            if tree.parse_errors:
                return FileReport(path=path, error="; ".join(tree.parse_errors))
            try:
                result = engine.run(tree)
            except PatternGuardError as e:
                logger.error(f"Analysis of {path} aborted: {e}")
                return FileReport(path=path, error=str(e))
            self.cache.put(path, content, fingerprint, result)
            report = FileReport(path=path, result=result)

        if apply_fixes and report.result is not None and report.result.fix_plan.has_fixes:
            patched = apply_python_fixes(content, report.result.fix_plan, path)
            if patched is not None:
                rescan = rescan_patched_source(report.result, patched, path, engine)
                report = report.model_copy(
                    update={"patched_source": patched, "rescan_passed": rescan.passed}
                )

        return report

    async def analyze_many(
        self,
        files: list[FileInput],
        rules: Mapping[str, RuleConfig] | None = None,
        apply_fixes: bool = False,
    ) -> AnalyzeResponse:
        """
        Analyse every file, running passes concurrently in worker threads.

        Raises:
            UnknownRuleId: rules configures a rule that is not registered.
        """
        analysis_id = str(uuid.uuid4())[:8]
        start_time = time.monotonic()
        engine = self.engine_for(rules)

        logger.info(
            f"[{analysis_id}] Analysing {len(files)} file(s) with "
            f"{len(engine.rule_ids)} rule(s)"
        )

        limit = asyncio.Semaphore(self.max_workers)

        async def run_one(f: FileInput) -> FileReport:
            async with limit:
                return await asyncio.to_thread(
                    self.analyze_source, f.path, f.content, engine, apply_fixes
                )

        reports = list(await asyncio.gather(*(run_one(f) for f in files)))

        total_diagnostics = sum(len(r.result.diagnostics) for r in reports if r.result)
        total_failures = sum(len(r.result.failures) for r in reports if r.result)
        elapsed_ms = (time.monotonic() - start_time) * 1000

        if self.audit_logger is not None:
            self.audit_logger.log(
                AuditEntry(
                    analysis_id=analysis_id,
                    files_analyzed=len(files),
                    diagnostics_found=total_diagnostics,
                    rule_failures=total_failures,
                    fixes_accepted=sum(
                        len(r.result.fix_plan.accepted) for r in reports if r.result
                    ),
                    fixes_rejected=sum(
                        len(r.result.fix_plan.rejected) for r in reports if r.result
                    ),
                    cache_hits=sum(1 for r in reports if r.cached),
                    config_fingerprint=engine.snapshot.fingerprint(),
                    duration_ms=round(elapsed_ms, 2),
                )
            )

        logger.info(
            f"[{analysis_id}] Analysis complete in {elapsed_ms:.0f}ms: "
            f"{total_diagnostics} diagnostics, {total_failures} rule failures"
        )

        return AnalyzeResponse(
            analysis_id=analysis_id,
            reports=reports,
            total_diagnostics=total_diagnostics,
            total_failures=total_failures,
            duration_ms=round(elapsed_ms, 2),
        )
