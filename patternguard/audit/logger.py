"""
Audit Logger — Structured JSON-lines audit trail.

Records every analysis with: timestamp, analysis_id, files analysed,
diagnostics and rule failures found, fixes accepted, cache hits and duration.
"""

from __future__ import annotations

import json
import logging
import time
from collections import deque
from pathlib import Path

from pydantic import BaseModel

from patternguard.config import settings

logger = logging.getLogger("patternguard.audit")


class AuditEntry(BaseModel):
    """Audit metadata for one analysis request."""

    analysis_id: str
    files_analyzed: int
    diagnostics_found: int
    rule_failures: int = 0
    fixes_accepted: int = 0
    fixes_rejected: int = 0
    cache_hits: int = 0
    config_fingerprint: str = ""
    duration_ms: float = 0.0


class AuditLogger:
    """Writes structured audit entries to a JSON-lines file."""

    def __init__(self, log_path: str | None = None) -> None:
        self.log_path = Path(log_path or settings.audit_log_path)

    def log(self, entry: AuditEntry) -> None:
        """Append an audit entry to the log file."""
        record = {
            "timestamp": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
            **entry.model_dump(),
        }

        try:
            with open(self.log_path, "a") as f:
                f.write(json.dumps(record) + "\n")
        except OSError as e:
            logger.error(f"Failed to write audit log: {e}")

    def read_recent(self, count: int = 50) -> list[dict]:
        """Read the most recent N audit entries, skipping corrupt lines."""
        if not self.log_path.exists():
            return []

        recent: deque[dict] = deque(maxlen=count)
        try:
            with open(self.log_path) as f:
                for line in f:
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        recent.append(json.loads(line))
                    except json.JSONDecodeError:
                        logger.debug(f"Skipping corrupt audit line in {self.log_path}")
        except OSError as e:
            logger.error(f"Failed to read audit log: {e}")
            return []

        return list(recent)
