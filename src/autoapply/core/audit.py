from __future__ import annotations

import json
import logging
import threading
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from autoapply.types import AuditEntry, AuditLevel, RunSummary

logger = logging.getLogger(__name__)

_LEVEL_MAP: dict[str, int] = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "success": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


class RunAuditLog:
    """Append-only structured log for one automation run.

    Every entry is mirrored to the module logger and appended to a per
    configuration, per day JSONL file when ``log_dir`` is set.
    """

    def __init__(self, config_id: int, log_dir: Path | None = None):
        self.config_id = config_id
        self.log_dir = log_dir
        self._entries: list[AuditEntry] = []
        self._lock = threading.Lock()
        if self.log_dir is not None:
            self.log_dir.mkdir(parents=True, exist_ok=True)

    @property
    def entries(self) -> list[AuditEntry]:
        with self._lock:
            return list(self._entries)

    def log(
        self,
        level: AuditLevel,
        action: str,
        details: dict[str, Any] | None = None,
        *,
        job_id: str | None = None,
        screenshot_ref: str | None = None,
    ) -> AuditEntry:
        entry = AuditEntry(
            level=level,
            action=action,
            details=details or {},
            job_id=job_id,
            screenshot_ref=screenshot_ref,
        )
        with self._lock:
            self._entries.append(entry)

        suffix = f" job={job_id}" if job_id else ""
        logger.log(_LEVEL_MAP[level], "[config %s] %s%s", self.config_id, action, suffix)
        if details:
            logger.debug("[config %s] details: %s", self.config_id, details)
        self._write_line(entry)
        return entry

    def info(self, action: str, details: dict[str, Any] | None = None, **kwargs: Any) -> AuditEntry:
        return self.log("info", action, details, **kwargs)

    def success(self, action: str, details: dict[str, Any] | None = None, **kwargs: Any) -> AuditEntry:
        return self.log("success", action, details, **kwargs)

    def warning(self, action: str, details: dict[str, Any] | None = None, **kwargs: Any) -> AuditEntry:
        return self.log("warning", action, details, **kwargs)

    def error(self, action: str, details: dict[str, Any] | None = None, **kwargs: Any) -> AuditEntry:
        return self.log("error", action, details, **kwargs)

    def debug(self, action: str, details: dict[str, Any] | None = None, **kwargs: Any) -> AuditEntry:
        return self.log("debug", action, details, **kwargs)

    def summary(self) -> RunSummary:
        entries = self.entries
        if not entries:
            return RunSummary()

        return RunSummary(
            total=len(entries),
            success=sum(1 for entry in entries if entry.level == "success"),
            errors=sum(1 for entry in entries if entry.level == "error"),
            warnings=sum(1 for entry in entries if entry.level == "warning"),
            last_action=entries[-1].action,
            duration_sec=(entries[-1].timestamp - entries[0].timestamp).total_seconds(),
            error_messages=[entry.action for entry in entries if entry.level == "error"],
        )

    def save_report(self) -> Path | None:
        if self.log_dir is None:
            return None

        entries = self.entries
        stamp = datetime.now(UTC).strftime("%Y%m%dT%H%M%S%f")
        path = self.log_dir / f"session-report-{self.config_id}-{stamp}.json"
        report = {
            "config_id": self.config_id,
            "session_start": entries[0].timestamp.isoformat() if entries else None,
            "session_end": entries[-1].timestamp.isoformat() if entries else None,
            "summary": self.summary().model_dump(),
            "entries": [entry.model_dump(mode="json") for entry in entries],
        }
        path.write_text(json.dumps(report, indent=2, ensure_ascii=False), encoding="utf-8")
        logger.info("[config %s] session report saved to %s", self.config_id, path)
        return path

    def _write_line(self, entry: AuditEntry) -> None:
        if self.log_dir is None:
            return
        day = entry.timestamp.strftime("%Y-%m-%d")
        path = self.log_dir / f"automation-{self.config_id}-{day}.jsonl"
        line = json.dumps({"config_id": self.config_id, **entry.model_dump(mode="json")}, ensure_ascii=False)
        with self._lock, path.open("a", encoding="utf-8") as handle:
            handle.write(line + "\n")
