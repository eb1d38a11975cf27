import json
from pathlib import Path

from autoapply.core.audit import RunAuditLog


def test_entries_are_written_as_jsonl(tmp_path: Path) -> None:
    audit = RunAuditLog(12, tmp_path)

    audit.info("run started", {"board": "hellowork"})
    audit.error("apply failed", job_id="900", screenshot_ref="shot.png")

    files = list(tmp_path.glob("automation-12-*.jsonl"))
    assert len(files) == 1
    lines = [json.loads(line) for line in files[0].read_text(encoding="utf-8").splitlines()]
    assert [line["action"] for line in lines] == ["run started", "apply failed"]
    assert lines[1]["level"] == "error"
    assert lines[1]["job_id"] == "900"
    assert lines[1]["screenshot_ref"] == "shot.png"
    assert lines[0]["config_id"] == 12


def test_summary_counts_levels() -> None:
    audit = RunAuditLog(1)
    audit.info("a")
    audit.success("b")
    audit.warning("c")
    audit.error("d")

    summary = audit.summary()

    assert summary.total == 4
    assert summary.success == 1
    assert summary.warnings == 1
    assert summary.errors == 1
    assert summary.error_messages == ["d"]
    assert summary.last_action == "d"
    assert summary.duration_sec >= 0


def test_session_report_saved(tmp_path: Path) -> None:
    audit = RunAuditLog(3, tmp_path)
    audit.success("applied")

    path = audit.save_report()

    assert path is not None
    report = json.loads(path.read_text(encoding="utf-8"))
    assert report["config_id"] == 3
    assert report["summary"]["success"] == 1
    assert len(report["entries"]) == 1


def test_no_files_without_log_dir() -> None:
    audit = RunAuditLog(3)
    audit.info("x")

    assert audit.save_report() is None
