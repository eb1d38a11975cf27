from sqlalchemy import select
from typer.testing import CliRunner

from autoapply.cli.app import app
from autoapply.db.models import ApplicationAttempt, AutomationConfig, User
from autoapply.db.session import SessionLocal

runner = CliRunner()


def test_cli_creates_config_and_runs_demo_automation() -> None:
    assert runner.invoke(app, ["init"]).exit_code == 0

    result = runner.invoke(
        app,
        ["user", "create", "--name", "Alex Martin", "--email", "alex@example.com", "--phone", "0612345678"],
    )
    assert result.exit_code == 0
    with SessionLocal() as db:
        user = db.scalar(select(User).where(User.email == "alex@example.com"))
    assert user is not None

    result = runner.invoke(
        app,
        [
            "config",
            "create",
            "--user-id",
            str(user.id),
            "--skills",
            "React, Python",
            "--max-per-day",
            "3",
            "--blacklist",
            "Stage",
        ],
    )
    assert result.exit_code == 0
    with SessionLocal() as db:
        config = db.scalar(select(AutomationConfig).where(AutomationConfig.user_id == user.id))
    assert config.skills_json == ["React", "Python"]
    assert config.blacklist_keywords_json == ["Stage"]

    assert runner.invoke(app, ["config", "show", "--config-id", str(config.id)]).exit_code == 0

    result = runner.invoke(app, ["run", "--config-id", str(config.id)])
    assert result.exit_code == 0
    assert '"applications_submitted": 3' in result.output

    with SessionLocal() as db:
        attempts = list(db.scalars(select(ApplicationAttempt)).all())
    assert len(attempts) == 3
    assert {attempt.status for attempt in attempts} == {"APPLIED"}

    result = runner.invoke(app, ["run", "--config-id", str(config.id)])
    assert result.exit_code == 0
    assert '"applications_submitted": 0' in result.output

    assert runner.invoke(app, ["attempts", "--config-id", str(config.id)]).exit_code == 0


def test_cli_run_reports_failure_with_exit_code() -> None:
    runner.invoke(app, ["user", "create", "--name", "Alex", "--email", "alex@example.com"])
    with SessionLocal() as db:
        user = db.scalar(select(User))
    runner.invoke(app, ["config", "create", "--user-id", str(user.id), "--skills", "React"])
    with SessionLocal() as db:
        config = db.scalar(select(AutomationConfig))

    result = runner.invoke(app, ["run", "--config-id", str(config.id), "--real"])

    assert result.exit_code == 1
    assert '"ok": false' in result.output


def test_config_create_rejects_unknown_user() -> None:
    result = runner.invoke(app, ["config", "create", "--user-id", "999", "--skills", "React"])

    assert result.exit_code != 0
