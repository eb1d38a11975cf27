from __future__ import annotations

import json

import typer
import uvicorn
from sqlalchemy.exc import IntegrityError

from autoapply.api.app import create_app
from autoapply.api.schemas import attempt_response, config_response
from autoapply.browser.factory import SUPPORTED_BOARDS
from autoapply.config import get_settings
from autoapply.core.orchestrator import AutoApplyOrchestrator
from autoapply.db.init import init_database
from autoapply.db.repositories import Repository
from autoapply.db.session import SessionLocal
from autoapply.errors import AutomationError
from autoapply.logging_config import configure_logging

app = typer.Typer(help="AutoApply CLI")
user_app = typer.Typer(help="Manage users and their contact profile")
config_app = typer.Typer(help="Manage automation configurations")

app.add_typer(user_app, name="user")
app.add_typer(config_app, name="config")

_INITIALIZED = False


def ensure_initialized() -> None:
    global _INITIALIZED
    if _INITIALIZED:
        return
    init_database()
    _INITIALIZED = True


def _split(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


@app.command("init")
def init_cmd() -> None:
    """Initialize database and data directories."""
    configure_logging()
    result = init_database()
    typer.echo(json.dumps({"ok": True, **result}, indent=2))


@app.command("boards")
def boards_cmd() -> None:
    typer.echo(
        json.dumps(
            [{"key": key, "name": board.name, "url": board.url} for key, board in SUPPORTED_BOARDS.items()],
            indent=2,
        )
    )


@user_app.command("create")
def user_create(
    name: str = typer.Option(..., "--name"),
    email: str = typer.Option(..., "--email"),
    phone: str = typer.Option("", "--phone"),
    city: str = typer.Option("", "--city"),
    postal_code: str = typer.Option("", "--postal-code"),
    experience: str = typer.Option("", "--experience"),
) -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        repo = Repository(db)
        try:
            user = repo.create_user(name=name, email=email)
        except IntegrityError as exc:
            raise typer.BadParameter(f"a user with email {email} already exists") from exc
        profile = {"phone": phone, "city": city, "postal_code": postal_code, "experience": experience}
        if any(profile.values()):
            repo.upsert_user_profile(user.id, profile)
        typer.echo(json.dumps({"id": user.id, "name": user.name, "email": user.email}, indent=2))


@config_app.command("create")
def config_create(
    user_id: int = typer.Option(..., "--user-id"),
    name: str = typer.Option("", "--name"),
    board: str = typer.Option("hellowork", "--board"),
    board_email: str = typer.Option("", "--board-email"),
    board_password: str = typer.Option("", "--board-password", envvar="AUTOAPPLY_BOARD_PASSWORD"),
    skills: str = typer.Option(..., "--skills", help="Comma-separated skills, also used as search keywords"),
    locations: str = typer.Option("", "--locations"),
    salary_min: int | None = typer.Option(None, "--salary-min"),
    salary_max: int | None = typer.Option(None, "--salary-max"),
    remote: bool = typer.Option(False, "--remote"),
    max_per_day: int = typer.Option(10, "--max-per-day", min=0),
    threshold: int = typer.Option(0, "--threshold", min=0, max=100),
    blacklist: str = typer.Option("", "--blacklist"),
    custom_message: str = typer.Option("", "--custom-message"),
    fallback_phone: str = typer.Option("", "--fallback-phone"),
    fallback_postal_code: str = typer.Option("", "--fallback-postal-code"),
    fallback_city: str = typer.Option("", "--fallback-city"),
) -> None:
    configure_logging()
    ensure_initialized()
    key = board.strip().lower()
    if key not in SUPPORTED_BOARDS:
        raise typer.BadParameter(f"unsupported job board: {board}")

    with SessionLocal() as db:
        repo = Repository(db)
        if not repo.get_user_by_id(user_id):
            raise typer.BadParameter(f"user {user_id} not found")
        config = repo.create_config(
            user_id,
            {
                "name": name,
                "job_board": key,
                "board_email": board_email,
                "board_password": board_password,
                "skills_json": _split(skills),
                "locations_json": _split(locations),
                "salary_min": salary_min,
                "salary_max": salary_max,
                "remote_preference": remote,
                "max_applications_per_day": max_per_day,
                "skill_match_threshold": threshold,
                "blacklist_keywords_json": _split(blacklist),
                "use_custom_template": not custom_message,
                "custom_message": custom_message,
                "fallback_phone": fallback_phone,
                "fallback_postal_code": fallback_postal_code,
                "fallback_city": fallback_city,
            },
        )
        typer.echo(json.dumps(config_response(config).model_dump(), indent=2))


@config_app.command("show")
def config_show(config_id: int = typer.Option(..., "--config-id")) -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        config = Repository(db).get_config(config_id)
        if not config:
            raise typer.BadParameter(f"config {config_id} not found")
        typer.echo(json.dumps(config_response(config).model_dump(), indent=2))


@app.command("run")
def run_cmd(
    config_id: int = typer.Option(..., "--config-id"),
    real: bool = typer.Option(False, "--real", help="Drive a real browser instead of demo mode"),
) -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        orchestrator = AutoApplyOrchestrator(db)
        try:
            report = orchestrator.run_sync(config_id, use_real_automation=real)
        except AutomationError as exc:
            typer.echo(
                json.dumps(
                    {
                        "ok": False,
                        "error": str(exc),
                        "reason": exc.reason,
                        "report": exc.report.model_dump(mode="json") if exc.report else None,
                    },
                    indent=2,
                )
            )
            raise typer.Exit(code=1) from exc
        typer.echo(json.dumps(report.model_dump(mode="json"), indent=2))


@app.command("attempts")
def attempts_cmd(
    config_id: int | None = typer.Option(None, "--config-id"),
    user_id: int | None = typer.Option(None, "--user-id"),
    limit: int = typer.Option(20, "--limit"),
) -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        rows = Repository(db).list_attempts(user_id=user_id, config_id=config_id, limit=limit)
        typer.echo(json.dumps([attempt_response(row).model_dump() for row in rows], indent=2))


@app.command("serve")
def serve(
    host: str | None = typer.Option(None, "--host"),
    port: int | None = typer.Option(None, "--port"),
) -> None:
    configure_logging()
    ensure_initialized()
    settings = get_settings()
    app_instance = create_app()
    uvicorn.run(app_instance, host=host or settings.app_host, port=port or settings.app_port)
