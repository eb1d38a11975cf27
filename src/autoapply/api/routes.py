from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from autoapply.api.deps import get_db
from autoapply.api.schemas import (
    AttemptResponse,
    AutoApplyRequest,
    BoardResponse,
    ConfigCreateRequest,
    ConfigResponse,
    UserCreateRequest,
    UserResponse,
    attempt_response,
    config_response,
)
from autoapply.browser.factory import SUPPORTED_BOARDS
from autoapply.core.orchestrator import AutoApplyOrchestrator
from autoapply.core.runtime import get_progress_tracker
from autoapply.db.repositories import Repository
from autoapply.errors import AuthenticationError, AutomationError, ConfigurationError
from autoapply.types import ProgressRecord, RunReport

router = APIRouter(prefix="/api", tags=["api"])

PROFILE_FIELDS = ("phone", "city", "postal_code", "country", "experience")


@router.get("/boards", response_model=list[BoardResponse])
def list_boards() -> list[BoardResponse]:
    return [
        BoardResponse(key=key, name=board.name, url=board.url, description=board.description)
        for key, board in SUPPORTED_BOARDS.items()
    ]


@router.post("/users", response_model=UserResponse)
def create_user(payload: UserCreateRequest, db: Session = Depends(get_db)) -> UserResponse:
    repo = Repository(db)
    try:
        user = repo.create_user(name=payload.name, email=payload.email)
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(status_code=409, detail="A user with this email already exists") from exc

    profile = {field: getattr(payload, field) for field in PROFILE_FIELDS}
    if any(profile.values()):
        repo.upsert_user_profile(user.id, profile)
    return UserResponse(id=user.id, name=user.name, email=user.email)


@router.post("/configs", response_model=ConfigResponse)
def create_config(payload: ConfigCreateRequest, db: Session = Depends(get_db)) -> ConfigResponse:
    repo = Repository(db)
    if not repo.get_user_by_id(payload.user_id):
        raise HTTPException(status_code=404, detail="User not found")
    if payload.job_board.strip().lower() not in SUPPORTED_BOARDS:
        raise HTTPException(status_code=400, detail=f"Unsupported job board: {payload.job_board}")

    values = payload.model_dump(exclude={"user_id", "skills", "locations", "blacklist_keywords"})
    values["job_board"] = payload.job_board.strip().lower()
    values["skills_json"] = payload.skills
    values["locations_json"] = payload.locations
    values["blacklist_keywords_json"] = payload.blacklist_keywords
    config = repo.create_config(payload.user_id, values)
    return config_response(config)


@router.get("/configs", response_model=list[ConfigResponse])
def list_configs(user_id: int | None = None, db: Session = Depends(get_db)) -> list[ConfigResponse]:
    return [config_response(row) for row in Repository(db).list_configs(user_id)]


@router.get("/configs/{config_id}", response_model=ConfigResponse)
def get_config(config_id: int, db: Session = Depends(get_db)) -> ConfigResponse:
    config = Repository(db).get_config(config_id)
    if not config:
        raise HTTPException(status_code=404, detail="Config not found")
    return config_response(config)


@router.post("/auto-apply", response_model=RunReport)
def auto_apply(payload: AutoApplyRequest, db: Session = Depends(get_db)) -> RunReport:
    if not Repository(db).get_config(payload.config_id):
        raise HTTPException(status_code=404, detail="Config not found")

    orchestrator = AutoApplyOrchestrator(db)
    try:
        return orchestrator.run_sync(payload.config_id, use_real_automation=payload.use_real_automation)
    except ConfigurationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except AuthenticationError as exc:
        raise HTTPException(status_code=401, detail=_error_detail(exc)) from exc
    except AutomationError as exc:
        raise HTTPException(status_code=500, detail=_error_detail(exc)) from exc


def _error_detail(exc: AutomationError) -> dict:
    return {
        "message": str(exc),
        "reason": exc.reason,
        "report": exc.report.model_dump(mode="json") if exc.report else None,
    }


@router.get("/auto-apply/progress/all", response_model=list[ProgressRecord])
def get_all_progress() -> list[ProgressRecord]:
    return get_progress_tracker().get_all()


@router.get("/auto-apply/progress", response_model=ProgressRecord)
def get_progress(config_id: int = Query(...)) -> ProgressRecord:
    record = get_progress_tracker().get(config_id)
    if record is None:
        raise HTTPException(status_code=404, detail="No progress for this config")
    return record


@router.delete("/auto-apply/progress/{config_id}")
def clear_progress(config_id: int) -> dict:
    get_progress_tracker().clear(config_id)
    return {"config_id": config_id, "cleared": True}


@router.get("/attempts", response_model=list[AttemptResponse])
def list_attempts(
    user_id: int | None = None,
    config_id: int | None = None,
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
) -> list[AttemptResponse]:
    rows = Repository(db).list_attempts(user_id=user_id, config_id=config_id, limit=limit)
    return [attempt_response(row) for row in rows]
