from __future__ import annotations

from pathlib import Path

from autoapply.config import get_settings
from autoapply.db import models  # noqa: F401
from autoapply.db.base import Base
from autoapply.db.session import engine


def ensure_data_directories() -> None:
    settings = get_settings()
    paths: list[Path] = [
        settings.data_dir,
        settings.screenshot_dir,
        settings.log_dir,
    ]
    if settings.database_url.startswith("sqlite:///"):
        db_path = Path(settings.database_url.removeprefix("sqlite:///"))
        if db_path.name and str(db_path) != ":memory:":
            paths.append(db_path.parent)
    for path in paths:
        path.mkdir(parents=True, exist_ok=True)


def init_database() -> dict[str, list[str]]:
    ensure_data_directories()
    Base.metadata.create_all(bind=engine)
    return {"tables": sorted(Base.metadata.tables)}
