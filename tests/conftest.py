from __future__ import annotations

import os
import tempfile
from pathlib import Path

_TEST_ROOT = Path(tempfile.mkdtemp(prefix="autoapply-tests-"))

os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DATABASE_URL", f"sqlite:///{_TEST_ROOT / 'autoapply-test.db'}")
os.environ.setdefault("DATA_DIR", str(_TEST_ROOT))
os.environ.setdefault("SCREENSHOT_DIR", str(_TEST_ROOT / "screenshots"))
os.environ.setdefault("LOG_DIR", str(_TEST_ROOT / "logs"))
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("PACING_SCALE", "0")
os.environ.setdefault("INTER_APPLICATION_DELAY_MIN_SEC", "0")
os.environ.setdefault("INTER_APPLICATION_DELAY_MAX_SEC", "0")

import pytest  # noqa: E402

from autoapply.db.base import Base  # noqa: E402
from autoapply.db.init import ensure_data_directories  # noqa: E402
from autoapply.db.session import engine  # noqa: E402


@pytest.fixture(autouse=True)
def reset_db() -> None:
    ensure_data_directories()
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture(autouse=True)
def reset_progress(monkeypatch) -> None:
    monkeypatch.setattr("autoapply.core.runtime._PROGRESS_TRACKER", None)
    yield
