from __future__ import annotations

from autoapply.config import get_settings
from autoapply.core.progress import ProgressTracker

_PROGRESS_TRACKER: ProgressTracker | None = None


def get_progress_tracker() -> ProgressTracker:
    global _PROGRESS_TRACKER
    if _PROGRESS_TRACKER is None:
        _PROGRESS_TRACKER = ProgressTracker(retention_sec=get_settings().progress_retention_sec)
    return _PROGRESS_TRACKER
