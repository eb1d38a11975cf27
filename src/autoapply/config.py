from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "AutoApply"
    app_env: str = "development"
    app_host: str = "127.0.0.1"
    app_port: int = 8787
    timezone: str = "Europe/Paris"
    log_level: str = "INFO"

    database_url: str = "sqlite:///./data/autoapply.db"
    data_dir: Path = Path("./data")
    screenshot_dir: Path = Path("./data/screenshots")
    log_dir: Path = Path("./data/logs")

    browser_headless: bool = True
    browser_nav_timeout_sec: int = 30
    browser_action_timeout_sec: int = 15
    browser_slow_mo_ms: int = 100
    browser_locale: str = "fr-FR"
    browser_viewport_width: int = 1920
    browser_viewport_height: int = 1080
    browser_user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    )
    save_screenshots: bool = True

    pacing_scale: float = 1.0
    visible_pacing_multiplier: float = 1.5

    captcha_grace_sec: float = 45.0
    captcha_widget_wait_sec: float = 10.0
    login_settle_sec: float = 5.0

    max_search_keywords: int = 5
    max_search_pages: int = 3
    default_search_location: str = "France"

    confirmation_timeout_sec: float = 10.0
    count_uncertain_as_applied: bool = True

    inter_application_delay_min_sec: float = 5.0
    inter_application_delay_max_sec: float = 8.0
    progress_retention_sec: float = 300.0

    cors_origins: str = "http://127.0.0.1:8787"

    @field_validator("app_env")
    @classmethod
    def validate_env(cls, value: str) -> str:
        allowed = {"development", "staging", "production", "test"}
        if value not in allowed:
            raise ValueError(f"app_env must be one of {sorted(allowed)}")
        return value

    @field_validator("pacing_scale", "visible_pacing_multiplier")
    @classmethod
    def validate_non_negative(cls, value: float) -> float:
        if value < 0:
            raise ValueError("pacing factors must be >= 0")
        return value

    @model_validator(mode="after")
    def validate_delay_band(self) -> "Settings":
        if self.inter_application_delay_min_sec > self.inter_application_delay_max_sec:
            raise ValueError("inter_application_delay_min_sec must not exceed the max")
        return self

    @property
    def cors_origin_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def effective_pacing_scale(self) -> float:
        if self.browser_headless:
            return self.pacing_scale
        return self.pacing_scale * self.visible_pacing_multiplier


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
