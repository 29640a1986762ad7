"""Runtime settings, read from the environment (prefix ROUNDFLOW_) or .env."""
from __future__ import annotations
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="ROUNDFLOW_", env_file=".env", extra="ignore")

    # Readiness countdown window and the clock tolerance applied to it
    readiness_countdown_ms: int = 15000
    readiness_tolerance_ms: int = 1
    readiness_timer_template: str = "game-{session_id}-readiness-timer"

    default_max_players: int = 9
    default_min_players: int = 2

    log_level: str = "INFO"

    def readiness_timer_id(self, session_id: str) -> str:
        return self.readiness_timer_template.format(session_id=session_id)


@lru_cache()
def get_settings() -> Settings:
    return Settings()
