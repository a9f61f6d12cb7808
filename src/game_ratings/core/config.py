from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # DB
    database_url: str = Field(
        default="sqlite+pysqlite:///./game_ratings.db",
        validation_alias="DATABASE_URL",
    )
    db_echo: bool = False

    # espn
    espn_site_base_url: str = "https://site.api.espn.com/apis/site/v2/sports/football/nfl"

    # openai-compatible rating service
    openai_api_key: str | None = Field(default=None, repr=False)
    openai_base_url: str = "https://api.openai.com/v1"
    openai_model: str = "gpt-4o-mini"

    # background loops
    sport: str = "nfl"
    sync_interval_s: float = 3600.0
    rating_interval_s: float = 1800.0
    details_interval_s: float = 0.0  # 0 disables the details loop
    fill_recent_periods: int = 0
    analysis_delay_s: float = 1800.0
    job_queue_buffer_size: int = 100

    # logging
    log_level: str = "INFO"
    log_json: bool = False

    # -----------------------------
    # Required-key helpers
    # -----------------------------

    def require_openai_api_key(self) -> str:
        if not self.openai_api_key:
            raise RuntimeError("OPENAI_API_KEY is not set. Set it in the environment or .env file.")
        return self.openai_api_key


settings = Settings()
