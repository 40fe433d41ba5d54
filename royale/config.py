from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Environment
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = True
    log_level: str = "INFO"

    # Server
    host: str = "0.0.0.0"
    port: int = 8080
    static_dir: Path = Path("build-client")

    # Game rules
    max_player_count: int = Field(default=1, ge=1)
    question_timeout_ms: int = Field(default=10000, gt=0)
    questions_file: Path | None = None
    finish_when_all_eliminated: bool = False  # End early once nobody survives a round

    # Sandbox
    sandbox_timeout_ms: int = Field(default=1000, gt=0)
    sandbox_memory_limit_mb: int = Field(default=256, ge=16)
    sandbox_max_code_length: int = Field(default=50000, gt=0)

    # Metrics
    metrics_enabled: bool = True

    # Shutdown
    shutdown_grace_ms: int = Field(default=2000, ge=0)  # Let pending verdicts land before stopping

    @field_validator("log_level", mode="after")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        """Accept lowercase level names from the environment."""
        return v.upper()

    @property
    def is_development(self) -> bool:
        return self.environment == "development"


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
