from __future__ import annotations

import json
import os
from functools import lru_cache
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Load project-root .env early so both pydantic-settings and any direct os.getenv access
# see consistent values, even if the process CWD is not the repo root.
_ENV_PATH = Path(__file__).resolve().parents[1] / ".env"
_IN_TEST = (os.getenv("ENVIRONMENT") or "").lower() == "test" or bool(os.getenv("PYTEST_CURRENT_TEST"))
if _ENV_PATH.exists() and not _IN_TEST:
    load_dotenv(dotenv_path=_ENV_PATH, override=True)


def _parse_origins(raw: Any) -> list[str]:
    if raw is None:
        return []

    items: list[Any]
    if isinstance(raw, (list, tuple, set)):
        items = list(raw)
    elif isinstance(raw, str):
        s = raw.strip()
        if not s:
            return []

        # Support JSON array string or comma-separated string.
        if s.startswith("["):
            try:
                parsed = json.loads(s)
                items = parsed if isinstance(parsed, list) else [parsed]
            except ValueError:
                items = [p.strip() for p in s.split(",")]
        else:
            items = [p.strip() for p in s.split(",")]
    else:
        items = [raw]

    return [str(item).strip() for item in items if item is not None and str(item).strip()]


class Settings(BaseSettings):
    app_name: str = Field(default="SkillHire Backend")
    api_prefix: str = Field(default="/api")
    version: str = Field(default="0.1.0")
    environment: str = Field(default="development")
    debug: bool = Field(default=True)
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    # Database configuration
    # DB_URL wins when set; otherwise development uses sqlite and other
    # environments build a MySQL URL from the discrete DB_* settings.
    db_url: str | None = Field(default=None, validation_alias="DB_URL")
    db_host: str = Field(default="localhost", validation_alias="DB_HOST")
    db_port: int = Field(default=3306, validation_alias="DB_PORT")
    db_name: str = Field(default="skillhire", validation_alias="DB_NAME")
    db_user: str = Field(default="root", validation_alias="DB_USER")
    db_password: str = Field(default="password", validation_alias="DB_PASSWORD")
    db_charset: str = Field(default="utf8mb4", validation_alias="DB_CHARSET")

    # Tokens are issued by the external auth provider and only verified here.
    jwt_secret: str = Field(default="change-me", validation_alias="JWT_SECRET")
    jwt_algorithm: str = Field(default="HS256", validation_alias="JWT_ALGORITHM")
    jwt_audience: str | None = Field(default=None, validation_alias="JWT_AUDIENCE")
    access_token_expire_minutes: int = Field(default=60)

    cors_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:5173", "http://127.0.0.1:5173"],
        validation_alias="CORS_ORIGINS",
    )

    # Question generation (OpenAI-compatible chat completions API).
    # Without an API key every quiz is built from synthesized questions.
    openai_api_key: str | None = Field(default=None, validation_alias="OPENAI_API_KEY")
    llm_base_url: str | None = Field(default=None, validation_alias="LLM_BASE_URL")
    llm_model: str = Field(default="gpt-4o-mini", validation_alias="LLM_MODEL")
    llm_timeout_seconds: float = Field(default=30.0, validation_alias="LLM_TIMEOUT_SECONDS")

    questions_per_skill: int = Field(default=10, validation_alias="QUESTIONS_PER_SKILL")
    max_questions_per_skill: int = Field(default=20, validation_alias="MAX_QUESTIONS_PER_SKILL")
    generation_workers: int = Field(default=4, validation_alias="GENERATION_WORKERS")
    auto_quiz_on_apply: bool = Field(default=True, validation_alias="AUTO_QUIZ_ON_APPLY")

    # Client-side polling defaults
    poll_max_attempts: int = Field(default=5, validation_alias="POLL_MAX_ATTEMPTS")
    poll_interval_seconds: float = Field(default=5.0, validation_alias="POLL_INTERVAL_SECONDS")

    # Resume storage
    resume_storage_dir: str = Field(default="./storage/resumes", validation_alias="RESUME_STORAGE_DIR")
    resume_max_bytes: int = Field(default=5 * 1024 * 1024, validation_alias="RESUME_MAX_BYTES")
    signed_url_ttl_seconds: int = Field(default=60, validation_alias="SIGNED_URL_TTL_SECONDS")

    @field_validator("cors_origins", mode="before")
    @classmethod
    def _validate_cors_origins(cls, v: Any) -> list[str]:
        return _parse_origins(v)

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()


def build_sqlalchemy_db_url(settings: Settings) -> str:
    if settings.db_url:
        return settings.db_url

    if settings.environment.lower() in {"development", "test"}:
        return "sqlite:///./dev.db"

    # NOTE: password may include special chars; prefer DB_URL for complex passwords.
    return (
        f"mysql+pymysql://{settings.db_user}:{settings.db_password}"
        f"@{settings.db_host}:{settings.db_port}/{settings.db_name}"
        f"?charset={settings.db_charset}"
    )


def is_llm_configured(settings: Settings) -> bool:
    return bool((settings.openai_api_key or "").strip())
