# config.py
from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL


ROOT_DIR = Path(__file__).resolve().parents[1]
_DOTENV = ROOT_DIR / ".env"


def _running_tests() -> bool:
    return os.getenv("ENVIRONMENT", "").lower() == "test" or "PYTEST_CURRENT_TEST" in os.environ


# Partner credentials live in the repo-root .env; tests must never pick them up.
if _DOTENV.is_file() and not _running_tests():
    load_dotenv(_DOTENV, override=True)


def split_origins(raw: str) -> list[str]:
    """Comma-separated origins; a JSON-style ``[...]`` wrapper is tolerated."""

    cleaned = raw.strip().removeprefix("[").removesuffix("]")
    return [part.strip().strip("\"'") for part in cleaned.split(",") if part.strip().strip("\"'")]


class Settings(BaseSettings):
    app_name: str = Field(default="Skill Gap Service")
    api_prefix: str = Field(default="/api")
    version: str = Field(default="0.1.0")
    environment: str = Field(default="development")
    debug: bool = Field(default=False)
    # Kept as the raw env string; see cors_origin_list.
    cors_origins: str = Field(default="http://localhost:3000,http://127.0.0.1:3000", validation_alias="CORS_ORIGINS")

    # Database. DB_URL / ORM_DB_URL take precedence over the MYSQL_* parts.
    db_url: str | None = Field(default=None, validation_alias="DB_URL")
    orm_db_url: str | None = Field(default=None, validation_alias="ORM_DB_URL")
    orm_use_mysql: bool = Field(default=False, validation_alias="ORM_USE_MYSQL")
    mysql_host: str = Field(default="127.0.0.1", validation_alias="MYSQL_HOST")
    mysql_port: int = Field(default=3306, validation_alias="MYSQL_PORT")
    mysql_database: str = Field(default="skillgap", validation_alias="MYSQL_DATABASE")
    mysql_user: str = Field(default="skillgap", validation_alias="MYSQL_USER")
    mysql_password: str = Field(default="", validation_alias="MYSQL_PASSWORD")

    # AI backend (transferable skills / explanations)
    openai_api_key: str | None = Field(default=None, validation_alias="OPENAI_API_KEY")
    ai_model: str = Field(default="gpt-4o-mini", validation_alias="AI_MODEL")
    ai_timeout_seconds: float = Field(default=30.0, validation_alias="AI_TIMEOUT_SECONDS")

    # Process-local matcher memoization
    matcher_cache_size: int = Field(default=256, validation_alias="MATCHER_CACHE_SIZE")
    matcher_cache_ttl_seconds: float = Field(default=3600.0, validation_alias="MATCHER_CACHE_TTL_SECONDS")

    # Occupation data provider (O*NET web services)
    onet_api_base: str = Field(default="https://services.onetcenter.org/ws", validation_alias="ONET_API_BASE")
    onet_api_username: str | None = Field(default=None, validation_alias="ONET_API_USERNAME")
    onet_api_password: str | None = Field(default=None, validation_alias="ONET_API_PASSWORD")
    onet_data_version: str = Field(default="29.0", validation_alias="ONET_DATA_VERSION")
    onet_cache_ttl_days: int = Field(default=30, validation_alias="ONET_CACHE_TTL_DAYS")
    onet_request_timeout_seconds: float = Field(default=10.0, validation_alias="ONET_REQUEST_TIMEOUT_SECONDS")

    # Course catalog partners
    coursera_api_key: str | None = Field(default=None, validation_alias="COURSERA_API_KEY")
    udemy_client_id: str | None = Field(default=None, validation_alias="UDEMY_CLIENT_ID")
    udemy_client_secret: str | None = Field(default=None, validation_alias="UDEMY_CLIENT_SECRET")
    coursera_affiliate_id: str = Field(default="skillgap", validation_alias="COURSERA_AFFILIATE_ID")
    udemy_affiliate_id: str = Field(default="skillgap", validation_alias="UDEMY_AFFILIATE_ID")
    course_request_timeout_seconds: float = Field(default=10.0, validation_alias="COURSE_REQUEST_TIMEOUT_SECONDS")
    course_retry_attempts: int = Field(default=2, validation_alias="COURSE_RETRY_ATTEMPTS")
    course_retry_initial_delay_seconds: float = Field(
        default=1.0, validation_alias="COURSE_RETRY_INITIAL_DELAY_SECONDS"
    )
    tracking_prefix: str = Field(default="skillgap", validation_alias="TRACKING_PREFIX")

    analysis_version: str = Field(default="1.0", validation_alias="ANALYSIS_VERSION")
    metrics_buffer_size: int = Field(default=1000, validation_alias="METRICS_BUFFER_SIZE")

    @property
    def cors_origin_list(self) -> list[str]:
        return split_origins(self.cors_origins)

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()


def build_sqlalchemy_db_url(config: Settings) -> str:
    explicit = config.orm_db_url or config.db_url
    if explicit:
        return explicit
    if not config.orm_use_mysql and config.environment.lower() in {"development", "test"}:
        return "sqlite:///./skillgap.db"
    url = URL.create(
        "mysql+pymysql",
        username=config.mysql_user,
        password=config.mysql_password or None,
        host=config.mysql_host,
        port=config.mysql_port,
        database=config.mysql_database,
        query={"charset": "utf8mb4"},
    )
    return url.render_as_string(hide_password=False)
