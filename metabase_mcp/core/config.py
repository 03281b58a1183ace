# metabase_mcp/core/config.py
from __future__ import annotations

import json
import logging
import re
from functools import lru_cache
from typing import List, Optional, Tuple

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def _parse_duration_to_seconds(v, default_sec: float) -> float:
    if v is None:
        return default_sec
    if isinstance(v, (int, float)):
        return float(v)
    s = str(v).strip().lower()
    if not s:
        return default_sec
    try:
        return float(s)
    except ValueError:
        pass
    m = re.fullmatch(r"(\d+(?:\.\d+)?)\s*(ms|s|m|h)", s)
    if not m:
        m2 = re.search(r"\d+", s)
        return float(m2.group()) if m2 else default_sec
    num, unit = float(m.group(1)), m.group(2)
    if unit == "ms":
        return num / 1000
    if unit == "s":
        return num
    if unit == "m":
        return num * 60
    return num * 3600


class Settings(BaseSettings):
    """
    Process-wide configuration, read once from the environment (or `.env`).
    Frozen: handlers and the upstream client receive it explicitly and never mutate it.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
        frozen=True,
    )

    # Metabase
    metabase_url: Optional[str] = Field(None, alias="METABASE_URL")
    metabase_api_key: Optional[str] = Field(None, alias="METABASE_API_KEY")

    # LLM / OpenAI
    openai_api_key: Optional[str] = Field(None, alias="OPENAI_API_KEY")
    openai_base_url: str = Field("https://api.openai.com", alias="OPENAI_BASE_URL")
    nl_sql_model: str = Field("gpt-4.1-mini", alias="NL_SQL_MODEL")

    # comma separated database ids; empty means no restriction
    allowed_databases: str = Field("", alias="ALLOWED_DATABASES")

    upstream_timeout: float = Field(30.0, alias="UPSTREAM_TIMEOUT")

    # API
    service_name: str = Field("metabase-mcp-server", alias="SERVICE_NAME")
    cors_origins: str = Field("*", alias="CORS_ORIGINS")
    max_body_bytes: int = Field(1024 * 1024, alias="MAX_BODY_BYTES")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    host: str = Field("0.0.0.0", alias="HOST")
    port: int = Field(4000, alias="PORT")

    @field_validator("upstream_timeout", mode="before")
    @classmethod
    def _v_timeout(cls, v):
        return _parse_duration_to_seconds(v, 30.0)

    @field_validator("log_level")
    @classmethod
    def _v_log_level(cls, v: str) -> str:
        upper = v.upper()
        if upper not in _VALID_LOG_LEVELS:
            raise ValueError(f"log_level must be one of {_VALID_LOG_LEVELS}, got '{v}'")
        return upper

    @property
    def metabase_configured(self) -> bool:
        return bool(self.metabase_url and self.metabase_api_key)

    @property
    def allowed_database_ids(self) -> Tuple[str, ...]:
        return tuple(s.strip() for s in (self.allowed_databases or "").split(",") if s.strip())

    @property
    def cors_origins_list(self) -> List[str]:
        raw = (self.cors_origins or "").strip()
        if not raw or raw == "*":
            return ["*"]
        if raw.startswith("[") and raw.endswith("]"):
            try:
                arr = json.loads(raw)
                return [s.strip() for s in arr if isinstance(s, str)]
            except ValueError:
                logging.getLogger(__name__).warning("CORS_ORIGINS is not valid JSON, splitting on commas")
        return [o.strip() for o in raw.strip("[]").split(",") if o.strip()]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Return the single Settings instance used across the app.
    Routes depend on this so tests can override it with their own Settings.
    """
    return Settings()
