from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Literal, Mapping

from pydantic import BaseModel, Field, ValidationError, field_validator

from job_harvest.scrapers.recruitment_nic import TARGET_URL

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
DEFAULT_DB_PATH = Path("jobs.db")
DEFAULT_METADATA_PATH = Path("metadata.json")
DEFAULT_SNAPSHOT_PATH = Path("data") / "jobs.json"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


class Settings(BaseModel):
    target_url: str = TARGET_URL
    user_agent: str = DEFAULT_USER_AGENT
    request_timeout_seconds: float = Field(default=30.0, gt=0.0)
    max_retries: int = Field(default=3, ge=0)
    retry_delay_seconds: float = Field(default=2.0, ge=0.0)
    run_timeout_seconds: float = Field(default=300.0, gt=0.0)
    proxy_url: str | None = None
    proxy_list_url: str | None = None
    extra_headers: dict[str, str] = Field(default_factory=dict)
    fetch_mode: Literal["http", "browser"] = "http"
    db_path: Path = Field(default=DEFAULT_DB_PATH)
    metadata_path: Path = Field(default=DEFAULT_METADATA_PATH)
    snapshot_path: Path = Field(default=DEFAULT_SNAPSHOT_PATH)
    export_json: bool = True
    tz: str = "Asia/Kolkata"

    @field_validator("target_url")
    @classmethod
    def _validate_target_url(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("TARGET_URL must not be empty")
        return value.strip()

    @field_validator("proxy_list_url")
    @classmethod
    def _validate_proxy_list_url(cls, value: str | None) -> str | None:
        if value and not value.startswith(("http://", "https://")):
            raise ValueError("PROXY_LIST_URL must use http:// or https://")
        return value


def _env_value(environ: Mapping[str, str], key: str) -> str:
    return environ.get(key, "").strip()


def _parse_bool(raw: str, *, key: str, default: bool) -> bool:
    if not raw:
        return default
    lowered = raw.casefold()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"{key} must be a boolean, got {raw!r}")


def _parse_headers(raw: str) -> dict[str, str]:
    if not raw:
        return {}
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"EXTRA_HEADERS must be a JSON object: {exc}") from exc
    if not isinstance(parsed, dict):
        raise ValueError("EXTRA_HEADERS must be a JSON object")
    return {str(key): str(value) for key, value in parsed.items()}


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    source = os.environ if environ is None else environ
    payload = {
        "target_url": _env_value(source, "TARGET_URL") or TARGET_URL,
        "user_agent": _env_value(source, "USER_AGENT") or DEFAULT_USER_AGENT,
        "request_timeout_seconds": float(_env_value(source, "REQUEST_TIMEOUT_SECONDS") or "30"),
        "max_retries": int(_env_value(source, "MAX_RETRIES") or "3"),
        "retry_delay_seconds": float(_env_value(source, "RETRY_DELAY_SECONDS") or "2"),
        "run_timeout_seconds": float(_env_value(source, "RUN_TIMEOUT_SECONDS") or "300"),
        "proxy_url": _env_value(source, "PROXY_URL") or None,
        "proxy_list_url": _env_value(source, "PROXY_LIST_URL") or None,
        "extra_headers": _parse_headers(_env_value(source, "EXTRA_HEADERS")),
        "fetch_mode": (_env_value(source, "FETCH_MODE") or "http").casefold(),
        "db_path": Path(_env_value(source, "DB_PATH") or DEFAULT_DB_PATH),
        "metadata_path": Path(_env_value(source, "METADATA_PATH") or DEFAULT_METADATA_PATH),
        "snapshot_path": Path(_env_value(source, "SNAPSHOT_PATH") or DEFAULT_SNAPSHOT_PATH),
        "export_json": _parse_bool(_env_value(source, "EXPORT_JSON"), key="EXPORT_JSON", default=True),
        "tz": _env_value(source, "TZ") or "Asia/Kolkata",
    }
    try:
        return Settings(**payload)
    except ValidationError as exc:
        raise ValueError(str(exc)) from exc
