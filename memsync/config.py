"""Sync configuration: built once from config.env, environment and persisted settings."""

import os
from pathlib import Path
from typing import Mapping, Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field, field_validator

from memsync.mapper import ORGANIZATION_CUSTOMER_IDENTIFIER, PROGRAM_CUSTOMER_IDENTIFIER

DEFAULT_API_URL = "https://amt-stage.accessdevelopment.com/api/v1/imports.json"
DEFAULT_DATA_DIR = Path(os.path.expanduser("~/.memsync"))
DEFAULT_CONFIG_ENV = Path(os.path.expanduser("~/.memsync/config.env"))


class SyncConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    endpoint: str = DEFAULT_API_URL
    access_token: str = Field(default="", repr=False)
    timeout: float = 45.0
    retry_delay: float = 3.0
    max_attempts: int = Field(default=3, ge=1)
    log_file: Path = DEFAULT_DATA_DIR / "logs" / "debug.log"
    program_id: str = PROGRAM_CUSTOMER_IDENTIFIER
    organization_id: str = ORGANIZATION_CUSTOMER_IDENTIFIER

    @field_validator("endpoint")
    @classmethod
    def _endpoint_is_http_url(cls, value: str) -> str:
        try:
            url = httpx.URL(value)
        except httpx.InvalidURL as e:
            raise ValueError(f"invalid endpoint URL: {e}")
        if url.scheme not in ("http", "https") or not url.host:
            raise ValueError(f"endpoint must be an absolute http(s) URL, got {value!r}")
        return value

    @field_validator("access_token")
    @classmethod
    def _token_is_header_safe(cls, value: str) -> str:
        if not value.isascii() or any(ch in value for ch in "\r\n\0"):
            raise ValueError("access token must be printable ASCII (it is sent as a header)")
        return value


def config_env_path() -> Path:
    return Path(os.environ.get("MEMSYNC_CONFIG_ENV", str(DEFAULT_CONFIG_ENV)))


def data_dir() -> Path:
    return Path(os.environ.get("MEMSYNC_DATA_DIR", str(DEFAULT_DATA_DIR)))


def load_config_env(config_path: Optional[Path] = None) -> dict[str, str]:
    path = config_path or config_env_path()
    env = {}
    if path.exists():
        for line in path.read_text().splitlines():
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            if "=" in line:
                k, v = line.split("=", 1)
                env[k.strip()] = v.strip()
    return env


def load_config(
    settings: Optional[Mapping[str, str]] = None,
    config_path: Optional[Path] = None,
) -> SyncConfig:
    """Resolve a ``SyncConfig``.

    Precedence, lowest first: defaults, config.env, ``MEMSYNC_*`` environment,
    persisted settings (``api_url`` / ``access_token``).
    """
    env = load_config_env(config_path)
    env.update({k: v for k, v in os.environ.items() if k.startswith("MEMSYNC_")})
    settings = settings or {}

    values: dict = {}
    endpoint = settings.get("api_url") or env.get("MEMSYNC_API_URL")
    if endpoint:
        values["endpoint"] = endpoint
    token = settings.get("access_token")
    if token is None:
        token = env.get("MEMSYNC_ACCESS_TOKEN")
    if token is not None:
        values["access_token"] = token

    if "MEMSYNC_TIMEOUT_SECONDS" in env:
        values["timeout"] = float(env["MEMSYNC_TIMEOUT_SECONDS"])
    if "MEMSYNC_RETRY_DELAY_SECONDS" in env:
        values["retry_delay"] = float(env["MEMSYNC_RETRY_DELAY_SECONDS"])
    if "MEMSYNC_MAX_ATTEMPTS" in env:
        values["max_attempts"] = int(env["MEMSYNC_MAX_ATTEMPTS"])
    if env.get("MEMSYNC_PROGRAM_ID"):
        values["program_id"] = env["MEMSYNC_PROGRAM_ID"]
    if env.get("MEMSYNC_ORGANIZATION_ID"):
        values["organization_id"] = env["MEMSYNC_ORGANIZATION_ID"]

    if env.get("MEMSYNC_LOG_FILE"):
        values["log_file"] = Path(env["MEMSYNC_LOG_FILE"])
    else:
        values["log_file"] = Path(env.get("MEMSYNC_DATA_DIR", str(DEFAULT_DATA_DIR))) / "logs" / "debug.log"

    return SyncConfig(**values)
