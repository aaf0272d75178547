"""Run settings resolved from explicit arguments, then env vars, then defaults.

Priority for every setting:
  1. Explicit argument (CLI flag)
  2. Environment variable
  3. Built-in default
"""

import os

from pydantic import BaseModel, Field

from clients.management import DEFAULT_BASE_URL

ENV_ACCESS_TOKEN = "CONTENTFUL_MANAGEMENT_ACCESS_TOKEN"
ENV_API_URL = "CONTENTFUL_MANAGEMENT_API_URL"
ENV_PROCESSING_ATTEMPTS = "ASSET_REPAIR_PROCESSING_ATTEMPTS"
ENV_RETRY_INTERVAL_MS = "ASSET_REPAIR_RETRY_INTERVAL_MS"
ENV_HTTP_TIMEOUT = "ASSET_REPAIR_HTTP_TIMEOUT"


class RepairSettings(BaseModel):
    access_token: str = Field(min_length=1)
    api_url: str = DEFAULT_BASE_URL
    processing_attempts: int = Field(default=3, ge=1)
    retry_interval_ms: int = Field(default=200, ge=0)
    http_timeout: float = Field(default=30.0, gt=0)


def load_settings(
    access_token: str | None = None,
    api_url: str | None = None,
    processing_attempts: int | None = None,
    retry_interval_ms: int | None = None,
    http_timeout: float | None = None,
) -> RepairSettings:
    """Build :class:`RepairSettings` from arguments and the environment.

    Raises:
        pydantic.ValidationError: If no access token is available or a
            numeric setting is out of range.
    """
    values = {
        "access_token": access_token or os.environ.get(ENV_ACCESS_TOKEN, ""),
        "api_url": api_url or os.environ.get(ENV_API_URL) or DEFAULT_BASE_URL,
        "processing_attempts": _first(processing_attempts, os.environ.get(ENV_PROCESSING_ATTEMPTS)),
        "retry_interval_ms": _first(retry_interval_ms, os.environ.get(ENV_RETRY_INTERVAL_MS)),
        "http_timeout": _first(http_timeout, os.environ.get(ENV_HTTP_TIMEOUT)),
    }
    return RepairSettings(**{k: v for k, v in values.items() if v is not None})


def _first(explicit, env_value):
    return explicit if explicit is not None else env_value
