"""Configuration settings for the RID live-tracking service."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache

import boto3
from botocore.exceptions import BotoCoreError, ClientError

logger = logging.getLogger("ridtrack.config")


def _get_bool(env_var: str, default: bool = False) -> bool:
    """Parse an environment variable into a boolean with a default."""

    value = os.getenv(env_var)
    if value is None:
        return default

    return value.lower() in {"1", "true", "yes", "on"}


@lru_cache(maxsize=4)
def get_feed_api_key(parameter_name: str) -> str:
    """Fetch the RID feed API key from AWS SSM Parameter Store.

    The value is cached in-memory to avoid repeated SSM calls. Failures are
    raised as ``RuntimeError`` so callers can decide whether to run without a key.
    """

    client = boto3.client(
        "ssm",
        region_name=os.getenv("AWS_REGION") or os.getenv("AWS_DEFAULT_REGION") or "us-east-1",
    )
    try:
        response = client.get_parameter(Name=parameter_name, WithDecryption=True)
        value = response.get("Parameter", {}).get("Value")
    except (ClientError, BotoCoreError) as exc:  # pragma: no cover - AWS error passthrough
        logger.error("Failed to load RID feed API key from SSM: %s", exc)
        raise RuntimeError("Unable to load RID feed API key from SSM") from exc

    if not value:
        logger.error("Received empty RID feed API key from SSM")
        raise RuntimeError("RID feed API key not configured in SSM")

    return value


@dataclass
class Settings:
    """Application configuration loaded from environment variables."""

    ridtrack_env: str = os.getenv("RIDTRACK_ENV", "local")
    log_level: str = os.getenv("RIDTRACK_LOG_LEVEL", "INFO")

    # Remote feed
    rid_api_base_url: str = os.getenv("RID_API_BASE_URL", "http://localhost:8080")
    rid_timeout: float = float(os.getenv("RID_TIMEOUT", "8.0"))
    rid_api_key: str = os.getenv("RID_API_KEY", "")
    rid_api_key_ssm_param: str | None = os.getenv("RID_API_KEY_SSM_PARAM")

    # Refresh cycle
    driver_enabled: bool = _get_bool("RID_DRIVER_ENABLED", default=True)
    refresh_interval: float = float(os.getenv("RID_REFRESH_INTERVAL", "2.0"))
    subscription_ttl: float = float(os.getenv("RID_SUBSCRIPTION_TTL", "25.0"))
    stale_entity_seconds: float = float(os.getenv("RID_STALE_ENTITY_SECONDS", "15.0"))
    demo_followup_delay: float = float(os.getenv("RID_DEMO_FOLLOWUP_DELAY", "1.0"))

    # Viewport
    view_change_threshold_deg: float = float(
        os.getenv("RID_VIEW_CHANGE_THRESHOLD_DEG", "0.01")
    )
    default_view_buffer_deg: float = float(os.getenv("RID_DEFAULT_VIEW_BUFFER_DEG", "0.03"))
    max_view_diagonal_km: float = float(os.getenv("RID_MAX_VIEW_DIAGONAL_KM", "10"))
    default_view_lat: float = float(os.getenv("RID_DEFAULT_VIEW_LAT", "33.6846"))
    default_view_lon: float = float(os.getenv("RID_DEFAULT_VIEW_LON", "-117.8265"))
    focus_buffer_deg: float = float(os.getenv("RID_FOCUS_BUFFER_DEG", "0.01"))


settings = Settings()

# Resolve the feed key lazily so local runs and tests work without AWS access
if settings.rid_api_key_ssm_param and not settings.rid_api_key:
    try:
        settings.rid_api_key = get_feed_api_key(settings.rid_api_key_ssm_param)
    except RuntimeError:
        logger.warning("RID feed API key not available at import time")

__all__ = ["settings", "Settings", "get_feed_api_key"]
