import logging
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

MIN_POLL_INTERVAL = 0.25
MAX_POLL_INTERVAL = 10.0


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"Ignoring invalid {name}={raw!r}, using {default}")
        return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw, 10)
    except ValueError:
        logger.warning(f"Ignoring invalid {name}={raw!r}, using {default}")
        return default


@dataclass(frozen=True)
class Settings:
    rest_url: str = ""
    rest_api_key: str = ""
    # Fallback poll period per source, alongside change notifications
    poll_interval: float = 1.5
    request_timeout: float = 10.0
    # Shown before draft_state has loaded
    default_rounds_total: int = 46
    # Board width before the coaches list has loaded
    fallback_participant_count: int = 2
    log_level: str = "INFO"


def load_settings(env_file: Optional[str] = None) -> Settings:
    """Build Settings from DRAFT_* environment variables (and .env, if present)."""
    load_dotenv(env_file)

    poll_interval = _env_float("DRAFT_POLL_INTERVAL", Settings.poll_interval)
    poll_interval = min(max(poll_interval, MIN_POLL_INTERVAL), MAX_POLL_INTERVAL)

    return Settings(
        rest_url=os.getenv("DRAFT_REST_URL", "").rstrip("/"),
        rest_api_key=os.getenv("DRAFT_REST_API_KEY", ""),
        poll_interval=poll_interval,
        request_timeout=_env_float("DRAFT_REQUEST_TIMEOUT", Settings.request_timeout),
        default_rounds_total=max(1, _env_int("DRAFT_DEFAULT_ROUNDS_TOTAL", Settings.default_rounds_total)),
        fallback_participant_count=max(
            1, _env_int("DRAFT_FALLBACK_PARTICIPANT_COUNT", Settings.fallback_participant_count)
        ),
        log_level=os.getenv("DRAFT_LOG_LEVEL", Settings.log_level).upper(),
    )


def configure_logging(settings: Settings) -> None:
    """Basic logging setup for applications embedding the draft engine."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
