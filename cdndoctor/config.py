"""Shared configuration: service defaults, rule thresholds, fetch/probe policy."""
from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, fields, replace

logger = logging.getLogger(__name__)

# Service defaults applied when the raw distribution omits a field
DEFAULT_CONNECT_TIMEOUT = 10      # seconds
DEFAULT_READ_TIMEOUT = 30         # seconds
DEFAULT_VIEWER_PROTOCOL = "allow-all"
DEFAULT_CUSTOM_ORIGIN_PROTOCOL = "https-only"
DEFAULT_ALLOWED_METHODS = ("GET", "HEAD")

# CDN-SE01: minimum read timeout per backend latency class (seconds)
READ_TIMEOUT_THRESHOLDS = {
    "fast": 10,
    "standard": 45,
    "slow": 60,
}
DEFAULT_LATENCY_CLASS = "standard"
MIN_CONNECT_TIMEOUT = 3

# CDN-GN05: viewer TLS policies considered current
STRONG_TLS_POLICIES = {"TLSv1.2_2018", "TLSv1.2_2019", "TLSv1.2_2021"}

# Known HTTP error codes and the symptom category they resolve to
ERROR_CODE_CATEGORIES = {
    "403": "access-denied",
    "404": "not-found",
    "500": "server-error",
    "502": "server-error",
    "503": "server-error",
    "504": "server-error",
}

# Config Source fetch policy
MAX_RETRIES = 3
RETRY_BACKOFF = [0.5, 2, 5]       # seconds
FETCH_TIMEOUT_SECONDS = 20
FETCH_WORKERS = 8

# Active validation probes
PROBE_TIMEOUT_SECONDS = 3
PROBE_WORKERS = 4

EXECUTIVE_SUMMARY_SIZE = 3

CONFIG_DIR = ".cdndoctor"
CONFIG_FILE = "config.json"
ENV_PREFIX = "CDNDOCTOR_"


@dataclass(frozen=True)
class Settings:
    max_retries: int = MAX_RETRIES
    retry_backoff: tuple[float, ...] = tuple(RETRY_BACKOFF)
    fetch_timeout: float = float(FETCH_TIMEOUT_SECONDS)
    fetch_workers: int = FETCH_WORKERS
    probe_timeout: float = float(PROBE_TIMEOUT_SECONDS)
    probe_workers: int = PROBE_WORKERS
    rule_workers: int = 1
    region: str = "us-east-1"
    profile: str | None = None

    def backoff_for(self, attempt: int) -> float:
        if not self.retry_backoff:
            return 0.0
        return self.retry_backoff[min(attempt, len(self.retry_backoff) - 1)]


def get_config_path(path: str = ".") -> str:
    """Get the path to the cdndoctor config file."""
    return os.path.join(os.path.abspath(path), CONFIG_DIR, CONFIG_FILE)


def load_config(config_path: str) -> dict:
    """Load config from file, returning empty dict if not found."""
    if not os.path.exists(config_path):
        return {}
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("Ignoring unreadable config %s: %s", config_path, e)
        return {}
    return data if isinstance(data, dict) else {}


def save_config(config_path: str, cfg: dict) -> None:
    """Save config to file."""
    os.makedirs(os.path.dirname(config_path), exist_ok=True)
    with open(config_path, "w", encoding="utf-8") as f:
        json.dump(cfg, f, indent=2, sort_keys=True)


def settings_keys() -> list[str]:
    return [f.name for f in fields(Settings)]


def coerce_setting(key: str, value):
    """Convert a raw (string or JSON) value to the type of Settings.<key>."""
    default = getattr(Settings(), key)
    if key == "retry_backoff":
        if isinstance(value, str):
            value = [v for v in value.split(",") if v.strip()]
        return tuple(float(v) for v in value)
    if key == "profile":
        return value or None
    if isinstance(default, bool):
        return str(value).lower() in ("1", "true", "yes", "on")
    if isinstance(default, int):
        return int(value)
    if isinstance(default, float):
        return float(value)
    return str(value)


def load_settings(path: str = ".", environ: dict | None = None) -> Settings:
    """Defaults <- .cdndoctor/config.json <- CDNDOCTOR_* environment variables."""
    environ = os.environ if environ is None else environ
    overrides: dict = {}
    for key, value in load_config(get_config_path(path)).items():
        if key not in settings_keys():
            logger.debug("Unknown config key %s ignored", key)
            continue
        overrides[key] = value
    for key in settings_keys():
        env_value = environ.get(ENV_PREFIX + key.upper())
        if env_value is not None:
            overrides[key] = env_value

    settings = Settings()
    for key, value in overrides.items():
        try:
            settings = replace(settings, **{key: coerce_setting(key, value)})
        except (TypeError, ValueError):
            logger.warning("Invalid value for %s: %r (using default)", key, value)
    return settings


def settings_to_dict(settings: Settings) -> dict:
    out = asdict(settings)
    out["retry_backoff"] = list(settings.retry_backoff)
    return out
