"""Configuration loading for the task sync service."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

STORE_PATH_KEY = "TASKSYNC_STORE_PATH"
REQUIRE_USER_HEADER_KEY = "TASKSYNC_REQUIRE_USER_HEADER"
SERVICE_TOKEN_KEY = "TASKSYNC_SERVICE_TOKEN"
LOG_LEVEL_KEY = "TASKSYNC_LOG_LEVEL"

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class ConfigError(RuntimeError):
    """Raised when required configuration is missing or invalid."""


@dataclass(frozen=True)
class AppConfig:
    store_path: Path
    require_user_header: bool
    service_token: str | None
    log_level: str = "INFO"


def _read_dotenv_value(dotenv_path: Path, key: str) -> str | None:
    """Read a single key from a .env file without mutating the environment."""
    if not dotenv_path.is_file():
        return None
    try:
        content = dotenv_path.read_text(encoding="utf-8")
    except OSError:
        return None

    for line in content.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        if stripped.startswith("export "):
            stripped = stripped[len("export ") :].strip()
        if "=" not in stripped:
            continue
        name, value = stripped.split("=", 1)
        name = name.strip()
        if name != key:
            continue
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in {"'", '"'}:
            value = value[1:-1]
        return value or None
    return None


def _read_value(dotenv_path: Path, key: str) -> str | None:
    raw_value = os.environ.get(key)
    if raw_value is None:
        raw_value = _read_dotenv_value(dotenv_path, key)
    return raw_value


def _read_bool(raw_value: str | None, *, default: bool, key: str) -> bool:
    if raw_value is None:
        return default
    normalized = raw_value.strip().lower()
    if not normalized:
        return default
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    raise ConfigError(f"{key} must be a boolean value.")


def _read_log_level(raw_value: str | None) -> str:
    if raw_value is None or not raw_value.strip():
        return "INFO"
    normalized = raw_value.strip().upper()
    if normalized not in _LOG_LEVELS:
        raise ConfigError(
            f"{LOG_LEVEL_KEY} must be one of {', '.join(sorted(_LOG_LEVELS))}."
        )
    return normalized


def load_config() -> AppConfig:
    """Load required configuration from the environment."""
    dotenv_path = Path.cwd() / ".env"

    raw_path = (os.environ.get(STORE_PATH_KEY) or "").strip()
    if not raw_path:
        raw_path = (_read_dotenv_value(dotenv_path, STORE_PATH_KEY) or "").strip()
    if not raw_path:
        raise ConfigError(
            f"{STORE_PATH_KEY} is required; set it to the note store directory."
        )

    require_user_header = _read_bool(
        _read_value(dotenv_path, REQUIRE_USER_HEADER_KEY),
        default=True,
        key=REQUIRE_USER_HEADER_KEY,
    )

    service_token = _read_value(dotenv_path, SERVICE_TOKEN_KEY)
    service_token = service_token.strip() if isinstance(service_token, str) else None
    if not service_token:
        service_token = None

    return AppConfig(
        store_path=Path(raw_path).expanduser().resolve(),
        require_user_header=require_user_header,
        service_token=service_token,
        log_level=_read_log_level(_read_value(dotenv_path, LOG_LEVEL_KEY)),
    )
