"""
# Configuration Management Module

This module provides the configuration system for the Vaccination Tracker core.
Built on **Pydantic Settings**, it loads values from a discovered config file and the
process environment, validates them at startup, and exposes a single `settings` instance.

## Configuration Loading Hierarchy

```
┌─────────────────────────────────────────────────────────────┐
│  1. Environment Variables (HIGHEST PRIORITY)                │
├─────────────────────────────────────────────────────────────┤
│  2. VACCINATION_TRACKER_CONFIG_PATH                         │
│     - Custom config file path from env var                  │
├─────────────────────────────────────────────────────────────┤
│  3. .vaccination_tracker File (Project Root)                │
├─────────────────────────────────────────────────────────────┤
│  4. .env File (Project Root)                                │
├─────────────────────────────────────────────────────────────┤
│  5. Default Values (LOWEST PRIORITY)                        │
└─────────────────────────────────────────────────────────────┘
```

If no configuration file is found, the application runs in **environment-only mode**.

## Configuration Groups

| Group | Purpose |
|-------|---------|
| **General** | Debug flag, log level |
| **Storage** | Key-value backend (`memory`, `json`, `redis`), file path, key prefix |
| **Redis** | Connection details for the Redis storage backend |
| **Calendars** | Remote calendar URL, request/overall timeouts, cache lifetime |
| **Connectivity** | Reachability check target, offline mode |
| **Scheduling** | Upcoming window and reminder look-ahead |

## Usage

```python
from vaccination_tracker.config import settings

ttl_days = settings.CALENDAR_CACHE_TTL_DAYS
```

The module performs no logging of its own so it can be imported before the logging
manager is configured.
"""

import os
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv
from pydantic import SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# --- Constants ---
TRACKER_FILENAME: str = ".vaccination_tracker"
DEFAULT_ENV_FILENAME: str = ".env"
CONFIG_ENV_VAR: str = "VACCINATION_TRACKER_CONFIG_PATH"
PROJECT_ROOT: Path = Path(__file__).resolve().parent.parent.parent

STORAGE_BACKENDS = ("memory", "json", "redis")


# --- Config file discovery (no logging) ---
def get_config_path() -> Optional[str]:
    """
    Determines the configuration file path based on a predefined precedence order.

    1.  **Environment Variable**: `VACCINATION_TRACKER_CONFIG_PATH` (if set and file exists).
    2.  **Tracker Config**: `.vaccination_tracker` file in the project root directory.
    3.  **Dotenv Config**: `.env` file in the project root directory.
    4.  **Fallback**: `None`, triggering environment-variable-only mode.

    Returns:
        Optional[str]: The path to the configuration file, or `None` if not found.
    """
    env_path: Optional[str] = os.environ.get(CONFIG_ENV_VAR)
    if env_path and os.path.exists(env_path):
        return env_path
    tracker_path: Path = PROJECT_ROOT / TRACKER_FILENAME
    if tracker_path.exists():
        return str(tracker_path)
    env_path_file: Path = PROJECT_ROOT / DEFAULT_ENV_FILENAME
    if env_path_file.exists():
        return str(env_path_file)
    return None


CONFIG_PATH: Optional[str] = get_config_path()
if CONFIG_PATH:
    load_dotenv(dotenv_path=CONFIG_PATH, override=True)


class Settings(BaseSettings):
    """
    Application configuration settings model.

    **Configuration Groups:**
    *   **General**: Debug mode and log level.
    *   **Storage**: Which key-value backend persists children, records and caches.
    *   **Redis**: Connection details used when `STORAGE_BACKEND=redis`.
    *   **Calendars**: Where downloadable country calendars come from and how long they stay fresh.
    *   **Connectivity**: The reachability check run before any download.
    *   **Scheduling**: Windows used for "upcoming" lists and reminder planning.

    **Validation:**
    Timeouts must be within 1-300 seconds, windows and lifetimes must be positive, and the
    storage backend must be one of the supported names.
    """

    model_config = SettingsConfigDict(
        env_file=CONFIG_PATH if CONFIG_PATH else None,
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="allow",
    )

    # General
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Storage
    STORAGE_BACKEND: str = "json"
    STORAGE_PATH: str = "~/.vaccination_tracker/store.json"
    STORAGE_KEY_PREFIX: str = "@VaccineTracker:"

    # Redis (only used by the redis storage backend)
    REDIS_URL: Optional[str] = None
    REDIS_HOST: str = "127.0.0.1"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0
    REDIS_USERNAME: Optional[str] = None
    REDIS_PASSWORD: Optional[SecretStr] = None

    # Calendars
    CALENDAR_BASE_URL: str = "https://raw.githubusercontent.com/vaccine-calendars/data/main"
    CALENDAR_REQUEST_TIMEOUT: int = 30  # per-request timeout (seconds)
    CALENDAR_OVERALL_TIMEOUT: int = 60  # whole download, including body (seconds)
    CALENDAR_CACHE_TTL_DAYS: int = 30

    # Connectivity
    CONNECTIVITY_CHECK_HOST: str = "raw.githubusercontent.com"
    CONNECTIVITY_CHECK_PORT: int = 443
    CONNECTIVITY_CHECK_TIMEOUT: int = 3
    OFFLINE_MODE: bool = False

    # Scheduling
    UPCOMING_WINDOW_DAYS: int = 30
    REMINDER_LOOKAHEAD_DAYS: int = 90

    @field_validator("STORAGE_BACKEND", mode="before")
    @classmethod
    def validate_storage_backend(cls, v: Any) -> str:
        """
        Validates that the storage backend is one of the supported names.

        Args:
            v (Any): The configured backend name.

        Returns:
            str: The normalised (lower-case) backend name.

        Raises:
            ValueError: If the backend is not supported.
        """
        backend = str(v).strip().lower()
        if backend not in STORAGE_BACKENDS:
            raise ValueError(f"STORAGE_BACKEND must be one of {', '.join(STORAGE_BACKENDS)}")
        return backend

    @field_validator(
        "CALENDAR_REQUEST_TIMEOUT",
        "CALENDAR_OVERALL_TIMEOUT",
        "CONNECTIVITY_CHECK_TIMEOUT",
        mode="before",
    )
    @classmethod
    def validate_timeout_values(cls, v: Any, info: Any) -> int:
        """
        Validates that timeout values are within a reasonable range (1-300 seconds).

        Args:
            v (Any): The timeout value.
            info (Any): Validation info.

        Returns:
            int: The validated timeout.

        Raises:
            ValueError: If the timeout is out of range.
        """
        timeout = int(v)
        if timeout < 1 or timeout > 300:
            raise ValueError(f"{info.field_name} must be between 1 and 300 seconds")
        return timeout

    @field_validator(
        "CALENDAR_CACHE_TTL_DAYS",
        "UPCOMING_WINDOW_DAYS",
        "REMINDER_LOOKAHEAD_DAYS",
        mode="before",
    )
    @classmethod
    def validate_positive_integers(cls, v: Any, info: Any) -> int:
        """
        Validates that numeric settings are positive integers.

        Args:
            v (Any): The value to validate.
            info (Any): Validation info.

        Returns:
            int: The validated positive integer.

        Raises:
            ValueError: If the value is not a positive integer.
        """
        value = int(v)
        if value <= 0:
            raise ValueError(f"{info.field_name} must be a positive integer")
        return value

    @property
    def storage_file(self) -> Path:
        """Expanded path of the JSON storage file."""
        return Path(self.STORAGE_PATH).expanduser()

    @property
    def effective_redis_url(self) -> str:
        """
        Effective Redis URL used by the redis storage backend.

        Precedence: explicit `REDIS_URL`, then a URL built from host/port/db and optional
        credentials.

        Returns:
            str: A `redis://` URL.
        """
        if self.REDIS_URL:
            return self.REDIS_URL

        creds = ""
        if self.REDIS_USERNAME or self.REDIS_PASSWORD:
            username = self.REDIS_USERNAME or ""
            password = self.REDIS_PASSWORD.get_secret_value() if self.REDIS_PASSWORD else ""
            # If only password present, use :password@ form
            if username and password:
                creds = f"{username}:{password}@"
            elif password and not username:
                creds = f":{password}@"

        return f"redis://{creds}{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"


# Global settings instance
settings: Settings = Settings()
