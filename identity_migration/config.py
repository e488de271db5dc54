"""Environment-based configuration.

Values come from the process environment, optionally seeded from a ``.env``
file. Every precondition is checked here, before any record is read.
"""

import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from dotenv import find_dotenv, load_dotenv

from .exceptions import ConfigurationError
from .loaders.clerk_loader import DEFAULT_BASE_URL, DEFAULT_LOCALE, DEFAULT_ROLE_ID

logger = logging.getLogger(__name__)

TRUE_VALUES = {"1", "true", "yes", "on"}
FALSE_VALUES = {"0", "false", "no", "off", ""}


@dataclass
class MigrationSettings:
    """Settings for one migration run."""
    secret_key: str
    delay_ms: int = 1000
    retry_delay_ms: int = 10000
    import_to_dev: bool = False
    offset: int = 0
    api_url: str = DEFAULT_BASE_URL
    log_dir: str = "."
    max_rate_limit_retries: Optional[int] = None  # None retries forever
    default_role_id: str = DEFAULT_ROLE_ID
    default_locale: str = DEFAULT_LOCALE
    request_timeout: float = 30.0

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "MigrationSettings":
        """
        Build settings from environment variables.

        Args:
            environ: Mapping to read from, defaults to ``os.environ``

        Raises:
            ConfigurationError: if a value is missing, malformed or unsafe
        """
        env = os.environ if environ is None else environ

        secret_key = env.get("CLERK_SECRET_KEY", "").strip()
        if not secret_key:
            raise ConfigurationError(
                "CLERK_SECRET_KEY is required. Please copy .env.example to .env and add your key."
            )

        settings = cls(
            secret_key=secret_key,
            delay_ms=_get_int(env, "DELAY_MS", 1000),
            retry_delay_ms=_get_int(env, "RETRY_DELAY_MS", 10000),
            import_to_dev=_get_bool(env, "IMPORT_TO_DEV_INSTANCE", False),
            offset=_get_int(env, "OFFSET", 0),
            api_url=env.get("CLERK_API_URL") or DEFAULT_BASE_URL,
            log_dir=env.get("MIGRATION_LOG_DIR") or ".",
            max_rate_limit_retries=_get_optional_int(env, "MAX_RATE_LIMIT_RETRIES"),
            default_role_id=env.get("DEFAULT_ROLE_ID") or DEFAULT_ROLE_ID,
            default_locale=env.get("DEFAULT_LOCALE") or DEFAULT_LOCALE,
            request_timeout=_get_float(env, "REQUEST_TIMEOUT", 30.0),
        )
        settings.validate()
        return settings

    @property
    def is_live_key(self) -> bool:
        """Live keys look like ``sk_live_...``; anything else is a development instance."""
        parts = self.secret_key.split("_")
        return len(parts) > 1 and parts[1] == "live"

    def validate(self) -> None:
        """Check the startup preconditions."""
        if not self.is_live_key and not self.import_to_dev:
            raise ConfigurationError(
                "The Clerk Secret Key provided is for a development instance. "
                "Development instances are limited to 500 users and do not share their "
                "userbase with production instances. If you want to import users to your "
                "development instance, please set 'IMPORT_TO_DEV_INSTANCE' in your .env to 'true'."
            )

        if self.retry_delay_ms <= self.delay_ms:
            logger.warning(
                f"RETRY_DELAY_MS ({self.retry_delay_ms}) is not longer than "
                f"DELAY_MS ({self.delay_ms}); rate limited records may be retried too early"
            )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation, without the secret."""
        return {
            "delay_ms": self.delay_ms,
            "retry_delay_ms": self.retry_delay_ms,
            "import_to_dev": self.import_to_dev,
            "offset": self.offset,
            "api_url": self.api_url,
            "log_dir": self.log_dir,
            "max_rate_limit_retries": self.max_rate_limit_retries,
            "live_key": self.is_live_key,
        }


def load_settings(env_file: Optional[str] = None) -> MigrationSettings:
    """Load ``.env`` (without overriding real environment variables) and build settings."""
    load_dotenv(env_file or find_dotenv(usecwd=True))
    return MigrationSettings.from_env()


def _get_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from None
    if value < 0:
        raise ConfigurationError(f"{name} must not be negative, got {value}")
    return value


def _get_optional_int(env: Mapping[str, str], name: str) -> Optional[int]:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return None
    return _get_int(env, name, 0)


def _get_bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = env.get(name)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in TRUE_VALUES:
        return True
    if value in FALSE_VALUES:
        return False
    raise ConfigurationError(f"{name} must be 'true' or 'false', got {raw!r}")


def _get_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from None
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive, got {value}")
    return value
