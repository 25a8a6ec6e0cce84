"""Configuration management for photoselect.

Environment variables (optionally loaded from a ``.env`` file) are read through
``Config`` and assembled into a ``Settings`` object that is passed to every
service. Credentials, bucket and listening address come from the environment;
folder paths and the retention/cache/batch constants are defaulted on
``Settings`` and only overridable in code.
"""

import os
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any

from dotenv import load_dotenv

from .errors import ConfigurationError
from .logging_config import get_logger
from .models import FolderTable, ResizeSpec

logger = get_logger(__name__)


class Config:
    """Centralized configuration lookup using environment variables."""

    def __init__(self, env_file: str | None = None):
        """Initialize configuration, loading ``env_file`` first when it exists."""
        self._cache: dict[str, Any] = {}
        if env_file and os.path.exists(env_file):
            load_dotenv(dotenv_path=env_file)
            logger.info("env_file_loaded", env_file=env_file)

    def get(self, key: str, default: Any = None, cast_type: type = str) -> Any:
        """Get configuration value from environment variables.

        Args:
            key: Configuration key
            default: Default value if not found
            cast_type: Type to cast the value to (str, int, bool, float)

        Returns:
            Configuration value cast to the specified type
        """
        cache_key = f"{key}:{cast_type.__name__}"
        if cache_key in self._cache:
            return self._cache[cache_key]

        value = os.getenv(key)
        if value == "":
            value = None

        if value is None:
            value = default

        if value is not None:
            try:
                if cast_type is bool:
                    if isinstance(value, str):
                        value = value.lower() in ("true", "1", "yes", "on")
                    else:
                        value = bool(value)
                elif cast_type is not str:
                    value = cast_type(value)
            except (ValueError, TypeError) as e:
                logger.warning(f"Failed to cast config value '{key}' to {cast_type.__name__}: {e}")
                value = default

        self._cache[cache_key] = value
        return value

    def get_required(self, key: str, cast_type: type = str) -> Any:
        """Get required configuration value.

        Raises:
            ConfigurationError: If the required configuration is not found
        """
        value = self.get(key, cast_type=cast_type)
        if value is None:
            raise ConfigurationError(f"Required configuration '{key}' not found", details={"key": key})
        return value

    def clear_cache(self) -> None:
        """Clear configuration cache."""
        self._cache.clear()


@dataclass
class Settings:
    """Everything the services need, resolved once at startup."""

    bucket: str | None = None
    project_id: str | None = None

    # Long-lived OAuth refresh credential, or a static access token.
    refresh_token: str | None = None
    client_id: str | None = None
    client_secret: str | None = None
    access_token: str | None = None
    signer_email: str | None = None

    folders: FolderTable = field(default_factory=FolderTable)
    cache_ttl: timedelta = timedelta(hours=3)
    link_batch_size: int = 10
    # Temporary links must outlive the cache entry that holds them.
    temporary_link_ttl: timedelta = timedelta(hours=4)
    retention_days: int = 30
    preview_resize: ResizeSpec = field(default_factory=lambda: ResizeSpec(width=1000, quality=80))
    final_resize: ResizeSpec = field(default_factory=lambda: ResizeSpec(width=1920, quality=85))
    cleanup_hour: int = 0
    cleanup_minute: int = 0

    host: str = "0.0.0.0"  # nosec B104
    port: int = 5000
    cors_origins: list[str] = field(default_factory=lambda: ["*"])

    @classmethod
    def from_env(cls, config: Config | None = None) -> "Settings":
        """Build settings from environment variables."""
        config = config or Config()
        return cls(
            bucket=config.get("GCS_BUCKET"),
            project_id=config.get("GOOGLE_CLOUD_PROJECT"),
            refresh_token=config.get("GCS_REFRESH_TOKEN"),
            client_id=config.get("GCS_CLIENT_ID"),
            client_secret=config.get("GCS_CLIENT_SECRET"),
            access_token=config.get("GCS_ACCESS_TOKEN"),
            signer_email=config.get("GCS_SIGNER_EMAIL"),
            host=config.get("HOST", "0.0.0.0"),  # nosec B104
            port=config.get("PORT", 5000, int),
        )

    @property
    def credential_mode(self) -> str:
        """Which credential source the storage client will use."""
        if self.refresh_token:
            return "refresh_token"
        if self.access_token:
            return "access_token"
        return "default"

    def validate(self) -> None:
        """Reject settings the service cannot start with.

        Raises:
            ConfigurationError: If the bucket or credential material is incomplete
        """
        if not self.bucket:
            raise ConfigurationError("GCS_BUCKET environment variable is required")
        if self.refresh_token and not (self.client_id and self.client_secret):
            raise ConfigurationError(
                "GCS_CLIENT_ID and GCS_CLIENT_SECRET are required with GCS_REFRESH_TOKEN",
                details={"credential_mode": "refresh_token"},
            )
        if self.credential_mode in ("refresh_token", "access_token") and not self.signer_email:
            # OAuth user and static tokens hold no private key; links are signed through IAM.
            raise ConfigurationError(
                "GCS_SIGNER_EMAIL is required with GCS_REFRESH_TOKEN or GCS_ACCESS_TOKEN",
                details={"credential_mode": self.credential_mode},
            )
        if self.link_batch_size < 1:
            raise ConfigurationError("Link batch size must be at least 1", details={"value": self.link_batch_size})
        if self.temporary_link_ttl < self.cache_ttl:
            logger.warning(
                "temporary_link_ttl_shorter_than_cache",
                temporary_link_ttl=self.temporary_link_ttl.total_seconds(),
                cache_ttl=self.cache_ttl.total_seconds(),
            )


_settings: Settings | None = None


def get_settings(env_file: str | None = ".env") -> Settings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings.from_env(Config(env_file))
    return _settings


def reset_settings() -> None:
    """Forget the global settings so the next call re-reads the environment."""
    global _settings
    _settings = None
