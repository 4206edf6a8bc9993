"""Configuration management for web-errnotifier.

This module provides the NotifierConfig dataclass for configuring
the error reporting pipeline.
"""

import os
from dataclasses import dataclass, field, fields
from typing import Any, Callable, Dict, List, Optional

from .exceptions import ConfigurationError

OVERFLOW_DROP_OLDEST = "drop_oldest"
OVERFLOW_REJECT_NEW = "reject_new"
OVERFLOW_POLICIES = (OVERFLOW_DROP_OLDEST, OVERFLOW_REJECT_NEW)


@dataclass
class NotifierConfig:
    """Global notifier configuration.

    Controls the delivery backend, retry behaviour, queueing and the
    filters registered at startup.

    Attributes:
        endpoint: URL reports are POSTed to (required by the "http" transport).
        api_key: Credential sent as a bearer token.
        environment: Deployment environment added to every report's context.
        transport: Registered transport name ("http" or "local"). Default: "http"
        max_retries: Retries after the first failed attempt. Default: 3
        backoff_base_seconds: Delay before the first retry; doubles on each
            subsequent retry. Default: 0.1
        backoff_max_seconds: Upper bound on a single backoff delay. Default: 2.0
        timeout_seconds: Timeout of a single delivery attempt. Default: 5.0
        sync_timeout_seconds: Hard ceiling for notify_sync, retries included.
            Default: 10.0
        queue_size: Capacity of the async delivery queue. Default: 1000
        overflow_policy: "drop_oldest" or "reject_new". Default: "drop_oldest"
        workers: Number of background delivery threads. Default: 1
        graceful_shutdown_seconds: Drain deadline used by shutdown. Default: 5.0
        log_path: Directory for the notifier log file and local transport
            output. Default: "/tmp"
        filter_list: Filter configurations, e.g.
            {"type": "sql", "dialect": "postgresql", "priority": 10}.
        enabled: When False, notify and notify_sync do nothing. Default: True
    """

    endpoint: str = ""
    api_key: str = ""
    environment: str = "production"
    transport: str = "http"
    max_retries: int = 3
    backoff_base_seconds: float = 0.1
    backoff_max_seconds: float = 2.0
    timeout_seconds: float = 5.0
    sync_timeout_seconds: float = 10.0
    queue_size: int = 1000
    overflow_policy: str = OVERFLOW_DROP_OLDEST
    workers: int = 1
    graceful_shutdown_seconds: float = 5.0
    log_path: str = "/tmp"
    filter_list: List[Dict[str, Any]] = field(default_factory=list)
    enabled: bool = True

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        self._validate()

    def _validate(self) -> None:
        """Validate all configuration values.

        Raises:
            ConfigurationError: If any configuration value is invalid.
        """
        if self.max_retries < 0:
            raise ConfigurationError(
                f"max_retries must be non-negative, got {self.max_retries}"
            )

        if self.backoff_base_seconds < 0:
            raise ConfigurationError(
                f"backoff_base_seconds must be non-negative, "
                f"got {self.backoff_base_seconds}"
            )

        if self.backoff_max_seconds < self.backoff_base_seconds:
            raise ConfigurationError(
                f"backoff_max_seconds ({self.backoff_max_seconds}) must not be "
                f"smaller than backoff_base_seconds ({self.backoff_base_seconds})"
            )

        if self.timeout_seconds <= 0:
            raise ConfigurationError(
                f"timeout_seconds must be positive, got {self.timeout_seconds}"
            )

        if self.sync_timeout_seconds <= 0:
            raise ConfigurationError(
                f"sync_timeout_seconds must be positive, got {self.sync_timeout_seconds}"
            )

        if self.queue_size <= 0:
            raise ConfigurationError(
                f"queue_size must be positive, got {self.queue_size}"
            )

        if self.overflow_policy not in OVERFLOW_POLICIES:
            raise ConfigurationError(
                f"overflow_policy must be one of {OVERFLOW_POLICIES}, "
                f"got {self.overflow_policy!r}"
            )

        if self.workers <= 0:
            raise ConfigurationError(f"workers must be positive, got {self.workers}")

        if self.graceful_shutdown_seconds < 0:
            raise ConfigurationError(
                f"graceful_shutdown_seconds must be non-negative, "
                f"got {self.graceful_shutdown_seconds}"
            )

        for entry in self.filter_list:
            if not isinstance(entry, dict) or not entry.get("type"):
                raise ConfigurationError(
                    f"filter_list entries must be dicts with a 'type' key, got {entry!r}"
                )

    @classmethod
    def from_env(cls) -> "NotifierConfig":
        """Create configuration from environment variables.

        Environment variable mappings:
            ERRNOTIFIER_ENDPOINT -> endpoint
            ERRNOTIFIER_API_KEY -> api_key
            ERRNOTIFIER_ENVIRONMENT -> environment
            ERRNOTIFIER_TRANSPORT -> transport
            ERRNOTIFIER_MAX_RETRIES -> max_retries
            ERRNOTIFIER_BACKOFF_BASE -> backoff_base_seconds
            ERRNOTIFIER_BACKOFF_MAX -> backoff_max_seconds
            ERRNOTIFIER_TIMEOUT -> timeout_seconds
            ERRNOTIFIER_SYNC_TIMEOUT -> sync_timeout_seconds
            ERRNOTIFIER_QUEUE_SIZE -> queue_size
            ERRNOTIFIER_OVERFLOW_POLICY -> overflow_policy
            ERRNOTIFIER_WORKERS -> workers
            ERRNOTIFIER_SHUTDOWN_TIMEOUT -> graceful_shutdown_seconds
            ERRNOTIFIER_LOG_PATH -> log_path
            ERRNOTIFIER_ENABLED -> enabled (true/false)

        Returns:
            NotifierConfig instance with values from environment.

        Raises:
            ConfigurationError: If environment values are invalid.
        """
        kwargs: Dict[str, Any] = {}

        for env_name, field_name in (
            ("ERRNOTIFIER_ENDPOINT", "endpoint"),
            ("ERRNOTIFIER_API_KEY", "api_key"),
            ("ERRNOTIFIER_ENVIRONMENT", "environment"),
            ("ERRNOTIFIER_TRANSPORT", "transport"),
            ("ERRNOTIFIER_OVERFLOW_POLICY", "overflow_policy"),
            ("ERRNOTIFIER_LOG_PATH", "log_path"),
        ):
            if value := os.environ.get(env_name):
                kwargs[field_name] = value

        for env_name, field_name, convert in (
            ("ERRNOTIFIER_MAX_RETRIES", "max_retries", int),
            ("ERRNOTIFIER_BACKOFF_BASE", "backoff_base_seconds", float),
            ("ERRNOTIFIER_BACKOFF_MAX", "backoff_max_seconds", float),
            ("ERRNOTIFIER_TIMEOUT", "timeout_seconds", float),
            ("ERRNOTIFIER_SYNC_TIMEOUT", "sync_timeout_seconds", float),
            ("ERRNOTIFIER_QUEUE_SIZE", "queue_size", int),
            ("ERRNOTIFIER_WORKERS", "workers", int),
            ("ERRNOTIFIER_SHUTDOWN_TIMEOUT", "graceful_shutdown_seconds", float),
        ):
            kwargs.update(_parse_number(env_name, field_name, convert))

        if enabled := os.environ.get("ERRNOTIFIER_ENABLED"):
            enabled_lower = enabled.lower()
            if enabled_lower in ("true", "1", "yes"):
                kwargs["enabled"] = True
            elif enabled_lower in ("false", "0", "no"):
                kwargs["enabled"] = False
            else:
                raise ConfigurationError(
                    f"Invalid ERRNOTIFIER_ENABLED value: {enabled}. "
                    "Must be true/false, 1/0, or yes/no"
                )

        return cls(**kwargs)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "NotifierConfig":
        """Create configuration from a dictionary.

        Args:
            data: Configuration dictionary with field names as keys.

        Returns:
            NotifierConfig instance with values from dictionary.

        Raises:
            ConfigurationError: If dictionary values are invalid.
        """
        valid_fields = {f.name for f in fields(cls)}

        # Filter to only valid fields
        kwargs = {k: v for k, v in data.items() if k in valid_fields}

        try:
            return cls(**kwargs)
        except TypeError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e

    def merge(self, **kwargs: Any) -> "NotifierConfig":
        """Create a new config with some values overridden.

        Args:
            **kwargs: Configuration values to override.

        Returns:
            New NotifierConfig instance with merged values.

        Raises:
            ConfigurationError: If an unknown field is given.
        """
        current: Dict[str, Any] = {f.name: getattr(self, f.name) for f in fields(self)}
        current["filter_list"] = [dict(entry) for entry in self.filter_list]

        unknown = set(kwargs) - set(current)
        if unknown:
            raise ConfigurationError(f"Unknown configuration fields: {sorted(unknown)}")

        current.update(kwargs)
        return NotifierConfig(**current)


def _parse_number(
    env_name: str, field_name: str, convert: Callable[[str], Any]
) -> Dict[str, Any]:
    raw = os.environ.get(env_name)
    if not raw:
        return {}
    try:
        return {field_name: convert(raw)}
    except ValueError as e:
        raise ConfigurationError(f"Invalid {env_name} value: {raw}") from e


# Default configuration instance
_default_config: Optional[NotifierConfig] = None


def get_default_config() -> NotifierConfig:
    """Get the default global configuration.

    Returns:
        The default NotifierConfig instance, built from the environment
        on first use.
    """
    global _default_config
    if _default_config is None:
        _default_config = NotifierConfig.from_env()
    return _default_config


def set_default_config(config: NotifierConfig) -> None:
    """Set the default global configuration.

    Args:
        config: The NotifierConfig to use as default.
    """
    global _default_config
    _default_config = config
