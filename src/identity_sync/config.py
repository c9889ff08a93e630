"""
Configuration for identity sync runs.

Values come from environment variables and can be overridden per run by the
CLI. The resulting SyncConfig is passed explicitly to the sync command; the
reconciler itself only ever receives the allow_lowering boolean.

Environment variables:
    IDENTITY_SYNC_ALLOW_LOWERING: Allow sync to lower a valid watermark (default: false)
    IDENTITY_SYNC_MAX_COMMIT_RETRIES: Retries after a commit conflict (default: 3)
    IDENTITY_SYNC_RETRY_BASE_DELAY: Base backoff delay in seconds (default: 0.1)
"""

import os
from dataclasses import dataclass, replace

from .errors import ConfigurationError

TRUE_VALUES = ("true", "1", "yes")
FALSE_VALUES = ("false", "0", "no")


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in TRUE_VALUES:
        return True
    if value in FALSE_VALUES:
        return False
    raise ConfigurationError(f"{name} must be one of {TRUE_VALUES + FALSE_VALUES}, got {raw!r}")


@dataclass(frozen=True)
class SyncConfig:
    """Per-run options of the sync command."""

    allow_lowering: bool = False
    max_commit_retries: int = 3
    retry_base_delay: float = 0.1

    def __post_init__(self):
        if self.max_commit_retries < 0:
            raise ConfigurationError(
                f"max_commit_retries cannot be negative: {self.max_commit_retries}"
            )
        if self.retry_base_delay < 0:
            raise ConfigurationError(
                f"retry_base_delay cannot be negative: {self.retry_base_delay}"
            )

    @classmethod
    def from_env(cls) -> "SyncConfig":
        """
        Build configuration from environment variables.

        Raises:
            ConfigurationError: If a variable cannot be parsed
        """
        allow_lowering = _parse_bool(
            "IDENTITY_SYNC_ALLOW_LOWERING",
            os.getenv("IDENTITY_SYNC_ALLOW_LOWERING", "false"),
        )
        try:
            max_commit_retries = int(os.getenv("IDENTITY_SYNC_MAX_COMMIT_RETRIES", "3"))
            retry_base_delay = float(os.getenv("IDENTITY_SYNC_RETRY_BASE_DELAY", "0.1"))
        except ValueError as e:
            raise ConfigurationError(f"Invalid identity sync configuration: {e}") from e

        return cls(
            allow_lowering=allow_lowering,
            max_commit_retries=max_commit_retries,
            retry_base_delay=retry_base_delay,
        )

    def with_overrides(self, **overrides) -> "SyncConfig":
        """Return a copy with the non-None overrides applied."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})
