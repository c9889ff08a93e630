"""
Unit tests for sync configuration
"""

import pytest

from identity_sync.config import SyncConfig
from identity_sync.errors import ConfigurationError


class TestSyncConfig:
    """Test SyncConfig defaults and validation"""

    def test_defaults(self):
        config = SyncConfig()
        assert config.allow_lowering is False
        assert config.max_commit_retries == 3
        assert config.retry_base_delay == 0.1

    def test_negative_retries_rejected(self):
        with pytest.raises(ConfigurationError):
            SyncConfig(max_commit_retries=-1)

    def test_negative_delay_rejected(self):
        with pytest.raises(ConfigurationError):
            SyncConfig(retry_base_delay=-0.5)

    def test_configuration_error_is_value_error(self):
        with pytest.raises(ValueError):
            SyncConfig(max_commit_retries=-1)


class TestFromEnv:
    """Test environment variable loading"""

    def test_defaults_without_env(self):
        assert SyncConfig.from_env() == SyncConfig()

    def test_reads_env(self, monkeypatch):
        monkeypatch.setenv("IDENTITY_SYNC_ALLOW_LOWERING", "true")
        monkeypatch.setenv("IDENTITY_SYNC_MAX_COMMIT_RETRIES", "7")
        monkeypatch.setenv("IDENTITY_SYNC_RETRY_BASE_DELAY", "0.5")

        assert SyncConfig.from_env() == SyncConfig(True, 7, 0.5)

    @pytest.mark.parametrize("raw,expected", [
        ("1", True), ("YES", True), (" True ", True),
        ("0", False), ("no", False), ("FALSE", False),
    ])
    def test_bool_values(self, monkeypatch, raw, expected):
        monkeypatch.setenv("IDENTITY_SYNC_ALLOW_LOWERING", raw)
        assert SyncConfig.from_env().allow_lowering is expected

    def test_invalid_bool(self, monkeypatch):
        monkeypatch.setenv("IDENTITY_SYNC_ALLOW_LOWERING", "maybe")
        with pytest.raises(ConfigurationError, match="IDENTITY_SYNC_ALLOW_LOWERING"):
            SyncConfig.from_env()

    def test_invalid_number(self, monkeypatch):
        monkeypatch.setenv("IDENTITY_SYNC_MAX_COMMIT_RETRIES", "three")
        with pytest.raises(ConfigurationError):
            SyncConfig.from_env()

    def test_negative_number_from_env(self, monkeypatch):
        monkeypatch.setenv("IDENTITY_SYNC_MAX_COMMIT_RETRIES", "-2")
        with pytest.raises(ConfigurationError):
            SyncConfig.from_env()


class TestOverrides:
    """Test per-run overrides"""

    def test_none_is_ignored(self):
        config = SyncConfig(allow_lowering=True, max_commit_retries=5)
        assert config.with_overrides(allow_lowering=None, max_commit_retries=None) == config

    def test_values_applied(self):
        config = SyncConfig().with_overrides(allow_lowering=True, max_commit_retries=0)
        assert config.allow_lowering is True
        assert config.max_commit_retries == 0

    def test_original_unchanged(self):
        config = SyncConfig()
        config.with_overrides(allow_lowering=True)
        assert config.allow_lowering is False
