"""
Pytest configuration and fixtures for identity sync tests.
Provides table factories and a clean configuration environment.
"""

from pathlib import Path

import pytest
from prometheus_client import CollectorRegistry

from identity_sync.metadata import (
    IDENTITY_INFO_ALLOW_EXPLICIT_INSERT,
    IDENTITY_INFO_HIGHWATERMARK,
    IDENTITY_INFO_START,
    IDENTITY_INFO_STEP,
)
from identity_sync.table_log import Column, VersionedTable
from utils.metrics import IdentitySyncMetrics

SYNC_ENV_VARS = (
    "IDENTITY_SYNC_ALLOW_LOWERING",
    "IDENTITY_SYNC_MAX_COMMIT_RETRIES",
    "IDENTITY_SYNC_RETRY_BASE_DELAY",
)


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "integration: end-to-end tests against on-disk tables")
    config.addinivalue_line("markers", "slow: mark test as slow running")


@pytest.fixture(scope="session")
def project_root() -> Path:
    """Get project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture(autouse=True)
def clean_sync_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove identity sync settings inherited from the environment."""
    for key in SYNC_ENV_VARS:
        monkeypatch.delenv(key, raising=False)


def identity_metadata(
    start: int,
    step: int,
    allow_explicit_insert: bool = True,
    high_water_mark: int | None = None,
    **extra,
) -> dict:
    """Build identity column metadata the way the schema stores it."""
    metadata = dict(extra)
    metadata[IDENTITY_INFO_START] = start
    metadata[IDENTITY_INFO_STEP] = step
    metadata[IDENTITY_INFO_ALLOW_EXPLICIT_INSERT] = allow_explicit_insert
    if high_water_mark is not None:
        metadata[IDENTITY_INFO_HIGHWATERMARK] = high_water_mark
    return metadata


@pytest.fixture
def make_table(tmp_path: Path):
    """
    Factory creating a table with identity column "id" and a "value" column.

    Usage:
        table = make_table(start=100, step=2)
    """
    counter = {"n": 0}

    def _make(
        start: int = 1,
        step: int = 1,
        allow_explicit_insert: bool = True,
        high_water_mark: int | None = None,
        value_type: str = "string",
    ) -> VersionedTable:
        counter["n"] += 1
        columns = [
            Column(
                "id",
                "long",
                nullable=False,
                metadata=identity_metadata(
                    start, step, allow_explicit_insert, high_water_mark
                ),
            ),
            Column("value", value_type),
        ]
        return VersionedTable.create(tmp_path / f"table_{counter['n']}", columns)

    return _make


@pytest.fixture
def registry() -> CollectorRegistry:
    """Isolated Prometheus registry."""
    return CollectorRegistry()


@pytest.fixture
def sync_metrics(registry: CollectorRegistry) -> IdentitySyncMetrics:
    return IdentitySyncMetrics(registry=registry)


@pytest.fixture
def metadata_factory():
    """Expose identity_metadata() to tests."""
    return identity_metadata
