"""
Integration tests for SYNC IDENTITY against on-disk tables

Each test drives a real table through inserts, deletes and syncs, then checks
the persisted watermark and the values generated afterwards.

Run with: pytest tests/integration/test_sync_identity_flow.py -v
"""

import pytest

from identity_sync.config import SyncConfig
from identity_sync.errors import IdentityOverflowError, InvalidTarget
from identity_sync.metadata import rewrite_watermark
from identity_sync.progression import INT64_MAX
from identity_sync.sync import sync_identity
from identity_sync.table_log import VersionedTable, metadata_action
from identity_sync.watermark import HighWatermark

pytestmark = pytest.mark.integration


def high_watermark(table: VersionedTable):
    return table.snapshot().column("id").identity_info().watermark.to_optional()


def ids(table: VersionedTable) -> list:
    return sorted(table.snapshot().values("id"))


def generate(table: VersionedTable, count: int) -> list:
    """Insert count generated rows and return the values they received."""
    before = set(table.snapshot().values("id"))
    table.insert([{"value": f"gen-{i}"} for i in range(count)])
    return sorted(set(table.snapshot().values("id")) - before)


def force_watermark(table: VersionedTable, value: int) -> None:
    """Write an arbitrary watermark, bypassing any validation."""
    snapshot = table.snapshot()
    column = snapshot.column("id")
    updated = column.with_metadata(rewrite_watermark(column.metadata, HighWatermark(value)))
    table.commit(
        snapshot.version,
        [metadata_action(snapshot.schema_with_column(updated))],
        operation="SET TBLPROPERTIES",
    )


class TestSyncAfterDelete:
    """Watermark handling after deleting the highest rows"""

    @pytest.fixture
    def table(self, make_table):
        table = make_table(start=1, step=10)
        assert generate(table, 5) == [1, 11, 21, 31, 41]
        assert high_watermark(table) == 41
        table.delete(lambda row: row["value"] in ("gen-0", "gen-3", "gen-4"))
        assert ids(table) == [11, 21]
        return table

    def test_sync_keeps_watermark(self, table):
        result = sync_identity(str(table.path), "id")

        assert result.changed is False
        assert high_watermark(table) == 41
        assert generate(table, 1) == [51]

    def test_sync_with_lowering(self, table):
        result = sync_identity(str(table.path), "id", config=SyncConfig(allow_lowering=True))

        assert result.changed is True
        assert high_watermark(table) == 21
        assert generate(table, 1) == [31]
        assert ids(table) == [11, 21, 31]


class TestExplicitValuesBeforeStart:
    """Explicit values that are not past start never set the watermark"""

    @pytest.mark.parametrize("allow_lowering", [False, True])
    def test_positive_step(self, make_table, allow_lowering):
        table = make_table(start=100, step=2)
        table.insert([{"id": v, "value": str(v)} for v in (1, 2, 99)])

        sync_identity(str(table.path), "id", config=SyncConfig(allow_lowering=allow_lowering))

        assert high_watermark(table) is None
        assert generate(table, 3) == [100, 102, 104]

    def test_negative_step(self, make_table):
        table = make_table(start=-10, step=-2)
        table.insert([{"id": v, "value": str(v)} for v in (1, 2, -9)])

        sync_identity(str(table.path), "id")

        assert high_watermark(table) is None
        assert sorted(generate(table, 2), reverse=True) == [-10, -12]

    def test_value_on_start(self, make_table):
        table = make_table(start=100, step=2)
        table.insert([{"id": 100, "value": "start"}])

        sync_identity(str(table.path), "id")

        assert high_watermark(table) == 100
        assert generate(table, 1) == [102]

    def test_value_between_members(self, make_table):
        table = make_table(start=100, step=2)
        table.insert([{"id": 101, "value": "odd"}])

        sync_identity(str(table.path), "id")

        assert high_watermark(table) == 102
        assert generate(table, 1) == [104]


class TestExplicitValuesAhead:
    """Explicit values ahead of the watermark move it forward"""

    def test_generated_values_skip_explicit_ones(self, make_table):
        table = make_table(start=1, step=1)
        generate(table, 3)
        table.insert([{"id": 10, "value": "explicit"}])
        assert high_watermark(table) == 3

        sync_identity(str(table.path), "id")

        assert high_watermark(table) == 10
        assert generate(table, 2) == [11, 12]
        assert len(set(ids(table))) == len(ids(table))

    def test_negative_step(self, make_table):
        table = make_table(start=0, step=-5)
        generate(table, 2)
        table.insert([{"id": -23, "value": "explicit"}])

        sync_identity(str(table.path), "id")

        assert high_watermark(table) == -25
        assert generate(table, 1) == [-30]


class TestOverflow:
    """Overflowing repairs abort without committing"""

    def test_overflow_aborts(self, make_table):
        table = make_table(start=1, step=10)
        table.insert([{"id": INT64_MAX, "value": "max"}])
        version = table.latest_version()

        with pytest.raises(IdentityOverflowError):
            sync_identity(str(table.path), "id", config=SyncConfig(allow_lowering=True))

        assert table.latest_version() == version
        assert high_watermark(table) is None


class TestInvalidWatermarkRepair:
    """A watermark that is not a valid progression member gets repaired"""

    @pytest.mark.parametrize("step,explicit", [(48, 4), (-48, 196)])
    def test_repair(self, make_table, step, explicit):
        table = make_table(start=100, step=step)
        table.insert([{"id": explicit, "value": "explicit"}])
        bad = explicit - 1 if step > 0 else explicit + 1
        force_watermark(table, bad)

        sync_identity(str(table.path), "id")

        repaired = high_watermark(table)
        if step > 0:
            assert repaired > bad
        else:
            assert repaired < bad
        assert (repaired - 100) % abs(step) == 0

    def test_repair_from_before_start(self, make_table):
        table = make_table(start=1, step=3)
        table.insert([{"id": -2, "value": "explicit"}])
        force_watermark(table, -5)

        sync_identity(str(table.path), "id")

        assert high_watermark(table) == -2


class TestInvalidTargets:
    """Non-qualifying targets are rejected before anything is written"""

    def test_plain_directory(self, tmp_path):
        (tmp_path / "plain").mkdir()
        (tmp_path / "plain" / "part-0000.parquet").write_bytes(b"")

        with pytest.raises(InvalidTarget):
            sync_identity(str(tmp_path / "plain"), "id")

        assert not (tmp_path / "plain" / "_txn_log").exists()

    def test_non_identity_column(self, make_table):
        table = make_table()
        table.insert([{"value": "a"}])

        with pytest.raises(InvalidTarget):
            sync_identity(str(table.path), "value")

        assert table.latest_version() == 1


class TestRepeatedSync:
    """Sync is idempotent"""

    def test_second_sync_is_noop(self, make_table):
        table = make_table(start=7, step=7)
        table.insert([{"id": 50, "value": "explicit"}])

        first = sync_identity(str(table.path), "id")
        second = sync_identity(str(table.path), "id")

        assert first.new == HighWatermark(56)
        assert second.changed is False
        assert second.version is None
        assert table.latest_version() == first.version
