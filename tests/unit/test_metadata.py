"""
Unit tests for identity column metadata parsing and rewriting
"""

import pytest

from identity_sync.errors import InvalidTarget
from identity_sync.metadata import (
    IDENTITY_INFO_ALLOW_EXPLICIT_INSERT,
    IDENTITY_INFO_HIGHWATERMARK,
    IDENTITY_INFO_START,
    IDENTITY_INFO_STEP,
    IdentityColumnInfo,
    is_identity_metadata,
    rewrite_watermark,
)
from identity_sync.watermark import UNSET, HighWatermark, IdentityPolicy


class TestIdentityColumnInfo:
    """Test parsing of persisted metadata"""

    def test_from_metadata_without_watermark(self, metadata_factory):
        info = IdentityColumnInfo.from_metadata(metadata_factory(100, 2, False))

        assert info.policy == IdentityPolicy(100, 2)
        assert info.allow_explicit_insert is False
        assert info.watermark is UNSET
        assert info.extra == {}

    def test_from_metadata_with_watermark(self, metadata_factory):
        info = IdentityColumnInfo.from_metadata(metadata_factory(1, -3, True, -5))

        assert info.policy.step == -3
        assert info.watermark == HighWatermark(-5)

    def test_unrelated_entries_are_kept(self, metadata_factory):
        metadata = metadata_factory(1, 1, comment="surrogate key")
        info = IdentityColumnInfo.from_metadata(metadata)

        assert info.extra == {"comment": "surrogate key"}
        assert info.to_metadata() == metadata

    def test_non_identity_metadata_rejected(self):
        with pytest.raises(InvalidTarget):
            IdentityColumnInfo.from_metadata({"comment": "plain"})

    def test_to_metadata_round_trip_with_watermark(self, metadata_factory):
        metadata = metadata_factory(5, 5, True, 25)
        assert IdentityColumnInfo.from_metadata(metadata).to_metadata() == metadata

    def test_with_watermark_changes_only_watermark(self, metadata_factory):
        info = IdentityColumnInfo.from_metadata(metadata_factory(1, 10, False, 41))
        updated = info.with_watermark(HighWatermark(51))

        assert updated.watermark == HighWatermark(51)
        assert updated.policy == info.policy
        assert updated.allow_explicit_insert == info.allow_explicit_insert
        assert info.watermark == HighWatermark(41)

    def test_is_identity_metadata(self):
        assert is_identity_metadata({IDENTITY_INFO_START: 1, IDENTITY_INFO_STEP: 1})
        assert not is_identity_metadata({IDENTITY_INFO_START: 1})
        assert not is_identity_metadata({})


class TestRewriteWatermark:
    """Test the single-entry metadata rewrite"""

    def test_sets_watermark(self, metadata_factory):
        metadata = metadata_factory(1, 3)
        rewritten = rewrite_watermark(metadata, HighWatermark(4))

        assert rewritten[IDENTITY_INFO_HIGHWATERMARK] == 4
        assert IDENTITY_INFO_HIGHWATERMARK not in metadata

    def test_replaces_watermark(self, metadata_factory):
        rewritten = rewrite_watermark(metadata_factory(1, 3, high_water_mark=4), HighWatermark(7))
        assert rewritten == metadata_factory(1, 3, high_water_mark=7)

    def test_unset_removes_entry(self, metadata_factory):
        rewritten = rewrite_watermark(metadata_factory(1, 3, high_water_mark=4), UNSET)
        assert IDENTITY_INFO_HIGHWATERMARK not in rewritten

    def test_other_entries_copied(self, metadata_factory):
        metadata = metadata_factory(7, -2, False, -9, comment="x", owner="etl")
        rewritten = rewrite_watermark(metadata, HighWatermark(-11))

        for key, value in metadata.items():
            if key != IDENTITY_INFO_HIGHWATERMARK:
                assert rewritten[key] == value
        assert rewritten[IDENTITY_INFO_ALLOW_EXPLICIT_INSERT] is False
        assert metadata[IDENTITY_INFO_HIGHWATERMARK] == -9

    def test_returns_new_object(self, metadata_factory):
        metadata = metadata_factory(1, 1, high_water_mark=3)
        assert rewrite_watermark(metadata, HighWatermark(3)) is not metadata

    def test_rejects_non_identity_metadata(self):
        with pytest.raises(InvalidTarget):
            rewrite_watermark({"comment": "x"}, HighWatermark(1))
