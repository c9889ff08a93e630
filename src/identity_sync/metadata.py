"""
Persisted identity column metadata.

Each identity column carries a key/value metadata map in the table schema.
IdentityColumnInfo parses that map, exposes the policy and watermark, and
renders it back. Keys it does not own are carried through untouched, so a
watermark rewrite changes exactly one entry.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Any

from .errors import InvalidTarget
from .watermark import UNSET, HighWatermark, IdentityPolicy, Watermark, watermark_from_optional

logger = logging.getLogger(__name__)

IDENTITY_INFO_START = "identity.start"
IDENTITY_INFO_STEP = "identity.step"
IDENTITY_INFO_ALLOW_EXPLICIT_INSERT = "identity.allowExplicitInsert"
IDENTITY_INFO_HIGHWATERMARK = "identity.highWaterMark"

IDENTITY_KEYS = (
    IDENTITY_INFO_START,
    IDENTITY_INFO_STEP,
    IDENTITY_INFO_ALLOW_EXPLICIT_INSERT,
    IDENTITY_INFO_HIGHWATERMARK,
)


def is_identity_metadata(metadata: dict[str, Any]) -> bool:
    """Check whether a column metadata map describes an identity column."""
    return IDENTITY_INFO_START in metadata and IDENTITY_INFO_STEP in metadata


@dataclass(frozen=True)
class IdentityColumnInfo:
    """Identity entries of one column plus the pass-through entries around them."""

    policy: IdentityPolicy
    allow_explicit_insert: bool
    watermark: Watermark = UNSET
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_metadata(cls, metadata: dict[str, Any]) -> "IdentityColumnInfo":
        """
        Parse a column metadata map.

        Args:
            metadata: Column metadata as stored in the schema

        Returns:
            Parsed IdentityColumnInfo

        Raises:
            InvalidTarget: If the map does not describe an identity column
        """
        if not is_identity_metadata(metadata):
            raise InvalidTarget("column metadata does not describe an identity column")

        policy = IdentityPolicy(
            start=int(metadata[IDENTITY_INFO_START]),
            step=int(metadata[IDENTITY_INFO_STEP]),
        )
        high_water_mark = metadata.get(IDENTITY_INFO_HIGHWATERMARK)
        extra = {k: v for k, v in metadata.items() if k not in IDENTITY_KEYS}

        return cls(
            policy=policy,
            allow_explicit_insert=bool(metadata.get(IDENTITY_INFO_ALLOW_EXPLICIT_INSERT, False)),
            watermark=watermark_from_optional(
                None if high_water_mark is None else int(high_water_mark)
            ),
            extra=extra,
        )

    def to_metadata(self) -> dict[str, Any]:
        """Render back into a column metadata map."""
        metadata = dict(self.extra)
        metadata[IDENTITY_INFO_START] = self.policy.start
        metadata[IDENTITY_INFO_STEP] = self.policy.step
        metadata[IDENTITY_INFO_ALLOW_EXPLICIT_INSERT] = self.allow_explicit_insert
        if isinstance(self.watermark, HighWatermark):
            metadata[IDENTITY_INFO_HIGHWATERMARK] = self.watermark.value
        return metadata

    def with_watermark(self, watermark: Watermark) -> "IdentityColumnInfo":
        """Return a copy that differs only in its watermark."""
        return replace(self, watermark=watermark)


def rewrite_watermark(metadata: dict[str, Any], watermark: Watermark) -> dict[str, Any]:
    """
    Produce a new metadata map with only the watermark entry replaced.

    Writes identity.highWaterMark for a set watermark and removes it for an
    unset one. All other entries, including their order, are copied.

    Args:
        metadata: Existing column metadata (not modified)
        watermark: New watermark

    Returns:
        New metadata map
    """
    if not is_identity_metadata(metadata):
        raise InvalidTarget("column metadata does not describe an identity column")

    rewritten = {k: v for k, v in metadata.items() if k != IDENTITY_INFO_HIGHWATERMARK}
    if isinstance(watermark, HighWatermark):
        rewritten[IDENTITY_INFO_HIGHWATERMARK] = watermark.value

    logger.debug(
        f"Rewrote watermark entry: {metadata.get(IDENTITY_INFO_HIGHWATERMARK)} -> "
        f"{watermark.to_optional()}"
    )
    return rewritten
