"""
Insert-time identity value generation.

Values continue the progression from the persisted watermark: the first
generated value is start when no watermark is set, otherwise watermark +
step. A batch takes consecutive progression members and the watermark moves
to the last one. Explicit values never move the watermark.
"""

import logging
from typing import Any

from .errors import ExplicitInsertNotAllowed
from .metadata import IdentityColumnInfo
from .progression import checked_add, is_on_progression
from .watermark import HighWatermark

logger = logging.getLogger(__name__)


def allocate(info: IdentityColumnInfo, count: int) -> tuple[list[int], IdentityColumnInfo]:
    """
    Allocate count identity values.

    Args:
        info: Current identity info of the column
        count: Number of values to generate

    Returns:
        Tuple of (generated values, info carrying the advanced watermark)

    Raises:
        ValueError: If count is negative
        IdentityOverflowError: If the progression leaves the int64 range
    """
    if count < 0:
        raise ValueError(f"count cannot be negative: {count}")
    if count == 0:
        return [], info

    step = info.policy.step
    if isinstance(info.watermark, HighWatermark):
        if not is_on_progression(info.policy.start, step, info.watermark.value):
            logger.warning(
                f"High watermark {info.watermark.value} is not on the progression "
                f"start={info.policy.start}, step={step}; run SYNC IDENTITY to repair it"
            )
        next_value = checked_add(info.watermark.value, step)
    else:
        next_value = info.policy.start

    values = [next_value]
    for _ in range(count - 1):
        next_value = checked_add(next_value, step)
        values.append(next_value)

    return values, info.with_watermark(HighWatermark(values[-1]))


def fill_identity_values(
    rows: list[dict[str, Any]], column: str, info: IdentityColumnInfo
) -> tuple[list[dict[str, Any]], IdentityColumnInfo]:
    """
    Fill the identity column of rows that do not supply it.

    Rows carrying an explicit value keep it, provided the column allows
    explicit inserts.

    Args:
        rows: Rows to insert (not modified)
        column: Identity column name
        info: Current identity info of the column

    Returns:
        Tuple of (rows with identity values, updated identity info)

    Raises:
        ExplicitInsertNotAllowed: If a row supplies a value for a
            GENERATED ALWAYS column
    """
    missing = [i for i, row in enumerate(rows) if row.get(column) is None]
    explicit = len(rows) - len(missing)

    if explicit and not info.allow_explicit_insert:
        raise ExplicitInsertNotAllowed(
            f"Providing values for GENERATED ALWAYS AS IDENTITY column {column} is not supported"
        )

    values, updated = allocate(info, len(missing))
    filled = [dict(row) for row in rows]
    for index, value in zip(missing, values):
        filled[index][column] = value

    if values:
        logger.debug(
            f"Generated {len(values)} identity value(s) for {column}: "
            f"{values[0]}..{values[-1]}"
        )
    return filled, updated
