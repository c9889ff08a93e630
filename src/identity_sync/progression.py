"""
Overflow-checked arithmetic over identity progressions.

A progression is the infinite arithmetic sequence ``start + k * step`` for
every integer ``k``. Python integers are unbounded, so every intermediate
result is checked against the signed 64-bit range that identity columns are
stored in; leaving that range raises IdentityOverflowError instead of
wrapping or saturating.
"""

from .errors import IdentityOverflowError, PreconditionViolation

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1


def _check_range(value: int, operation: str) -> int:
    if value < INT64_MIN or value > INT64_MAX:
        raise IdentityOverflowError(f"long overflow in {operation}: result {value}")
    return value


def checked_add(a: int, b: int) -> int:
    """Add two int64 values, raising IdentityOverflowError on overflow."""
    return _check_range(a + b, f"{a} + {b}")


def checked_sub(a: int, b: int) -> int:
    """Subtract two int64 values, raising IdentityOverflowError on overflow."""
    return _check_range(a - b, f"{a} - {b}")


def checked_mul(a: int, b: int) -> int:
    """Multiply two int64 values, raising IdentityOverflowError on overflow."""
    return _check_range(a * b, f"{a} * {b}")


def ceil_div(dividend: int, divisor: int) -> int:
    """
    Divide rounding toward positive infinity, for either sign of divisor.

    Raises:
        PreconditionViolation: If divisor is zero
        IdentityOverflowError: If the quotient leaves the int64 range
            (only INT64_MIN / -1)
    """
    if divisor == 0:
        raise PreconditionViolation("identity step must not be zero")
    return _check_range(-(-dividend // divisor), f"ceil({dividend} / {divisor})")


def next_on_progression(start: int, step: int, value: int) -> int:
    """
    Round value onto the progression from the advancing side.

    Returns the smallest member of ``{start + k * step}`` that is >= value
    when step is positive, and the largest member <= value when step is
    negative. Members are returned unchanged. Values on the wrong side of
    start are rounded, not clamped.

    Args:
        start: Progression start
        step: Progression step (nonzero)
        value: Value to round

    Returns:
        The nearest progression member in the direction of step

    Raises:
        PreconditionViolation: If step is zero
        IdentityOverflowError: If any intermediate result overflows int64

    Example:
        >>> next_on_progression(1, 3, 2)
        4
        >>> next_on_progression(1, -3, -1)
        -2
    """
    if step == 0:
        raise PreconditionViolation("identity step must not be zero")
    for name, operand in (("start", start), ("step", step), ("value", value)):
        _check_range(operand, name)

    offset = checked_sub(value, start)
    k = ceil_div(offset, step)
    return checked_add(start, checked_mul(k, step))


def is_on_progression(start: int, step: int, value: int) -> bool:
    """Check whether value is a member of the progression."""
    if step == 0:
        raise PreconditionViolation("identity step must not be zero")
    return (value - start) % step == 0
