"""
High watermark reconciliation for identity columns.

Given an identity policy, the persisted watermark (possibly unset or
corrupted) and the extreme value observed in the live data, decides the
watermark that generation can safely resume from.

Decision order:
1. Empty table: keep whatever is stored, never synthesize or clear.
2. Unset watermark: adopt the rounded observed extreme only when it lies on
   the active side of start.
3. Set watermark: a healthy watermark is kept when the data carries nothing
   past start. Otherwise the rounded extreme replaces it when that does not
   move backward, or when lowering is explicitly allowed.

Everything here is pure and synchronous, so retries under optimistic
concurrency can call reconcile() again with fresh inputs.
"""

from dataclasses import dataclass
from typing import Callable, Union

from .errors import IdentityOverflowError, PreconditionViolation
from .progression import INT64_MAX, INT64_MIN, next_on_progression


@dataclass(frozen=True)
class IdentityPolicy:
    """Linear generation policy of an identity column, fixed at definition time."""

    start: int
    step: int

    def __post_init__(self):
        if self.step == 0:
            raise PreconditionViolation("identity step must not be zero")
        for name in ("start", "step"):
            value = getattr(self, name)
            if value < INT64_MIN or value > INT64_MAX:
                raise IdentityOverflowError(f"identity {name} {value} is outside the int64 range")

    @property
    def grows(self) -> bool:
        return self.step > 0


@dataclass(frozen=True)
class Unset:
    """No generated value has been committed and no repair has run."""

    def to_optional(self) -> int | None:
        return None

    def __repr__(self) -> str:
        return "UNSET"


UNSET = Unset()


@dataclass(frozen=True)
class HighWatermark:
    """Watermark set to a concrete value."""

    value: int

    def to_optional(self) -> int | None:
        return self.value


Watermark = Union[Unset, HighWatermark]


def watermark_from_optional(value: int | None) -> Watermark:
    """Convert a nullable persisted value into a Watermark."""
    return UNSET if value is None else HighWatermark(value)


@dataclass(frozen=True)
class ReconcileInput:
    """Everything reconcile() needs; no ambient configuration is consulted."""

    policy: IdentityPolicy
    existing: Watermark
    observed_extreme: int | None
    allow_lowering: bool = False


@dataclass(frozen=True)
class ReconcileOutput:
    """New watermark and whether it differs from the existing one."""

    new_watermark: Watermark
    changed: bool


class Direction:
    """
    Directional predicates for one policy, computed once from the step sign.

    on_active_side(v): v is at or past start in the direction of step.
    advanced_or_equal(a, b): a is at least as far along the progression as b.
    """

    def __init__(self, policy: IdentityPolicy):
        self.start = policy.start
        self.grows = policy.grows
        self._at_least: Callable[[int, int], bool] = (
            (lambda a, b: a >= b) if self.grows else (lambda a, b: a <= b)
        )

    def on_active_side(self, value: int) -> bool:
        return self._at_least(value, self.start)

    def advanced_or_equal(self, a: int, b: int) -> bool:
        return self._at_least(a, b)


def reconcile(inp: ReconcileInput) -> ReconcileOutput:
    """
    Compute the watermark that generation can safely resume from.

    Args:
        inp: Policy, existing watermark, observed extreme and lowering flag

    Returns:
        ReconcileOutput with the new watermark and a changed flag

    Raises:
        IdentityOverflowError: If rounding the observed extreme overflows int64.
            No output is produced and nothing must be persisted.
    """
    policy = inp.policy
    existing = inp.existing
    observed = inp.observed_extreme

    if observed is None:
        return ReconcileOutput(existing, False)

    direction = Direction(policy)

    if isinstance(existing, Unset):
        if not direction.on_active_side(observed):
            return ReconcileOutput(UNSET, False)
        candidate = next_on_progression(policy.start, policy.step, observed)
        return ReconcileOutput(HighWatermark(candidate), True)

    if not isinstance(existing, HighWatermark):
        raise TypeError(f"Unsupported watermark type: {type(existing).__name__}")

    current = existing.value
    if direction.on_active_side(current) and not direction.on_active_side(observed):
        return ReconcileOutput(existing, False)

    # Either the stored watermark is invalid and needs repair, or the data
    # carries information past start.
    candidate = next_on_progression(policy.start, policy.step, observed)
    if direction.advanced_or_equal(candidate, current) or inp.allow_lowering:
        return ReconcileOutput(HighWatermark(candidate), candidate != current)
    return ReconcileOutput(existing, False)
