"""
Exception hierarchy for identity column sync.

All errors raised by this package derive from IdentitySyncError so callers
can catch the whole family at the command boundary:

- InvalidTarget: the table or column does not qualify for sync
- IdentityOverflowError: progression arithmetic left the signed 64-bit range
- PreconditionViolation: identity policy with a zero step
- CommitConflictError: optimistic commit lost against a concurrent writer
- ExplicitInsertNotAllowed: explicit value into a GENERATED ALWAYS column
- ConfigurationError: invalid environment or CLI configuration
"""


class IdentitySyncError(Exception):
    """Base class for all identity sync errors."""


class InvalidTarget(IdentitySyncError):
    """Sync was invoked on a non-qualifying table or column."""


class IdentityOverflowError(IdentitySyncError, ArithmeticError):
    """A progression computation exceeded the signed 64-bit range."""


class PreconditionViolation(IdentitySyncError, ValueError):
    """An identity policy violated a definition-time precondition."""


class CommitConflictError(IdentitySyncError):
    """Another writer committed the version this writer tried to create."""

    def __init__(self, table_path: str, version: int):
        self.table_path = table_path
        self.version = version
        super().__init__(
            f"Concurrent commit detected for {table_path}: version {version} already exists"
        )


class ExplicitInsertNotAllowed(IdentitySyncError):
    """An explicit value was supplied for a GENERATED ALWAYS identity column."""


class ConfigurationError(IdentitySyncError, ValueError):
    """Configuration value could not be parsed."""
