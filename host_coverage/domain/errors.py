"""Coverage engine exceptions.

Every error carries a stable, machine-readable ``code`` that the API
layer passes through to clients unchanged.
"""

from __future__ import annotations


class CoverageError(Exception):
    """Base exception for insurance-coverage and tier errors."""

    code = "COVERAGE_ERROR"


class HostNotFound(CoverageError):
    """Raised when the target host does not exist."""

    code = "HOST_NOT_FOUND"


class InvalidState(CoverageError):
    """Raised when the target track is not in a status the action accepts."""

    code = "INVALID_STATE"


class IncompleteSubmission(CoverageError):
    """Raised when provider, policy number or expiry date is missing."""

    code = "INCOMPLETE_SUBMISSION"


class MissingReason(CoverageError):
    """Raised when a rejection is attempted without a reason."""

    code = "MISSING_REASON"


class ConcurrencyConflict(CoverageError):
    """Raised when a concurrent writer got to the host first.

    Recoverable: the caller should retry the whole operation from a fresh
    read.
    """

    code = "CONCURRENCY_CONFLICT"


class StoreUnavailable(CoverageError):
    """Raised when the host record store fails inside a unit of work."""

    code = "STORE_UNAVAILABLE"


class EmitterUnavailable(CoverageError):
    """Raised when the audit / notification emitter fails inside a unit of work."""

    code = "EMITTER_UNAVAILABLE"


class InvariantViolation(CoverageError):
    """Raised when a computed state breaks mutual exclusivity or tier consistency."""

    code = "INVARIANT_VIOLATION"
