"""Exceptions raised by the Bookdesk stores and reservation workflow.

All of them are expected outcomes reported back to the caller. Nothing in
the core retries; callers decide what to do with a failure.
"""


class BookdeskError(Exception):
    """Base class for every error the core reports to its callers."""

    pass


class NotFoundError(BookdeskError):
    """Raised when a referenced book or reservation id does not exist."""

    pass


class InvalidArgumentError(BookdeskError):
    """Raised when a required field is missing or malformed."""

    pass


class ConflictError(BookdeskError):
    """Raised when a request clashes with current catalogue state.

    Covers duplicate active reservations and books with no copy left.
    """

    pass


class ReservationPeriodError(InvalidArgumentError, ConflictError):
    """Raised when the reservation period falls outside 1..30 days."""

    pass


class InvalidStateError(BookdeskError):
    """Raised when a transition is attempted from the wrong status."""

    pass


class StorageError(BookdeskError):
    """Raised when a JSON document cannot be read or written."""

    pass
