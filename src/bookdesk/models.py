"""Data models for the Bookdesk catalogue and reservation workflow.

Defines the ``Book`` and ``Reservation`` dataclasses and the
``ReservationStatus`` state labels shared by the stores and the workflow
engine.
"""

import math
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Optional


class ReservationStatus(str, Enum):
    """Lifecycle states of a reservation."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    COMPLETED = "completed"
    RETURNED = "returned"


ACTIVE_STATUSES = frozenset({ReservationStatus.PENDING, ReservationStatus.APPROVED})
TERMINAL_STATUSES = frozenset(
    {
        ReservationStatus.REJECTED,
        ReservationStatus.COMPLETED,
        ReservationStatus.RETURNED,
    }
)

MIN_RESERVATION_DAYS = 1
MAX_RESERVATION_DAYS = 30


@dataclass
class Book:
    """A book in the catalogue.

    Descriptive fields are fixed once the book is added. Only the copy
    counters change, and only through the reservation workflow.

    Attributes
    ----------
    book_id : str
        Opaque identifier assigned when the book is added.
    title : str
        Main title of the book.
    author : str
        Author name(s).
    year : int
        Publication year.
    description : str
        Book description or synopsis.
    genre : str
        Genre label.
    isbn : str
        ISBN, may be empty.
    pages : int
        Page count.
    publisher : str
        Publisher name.
    language : str
        Language of the book.
    image_url : str
        Cover image reference.
    date_added : date or None
        Date the book entered the catalogue.
    location : str
        Shelf location code.
    total_copies : int
        Number of copies owned.
    available_copies : int
        Copies not committed to an approved reservation.
    available : bool
        ``True`` while at least one copy can be reserved.
    """

    book_id: str
    title: str
    author: str
    year: int
    description: str = ""
    genre: str = "General"
    isbn: str = ""
    pages: int = 0
    publisher: str = ""
    language: str = "English"
    image_url: str = ""
    date_added: Optional[date] = None
    location: str = ""
    total_copies: int = 1
    available_copies: int = 1
    available: bool = True

    def take_copy(self) -> None:
        """Commit one copy to a borrower, never dropping below zero."""
        self.available_copies = max(0, self.available_copies - 1)
        self.available = self.available_copies > 0

    def restore_copy(self) -> None:
        """Put one copy back on the shelf.

        There is no upper clamp: a count that was already inconsistent can
        end up above ``total_copies``.
        """
        self.available_copies += 1
        self.available = True

    def display_title(self, max_length: int = 50) -> str:
        """Return title truncated with ellipsis if needed."""
        if len(self.title) <= max_length:
            return self.title
        return self.title[: max_length - 3] + "..."


@dataclass
class Reservation:
    """A user's request to borrow a specific book.

    ``book_title`` is a snapshot taken when the request is made and does
    not follow later catalogue edits. The approval, rejection, completion
    and return attributes are only set by the matching transition.
    """

    reservation_id: str
    book_id: str
    user_email: str
    user_name: str
    book_title: str
    request_date: datetime
    reservation_period: int
    status: ReservationStatus = ReservationStatus.PENDING
    approved_by: Optional[str] = None
    approved_date: Optional[datetime] = None
    due_date: Optional[datetime] = None
    rejected_by: Optional[str] = None
    rejected_date: Optional[datetime] = None
    notes: Optional[str] = None
    completed_date: Optional[datetime] = None
    returned_date: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def days_remaining(self, now: datetime) -> Optional[int]:
        """Return whole days until the due date, rounded up.

        Parameters
        ----------
        now : datetime
            Reference time, timezone-aware like ``due_date``.

        Returns
        -------
        int or None
            Negative when overdue, ``None`` when no due date is set.
        """
        if self.due_date is None:
            return None
        seconds = (self.due_date - now).total_seconds()
        return math.ceil(seconds / 86400)

    def due_label(self, now: datetime) -> str:
        """Describe the due date relative to *now* for display."""
        days = self.days_remaining(now)
        if days is None:
            return ""
        if days < 0:
            return f"{abs(days)} days overdue"
        if days == 0:
            return "Due today"
        return f"{days} days remaining"
