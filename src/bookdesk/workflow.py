"""Reservation workflow engine for the Bookdesk catalogue.

``ReservationWorkflow`` is the only component that changes books and
reservations together. It enforces the reservation state machine and
keeps each book's ``available_copies`` in step with approved
reservations:

* ``pending`` -> ``approved`` takes one copy.
* ``pending`` -> ``rejected`` leaves the book alone.
* ``approved`` -> ``completed`` or ``returned`` puts the copy back.
* Removing an ``approved`` reservation puts the copy back.

Every precondition is checked before any store is written. The book and
reservation documents are written one after the other, not in a
transaction: if the second write fails the two can disagree. That gap is
known and left uncompensated.
"""

from datetime import date, datetime, timedelta, timezone
from typing import Optional

from .errors import (
    ConflictError,
    InvalidArgumentError,
    InvalidStateError,
    NotFoundError,
    ReservationPeriodError,
)
from .models import (
    MAX_RESERVATION_DAYS,
    MIN_RESERVATION_DAYS,
    Book,
    Reservation,
    ReservationStatus,
)
from .storage import CatalogStore, Clock, IdFactory, ReservationStore, new_id, utc_now

DEFAULT_LOAN_DAYS = 14
PLACEHOLDER_COVER_URL = "https://via.placeholder.com/300x400?text=No+Cover"


def _require_text(value, name: str) -> str:
    if value is None or not str(value).strip():
        raise InvalidArgumentError(f"{name} is required")
    return str(value).strip()


def _require_int(value, name: str) -> int:
    # bool is an int subclass but never a meaningful count
    if isinstance(value, bool):
        raise InvalidArgumentError(f"{name} must be an integer")
    if isinstance(value, float) and not value.is_integer():
        raise InvalidArgumentError(f"{name} must be a whole number")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InvalidArgumentError(f"{name} must be an integer") from None


class ReservationWorkflow:
    """Coordinates the catalogue and reservation stores.

    Parameters
    ----------
    books : CatalogStore
        Store holding the catalogue.
    reservations : ReservationStore
        Store holding reservation records.
    clock : callable, optional
        Returns the current aware datetime. Defaults to UTC now.
    id_factory : callable, optional
        Returns a fresh reservation id.
    loan_days : int, optional
        Due-date offset applied on approval when none is supplied.
    """

    def __init__(
        self,
        books: CatalogStore,
        reservations: ReservationStore,
        clock: Clock = utc_now,
        id_factory: IdFactory = new_id,
        loan_days: int = DEFAULT_LOAN_DAYS,
    ) -> None:
        self.books = books
        self.reservations = reservations
        self._clock = clock
        self._id_factory = id_factory
        self.loan_days = loan_days

    # --- Catalogue ---

    def add_book(
        self,
        title: str,
        author: str,
        year: int,
        description: str = "",
        genre: str = "General",
        isbn: str = "",
        pages: int = 0,
        publisher: str = "",
        language: str = "English",
        image_url: str = "",
        total_copies: int = 1,
    ) -> Book:
        """Validate and add a new book to the catalogue.

        Raises
        ------
        InvalidArgumentError
            If title, author or year is missing, the year is outside
            ``0..current year``, or ``total_copies`` is negative.
        """
        title = _require_text(title, "title")
        author = _require_text(author, "author")
        if year is None or year == "":
            raise InvalidArgumentError("year is required")
        year = _require_int(year, "year")
        if year < 0 or year > self._clock().year:
            raise InvalidArgumentError(f"Invalid year: {year}")
        total_copies = _require_int(total_copies, "total_copies")
        if total_copies < 0:
            raise InvalidArgumentError("total_copies cannot be negative")

        book = Book(
            book_id="",
            title=title,
            author=author,
            year=year,
            description=(description or "").strip(),
            genre=(genre or "General").strip(),
            isbn=(isbn or "").strip(),
            pages=_require_int(pages or 0, "pages"),
            publisher=(publisher or "").strip(),
            language=(language or "English").strip(),
            image_url=(image_url or PLACEHOLDER_COVER_URL).strip(),
            total_copies=total_copies,
        )
        return self.books.add(book)

    def get_book(self, book_id: str) -> Book:
        return self.books.get(book_id)

    def list_books(self) -> list[Book]:
        return self.books.list()

    # --- Reservations ---

    def list_reservations(
        self, status: Optional[ReservationStatus] = None
    ) -> list[Reservation]:
        if status is not None:
            return self.reservations.list_by_status(status)
        return self.reservations.list()

    def list_reservations_for_user(self, email: str) -> list[Reservation]:
        return self.reservations.list_by_user(email)

    def create_reservation(
        self,
        book_id: str,
        user_email: str,
        user_name: str,
        reservation_period: int,
    ) -> Reservation:
        """Request a reservation, starting in ``pending``.

        No copy is taken until a librarian approves the request, so
        several pending requests may exist for one book.

        Raises
        ------
        InvalidArgumentError
            If a required field is missing or the period is not an integer.
        ReservationPeriodError
            If the period is outside 1..30 days.
        NotFoundError
            If the book does not exist.
        ConflictError
            If the book has no copy available, or the user already holds a
            pending or approved reservation for it.
        """
        book_id = _require_text(book_id, "book_id")
        user_email = _require_text(user_email, "user_email")
        user_name = _require_text(user_name, "user_name")
        if reservation_period is None or reservation_period == "":
            raise InvalidArgumentError("reservation_period is required")
        period = _require_int(reservation_period, "reservation_period")
        if not MIN_RESERVATION_DAYS <= period <= MAX_RESERVATION_DAYS:
            raise ReservationPeriodError(
                f"Reservation period must be between {MIN_RESERVATION_DAYS} "
                f"and {MAX_RESERVATION_DAYS} days"
            )

        book = self.books.get(book_id)
        if not book.available or book.available_copies <= 0:
            raise ConflictError(f"Book is not available for reservation: {book.title}")

        for existing in self.reservations.list_by_user(user_email):
            if existing.book_id == book_id and existing.is_active:
                raise ConflictError("User already has a reservation for this book")

        reservation = Reservation(
            reservation_id=self._id_factory(),
            book_id=book_id,
            user_email=user_email,
            user_name=user_name,
            book_title=book.title,
            request_date=self._clock(),
            reservation_period=period,
        )
        return self.reservations.add(reservation)

    def _require_status(
        self, reservation_id: str, expected: ReservationStatus, verb: str
    ) -> Reservation:
        reservation = self.reservations.get(reservation_id)
        if reservation.status != expected:
            raise InvalidStateError(
                f"Only {expected.value} reservations can be {verb} "
                f"(reservation {reservation_id} is {reservation.status.value})"
            )
        return reservation

    def _adjust_book(self, book_id: str, restore: bool) -> None:
        """Take or restore one copy of *book_id*.

        A book that has gone missing from the catalogue is skipped so the
        reservation can still move on.
        """
        mutator = Book.restore_copy if restore else Book.take_copy
        try:
            self.books.update(book_id, mutator)
        except NotFoundError:
            pass

    def approve_reservation(
        self,
        reservation_id: str,
        approved_by: str,
        due_date: Optional[datetime] = None,
    ) -> Reservation:
        """Approve a pending reservation and commit one copy of the book.

        Parameters
        ----------
        reservation_id : str
            The reservation to approve.
        approved_by : str
            Name of the approving librarian.
        due_date : datetime, optional
            Explicit due date. Defaults to now plus ``loan_days``.

        Raises
        ------
        NotFoundError
            If the reservation does not exist.
        InvalidStateError
            If the reservation is not ``pending``.
        """
        reservation = self._require_status(
            reservation_id, ReservationStatus.PENDING, "approved"
        )
        now = self._clock()
        if isinstance(due_date, date) and not isinstance(due_date, datetime):
            due_date = datetime.combine(due_date, now.timetz())
        elif due_date is not None and due_date.tzinfo is None:
            due_date = due_date.replace(tzinfo=timezone.utc)
        due = due_date or now + timedelta(days=self.loan_days)

        self._adjust_book(reservation.book_id, restore=False)

        def approve(r: Reservation) -> None:
            r.status = ReservationStatus.APPROVED
            r.approved_by = approved_by
            r.approved_date = now
            r.due_date = due

        return self.reservations.update(reservation_id, approve)

    def reject_reservation(
        self,
        reservation_id: str,
        rejected_by: str,
        notes: Optional[str] = None,
    ) -> Reservation:
        """Reject a pending reservation. The book is not touched.

        Raises
        ------
        NotFoundError
            If the reservation does not exist.
        InvalidStateError
            If the reservation is not ``pending``.
        """
        self._require_status(reservation_id, ReservationStatus.PENDING, "rejected")
        now = self._clock()

        def reject(r: Reservation) -> None:
            r.status = ReservationStatus.REJECTED
            r.rejected_by = rejected_by
            r.rejected_date = now
            r.notes = notes

        return self.reservations.update(reservation_id, reject)

    def complete_reservation(self, reservation_id: str) -> Reservation:
        """Mark an approved reservation completed and restore its copy."""
        reservation = self._require_status(
            reservation_id, ReservationStatus.APPROVED, "completed"
        )
        now = self._clock()
        self._adjust_book(reservation.book_id, restore=True)

        def complete(r: Reservation) -> None:
            r.status = ReservationStatus.COMPLETED
            r.completed_date = now

        return self.reservations.update(reservation_id, complete)

    def return_reservation(self, reservation_id: str) -> Reservation:
        """Mark an approved reservation returned and restore its copy.

        Same effect on the book as :meth:`complete_reservation`; the
        separate status is kept for reporting.
        """
        reservation = self._require_status(
            reservation_id, ReservationStatus.APPROVED, "returned"
        )
        now = self._clock()
        self._adjust_book(reservation.book_id, restore=True)

        def mark_returned(r: Reservation) -> None:
            r.status = ReservationStatus.RETURNED
            r.returned_date = now

        return self.reservations.update(reservation_id, mark_returned)

    def remove_reservation(self, reservation_id: str) -> Reservation:
        """Delete a reservation in any state.

        An ``approved`` reservation gives its copy back first.

        Returns
        -------
        Reservation
            The record as it was before removal.

        Raises
        ------
        NotFoundError
            If the reservation does not exist.
        """
        reservation = self.reservations.get(reservation_id)
        if reservation.status == ReservationStatus.APPROVED:
            self._adjust_book(reservation.book_id, restore=True)
        self.reservations.remove(reservation_id)
        return reservation
