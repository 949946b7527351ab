"""JSON document stores for the Bookdesk catalogue and reservations.

Books and reservations each live in a single JSON document holding a list
of objects. Every mutating call is one load, mutate, save cycle against
its document. There is no locking: the last write wins, which is only
safe while requests are handled one at a time.
"""

import json
import uuid
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Callable, Generic, Iterator, Optional, TypeVar

from .errors import NotFoundError, StorageError
from .models import Book, Reservation, ReservationStatus

T = TypeVar("T")

Clock = Callable[[], datetime]
IdFactory = Callable[[], str]


def utc_now() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def new_id() -> str:
    """Return a fresh opaque identifier."""
    return uuid.uuid4().hex


def _parse_date(value: Optional[str]) -> Optional[date]:
    """Parse an ISO ``YYYY-MM-DD`` string, tolerating full timestamps.

    Parameters
    ----------
    value : str or None
        Raw value from the document.

    Returns
    -------
    date or None
        The parsed date, or ``None`` if the input is empty or invalid.
    """
    if not value:
        return None
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        return None


def _parse_datetime(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO 8601 timestamp into an aware UTC datetime.

    Accepts a trailing ``Z``. Naive timestamps are taken to be UTC.
    """
    if not value:
        return None
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _format_datetime(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def book_to_dict(book: Book) -> dict:
    """Convert a Book to its JSON document form (camelCase keys)."""
    return {
        "id": book.book_id,
        "title": book.title,
        "author": book.author,
        "year": book.year,
        "dateAdded": book.date_added.isoformat() if book.date_added else None,
        "imageUrl": book.image_url,
        "description": book.description,
        "genre": book.genre,
        "isbn": book.isbn,
        "pages": book.pages,
        "publisher": book.publisher,
        "language": book.language,
        "available": book.available,
        "totalCopies": book.total_copies,
        "availableCopies": book.available_copies,
        "location": book.location,
    }


def book_from_dict(data: dict) -> Book:
    """Build a Book from its JSON document form."""
    return Book(
        book_id=str(data["id"]),
        title=data.get("title", ""),
        author=data.get("author", ""),
        year=int(data.get("year") or 0),
        description=data.get("description") or "",
        genre=data.get("genre") or "",
        isbn=data.get("isbn") or "",
        pages=int(data.get("pages") or 0),
        publisher=data.get("publisher") or "",
        language=data.get("language") or "",
        image_url=data.get("imageUrl") or "",
        date_added=_parse_date(data.get("dateAdded")),
        location=data.get("location") or "",
        total_copies=int(data.get("totalCopies") or 0),
        available_copies=int(data.get("availableCopies") or 0),
        available=bool(data.get("available", False)),
    )


# Conditional reservation attributes, omitted from the document while unset
_OPTIONAL_RESERVATION_KEYS = (
    ("approvedBy", "approved_by"),
    ("approvedDate", "approved_date"),
    ("dueDate", "due_date"),
    ("rejectedBy", "rejected_by"),
    ("rejectedDate", "rejected_date"),
    ("notes", "notes"),
    ("completedDate", "completed_date"),
    ("returnedDate", "returned_date"),
)
_DATETIME_ATTRS = {
    "approved_date",
    "due_date",
    "rejected_date",
    "completed_date",
    "returned_date",
}


def reservation_to_dict(reservation: Reservation) -> dict:
    """Convert a Reservation to its JSON document form (camelCase keys)."""
    data = {
        "id": reservation.reservation_id,
        "bookId": reservation.book_id,
        "userEmail": reservation.user_email,
        "userName": reservation.user_name,
        "bookTitle": reservation.book_title,
        "requestDate": _format_datetime(reservation.request_date),
        "status": reservation.status.value,
        "reservationPeriod": reservation.reservation_period,
    }
    for key, attr in _OPTIONAL_RESERVATION_KEYS:
        value = getattr(reservation, attr)
        if value is None:
            continue
        data[key] = _format_datetime(value) if attr in _DATETIME_ATTRS else value
    return data


def reservation_from_dict(data: dict) -> Reservation:
    """Build a Reservation from its JSON document form."""
    reservation = Reservation(
        reservation_id=str(data["id"]),
        book_id=str(data["bookId"]),
        user_email=data.get("userEmail", ""),
        user_name=data.get("userName", ""),
        book_title=data.get("bookTitle", ""),
        request_date=_parse_datetime(data.get("requestDate")),
        reservation_period=int(data.get("reservationPeriod") or 0),
        status=ReservationStatus(data.get("status", "pending")),
    )
    for key, attr in _OPTIONAL_RESERVATION_KEYS:
        value = data.get(key)
        if value is None:
            continue
        if attr in _DATETIME_ATTRS:
            value = _parse_datetime(value)
        setattr(reservation, attr, value)
    return reservation


class JsonCollection(Generic[T]):
    """A list of records persisted as one JSON document.

    Subclasses provide the record conversion and the id accessor.
    """

    kind = "record"

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def _to_dict(self, record: T) -> dict:
        raise NotImplementedError

    def _from_dict(self, data: dict) -> T:
        raise NotImplementedError

    def _record_id(self, record: T) -> str:
        raise NotImplementedError

    def load(self) -> list[T]:
        """Read every record from the document.

        A missing document reads as an empty collection.

        Returns
        -------
        list
            Records in document order.

        Raises
        ------
        StorageError
            If the document is unreadable, is not valid JSON, or does not
            hold a list of objects.
        """
        if not self.path.exists():
            return []
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise StorageError(f"Could not read {self.path}: {e}") from e
        if not isinstance(raw, list):
            raise StorageError(f"{self.path} does not contain a list")
        try:
            return [self._from_dict(item) for item in raw]
        except (KeyError, TypeError, ValueError) as e:
            raise StorageError(f"Malformed {self.kind} in {self.path}: {e}") from e

    def save(self, records: list[T]) -> None:
        """Write every record to the document, replacing its contents.

        Creates parent directories if they do not exist.
        """
        payload = [self._to_dict(r) for r in records]
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(
                json.dumps(payload, indent=2, ensure_ascii=False) + "\n",
                encoding="utf-8",
            )
        except OSError as e:
            raise StorageError(f"Could not write {self.path}: {e}") from e

    def list(self) -> list[T]:
        """Return all records in insertion order."""
        return self.load()

    def __iter__(self) -> Iterator[T]:
        return iter(self.load())

    def __len__(self) -> int:
        return len(self.load())

    def get(self, record_id: str) -> T:
        """Look up a single record by id.

        Raises
        ------
        NotFoundError
            If no record has *record_id*.
        """
        for record in self.load():
            if self._record_id(record) == record_id:
                return record
        raise NotFoundError(f"{self.kind.capitalize()} not found: {record_id}")

    def update(self, record_id: str, mutator: Callable[[T], None]) -> T:
        """Apply *mutator* to one record and persist the collection.

        The mutator changes the record in place. If it raises, nothing is
        written.

        Returns
        -------
        object
            The record after mutation.

        Raises
        ------
        NotFoundError
            If no record has *record_id*.
        """
        records = self.load()
        for record in records:
            if self._record_id(record) == record_id:
                mutator(record)
                self.save(records)
                return record
        raise NotFoundError(f"{self.kind.capitalize()} not found: {record_id}")


class CatalogStore(JsonCollection[Book]):
    """The collection of catalogue books. Books are never deleted."""

    kind = "book"

    def __init__(
        self,
        path: Path,
        id_factory: IdFactory = new_id,
        clock: Clock = utc_now,
    ) -> None:
        super().__init__(path)
        self._id_factory = id_factory
        self._clock = clock

    def _to_dict(self, record: Book) -> dict:
        return book_to_dict(record)

    def _from_dict(self, data: dict) -> Book:
        return book_from_dict(data)

    def _record_id(self, record: Book) -> str:
        return record.book_id

    def add(self, book: Book) -> Book:
        """Append a new book, assigning its identity and counters.

        Any ``book_id`` on the input is replaced. Every copy starts on the
        shelf, so ``available_copies == total_copies``.

        Parameters
        ----------
        book : Book
            The book's descriptive fields and ``total_copies``.

        Returns
        -------
        Book
            The stored book.
        """
        books = self.load()
        book.book_id = self._id_factory()
        book.date_added = self._clock().date()
        book.available_copies = book.total_copies
        book.available = book.available_copies > 0
        book.location = f"AUTO-{book.book_id[-3:]}"
        books.append(book)
        self.save(books)
        return book

    def find_by_isbn(self, isbn: str) -> Optional[Book]:
        """Return the first book with a matching non-empty ISBN, if any."""
        if not isbn:
            return None
        for book in self.load():
            if book.isbn == isbn:
                return book
        return None

    def search(self, query: str) -> list[Book]:
        """Search books by title, author, ISBN or genre.

        Matching is a case-insensitive substring test. Results keep
        insertion order.
        """
        needle = query.strip().lower()
        return [
            b
            for b in self.load()
            if needle in b.title.lower()
            or needle in b.author.lower()
            or needle in b.isbn.lower()
            or needle in b.genre.lower()
        ]


class ReservationStore(JsonCollection[Reservation]):
    """The collection of reservation records."""

    kind = "reservation"

    def _to_dict(self, record: Reservation) -> dict:
        return reservation_to_dict(record)

    def _from_dict(self, data: dict) -> Reservation:
        return reservation_from_dict(data)

    def _record_id(self, record: Reservation) -> str:
        return record.reservation_id

    def add(self, reservation: Reservation) -> Reservation:
        """Append a reservation and persist the collection."""
        reservations = self.load()
        reservations.append(reservation)
        self.save(reservations)
        return reservation

    def list_by_user(self, email: str) -> list[Reservation]:
        """Return the reservations made by *email*, order preserved."""
        return [r for r in self.load() if r.user_email == email]

    def list_by_status(self, status: ReservationStatus) -> list[Reservation]:
        """Return the reservations currently in *status*, order preserved."""
        status = ReservationStatus(status)
        return [r for r in self.load() if r.status == status]

    def status_counts(self) -> dict[str, int]:
        """Return reservation counts keyed by status value.

        Every status appears, including those with no reservations.
        """
        counts = {s.value: 0 for s in ReservationStatus}
        for r in self.load():
            counts[r.status.value] += 1
        return counts

    def remove(self, reservation_id: str) -> bool:
        """Delete a reservation.

        Returns
        -------
        bool
            ``True`` if a record was removed, ``False`` if none matched.
        """
        reservations = self.load()
        kept = [r for r in reservations if r.reservation_id != reservation_id]
        if len(kept) == len(reservations):
            return False
        self.save(kept)
        return True
