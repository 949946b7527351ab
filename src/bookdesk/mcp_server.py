"""MCP server exposing the Bookdesk catalogue and reservation desk.

Provides tools for browsing books and moving reservations through their
lifecycle. Librarian tools take the caller's credentials and check the
role before touching the stores. Requires the ``mcp`` optional dependency
(install with ``pip install bookdesk[mcp]``).
"""

try:
    from mcp.server.fastmcp import FastMCP
except ImportError:
    raise SystemExit(
        "The 'mcp' package is required for the MCP server.\n"
        "Install it with: pip install bookdesk[mcp]"
    )

import dataclasses
import os
from datetime import date, datetime
from enum import Enum
from pathlib import Path
from typing import Optional

from .activity_log import log_activity
from .auth import User, can_manage
from .errors import BookdeskError
from .models import Book, Reservation
from .settings import build_workflow, load_settings

SOURCE = "mcp"

mcp = FastMCP("bookdesk")

# Same override as the CLI's --settings option
_settings_env = os.environ.get("BOOKDESK_SETTINGS")
_settings = load_settings(Path(_settings_env) if _settings_env else None)
_credentials = _settings.credentials()
_workflow = build_workflow(_settings)


def _to_dict(record: Book | Reservation) -> dict:
    """Convert a Book or Reservation to a JSON-serialisable dictionary.

    Dates and datetimes become ISO strings and statuses their values.
    Unset fields are dropped.
    """
    d = {}
    for key, value in dataclasses.asdict(record).items():
        if value is None:
            continue
        if isinstance(value, (date, datetime)):
            value = value.isoformat()
        elif isinstance(value, Enum):
            value = value.value
        d[key] = value
    return d


def _manager(email: str, password: str) -> User | str:
    """Return the authenticated librarian, or an error message."""
    user = _credentials.authenticate(email, password)
    if user is None:
        return "Invalid email or password"
    if not can_manage(user.role):
        return "Only librarians and administrators can do that"
    return user


def _parse_iso_date(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


# --- Read tools ---


@mcp.tool()
def list_books(query: str = "") -> list[dict] | str:
    """List catalogue books, optionally filtered.

    Parameters
    ----------
    query : str
        Substring matched against title, author, ISBN and genre.

    Returns
    -------
    list of dict or str
        Books in catalogue order, or an error message.
    """
    try:
        books = _workflow.books.search(query) if query else _workflow.list_books()
    except BookdeskError as e:
        return str(e)
    return [_to_dict(b) for b in books]


@mcp.tool()
def get_book(book_id: str) -> dict | str:
    """Get a single book by id."""
    try:
        return _to_dict(_workflow.get_book(book_id))
    except BookdeskError as e:
        return str(e)


@mcp.tool()
def list_reservations(user_email: str = "", status: str = "") -> list[dict] | str:
    """List reservations.

    Parameters
    ----------
    user_email : str
        If provided, only reservations made by this email.
    status : str
        If provided, only reservations in this status.

    Returns
    -------
    list of dict or str
        Reservations in request order, or an error message.
    """
    try:
        if user_email:
            reservations = _workflow.list_reservations_for_user(user_email)
        else:
            reservations = _workflow.list_reservations()
    except BookdeskError as e:
        return str(e)
    if status:
        reservations = [r for r in reservations if r.status.value == status]
    return [_to_dict(r) for r in reservations]


# --- Write tools ---


@mcp.tool()
def add_book(
    email: str,
    password: str,
    title: str,
    author: str,
    year: int,
    genre: str = "General",
    isbn: str = "",
    pages: int = 0,
    publisher: str = "",
    language: str = "English",
    description: str = "",
    image_url: str = "",
    total_copies: int = 1,
) -> dict | str:
    """Add a book to the catalogue (librarian credentials required).

    Returns
    -------
    dict or str
        The stored book, or an error message.
    """
    user = _manager(email, password)
    if isinstance(user, str):
        return user
    try:
        book = _workflow.add_book(
            title=title,
            author=author,
            year=year,
            genre=genre,
            isbn=isbn,
            pages=pages,
            publisher=publisher,
            language=language,
            description=description,
            image_url=image_url,
            total_copies=total_copies,
        )
    except BookdeskError as e:
        return str(e)
    log_activity("add_book", SOURCE, book_id=book.book_id, title=book.title, added_by=user.email)
    return _to_dict(book)


@mcp.tool()
def reserve_book(email: str, password: str, book_id: str, days: int = 14) -> dict | str:
    """Request a reservation for a book as the given user.

    Parameters
    ----------
    email, password : str
        The requesting user's credentials.
    book_id : str
        The book to reserve.
    days : int
        Reservation period, 1 to 30 days.

    Returns
    -------
    dict or str
        The pending reservation, or an error message.
    """
    user = _credentials.authenticate(email, password)
    if user is None:
        return "Invalid email or password"
    try:
        r = _workflow.create_reservation(book_id, user.email, user.name, days)
    except BookdeskError as e:
        return str(e)
    log_activity(
        "create", SOURCE,
        reservation_id=r.reservation_id, book_id=r.book_id, title=r.book_title,
        user=user.email,
    )
    return _to_dict(r)


@mcp.tool()
def approve_reservation(
    email: str, password: str, reservation_id: str, due_date: str = ""
) -> dict | str:
    """Approve a pending reservation (librarian credentials required).

    Parameters
    ----------
    reservation_id : str
        The reservation to approve.
    due_date : str
        Optional due date as ISO string (YYYY-MM-DD). Defaults to the
        configured loan period.
    """
    user = _manager(email, password)
    if isinstance(user, str):
        return user
    try:
        r = _workflow.approve_reservation(
            reservation_id, user.name, _parse_iso_date(due_date)
        )
    except BookdeskError as e:
        return str(e)
    log_activity(
        "approve", SOURCE,
        reservation_id=reservation_id, book_id=r.book_id, title=r.book_title,
        approved_by=user.name,
    )
    return _to_dict(r)


@mcp.tool()
def reject_reservation(
    email: str, password: str, reservation_id: str, notes: str = ""
) -> dict | str:
    """Reject a pending reservation (librarian credentials required)."""
    user = _manager(email, password)
    if isinstance(user, str):
        return user
    try:
        r = _workflow.reject_reservation(reservation_id, user.name, notes or None)
    except BookdeskError as e:
        return str(e)
    log_activity(
        "reject", SOURCE,
        reservation_id=reservation_id, book_id=r.book_id, title=r.book_title,
        rejected_by=user.name,
    )
    return _to_dict(r)


@mcp.tool()
def complete_reservation(email: str, password: str, reservation_id: str) -> dict | str:
    """Mark an approved reservation completed (librarian credentials required)."""
    user = _manager(email, password)
    if isinstance(user, str):
        return user
    try:
        r = _workflow.complete_reservation(reservation_id)
    except BookdeskError as e:
        return str(e)
    log_activity(
        "complete", SOURCE,
        reservation_id=reservation_id, book_id=r.book_id, title=r.book_title,
        by=user.email,
    )
    return _to_dict(r)


@mcp.tool()
def return_reservation(email: str, password: str, reservation_id: str) -> dict | str:
    """Mark an approved reservation's book returned (librarian credentials required)."""
    user = _manager(email, password)
    if isinstance(user, str):
        return user
    try:
        r = _workflow.return_reservation(reservation_id)
    except BookdeskError as e:
        return str(e)
    log_activity(
        "return", SOURCE,
        reservation_id=reservation_id, book_id=r.book_id, title=r.book_title,
        by=user.email,
    )
    return _to_dict(r)


@mcp.tool()
def remove_reservation(email: str, password: str, reservation_id: str) -> str:
    """Delete a reservation in any state (librarian credentials required)."""
    user = _manager(email, password)
    if isinstance(user, str):
        return user
    try:
        r = _workflow.remove_reservation(reservation_id)
    except BookdeskError as e:
        return str(e)
    log_activity(
        "remove", SOURCE,
        reservation_id=reservation_id, book_id=r.book_id, title=r.book_title,
        status=r.status.value, by=user.email,
    )
    return f"Reservation {reservation_id} removed"


def main() -> None:
    """Entry point for the ``bookdesk-mcp`` console script."""
    mcp.run()


if __name__ == "__main__":
    main()
