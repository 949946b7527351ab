"""CLI entry point for Bookdesk."""

import functools
from contextlib import contextmanager
from pathlib import Path
from typing import Optional

import click

from . import __version__, importer, ui
from .activity_log import ACTIONS, log_activity, read_recent_activity, reservation_history
from .auth import User, can_manage
from .errors import BookdeskError
from .models import ReservationStatus
from .settings import Settings, build_workflow, load_settings
from .storage import utc_now
from .workflow import ReservationWorkflow

SOURCE = "cli"


@contextmanager
def _reported_errors():
    """Turn workflow errors into an error message and exit status 1."""
    try:
        yield
    except BookdeskError as e:
        ui.print_error(str(e))
        raise SystemExit(1)


def _settings(ctx: click.Context) -> Settings:
    return ctx.obj["settings"]


def _workflow(ctx: click.Context) -> ReservationWorkflow:
    if "workflow" not in ctx.obj:
        ctx.obj["workflow"] = build_workflow(_settings(ctx))
    return ctx.obj["workflow"]


def _login(ctx: click.Context, email: str, password: str, manager: bool) -> User:
    user = _settings(ctx).credentials().authenticate(email, password)
    if user is None:
        ui.print_error("Invalid email or password")
        raise SystemExit(1)
    if manager and not can_manage(user.role):
        ui.print_error("Only librarians and administrators can do that")
        raise SystemExit(1)
    return user


def credentials(manager: bool = False):
    """Add ``--email``/``--password`` options and pass the logged-in user.

    With *manager* set, the user must hold a librarian or admin role.
    """

    def decorator(func):
        @click.option("--email", envvar="BOOKDESK_EMAIL", required=True, help="Login email")
        @click.option(
            "--password",
            envvar="BOOKDESK_PASSWORD",
            prompt=True,
            hide_input=True,
            help="Login password",
        )
        @click.pass_context
        @functools.wraps(func)
        def wrapper(ctx, email, password, **kwargs):
            user = _login(ctx, email, password, manager)
            return ctx.invoke(func, user=user, **kwargs)

        return wrapper

    return decorator


@click.group()
@click.version_option(__version__)
@click.option(
    "--settings",
    "settings_path",
    envvar="BOOKDESK_SETTINGS",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Settings file (defaults to ~/.bookdesk/bookdesk-settings.json)",
)
@click.pass_context
def main(ctx: click.Context, settings_path: Optional[Path]) -> None:
    """Bookdesk - library catalogue and reservation desk."""
    ctx.ensure_object(dict)
    ctx.obj["settings"] = load_settings(settings_path)


# --- Catalogue ---


@main.command("books")
@click.option("--query", "-q", help="Filter by title, author, ISBN or genre")
@click.pass_context
def books_cmd(ctx: click.Context, query: Optional[str]) -> None:
    """List books in the catalogue."""
    workflow = _workflow(ctx)
    with _reported_errors():
        books = workflow.books.search(query) if query else workflow.list_books()
    ui.display_book_table(books)


@main.command("book")
@click.argument("book_id")
@click.pass_context
def book_cmd(ctx: click.Context, book_id: str) -> None:
    """Show details for a single book."""
    with _reported_errors():
        book = _workflow(ctx).get_book(book_id)
    ui.display_book_info(book)


@main.command("add-book")
@click.option("--title", required=True)
@click.option("--author", required=True)
@click.option("--year", type=int, required=True)
@click.option("--genre", default="General", show_default=True)
@click.option("--isbn", default="")
@click.option("--pages", type=int, default=0)
@click.option("--publisher", default="")
@click.option("--language", default="English", show_default=True)
@click.option("--description", default="")
@click.option("--image-url", default="")
@click.option("--copies", "total_copies", type=int, default=1, show_default=True)
@credentials(manager=True)
@click.pass_context
def add_book_cmd(ctx: click.Context, user: User, **fields) -> None:
    """Add a book to the catalogue (librarian)."""
    with _reported_errors():
        book = _workflow(ctx).add_book(**fields)
    log_activity(
        "add_book", SOURCE, book_id=book.book_id, title=book.title, added_by=user.email
    )
    ui.print_success(f"Added: {book.title} ({book.book_id})")


@main.command("import")
@click.argument("csv_file", type=click.Path(exists=True, path_type=Path))
@click.option("--verbose", "-v", is_flag=True, help="Print one line per row")
@credentials(manager=True)
@click.pass_context
def import_cmd(ctx: click.Context, user: User, csv_file: Path, verbose: bool) -> None:
    """Import books from a CSV file (librarian)."""

    def on_book(fields, book):
        if not verbose:
            return
        if book:
            ui.print_success(f"Added: {book.display_title(60)}")
        else:
            ui.print_skip(f"Skipped: {fields.get('title') or '(untitled)'}")

    with _reported_errors():
        with ui.create_spinner("Importing books..."):
            added, skipped = importer.import_csv(csv_file, _workflow(ctx), on_book=on_book)
    log_activity(
        "import", SOURCE, file=str(csv_file), added=added, skipped=skipped,
        imported_by=user.email,
    )
    ui.print_import_summary(added, skipped)


# --- Reservations ---


@main.command("reserve")
@click.argument("book_id")
@click.option(
    "--days",
    type=int,
    default=14,
    show_default=True,
    help="Reservation period in days (1-30)",
)
@credentials()
@click.pass_context
def reserve_cmd(ctx: click.Context, user: User, book_id: str, days: int) -> None:
    """Request a reservation for a book."""
    with _reported_errors():
        reservation = _workflow(ctx).create_reservation(
            book_id, user.email, user.name, days
        )
    log_activity(
        "create", SOURCE,
        reservation_id=reservation.reservation_id,
        book_id=reservation.book_id,
        title=reservation.book_title,
        user=user.email,
    )
    ui.print_success("Reservation request submitted. Waiting for librarian approval.")
    ui.display_reservation(reservation)


@main.command("reservations")
@click.option("--user", "user_email", help="Only reservations made by this email")
@click.option(
    "--status",
    type=click.Choice([s.value for s in ReservationStatus]),
    help="Only reservations in this status",
)
@click.pass_context
def reservations_cmd(
    ctx: click.Context, user_email: Optional[str], status: Optional[str]
) -> None:
    """List reservations."""
    workflow = _workflow(ctx)
    with _reported_errors():
        if user_email:
            reservations = workflow.list_reservations_for_user(user_email)
        else:
            reservations = workflow.list_reservations()
    if status:
        reservations = [r for r in reservations if r.status.value == status]
    ui.display_reservation_table(reservations, utc_now())


@main.command("approve")
@click.argument("reservation_id")
@click.option("--due", type=click.DateTime(formats=["%Y-%m-%d"]), help="Due date")
@credentials(manager=True)
@click.pass_context
def approve_cmd(ctx: click.Context, user: User, reservation_id: str, due) -> None:
    """Approve a pending reservation (librarian)."""
    with _reported_errors():
        reservation = _workflow(ctx).approve_reservation(
            reservation_id, user.name, due.date() if due else None
        )
    log_activity(
        "approve", SOURCE,
        reservation_id=reservation_id,
        book_id=reservation.book_id,
        title=reservation.book_title,
        approved_by=user.name,
    )
    ui.print_success("Reservation approved")
    ui.display_reservation(reservation)


@main.command("reject")
@click.argument("reservation_id")
@click.option("--notes", default="Rejected by librarian", show_default=True)
@credentials(manager=True)
@click.pass_context
def reject_cmd(ctx: click.Context, user: User, reservation_id: str, notes: str) -> None:
    """Reject a pending reservation (librarian)."""
    with _reported_errors():
        reservation = _workflow(ctx).reject_reservation(reservation_id, user.name, notes)
    log_activity(
        "reject", SOURCE,
        reservation_id=reservation_id,
        book_id=reservation.book_id,
        title=reservation.book_title,
        rejected_by=user.name,
    )
    ui.print_success("Reservation rejected")


@main.command("complete")
@click.argument("reservation_id")
@credentials(manager=True)
@click.pass_context
def complete_cmd(ctx: click.Context, user: User, reservation_id: str) -> None:
    """Mark an approved reservation completed (librarian)."""
    with _reported_errors():
        reservation = _workflow(ctx).complete_reservation(reservation_id)
    log_activity(
        "complete", SOURCE,
        reservation_id=reservation_id,
        book_id=reservation.book_id,
        title=reservation.book_title,
        by=user.email,
    )
    ui.print_success("Reservation completed")


@main.command("return")
@click.argument("reservation_id")
@credentials(manager=True)
@click.pass_context
def return_cmd(ctx: click.Context, user: User, reservation_id: str) -> None:
    """Mark an approved reservation's book returned (librarian)."""
    with _reported_errors():
        reservation = _workflow(ctx).return_reservation(reservation_id)
    log_activity(
        "return", SOURCE,
        reservation_id=reservation_id,
        book_id=reservation.book_id,
        title=reservation.book_title,
        by=user.email,
    )
    ui.print_success("Book returned")


@main.command("remove")
@click.argument("reservation_id")
@click.confirmation_option(prompt="Remove this reservation? This cannot be undone.")
@credentials(manager=True)
@click.pass_context
def remove_cmd(ctx: click.Context, user: User, reservation_id: str) -> None:
    """Delete a reservation in any state (librarian)."""
    with _reported_errors():
        reservation = _workflow(ctx).remove_reservation(reservation_id)
    log_activity(
        "remove", SOURCE,
        reservation_id=reservation_id,
        book_id=reservation.book_id,
        title=reservation.book_title,
        status=reservation.status.value,
        by=user.email,
    )
    ui.print_success("Reservation removed")


# --- Reporting ---


@main.command("stats")
@click.pass_context
def stats_cmd(ctx: click.Context) -> None:
    """Show catalogue and reservation statistics."""
    workflow = _workflow(ctx)
    with _reported_errors():
        books = workflow.list_books()
        counts = workflow.reservations.status_counts()
    copies = (
        sum(b.available_copies for b in books),
        sum(b.total_copies for b in books),
    )
    ui.display_stats(len(books), copies, counts)


@main.command("activity")
@click.option("--limit", "-n", type=int, default=20, show_default=True)
@click.option("--action", type=click.Choice(ACTIONS), help="Only this action")
@click.option("--reservation", "reservation_id", help="Full history of one reservation")
def activity_cmd(
    limit: int, action: Optional[str], reservation_id: Optional[str]
) -> None:
    """Show recent catalogue and reservation activity."""
    if reservation_id:
        ui.display_activity(reservation_history(reservation_id))
        return
    ui.display_activity(read_recent_activity(limit, action=action))


if __name__ == "__main__":
    main()
