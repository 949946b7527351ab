"""Rich UI components for the Bookdesk CLI."""

from datetime import datetime
from typing import Iterable, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .activity_log import ActivityEntry
from .models import Book, Reservation, ReservationStatus

console = Console()

DETAIL_MAX_WIDTH = 80

STATUS_STYLES = {
    ReservationStatus.PENDING: "yellow",
    ReservationStatus.APPROVED: "green",
    ReservationStatus.REJECTED: "red",
    ReservationStatus.COMPLETED: "cyan",
    ReservationStatus.RETURNED: "blue",
}


def _detail_width() -> int:
    return min(console.width, DETAIL_MAX_WIDTH)


def _fmt(value: Optional[datetime]) -> str:
    return value.strftime("%Y-%m-%d %H:%M") if value else "-"


def print_success(message: str) -> None:
    """Print a success message with checkmark."""
    console.print(f"[green]✓[/green] {message}")


def print_skip(message: str) -> None:
    """Print a skip message with circle."""
    console.print(f"[dim]○[/dim] {message}")


def print_error(message: str) -> None:
    """Print an error message."""
    console.print(f"[red]✗[/red] {message}")


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[dim]{message}[/dim]")


def create_spinner(message: str):
    """Create a spinner context for long operations."""
    return console.status(f"[dim]{message}[/dim]", spinner="dots")


def print_import_summary(added: int, skipped: int) -> None:
    """Print import summary."""
    if skipped > 0:
        console.print(f"\nImported [bold]{added}[/bold] books ({skipped} skipped)")
    else:
        console.print(f"\nImported [bold]{added}[/bold] books")


def status_text(status: ReservationStatus) -> str:
    style = STATUS_STYLES.get(status, "white")
    return f"[{style}]{status.value.upper()}[/{style}]"


def display_book_table(books: Iterable[Book], max_rows: int = 50) -> None:
    """Display books in a table format."""
    table = Table(show_header=True, header_style="dim", box=None, padding=(0, 2))
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Title", style="white", no_wrap=False, max_width=40)
    table.add_column("Author", style="dim", no_wrap=False, max_width=25)
    table.add_column("Genre", style="cyan", no_wrap=True)
    table.add_column("Copies", justify="right", no_wrap=True)

    count = 0
    for book in books:
        copies = f"{book.available_copies}/{book.total_copies}"
        if not book.available:
            copies = f"[red]{copies}[/red]"
        table.add_row(
            book.book_id,
            book.display_title(40),
            book.author,
            book.genre,
            copies,
        )
        count += 1
        if count >= max_rows:
            break

    console.print(table)

    if count == 0:
        print_info("No books found.")
    elif count == max_rows:
        print_info(f"Showing first {max_rows} books. Use --query to filter.")


def display_book_info(book: Book) -> None:
    """Display detailed book information."""
    lines = [f"[bold]{book.title}[/bold]", f"[dim]by[/dim] {book.author}", ""]

    def add_field(label: str, value) -> None:
        if value:
            lines.append(f"[dim]{label}:[/dim] {value}")

    add_field("ID", book.book_id)
    add_field("Year", book.year)
    add_field("Genre", book.genre)
    add_field("ISBN", book.isbn)
    add_field("Publisher", book.publisher)
    add_field("Pages", book.pages)
    add_field("Language", book.language)
    add_field("Location", book.location)

    if book.description:
        lines.append("")
        desc = book.description[:500]
        if len(book.description) > 500:
            desc += "..."
        lines.append(desc)

    lines.append("")
    if book.available:
        lines.append(
            f"[green]Available[/green] {book.available_copies} of "
            f"{book.total_copies} copies"
        )
    else:
        lines.append(f"[red]Unavailable[/red] 0 of {book.total_copies} copies")
    if book.date_added:
        lines.append(f"[dim]Added: {book.date_added}[/dim]")

    panel = Panel(
        "\n".join(lines),
        title="[dim]Book Details[/dim]",
        title_align="left",
        border_style="dim",
        width=_detail_width(),
        padding=(1, 2),
    )
    console.print(panel)


def display_reservation_table(
    reservations: Iterable[Reservation], now: datetime
) -> None:
    """Display reservations with status and due date."""
    table = Table(show_header=True, header_style="dim", box=None, padding=(0, 2))
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Book", style="white", max_width=35)
    table.add_column("User", style="dim", max_width=30)
    table.add_column("Status", no_wrap=True)
    table.add_column("Requested", style="dim", no_wrap=True)
    table.add_column("Due", no_wrap=True)

    count = 0
    for r in reservations:
        due = "-"
        if r.due_date:
            due = _fmt(r.due_date)
            if r.status == ReservationStatus.APPROVED:
                due += f" [dim]({r.due_label(now)})[/dim]"
        table.add_row(
            r.reservation_id,
            r.book_title,
            f"{r.user_name} <{r.user_email}>",
            status_text(r.status),
            _fmt(r.request_date),
            due,
        )
        count += 1

    console.print(table)
    if count == 0:
        print_info("No reservations found.")


def display_reservation(reservation: Reservation) -> None:
    """Display a single reservation after a transition."""
    r = reservation
    lines = [
        f"[bold]{r.book_title}[/bold]  {status_text(r.status)}",
        f"[dim]Reservation:[/dim] {r.reservation_id}",
        f"[dim]Requested by:[/dim] {r.user_name} <{r.user_email}>",
        f"[dim]Period:[/dim] {r.reservation_period} days",
    ]
    if r.approved_by:
        lines.append(f"[dim]Approved by:[/dim] {r.approved_by} on {_fmt(r.approved_date)}")
    if r.due_date:
        lines.append(f"[dim]Due:[/dim] {_fmt(r.due_date)}")
    if r.rejected_by:
        lines.append(f"[dim]Rejected by:[/dim] {r.rejected_by} on {_fmt(r.rejected_date)}")
    if r.notes:
        lines.append(f"[dim]Notes:[/dim] {r.notes}")
    if r.completed_date:
        lines.append(f"[dim]Completed:[/dim] {_fmt(r.completed_date)}")
    if r.returned_date:
        lines.append(f"[dim]Returned:[/dim] {_fmt(r.returned_date)}")
    console.print(
        Panel(
            "\n".join(lines),
            border_style="dim",
            width=_detail_width(),
            padding=(0, 2),
        )
    )


def display_stats(book_count: int, copies: tuple[int, int], counts: dict[str, int]) -> None:
    """Display catalogue and reservation statistics."""
    available, total = copies
    console.print(f"Catalogue: [bold]{book_count}[/bold] books")
    console.print(f"Copies: [bold]{available}[/bold] available of {total}\n")
    console.print("[dim]Reservations by status:[/dim]")
    for status, count in counts.items():
        console.print(f"  {status:<12} {count:>4}")


def display_activity(entries: Iterable[ActivityEntry]) -> None:
    """Display recent activity log entries."""
    table = Table(show_header=True, header_style="dim", box=None, padding=(0, 2))
    table.add_column("When", style="dim", no_wrap=True)
    table.add_column("Action", style="cyan", no_wrap=True)
    table.add_column("Source", style="dim", no_wrap=True)
    table.add_column("Title", style="white", max_width=40)
    table.add_column("Reservation", style="dim", no_wrap=True)

    count = 0
    for e in entries:
        table.add_row(
            e.timestamp[:19].replace("T", " "),
            e.action,
            e.source,
            e.title or "-",
            e.reservation_id or "-",
        )
        count += 1

    console.print(table)
    if count == 0:
        print_info("No activity recorded.")
