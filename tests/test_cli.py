import pytest
from click.testing import CliRunner
from rich.console import Console

from bookdesk import ui
from bookdesk.activity_log import read_recent_activity
from bookdesk.cli import main
from bookdesk.models import ReservationStatus
from bookdesk.settings import Settings, save_settings
from bookdesk.storage import CatalogStore, ReservationStore

USER = ["--email", "user@library.com", "--password", "user123"]
LIBRARIAN = ["--email", "librarian@library.com", "--password", "librarian123"]


@pytest.fixture(autouse=True)
def wide_console(monkeypatch):
    monkeypatch.setattr(ui, "console", Console(width=200))


@pytest.fixture
def settings_path(tmp_path):
    path = tmp_path / "settings.json"
    save_settings(
        Settings(
            books_path=str(tmp_path / "books.json"),
            reservations_path=str(tmp_path / "reservations.json"),
        ),
        path,
    )
    return path


@pytest.fixture
def run(settings_path):
    runner = CliRunner()

    def invoke(*args, **kwargs):
        return runner.invoke(main, ["--settings", str(settings_path), *args], **kwargs)

    return invoke


@pytest.fixture
def books(tmp_path):
    return CatalogStore(tmp_path / "books.json")


@pytest.fixture
def reservations(tmp_path):
    return ReservationStore(tmp_path / "reservations.json")


@pytest.fixture
def book_id(run, books):
    result = run("add-book", "--title", "Dune", "--author", "Frank Herbert",
                 "--year", "1965", "--copies", "1", *LIBRARIAN)
    assert result.exit_code == 0, result.output
    return books.list()[0].book_id


def test_add_book_requires_librarian(run, books):
    result = run("add-book", "--title", "Dune", "--author", "Frank Herbert",
                 "--year", "1965", *USER)

    assert result.exit_code == 1
    assert "Only librarians" in result.output
    assert books.list() == []


def test_bad_password_is_refused(run, books):
    result = run("add-book", "--title", "Dune", "--author", "Frank Herbert",
                 "--year", "1965", "--email", "librarian@library.com", "--password", "nope")

    assert result.exit_code == 1
    assert "Invalid email or password" in result.output


def test_books_listing_and_detail(run, book_id):
    listing = run("books")
    detail = run("book", book_id)
    missing = run("book", "nope")

    assert listing.exit_code == 0
    assert "Dune" in listing.output
    assert detail.exit_code == 0
    assert "Frank Herbert" in detail.output
    assert missing.exit_code == 1
    assert "not found" in missing.output


def test_full_reservation_flow(run, book_id, books, reservations):
    result = run("reserve", book_id, "--days", "7", *USER)
    assert result.exit_code == 0, result.output
    rid = reservations.list()[0].reservation_id

    duplicate = run("reserve", book_id, "--days", "7", *USER)
    assert duplicate.exit_code == 1
    assert "already has a reservation" in duplicate.output

    result = run("approve", rid, "--due", "2099-01-31", *LIBRARIAN)
    assert result.exit_code == 0, result.output
    approved = reservations.get(rid)
    assert approved.status == ReservationStatus.APPROVED
    assert approved.approved_by == "Head Librarian"
    assert approved.due_date.date().isoformat() == "2099-01-31"
    assert books.get(book_id).available_copies == 0

    other = run("reserve", book_id, "--email", "admin@library.com", "--password", "admin123")
    assert other.exit_code == 1
    assert "not available" in other.output

    result = run("return", rid, *LIBRARIAN)
    assert result.exit_code == 0, result.output
    assert reservations.get(rid).status == ReservationStatus.RETURNED
    assert books.get(book_id).available_copies == 1

    again = run("return", rid, *LIBRARIAN)
    assert again.exit_code == 1
    assert "Only approved reservations" in again.output

    actions = {e.action for e in read_recent_activity()}
    assert {"add_book", "create", "approve", "return"} <= actions


def test_reject_and_remove(run, book_id, reservations):
    run("reserve", book_id, *USER)
    rid = reservations.list()[0].reservation_id

    result = run("reject", rid, *LIBRARIAN)
    assert result.exit_code == 0, result.output
    rejected = reservations.get(rid)
    assert rejected.status == ReservationStatus.REJECTED
    assert rejected.notes == "Rejected by librarian"

    result = run("remove", rid, "--yes", *LIBRARIAN)
    assert result.exit_code == 0, result.output
    assert reservations.list() == []


def test_complete(run, book_id, books, reservations):
    run("reserve", book_id, *USER)
    rid = reservations.list()[0].reservation_id
    run("approve", rid, *LIBRARIAN)

    result = run("complete", rid, *LIBRARIAN)

    assert result.exit_code == 0, result.output
    assert reservations.get(rid).status == ReservationStatus.COMPLETED
    assert books.get(book_id).available is True


def test_reservations_listing_filters(run, book_id, reservations):
    run("reserve", book_id, *USER)

    mine = run("reservations", "--user", "user@library.com")
    pending = run("reservations", "--status", "pending")
    approved = run("reservations", "--status", "approved")

    assert "Dune" in mine.output
    assert "Dune" in pending.output
    assert "No reservations found" in approved.output


def test_out_of_range_period_fails(run, book_id, reservations):
    result = run("reserve", book_id, "--days", "45", *USER)

    assert result.exit_code == 1
    assert "between 1 and 30" in result.output
    assert reservations.list() == []


def test_import_and_stats(run, tmp_path, books):
    csv_path = tmp_path / "books.csv"
    csv_path.write_text(
        "Title,Author,Year,Total Copies\nDune,Frank Herbert,1965,2\nEmma,Jane Austen,1815,1\n"
    )

    result = run("import", str(csv_path), *LIBRARIAN)
    assert result.exit_code == 0, result.output
    assert "Imported" in result.output
    assert len(books.list()) == 2

    stats = run("stats")
    assert stats.exit_code == 0
    assert "pending" in stats.output


def test_activity_command(run, book_id):
    result = run("activity")

    assert result.exit_code == 0
    assert "add_book" in result.output


def test_activity_history_for_one_reservation(run, book_id, reservations):
    run("reserve", book_id, *USER)
    rid = reservations.list()[0].reservation_id
    run("approve", rid, *LIBRARIAN)

    result = run("activity", "--reservation", rid)

    assert result.exit_code == 0
    assert "approve" in result.output
    assert "add_book" not in result.output
