import itertools
from datetime import datetime, timedelta, timezone

import pytest

from bookdesk import activity_log
from bookdesk.storage import CatalogStore, ReservationStore
from bookdesk.workflow import ReservationWorkflow

START = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


class FixedClock:
    """A clock that only moves when told to."""

    def __init__(self, now: datetime = START) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


def sequential_ids(prefix: str):
    counter = itertools.count(1)
    return lambda: f"{prefix}{next(counter):04d}"


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def books_path(tmp_path):
    return tmp_path / "data" / "books.json"


@pytest.fixture
def reservations_path(tmp_path):
    return tmp_path / "data" / "reservations.json"


@pytest.fixture
def book_store(books_path, clock):
    return CatalogStore(books_path, id_factory=sequential_ids("book-"), clock=clock)


@pytest.fixture
def reservation_store(reservations_path):
    return ReservationStore(reservations_path)


@pytest.fixture
def workflow(book_store, reservation_store, clock):
    return ReservationWorkflow(
        book_store,
        reservation_store,
        clock=clock,
        id_factory=sequential_ids("res-"),
    )


@pytest.fixture
def single_copy_book(workflow):
    return workflow.add_book(title="Dune", author="Frank Herbert", year=1965, total_copies=1)


@pytest.fixture(autouse=True)
def activity_log_path(tmp_path, monkeypatch):
    # Keep every test away from the real ~/.bookdesk log
    path = tmp_path / "activity.log"
    monkeypatch.setattr(activity_log, "_LOG_PATH", path)
    return path
