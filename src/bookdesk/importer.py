"""Bulk catalogue import from CSV.

Reads a CSV of books and adds each row through the reservation workflow,
so imported books get the same validation and defaults as hand-added
ones. Rows that fail validation or repeat an ISBN already in the catalogue
are skipped.
"""

from pathlib import Path
from typing import Callable, Optional

import pandas as pd

from .errors import InvalidArgumentError
from .models import Book
from .workflow import ReservationWorkflow

# CSV column -> add_book keyword
COLUMNS = {
    "Title": "title",
    "Author": "author",
    "Year": "year",
    "ISBN": "isbn",
    "Genre": "genre",
    "Pages": "pages",
    "Publisher": "publisher",
    "Language": "language",
    "Description": "description",
    "Total Copies": "total_copies",
    "Image URL": "image_url",
}

_INT_FIELDS = {"year", "pages", "total_copies"}


def _cell(value, as_int: bool = False):
    """Normalise a raw CSV cell.

    Parameters
    ----------
    value : any
        Raw value from the DataFrame. May be ``NaN``.
    as_int : bool, optional
        Coerce whole floats (pandas reads ``2001`` as ``2001.0`` when the
        column has gaps) to ``int``.

    Returns
    -------
    any
        ``None`` for missing cells, a stripped string, or an int.
    """
    if pd.isna(value):
        return None
    if as_int:
        if isinstance(value, float) and value.is_integer():
            return int(value)
        return value
    return str(value).strip()


def _row_fields(row: pd.Series) -> dict:
    # Required fields are always present so add_book can reject them
    fields = {"title": None, "author": None, "year": None}
    for column, name in COLUMNS.items():
        value = _cell(row.get(column), as_int=name in _INT_FIELDS)
        if value is not None:
            fields[name] = value
    return fields


def import_csv(
    csv_path: Path,
    workflow: ReservationWorkflow,
    on_book: Optional[Callable[[dict, Optional[Book]], None]] = None,
) -> tuple[int, int]:
    """Import books from a CSV file into the catalogue.

    Parameters
    ----------
    csv_path : Path
        Path to the CSV file.
    workflow : ReservationWorkflow
        Engine whose ``add_book`` validates and stores each row.
    on_book : callable, optional
        Callback invoked per row as ``on_book(fields, book)`` where *book*
        is ``None`` when the row was skipped.

    Returns
    -------
    tuple of (int, int)
        ``(added_count, skipped_count)``.
    """
    df = pd.read_csv(csv_path, dtype={"ISBN": str})
    known_isbns = {b.isbn for b in workflow.list_books() if b.isbn}

    added = 0
    skipped = 0

    for _, row in df.iterrows():
        fields = _row_fields(row)
        book = None

        isbn = fields.get("isbn", "")
        if not isbn or isbn not in known_isbns:
            try:
                book = workflow.add_book(**fields)
            except InvalidArgumentError:
                book = None

        if book is None:
            skipped += 1
        else:
            added += 1
            if book.isbn:
                known_isbns.add(book.isbn)
        if on_book:
            on_book(fields, book)

    return added, skipped
