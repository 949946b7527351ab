"""Audit trail of catalogue and reservation changes.

The CLI and the MCP server record each change they make as one JSON object
per line in ``~/.bookdesk/data/activity.log``. The trail answers two
questions: what happened recently, and what happened to one reservation.
"""

import fcntl
import json
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, Optional

_BOOKDESK_DIR = Path.home() / ".bookdesk"
_LOG_PATH = _BOOKDESK_DIR / "data" / "activity.log"

ACTIONS = (
    "add_book",
    "import",
    "create",
    "approve",
    "reject",
    "complete",
    "return",
    "remove",
)


@dataclass
class ActivityEntry:
    """One recorded change.

    Attributes
    ----------
    timestamp : str
        UTC time of the change, ISO 8601.
    action : str
        One of ``ACTIONS``.
    source : str
        ``cli`` or ``mcp``.
    reservation_id, book_id, title : str or None
        What the change touched, when it touched a reservation or book.
    details : dict
        Who did it and anything else worth keeping.
    """

    timestamp: str
    action: str
    source: str
    reservation_id: Optional[str] = None
    book_id: Optional[str] = None
    title: Optional[str] = None
    details: dict = field(default_factory=dict)


def get_log_path() -> Path:
    return _LOG_PATH


def log_activity(
    action: str,
    source: str,
    reservation_id: Optional[str] = None,
    book_id: Optional[str] = None,
    title: Optional[str] = None,
    **details,
) -> ActivityEntry:
    """Record a change in the audit trail.

    Writers take an exclusive ``flock`` so the CLI and the MCP server may
    share one file.

    Parameters
    ----------
    action : str
        What happened, from ``ACTIONS``.
    source : str
        Which front end made the change.
    reservation_id, book_id, title : str, optional
        The reservation and book involved.
    **details
        Extra keyword data, e.g. ``approved_by``. Values that are not JSON
        types are stored as strings.

    Returns
    -------
    ActivityEntry
        The entry as written.
    """
    entry = ActivityEntry(
        timestamp=datetime.now(timezone.utc).isoformat(),
        action=action,
        source=source,
        reservation_id=reservation_id,
        book_id=book_id,
        title=title,
        details=details,
    )
    path = get_log_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "a", encoding="utf-8") as f:
        fcntl.flock(f.fileno(), fcntl.LOCK_EX)
        try:
            f.write(json.dumps(asdict(entry), ensure_ascii=False, default=str) + "\n")
        finally:
            fcntl.flock(f.fileno(), fcntl.LOCK_UN)
    return entry


def _iter_entries() -> Iterator[ActivityEntry]:
    """Yield entries in file order, skipping lines that do not parse."""
    path = get_log_path()
    if not path.exists():
        return
    with open(path, "r", encoding="utf-8") as f:
        fcntl.flock(f.fileno(), fcntl.LOCK_SH)
        try:
            lines = f.readlines()
        finally:
            fcntl.flock(f.fileno(), fcntl.LOCK_UN)
    for line in lines:
        if not line.strip():
            continue
        try:
            yield ActivityEntry(**json.loads(line))
        except (json.JSONDecodeError, TypeError):
            continue


def read_recent_activity(
    limit: int = 100,
    action: Optional[str] = None,
    reservation_id: Optional[str] = None,
) -> list[ActivityEntry]:
    """Return the newest entries first.

    Parameters
    ----------
    limit : int
        Maximum number of entries.
    action : str, optional
        Keep only this action.
    reservation_id : str, optional
        Keep only entries for this reservation.
    """
    entries = [
        e
        for e in _iter_entries()
        if (action is None or e.action == action)
        and (reservation_id is None or e.reservation_id == reservation_id)
    ]
    entries.sort(key=lambda e: e.timestamp, reverse=True)
    return entries[:limit]


def reservation_history(reservation_id: str) -> list[ActivityEntry]:
    """Return every entry for one reservation, oldest first."""
    return [e for e in _iter_entries() if e.reservation_id == reservation_id]
