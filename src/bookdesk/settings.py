"""Settings management for Bookdesk.

Settings are persisted as JSON in ``_BOOKDESK_DIR/bookdesk-settings.json``.
The file is created with defaults on first launch; users edit it directly
and rerun the command to apply changes.
"""

import json
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Optional

from .auth import DEMO_USERS, CredentialDirectory
from .storage import CatalogStore, ReservationStore
from .workflow import DEFAULT_LOAN_DAYS, ReservationWorkflow

_BOOKDESK_DIR = Path.home() / ".bookdesk"
_DEFAULT_SETTINGS_PATH = _BOOKDESK_DIR / "bookdesk-settings.json"


def _default_users() -> list[dict]:
    return [asdict(u) for u in DEMO_USERS]


@dataclass
class Settings:
    """Application settings persisted as JSON.

    Relative paths are resolved from ``_BOOKDESK_DIR/``. Absolute paths and
    ``~`` expansion are supported.

    Attributes
    ----------
    books_path : str
        Path to the books JSON document.
    reservations_path : str
        Path to the reservations JSON document.
    default_loan_days : int
        Days added to the approval time when no due date is given.
    users : list of dict
        Credential records with ``email``, ``password``, ``name`` and
        ``role`` keys.
    """

    books_path: str = "data/books.json"
    reservations_path: str = "data/reservations.json"
    default_loan_days: int = DEFAULT_LOAN_DAYS
    users: list = field(default_factory=_default_users)

    def _resolve(self, value: str) -> Path:
        p = Path(value).expanduser()
        if not p.is_absolute():
            p = _BOOKDESK_DIR / p
        return p.resolve()

    def resolve_books_path(self) -> Path:
        """Resolve ``books_path`` to an absolute path."""
        return self._resolve(self.books_path)

    def resolve_reservations_path(self) -> Path:
        """Resolve ``reservations_path`` to an absolute path."""
        return self._resolve(self.reservations_path)

    def credentials(self) -> CredentialDirectory:
        """Build the credential lookup from ``users``."""
        return CredentialDirectory.from_records(self.users)


def load_settings(path: Optional[Path] = None) -> Settings:
    """Load settings from a JSON file.

    Creates the default settings file if it does not exist.

    Parameters
    ----------
    path : Path, optional
        Path to the settings file. Defaults to
        ``_BOOKDESK_DIR/bookdesk-settings.json``.

    Returns
    -------
    Settings
        Loaded (or default) application settings.
    """
    path = path or _DEFAULT_SETTINGS_PATH
    if not path.exists():
        settings = Settings()
        save_settings(settings, path)
        return settings
    try:
        data = json.loads(path.read_text())
        users = data.get("users")
        return Settings(
            books_path=data.get("books_path", "data/books.json"),
            reservations_path=data.get(
                "reservations_path", "data/reservations.json"
            ),
            default_loan_days=int(data.get("default_loan_days", DEFAULT_LOAN_DAYS)),
            users=users if isinstance(users, list) else _default_users(),
        )
    except (json.JSONDecodeError, AttributeError, TypeError, ValueError):
        return Settings()


def save_settings(settings: Settings, path: Optional[Path] = None) -> None:
    """Write settings to a JSON file.

    Creates parent directories if they do not exist.
    """
    path = path or _DEFAULT_SETTINGS_PATH
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(asdict(settings), indent=2) + "\n")


def build_workflow(settings: Settings) -> ReservationWorkflow:
    """Wire the stores and loan period described by *settings*."""
    return ReservationWorkflow(
        books=CatalogStore(settings.resolve_books_path()),
        reservations=ReservationStore(settings.resolve_reservations_path()),
        loan_days=settings.default_loan_days,
    )
