"""Credential lookup for Bookdesk callers.

Authentication sits outside the reservation workflow. Callers resolve a
role from an email and password through a ``CredentialDirectory`` built
from settings, then decide for themselves what the role may do.
"""

from dataclasses import dataclass
from typing import Iterable, Optional

MANAGER_ROLES = frozenset({"admin", "librarian"})


@dataclass(frozen=True)
class User:
    """A known account.

    Attributes
    ----------
    email : str
        Login email, also the reservation owner key.
    password : str
        Plain-text demo password.
    name : str
        Display name, recorded as ``approved_by`` / ``rejected_by``.
    role : str
        Opaque role label (``admin``, ``librarian`` or ``user``).
    """

    email: str
    password: str
    name: str
    role: str


DEMO_USERS = (
    User("admin@library.com", "admin123", "Library Admin", "admin"),
    User("librarian@library.com", "librarian123", "Head Librarian", "librarian"),
    User("user@library.com", "user123", "Library User", "user"),
)


def can_manage(role: Optional[str]) -> bool:
    """Return whether *role* may approve, reject, complete or remove."""
    return role in MANAGER_ROLES


class CredentialDirectory:
    """Read-only lookup of accounts by email and password."""

    def __init__(self, users: Iterable[User] = DEMO_USERS) -> None:
        self._users = tuple(users)

    @classmethod
    def from_records(cls, records: Iterable[dict]) -> "CredentialDirectory":
        """Build a directory from ``{email, password, name, role}`` dicts.

        Records missing any key are ignored.
        """
        users = []
        for rec in records:
            try:
                users.append(
                    User(
                        email=str(rec["email"]),
                        password=str(rec["password"]),
                        name=str(rec["name"]),
                        role=str(rec["role"]),
                    )
                )
            except (KeyError, TypeError):
                continue
        return cls(users)

    def authenticate(self, email: str, password: str) -> Optional[User]:
        """Return the matching account, or ``None`` if the pair is unknown."""
        if not email or not password:
            return None
        for user in self._users:
            if user.email == email and user.password == password:
                return user
        return None

    def role_for(self, email: str, password: str) -> Optional[str]:
        user = self.authenticate(email, password)
        return user.role if user else None
