from bookdesk.auth import DEMO_USERS, CredentialDirectory, can_manage


def test_demo_accounts_resolve_roles():
    directory = CredentialDirectory()

    assert directory.role_for("admin@library.com", "admin123") == "admin"
    assert directory.role_for("librarian@library.com", "librarian123") == "librarian"
    assert directory.role_for("user@library.com", "user123") == "user"


def test_wrong_or_missing_password_returns_none():
    directory = CredentialDirectory()

    assert directory.authenticate("user@library.com", "wrong") is None
    assert directory.authenticate("user@library.com", "") is None
    assert directory.role_for("nobody@library.com", "user123") is None


def test_from_records_skips_incomplete_entries():
    directory = CredentialDirectory.from_records(
        [
            {"email": "desk@x.org", "password": "pw", "name": "Desk", "role": "librarian"},
            {"email": "broken@x.org", "password": "pw"},
        ]
    )

    user = directory.authenticate("desk@x.org", "pw")
    assert user.name == "Desk"
    assert directory.authenticate("broken@x.org", "pw") is None
    assert directory.authenticate(DEMO_USERS[0].email, DEMO_USERS[0].password) is None


def test_can_manage():
    assert can_manage("librarian")
    assert can_manage("admin")
    assert not can_manage("user")
    assert not can_manage(None)
