import json

from bookdesk.settings import Settings, build_workflow, load_settings, save_settings


def test_missing_file_is_created_with_defaults(tmp_path):
    path = tmp_path / "bookdesk-settings.json"

    settings = load_settings(path)

    assert settings == Settings()
    data = json.loads(path.read_text())
    assert data["books_path"] == "data/books.json"
    assert data["default_loan_days"] == 14
    assert {u["role"] for u in data["users"]} == {"admin", "librarian", "user"}


def test_round_trip(tmp_path):
    path = tmp_path / "settings.json"
    settings = Settings(
        books_path=str(tmp_path / "b.json"),
        reservations_path=str(tmp_path / "r.json"),
        default_loan_days=21,
        users=[{"email": "e", "password": "p", "name": "n", "role": "admin"}],
    )

    save_settings(settings, path)

    assert load_settings(path) == settings


def test_malformed_file_falls_back_to_defaults(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text("{oops")

    assert load_settings(path) == Settings()


def test_absolute_and_home_paths(tmp_path):
    settings = Settings(books_path=str(tmp_path / "books.json"), reservations_path="~/r.json")

    assert settings.resolve_books_path() == (tmp_path / "books.json").resolve()
    assert settings.resolve_reservations_path().name == "r.json"
    assert settings.resolve_reservations_path().is_absolute()


def test_build_workflow_uses_settings(tmp_path):
    settings = Settings(
        books_path=str(tmp_path / "books.json"),
        reservations_path=str(tmp_path / "reservations.json"),
        default_loan_days=7,
    )

    workflow = build_workflow(settings)

    assert workflow.loan_days == 7
    assert workflow.books.path == (tmp_path / "books.json").resolve()
    assert workflow.reservations.path == (tmp_path / "reservations.json").resolve()


def test_credentials_come_from_users(tmp_path):
    settings = Settings(users=[{"email": "e@x", "password": "p", "name": "N", "role": "librarian"}])

    assert settings.credentials().role_for("e@x", "p") == "librarian"
    assert settings.credentials().role_for("admin@library.com", "admin123") is None
