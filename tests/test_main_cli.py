import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import main
from main import _parse_args, _resolve_settings, _run_console
from userdesk.api_client import UsersAPIClient
from userdesk.cache import QueryCache
from userdesk.models import UserRecord
from userdesk.server import create_app
from userdesk.store import UserStore
from userdesk.sync import UserSync

ADA = UserRecord("u1", "Ada", "Lovelace", "ada@x.com", "1815-12-10")


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in ("USERDESK_CONFIG", "USERDESK_API_URL", "USERDESK_API_TIMEOUT", "USERDESK_DATA_FILE"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def backend(monkeypatch):
    """Route every UsersAPIClient created by the CLI to an in-process backend."""

    store = UserStore()
    test_client = TestClient(create_app(store=store))

    def build_client(config=None, *, client=None):
        return UsersAPIClient(config, client=test_client)

    monkeypatch.setattr(main, "UsersAPIClient", build_client)
    with test_client:
        yield store


def _scripted(answers):
    iterator = iter(answers)
    return lambda _prompt: next(iterator)


def test_default_command_is_console() -> None:
    assert _parse_args([]).command == "console"


def test_options_without_subcommand_go_to_console() -> None:
    args = _parse_args(["--api-url", "http://backend:5000"])
    assert args.command == "console"
    assert args.api_url == "http://backend:5000"


def test_update_accepts_partial_fields() -> None:
    args = _parse_args(["update", "u1", "--lname", "Byron"])
    assert args.command == "update"
    assert args.user_id == "u1"
    assert args.lname == "Byron"
    assert args.fname is None


def test_cli_flags_override_settings() -> None:
    args = _parse_args(["list", "--api-url", "http://backend:8080/", "--timeout", "2"])
    settings = _resolve_settings(args)
    assert settings.api.base_url == "http://backend:8080"
    assert settings.api.timeout == 2.0


def test_invalid_timeout_exits_with_error(capsys) -> None:
    assert main.main(["list", "--timeout", "0"]) == 2
    assert "Invalid configuration" in capsys.readouterr().out


def test_add_list_update_delete(backend, capsys) -> None:
    assert main.main(
        ["add", "--fname", "Ada", "--lname", "Lovelace", "--email", "ada@x.com", "--birthday", "1815-12-10"]
    ) == 0
    (created,) = backend.list()
    assert created.fname == "Ada"

    assert main.main(["list"]) == 0
    assert "Ada Lovelace" in capsys.readouterr().out

    assert main.main(["update", created.id, "--lname", "Byron"]) == 0
    assert backend.get(created.id).lname == "Byron"

    assert main.main(["delete", created.id]) == 0
    assert backend.list() == []


def test_add_with_invalid_email_sends_nothing(backend, capsys) -> None:
    code = main.main(
        ["add", "--fname", "Ada", "--lname", "Lovelace", "--email", "nope", "--birthday", "1815-12-10"]
    )

    assert code == 1
    assert backend.list() == []
    assert "Email must be a valid address" in capsys.readouterr().out


def test_update_unknown_user_fails(backend, capsys) -> None:
    assert main.main(["update", "missing", "--lname", "Byron"]) == 1
    assert "was not found" in capsys.readouterr().out


def test_console_edit_then_cancel(backend, capsys) -> None:
    backend.create(ADA)
    with TestClient(create_app(store=backend)) as http:
        sync = UserSync(UsersAPIClient(client=http), QueryCache())
        _run_console(sync, _scripted(["4", "u1", "2", "", "Byron", "", "", "5", "7"]))

        assert sync.form.editing is None
        assert sync.form.is_empty()
    assert backend.get("u1").lname == "Lovelace"
    output = capsys.readouterr().out
    assert "Loaded Ada Lovelace into the form." in output
    assert "Form cleared." in output


def test_console_edit_and_submit(backend, capsys) -> None:
    backend.create(ADA)
    with TestClient(create_app(store=backend)) as http:
        sync = UserSync(UsersAPIClient(client=http), QueryCache())
        _run_console(sync, _scripted(["4", "u1", "2", "", "Byron", "", "", "3", "1", "7"]))

    assert backend.get("u1").lname == "Byron"
    output = capsys.readouterr().out
    assert "Updated user u1: Ada Byron <ada@x.com>" in output
    assert "Ada Byron" in output
