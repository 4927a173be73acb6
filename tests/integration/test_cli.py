import logging
from pathlib import Path

import pytest

from src.adapters.sqlite_db import SQLiteSubscriptionStore
from src.app_shell import cli
from src.components.subscriptions import SubscribeInput, run
from src.core.ports.email import EmailResult

MIGRATIONS_DIR = Path(__file__).resolve().parents[2] / "migrations"


class NullSender:
    def send_email(self, recipient, subject, body_html, body_text):
        return EmailResult.success(recipient)


@pytest.fixture
def cli_env(tmp_path, monkeypatch):
    """Point the CLI at a temp database through a temp configuration file."""
    db_path = tmp_path / "cli.db"
    config_path = tmp_path / "configuration.yaml"
    config_path.write_text(
        "database:\n"
        f"  path: {db_path}\n"
        f"  migrations_dir: {MIGRATIONS_DIR}\n"
        "email_client:\n"
        "  base_url: dev://localhost\n"
        "  sender_email: test@example.com\n"
        "  authorization_token: token\n"
        "logging:\n"
        "  level: WARNING\n"
        "  json: false\n"
    )
    monkeypatch.setenv("APP_CONFIG_PATH", str(config_path))
    yield db_path
    root = logging.getLogger()
    for handler in [h for h in root.handlers if getattr(h, "_app_handler", False)]:
        root.removeHandler(handler)


def test_migrate_applies_migrations(cli_env, capsys):
    assert cli.main(["migrate"]) == 0

    out = capsys.readouterr().out
    assert "Applied 2 migration(s)." in out
    assert "001_create_subscriptions_table.sql" in out


def test_migrate_twice_applies_nothing(cli_env, capsys):
    cli.main(["migrate"])
    capsys.readouterr()

    assert cli.main(["migrate"]) == 0
    assert "Applied 0 migration(s)." in capsys.readouterr().out


def test_status_lists_subscriber(cli_env, capsys):
    cli.main(["migrate"])
    store = SQLiteSubscriptionStore(str(cli_env))
    run(
        SubscribeInput(name="Ursula", email="ursula@domain.com"),
        store=store,
        email_sender=NullSender(),
    )
    capsys.readouterr()

    assert cli.main(["status", "ursula@domain.com"]) == 0
    out = capsys.readouterr().out
    assert "pending_confirmation" in out
    assert "Ursula" in out


def test_status_unknown_email(cli_env, capsys):
    cli.main(["migrate"])
    capsys.readouterr()

    assert cli.main(["status", "nobody@domain.com"]) == 1
    assert "No subscriber found" in capsys.readouterr().out


def test_status_without_schema_fails(cli_env):
    assert cli.main(["status", "ursula@domain.com"]) == 1


def test_missing_config_fails(tmp_path, monkeypatch, capsys):
    monkeypatch.setenv("APP_CONFIG_PATH", str(tmp_path / "missing.yaml"))

    assert cli.main(["migrate"]) == 1
    assert "Configuration file not found" in capsys.readouterr().err
