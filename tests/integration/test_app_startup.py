import logging
import sqlite3
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from src.api.deps import get_settings
from src.api.main import create_app, get_app

MIGRATIONS_DIR = Path(__file__).resolve().parents[2] / "migrations"


@pytest.fixture
def configured(tmp_path, monkeypatch):
    db_path = tmp_path / "startup.db"
    config_path = tmp_path / "configuration.yaml"
    config_path.write_text(
        "application:\n"
        "  base_url: http://testserver\n"
        "database:\n"
        f"  path: {db_path}\n"
        f"  migrations_dir: {MIGRATIONS_DIR}\n"
        "email_client:\n"
        "  base_url: dev://localhost\n"
        "  sender_email: test@example.com\n"
        "  authorization_token: token\n"
        "logging:\n"
        "  level: WARNING\n"
    )
    monkeypatch.setenv("APP_CONFIG_PATH", str(config_path))
    get_settings.cache_clear()
    yield db_path
    get_settings.cache_clear()
    root = logging.getLogger()
    for handler in [h for h in root.handlers if getattr(h, "_app_handler", False)]:
        root.removeHandler(handler)


def test_startup_migrates_and_reports_ready(configured):
    with TestClient(create_app()) as client:
        response = client.get("/health/ready")

    assert response.status_code == 200
    body = response.json()
    assert body["ready"] is True
    assert body["database"] == "Database connected"

    conn = sqlite3.connect(configured)
    applied = conn.execute("SELECT COUNT(*) FROM schema_migrations").fetchone()[0]
    conn.close()
    assert applied == 2


def test_not_ready_after_shutdown(configured):
    client = TestClient(create_app())
    with client:
        assert client.get("/health/ready").status_code == 200

    assert client.get("/health/ready").status_code == 503


def test_full_flow_with_configured_app(configured):
    with TestClient(create_app()) as client:
        response = client.post(
            "/subscriptions",
            data={"name": "Ursula", "email": "ursula@domain.com"},
        )
        assert response.status_code == 200

    conn = sqlite3.connect(configured)
    [(status,)] = conn.execute("SELECT status FROM subscriptions").fetchall()
    conn.close()
    assert status == "pending_confirmation"


def test_get_app_returns_one_instance():
    assert get_app() is get_app()
