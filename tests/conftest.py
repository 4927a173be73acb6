import os
from collections.abc import Iterator
from pathlib import Path

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from src.adapters.dev_email import DevEmailAdapter
from src.adapters.sqlite.migrator import SQLiteMigrator
from src.adapters.sqlite_db import SQLiteSubscriptionStore
from src.api.deps import get_email_client, get_onboarding_config, get_store
from src.api.main import create_app
from src.components.subscriptions.models import OnboardingConfig
from src.core.telemetry import init_logging

PROJECT_ROOT = Path(__file__).resolve().parent.parent
MIGRATIONS_DIR = str(PROJECT_ROOT / "migrations")
BASE_URL = "http://testserver"


def pytest_configure(config: pytest.Config) -> None:
    # Logs are discarded unless TEST_LOG is set.
    if os.environ.get("TEST_LOG"):
        init_logging("test", level="DEBUG", json_logs=True)


@pytest.fixture
def db_path(tmp_path: Path) -> str:
    """Fresh SQLite database with all migrations applied."""
    path = str(tmp_path / "newsletter.db")
    SQLiteMigrator(path, MIGRATIONS_DIR).run_migrations()
    return path


@pytest.fixture
def store(db_path: str) -> SQLiteSubscriptionStore:
    return SQLiteSubscriptionStore(db_path)


@pytest.fixture
def email_adapter() -> DevEmailAdapter:
    return DevEmailAdapter()


@pytest.fixture
def onboarding_config() -> OnboardingConfig:
    return OnboardingConfig(base_url=BASE_URL)


@pytest.fixture
def app(
    store: SQLiteSubscriptionStore,
    email_adapter: DevEmailAdapter,
    onboarding_config: OnboardingConfig,
) -> Iterator[FastAPI]:
    """App wired to the temp database and the in-memory email adapter."""
    app = create_app()
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_email_client] = lambda: email_adapter
    app.dependency_overrides[get_onboarding_config] = lambda: onboarding_config
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app)
