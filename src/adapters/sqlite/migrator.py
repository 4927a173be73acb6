"""
Schema migrations for the subscription database.

Migrations are files named NNN_description.sql in the migrations directory.
The number is the schema version; only the part above a '-- Down' marker is
run. Each migration and its schema_migrations row commit together, so a
failing script leaves neither its tables nor a version record behind.
"""

from __future__ import annotations

import logging
import re
import sqlite3
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

MIGRATION_FILENAME = re.compile(r"^(\d+)_([A-Za-z0-9_-]+)\.sql$")
DOWN_MARKER = "-- Down"


class MigrationError(RuntimeError):
    """A migration file is misnamed or its script failed."""


@dataclass(frozen=True)
class Migration:
    version: int
    path: Path

    @property
    def filename(self) -> str:
        return self.path.name

    def up_script(self) -> str:
        return self.path.read_text().split(DOWN_MARKER, 1)[0]


class SQLiteMigrator:
    def __init__(self, db_path: str, migrations_dir: str):
        self.db_path = db_path
        self.migrations_dir = Path(migrations_dir)

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.execute("PRAGMA foreign_keys = ON;")
        conn.execute(
            "CREATE TABLE IF NOT EXISTS schema_migrations ("
            " version INTEGER PRIMARY KEY,"
            " filename TEXT NOT NULL,"
            " applied_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP)"
        )
        conn.commit()
        return conn

    def discover(self) -> list[Migration]:
        """All migration files, ordered by version."""
        by_version: dict[int, Migration] = {}
        for path in self.migrations_dir.glob("*.sql"):
            match = MIGRATION_FILENAME.match(path.name)
            if match is None:
                raise MigrationError(f"Migration {path.name} is not named NNN_description.sql")
            version = int(match.group(1))
            if version in by_version:
                raise MigrationError(
                    f"Migrations {by_version[version].filename} and {path.name} "
                    f"share version {version}"
                )
            by_version[version] = Migration(version, path)
        return [by_version[v] for v in sorted(by_version)]

    def applied_versions(self) -> set[int]:
        conn = self._connect()
        try:
            return {row[0] for row in conn.execute("SELECT version FROM schema_migrations")}
        finally:
            conn.close()

    def pending(self) -> list[Migration]:
        applied = self.applied_versions()
        return [m for m in self.discover() if m.version not in applied]

    def run_migrations(self) -> list[str]:
        """Apply all pending migrations in version order. Returns their filenames."""
        pending = self.pending()
        conn = self._connect()
        try:
            for migration in pending:
                logger.info("Applying migration: %s", migration.filename)
                self._apply(conn, migration)
        finally:
            conn.close()
        logger.info("Schema is up to date.")
        return [m.filename for m in pending]

    def _apply(self, conn: sqlite3.Connection, migration: Migration) -> None:
        # The filename pattern admits no quotes, so it is safe to inline.
        script = (
            "BEGIN;\n"
            f"{migration.up_script()}\n;\n"
            "INSERT INTO schema_migrations (version, filename) "
            f"VALUES ({migration.version}, '{migration.filename}');\n"
            "COMMIT;"
        )
        try:
            conn.executescript(script)
        except sqlite3.Error as e:
            if conn.in_transaction:
                conn.rollback()
            raise MigrationError(f"Migration {migration.filename} failed: {e}") from e
