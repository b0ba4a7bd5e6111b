import logging
import sqlite3
from pathlib import Path

logger = logging.getLogger(__name__)

DOWN_MARKER = "-- Down"


def up_section(script: str) -> str:
    """Text before the first '-- Down' marker; the whole script if there is none."""
    head, _, _ = script.partition(DOWN_MARKER)
    return head


class SQLiteMigrator:
    """Applies numbered .sql files from a directory, once each, in name order."""

    table = "schema_migrations"

    def __init__(self, db_path: str, migrations_dir: str):
        self.db_path = db_path
        self.migrations_dir = Path(migrations_dir)

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.execute(
            f"CREATE TABLE IF NOT EXISTS {self.table} ("
            " filename TEXT PRIMARY KEY,"
            " applied_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP)"
        )
        return conn

    def _scripts(self) -> list[Path]:
        if not self.migrations_dir.is_dir():
            raise FileNotFoundError(f"Migrations directory not found: {self.migrations_dir}")
        return sorted(self.migrations_dir.glob("*.sql"), key=lambda p: p.name)

    def pending(self) -> list[str]:
        """Names of scripts not yet recorded in the tracking table."""
        conn = self._connect()
        try:
            done = {row[0] for row in conn.execute(f"SELECT filename FROM {self.table}")}
        finally:
            conn.close()
        return [p.name for p in self._scripts() if p.name not in done]

    def run_migrations(self) -> list[str]:
        """Apply all pending migrations. Returns the filenames applied."""
        todo = self.pending()
        if not todo:
            logger.debug("Schema at %s is current", self.db_path)
            return []

        conn = self._connect()
        try:
            for name in todo:
                logger.info("Applying migration: %s", name)
                script = up_section((self.migrations_dir / name).read_text())
                try:
                    conn.executescript(script)
                    conn.execute(f"INSERT INTO {self.table} (filename) VALUES (?)", (name,))
                    conn.commit()
                except sqlite3.Error as e:
                    conn.rollback()
                    raise RuntimeError(f"Migration {name} failed: {e}") from e
        finally:
            conn.close()
        return todo
