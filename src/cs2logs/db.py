"""SQLite setup for the cs2-logs event store.

Opens the database that ``EventRepository`` writes to, brings it up to
the newest schema from ``migrations/NNN_name.sql`` (tracked in
``PRAGMA user_version``) and refuses to hand out a connection whose
``events``/``accolades`` tables are missing.
"""

import logging
import re
import sqlite3
from pathlib import Path

from cs2logs.exceptions import SchemaError

logger = logging.getLogger(__name__)

# <project_root>/migrations, next to src/
DEFAULT_MIGRATIONS_DIR = Path(__file__).resolve().parents[2] / "migrations"

MIGRATION_NAME_RE = re.compile(r"^(?P<version>\d+)_[\w-]+\.sql$")

REQUIRED_TABLES = ("events", "accolades")


def pending_migrations(migrations_dir: Path, current: int) -> list[tuple[int, Path]]:
    """Return ``(version, path)`` for migrations newer than ``current``.

    Files that do not follow the ``NNN_name.sql`` pattern are skipped with
    a warning. Ordered by numeric version, not by file name.
    """
    found: list[tuple[int, Path]] = []
    for path in migrations_dir.glob("*.sql"):
        m = MIGRATION_NAME_RE.match(path.name)
        if not m:
            logger.warning("Ignoring migration with unexpected name: %s", path.name)
            continue
        version = int(m.group("version"))
        if version > current:
            found.append((version, path))
    return sorted(found)


class Database:
    """Connection owner for the event store.

    Usage::

        with Database("data/cs2logs.db") as db:
            db.apply_migrations()
            db.verify_schema()
            repo = EventRepository(db.conn)

    ``initialize()`` does connect + migrate + verify in one call.
    """

    def __init__(self, db_path: str | Path, migrations_dir: str | Path | None = None) -> None:
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.migrations_dir = Path(migrations_dir) if migrations_dir else DEFAULT_MIGRATIONS_DIR
        self._conn: sqlite3.Connection | None = None

    def connect(self) -> sqlite3.Connection:
        self._conn = sqlite3.connect(str(self.db_path))
        self._conn.row_factory = sqlite3.Row
        # Per-connection settings; accolades reference events(id).
        self._conn.execute("PRAGMA journal_mode = WAL")
        self._conn.execute("PRAGMA foreign_keys = ON")
        self._conn.execute("PRAGMA busy_timeout = 5000")
        return self._conn

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        return self._conn

    def close(self) -> None:
        if self._conn:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> "Database":
        self.connect()
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    @property
    def schema_version(self) -> int:
        return self.conn.execute("PRAGMA user_version").fetchone()[0]

    def apply_migrations(self) -> list[int]:
        """Run every pending migration script.

        Returns:
            The versions applied, in order. Empty when already current.
        """
        applied: list[int] = []
        for version, path in pending_migrations(self.migrations_dir, self.schema_version):
            self.conn.executescript(path.read_text(encoding="utf-8"))
            self.conn.execute(f"PRAGMA user_version = {version}")
            logger.debug("Applied migration %s", path.name)
            applied.append(version)
        if applied:
            logger.info("Event store %s migrated to version %d", self.db_path, applied[-1])
        return applied

    def missing_tables(self) -> list[str]:
        present = {
            row[0]
            for row in self.conn.execute(
                "SELECT name FROM sqlite_master WHERE type = 'table'"
            )
        }
        return [t for t in REQUIRED_TABLES if t not in present]

    def verify_schema(self) -> None:
        """Raise SchemaError unless every table the repository uses exists."""
        missing = self.missing_tables()
        if missing:
            raise SchemaError(missing)

    def table_counts(self) -> dict[str, int]:
        """Row count per event store table, for the end-of-run summary."""
        return {
            table: self.conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]
            for table in REQUIRED_TABLES
        }

    def initialize(self) -> sqlite3.Connection:
        """Connect, migrate and verify; returns the ready connection.

        Raises:
            SchemaError: The migrations did not create the event store tables.
        """
        self.connect()
        self.apply_migrations()
        self.verify_schema()
        return self.conn
