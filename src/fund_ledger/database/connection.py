import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

SCHEMA_PATH = Path(__file__).parent / "schema.sql"

# Seconds a statement waits on a lock held by another process
BUSY_TIMEOUT = 5.0

class DatabaseConfig:
    """Where the ledger database file lives."""

    def __init__(self, db_path: Path | str = "data/fund_ledger.db"):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def connection_string(self) -> str:
        return str(self.db_path.absolute())

class DatabaseManager:
    """
    Owns the single SQLite connection of the ledger store.

    The connection is shared by every thread of the process, and a commit
    or rollback applies to whatever is pending on it. Each `transaction()`
    block and each `read()` therefore holds `self.lock` for its whole
    duration: a failing writer can only roll back its own statements.

    Usage:
        with db_manager.transaction() as conn:
            conn.execute("INSERT INTO fund_transactions ...")

        with db_manager.read() as conn:
            rows = conn.execute("SELECT ...").fetchall()
    """

    def __init__(self, config: DatabaseConfig):
        self.config = config
        self.lock = threading.RLock()
        self._connection: sqlite3.Connection | None = None

    def get_connection(self) -> sqlite3.Connection:
        """Open the connection on first use, rows come back as sqlite3.Row."""
        with self.lock:
            if self._connection is None:
                conn = sqlite3.connect(
                    self.config.connection_string,
                    timeout=BUSY_TIMEOUT,
                    check_same_thread=False,
                )
                conn.row_factory = sqlite3.Row
                self._connection = conn
            return self._connection

    def close(self) -> None:
        with self.lock:
            if self._connection:
                self._connection.close()
                self._connection = None

    @contextmanager
    def transaction(self) -> Generator[sqlite3.Connection, None, None]:
        """Commit on success, roll back on any exception, one writer at a time."""
        with self.lock:
            conn = self.get_connection()
            try:
                yield conn
                conn.commit()
            except Exception:
                conn.rollback()
                raise

    @contextmanager
    def read(self) -> Generator[sqlite3.Connection, None, None]:
        """Connection for queries; waits for any open transaction() to finish."""
        with self.lock:
            yield self.get_connection()

    def __enter__(self) -> "DatabaseManager":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

def execute_schema(conn: sqlite3.Connection, schema_path: Path = SCHEMA_PATH) -> None:
    """Run a .sql script (the bundled ledger schema by default) and commit."""
    with open(schema_path, encoding="utf-8") as f:
        conn.executescript(f.read())
    conn.commit()
