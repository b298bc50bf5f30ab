"""
Database connection and schema management
DuckDB backing store for users, menu items, reservations and the audit log.

Tables:
- users: user directory (identity, names, role)
- menu_items: published menu, with an explicit per-date position
- reservations: the reservation ledger
- logs: audit trail of lifecycle operations and system errors

Writes go through DatabaseManager.transaction(), which holds a process-wide
re-entrant lock for the whole read-validate-write sequence.  Reads use
DatabaseManager.snapshot(), a separate cursor that never takes the lock.
"""

import logging
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Optional

import duckdb

from .exceptions import BaseApplicationError, StorageUnavailableError
from ..config.settings import settings

logger = logging.getLogger("canteen.database")

SCHEMA_SQL = r"""
CREATE SEQUENCE IF NOT EXISTS users_id_seq;
CREATE TABLE IF NOT EXISTS users (
  id INTEGER DEFAULT nextval('users_id_seq') PRIMARY KEY,
  username TEXT UNIQUE NOT NULL,
  first_name TEXT,
  last_name TEXT,
  personal_number TEXT,
  role TEXT CHECK(role IN ('EMPLOYEE','ADMIN_USER','ADMIN_MEAL')) NOT NULL DEFAULT 'EMPLOYEE',
  is_deleted BOOLEAN DEFAULT FALSE,
  created_at TIMESTAMP DEFAULT now()
);

CREATE SEQUENCE IF NOT EXISTS menu_items_id_seq;
CREATE TABLE IF NOT EXISTS menu_items (
  id INTEGER DEFAULT nextval('menu_items_id_seq') PRIMARY KEY,
  date DATE NOT NULL,
  name TEXT NOT NULL,
  price_cents INTEGER,  -- optional, informational only
  position INTEGER NOT NULL,  -- choice order within the date
  created_at TIMESTAMP DEFAULT now()
);

CREATE INDEX IF NOT EXISTS idx_menu_items_date ON menu_items(date);

CREATE SEQUENCE IF NOT EXISTS reservations_id_seq;
CREATE TABLE IF NOT EXISTS reservations (
  id INTEGER DEFAULT nextval('reservations_id_seq') PRIMARY KEY,
  holder_id INTEGER NOT NULL,
  meal_id INTEGER NOT NULL,
  date DATE NOT NULL,  -- copy of the menu item's date, fixed at creation
  in_exchange BOOLEAN NOT NULL DEFAULT FALSE,
  created_at TIMESTAMP DEFAULT now(),
  updated_at TIMESTAMP DEFAULT now()
);

CREATE INDEX IF NOT EXISTS idx_reservations_date ON reservations(date);

CREATE SEQUENCE IF NOT EXISTS logs_id_seq;
CREATE TABLE IF NOT EXISTS logs (
  log_id INTEGER DEFAULT nextval('logs_id_seq') PRIMARY KEY,
  user_id INTEGER,  -- user the operation concerns
  actor_id INTEGER,  -- user who performed it
  action TEXT,
  detail_json JSON,
  created_at TIMESTAMP DEFAULT now()
);

CREATE INDEX IF NOT EXISTS idx_logs_action ON logs(action);
"""


class DatabaseManager:
    """Owns the DuckDB connection and the write lock"""

    def __init__(self, db_path: Optional[str] = None):
        self._connection: Optional[duckdb.DuckDBPyConnection] = None
        self._lock = threading.RLock()
        self.db_path = db_path or self._get_db_path_from_settings()

    def _get_db_path_from_settings(self) -> str:
        db_url = settings.database_url
        if db_url.startswith("duckdb://"):
            return db_url.replace("duckdb://", "", 1)
        return db_url

    @property
    def connection(self) -> duckdb.DuckDBPyConnection:
        if self._connection is None:
            with self._lock:
                if self._connection is None:
                    self._connection = self._connect()
        return self._connection

    def _connect(self) -> duckdb.DuckDBPyConnection:
        try:
            if self.db_path != ":memory:":
                Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
            con = duckdb.connect(self.db_path)
            con.execute(SCHEMA_SQL)
        except duckdb.Error as e:
            raise StorageUnavailableError(f"Failed to open database: {e}")
        logger.info("Opened database at %s", self.db_path)
        return con

    def init_database(self):
        """Create tables if they do not exist yet"""
        try:
            self.connection.execute(SCHEMA_SQL)
        except duckdb.Error as e:
            raise StorageUnavailableError(f"Failed to initialize schema: {e}")

    @contextmanager
    def transaction(self) -> Generator[duckdb.DuckDBPyConnection, None, None]:
        """
        Run a read-validate-write sequence atomically.

        The lock serializes every writer in the process, so no other mutation can
        interleave between the read and the write.  Business errors raised inside
        the block roll the transaction back and propagate unchanged; DuckDB errors
        are reported as StorageUnavailableError.
        """
        with self._lock:
            conn = self.connection
            try:
                conn.execute("BEGIN TRANSACTION")
            except duckdb.Error as e:
                raise StorageUnavailableError(f"Failed to begin transaction: {e}")
            try:
                yield conn
                conn.execute("COMMIT")
            except BaseApplicationError:
                self._rollback(conn)
                raise
            except duckdb.Error as e:
                self._rollback(conn)
                logger.error("Transaction failed: %s", e)
                raise StorageUnavailableError("Storage is temporarily unavailable, please retry",
                                              details={"reason": str(e)})
            except Exception:
                self._rollback(conn)
                raise

    @contextmanager
    def snapshot(self) -> Generator[duckdb.DuckDBPyConnection, None, None]:
        """Read-only cursor with its own consistent view; does not block writers"""
        try:
            cur = self.connection.cursor()
        except duckdb.Error as e:
            raise StorageUnavailableError(f"Failed to open cursor: {e}")
        try:
            yield cur
        except duckdb.Error as e:
            logger.error("Query failed: %s", e)
            raise StorageUnavailableError("Storage is temporarily unavailable, please retry",
                                          details={"reason": str(e)})
        finally:
            cur.close()

    def execute_query(self, query: str, params: list = None) -> list:
        with self.snapshot() as cur:
            return cur.execute(query, params or []).fetchall()

    def execute_one(self, query: str, params: list = None) -> Optional[tuple]:
        with self.snapshot() as cur:
            return cur.execute(query, params or []).fetchone()

    def close(self):
        with self._lock:
            if self._connection is not None:
                self._connection.close()
                self._connection = None

    @staticmethod
    def _rollback(conn: duckdb.DuckDBPyConnection):
        try:
            conn.execute("ROLLBACK")
        except duckdb.Error as e:
            logger.warning("Rollback failed: %s", e)


# Global instance
db_manager = DatabaseManager()
