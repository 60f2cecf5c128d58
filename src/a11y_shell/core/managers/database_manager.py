# src/a11y_shell/core/managers/database_manager.py
import logging
import sqlite3
import threading
from pathlib import Path
from typing import List, Optional

from a11y_shell.core.utils.path_utils import PathUtils
from a11y_shell.database_schema import DEFAULT_SCHEMA_SCRIPT

logger = logging.getLogger(__name__)

# Thread-local storage to ensure SQLite connections are not shared across threads
thread_local_storage = threading.local()


class DatabaseManager:
    """
    A 'dumb' Database Manager.

    Responsibility:
        - Handles SQLite connection lifecycles (opening, closing, caching per thread).
        - Executes raw SQL queries and scripts.
        - Manages database schema initialization via a constant.

    Constraints:
        - It does NOT contain business logic or complex data transformations.
        - It acts as a low-level data access layer.
    """

    def __init__(self, db_path: Optional[Path] = None):
        """
        Initialize the DatabaseManager.

        Args:
            db_path (Optional[Path]): The SQLite file holding all audits.
                                      Defaults to 'audits.db' in the application cache root.
        """
        self.db_path = Path(db_path) if db_path else PathUtils.get_db_path()
        self._open_connections: List[sqlite3.Connection] = []
        self._conn_lock = threading.Lock()
        logger.debug("DatabaseManager initialized at: %s", self.db_path)

    # --- CONNECTION METHODS ---

    def get_connection(self) -> sqlite3.Connection:
        """
        Retrieves a thread-local SQLite connection.
        Creates the database directory if it does not exist.
        """
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        db_path_str = str(self.db_path)

        if not hasattr(thread_local_storage, 'connections'):
            thread_local_storage.connections = {}

        if db_path_str in thread_local_storage.connections:
            cached_conn = thread_local_storage.connections[db_path_str]
            try:
                cached_conn.execute("SELECT 1;")
                return cached_conn
            except sqlite3.Error:
                # Connection is dead, remove it and reconnect
                thread_local_storage.connections.pop(db_path_str, None)

        try:
            conn = sqlite3.connect(
                db_path_str,
                isolation_level=None,  # Autocommit mode
                check_same_thread=False
            )
            conn.execute("PRAGMA journal_mode=WAL;")
            conn.execute("PRAGMA synchronous=NORMAL;")
            conn.execute("PRAGMA foreign_keys = ON;")

            thread_local_storage.connections[db_path_str] = conn
            with self._conn_lock:
                self._open_connections.append(conn)
            return conn
        except sqlite3.Error as e:
            logger.error(f"Fatal error opening DB {db_path_str}: {e}", exc_info=True)
            raise

    def close_connections(self) -> None:
        """Closes all open connections and forces a WAL checkpoint to clean up files."""
        with self._conn_lock:
            connections, self._open_connections = self._open_connections, []
        for conn in connections:
            try:
                conn.execute("PRAGMA wal_checkpoint(TRUNCATE);")
                conn.close()
            except sqlite3.Error as e:
                logger.debug(f"Could not checkpoint/close connection: {e}")

        if hasattr(thread_local_storage, 'connections'):
            thread_local_storage.connections.pop(str(self.db_path), None)

        logger.debug("Connections for %s closed.", self.db_path)

    # --- EXECUTION METHODS ---

    def execute_query(self, query: str, params: tuple = ()) -> None:
        """Executes a single SQL query that does not return data (e.g., UPDATE, DELETE)."""
        conn = self.get_connection()
        try:
            with conn:
                conn.execute(query, params)
        except sqlite3.Error as e:
            logger.error(f"Query failed: {e} | Query: {query}")
            raise

    def execute_insert(self, query: str, params: tuple = ()) -> int:
        """Executes an INSERT statement and returns the `lastrowid`."""
        conn = self.get_connection()
        try:
            with conn:
                cursor = conn.execute(query, params)
                return cursor.lastrowid
        except sqlite3.Error as e:
            logger.error(f"Insert failed: {e} | Query: {query}")
            raise

    def execute_script(self, script: str) -> None:
        """Executes a raw SQL script (multiple statements)."""
        conn = self.get_connection()
        try:
            with conn:
                conn.executescript(script)
        except sqlite3.Error as e:
            logger.error(f"Script execution failed: {e}")
            raise

    # --- READ METHODS ---

    def fetch_all(self, query: str, params: tuple = ()) -> List[tuple]:
        """Executes a query and returns all rows as a list of tuples."""
        conn = self.get_connection()
        try:
            cursor = conn.execute(query, params)
            return cursor.fetchall()
        except sqlite3.Error as e:
            logger.error(f"Fetch failed: {e}")
            return []

    def fetch_one(self, query: str, params: tuple = ()) -> Optional[tuple]:
        """Executes a query and returns a single row, or None."""
        conn = self.get_connection()
        try:
            cursor = conn.execute(query, params)
            return cursor.fetchone()
        except sqlite3.Error:
            return None

    # --- WRITE METHODS---

    def save_batch(self, sql_query: str, data_tuples: List[tuple]) -> None:
        """
        Executes a synchronous batch insert using `executemany`.
        """
        if not data_tuples:
            return
        conn = self.get_connection()

        try:
            with conn:
                conn.executemany(sql_query, data_tuples)
        except sqlite3.Error as e:
            logger.error(f"Batch execution failed: {e}")
            logger.debug(f"Sample tuple: {data_tuples[0]}")
            raise

    # --- SCHEMA METHODS ---

    def init_schema(self) -> None:
        """
        Initializes the database schema using the standard DEFAULT_SCHEMA_SCRIPT.
        """
        self.execute_script(DEFAULT_SCHEMA_SCRIPT)
        logger.debug("Schema initialized at %s", self.db_path)
