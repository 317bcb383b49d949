"""
SQLite storage for the cell database.

Holds base stations, their measurements, OpenCellID import records,
detection events and default locations in one database file. Every
mutation runs as a unit of work inside a single BEGIN IMMEDIATE
transaction, so lookup-then-insert sequences are atomic with respect to
other writers.
"""

from __future__ import annotations

import sqlite3
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Generator, TypeVar

from utils.logging import get_logger

logger = get_logger('cellguard.celldb.store')

T = TypeVar('T')

# Seconds a writer waits on a locked database before failing
BUSY_TIMEOUT = 30.0

SCHEMA = (
    '''
    CREATE TABLE IF NOT EXISTS base_stations (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        mcc INTEGER NOT NULL,
        mnc INTEGER NOT NULL,
        lac INTEGER NOT NULL,
        cell_id INTEGER NOT NULL,
        psc INTEGER,
        lat REAL,
        lon REAL,
        time_first INTEGER NOT NULL,
        time_last INTEGER NOT NULL,
        UNIQUE(lac, cell_id)
    )
    ''',
    '''
    CREATE TABLE IF NOT EXISTS measurements (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        bts_id INTEGER NOT NULL REFERENCES base_stations(id) ON DELETE CASCADE,
        lat REAL,
        lon REAL,
        accuracy REAL,
        time INTEGER NOT NULL,
        rx_signal INTEGER,
        rat TEXT,
        timing_advance INTEGER,
        submitted INTEGER NOT NULL DEFAULT 0,
        neighbour INTEGER NOT NULL DEFAULT 0
    )
    ''',
    '''
    CREATE TABLE IF NOT EXISTS imports (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        db_source TEXT,
        rat TEXT,
        mcc INTEGER,
        mnc INTEGER,
        lac INTEGER NOT NULL,
        cell_id INTEGER NOT NULL,
        psc INTEGER,
        lat REAL,
        lon REAL,
        is_gps_exact INTEGER NOT NULL DEFAULT 0,
        avg_signal INTEGER,
        avg_range INTEGER,
        samples INTEGER,
        time_first INTEGER,
        time_last INTEGER,
        rej_cause INTEGER NOT NULL DEFAULT 0,
        UNIQUE(lac, cell_id)
    )
    ''',
    '''
    CREATE TABLE IF NOT EXISTS events (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        timestamp INTEGER NOT NULL,
        lac INTEGER,
        cell_id INTEGER,
        psc INTEGER,
        lat REAL,
        lon REAL,
        accuracy REAL,
        df_id INTEGER,
        df_description TEXT
    )
    ''',
    '''
    CREATE TABLE IF NOT EXISTS default_locations (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        mcc INTEGER NOT NULL,
        lat REAL NOT NULL,
        lon REAL NOT NULL
    )
    ''',
    'CREATE INDEX IF NOT EXISTS idx_base_stations_cell_id ON base_stations(cell_id)',
    'CREATE INDEX IF NOT EXISTS idx_measurements_bts ON measurements(bts_id)',
    'CREATE INDEX IF NOT EXISTS idx_measurements_submitted ON measurements(submitted)',
    'CREATE INDEX IF NOT EXISTS idx_imports_mcc_mnc ON imports(mcc, mnc)',
    'CREATE INDEX IF NOT EXISTS idx_imports_cell_id ON imports(cell_id)',
    'CREATE INDEX IF NOT EXISTS idx_events_timestamp ON events(timestamp)',
    'CREATE INDEX IF NOT EXISTS idx_default_locations_mcc ON default_locations(mcc)',
)


class CellStore:
    """Thread-safe handle on the cell database file."""

    def __init__(self, db_path: str | Path, max_workers: int = 1):
        """
        Initialize the store.

        Args:
            db_path: Path of the SQLite database file
            max_workers: Threads available for asynchronous units of work
        """
        self.db_path = Path(db_path)
        self._local = threading.local()
        self._connections: dict[threading.Thread, sqlite3.Connection] = {}
        self._connections_lock = threading.Lock()
        self._executor = ThreadPoolExecutor(
            max_workers=max(1, max_workers),
            thread_name_prefix='celldb-writer',
        )

    def connection(self) -> sqlite3.Connection:
        """Get this thread's connection, opening it on first use."""
        conn = getattr(self._local, 'connection', None)
        if conn is None:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            # Autocommit mode; transactions are opened explicitly below
            conn = sqlite3.connect(
                str(self.db_path),
                timeout=BUSY_TIMEOUT,
                isolation_level=None,
                check_same_thread=False,
            )
            conn.row_factory = sqlite3.Row
            conn.execute('PRAGMA foreign_keys = ON')
            conn.execute('PRAGMA journal_mode = WAL')
            self._local.connection = conn
            with self._connections_lock:
                self._close_finished_threads()
                self._connections[threading.current_thread()] = conn
        return conn

    def close_connection(self) -> None:
        """Close the calling thread's connection, if it has one."""
        conn = getattr(self._local, 'connection', None)
        if conn is None:
            return
        self._local.connection = None
        with self._connections_lock:
            self._connections.pop(threading.current_thread(), None)
        conn.close()

    def _close_finished_threads(self) -> None:
        # Caller holds _connections_lock
        for thread in [t for t in self._connections if not t.is_alive()]:
            self._connections.pop(thread).close()

    @property
    def open_connections(self) -> int:
        with self._connections_lock:
            return len(self._connections)

    @contextmanager
    def transaction(self, immediate: bool = True) -> Generator[sqlite3.Connection, None, None]:
        """
        Run the enclosed block as one all-or-nothing transaction.

        Writers take the database write lock up front (BEGIN IMMEDIATE) so a
        check-then-insert inside the block cannot interleave with another
        writer. A nested call joins the enclosing transaction.
        """
        conn = self.connection()
        if conn.in_transaction:
            yield conn
            return

        conn.execute('BEGIN IMMEDIATE' if immediate else 'BEGIN')
        try:
            yield conn
        except BaseException:
            conn.execute('ROLLBACK')
            raise
        else:
            conn.execute('COMMIT')

    def run(self, work: Callable[[sqlite3.Connection], T]) -> T:
        """Execute a unit of work in one write transaction and return its result."""
        with self.transaction() as conn:
            return work(conn)

    def read(self, work: Callable[[sqlite3.Connection], T]) -> T:
        """Execute a read-only unit of work against one consistent snapshot."""
        with self.transaction(immediate=False) as conn:
            return work(conn)

    def submit(
        self,
        work: Callable[[sqlite3.Connection], T],
        on_success: Callable[[T], Any] | None = None,
    ) -> Future:
        """
        Run a unit of work on the writer pool without blocking the caller.

        on_success receives the work's result and is only called once the
        transaction has committed.
        """
        def task() -> T:
            result = self.run(work)
            if on_success is not None:
                on_success(result)
            return result

        future = self._executor.submit(task)
        future.add_done_callback(_log_task_failure)
        return future

    def init_schema(self) -> None:
        """Create tables and indexes if they do not exist yet."""
        logger.info(f"Initializing cell database at {self.db_path}")
        with self.transaction() as conn:
            for statement in SCHEMA:
                conn.execute(statement)
        logger.info("Cell database initialized successfully")

    def close(self) -> None:
        """Wait for pending writes, then close every connection opened by this store."""
        self._executor.shutdown(wait=True)
        with self._connections_lock:
            for conn in self._connections.values():
                conn.close()
            self._connections.clear()
        self._local = threading.local()


def _log_task_failure(future: Future) -> None:
    if future.cancelled():
        return
    exc = future.exception()
    if exc is not None:
        logger.error(f"Asynchronous cell database write failed: {exc}")
