"""SQLite handle with WAL mode, migrations, transactions and commit hooks."""

import asyncio
import importlib
import logging
import pkgutil
import queue
import re
import sqlite3
import threading
from collections.abc import Callable, Iterator
from concurrent.futures import Future, ThreadPoolExecutor
from contextlib import contextmanager
from pathlib import Path
from typing import TypeVar

from weatherstore.errors import StorageError

logger = logging.getLogger(__name__)

MIGRATIONS_PACKAGE = "weatherstore.storage.migrations"
MEMORY_PATH = ":memory:"
MIGRATION_NAME = re.compile(r"^v\d{3}_\w+$")

# Temp table filled by triggers with the names of tables written in the
# current transaction.
CHANGES_TABLE = "_table_changes"

T = TypeVar("T")
CommitHook = Callable[[frozenset[str]], None]
CloseHook = Callable[[], None]

# Failures raised while binding or running a statement. Out-of-range
# integers fail in Python before SQLite sees them.
ENGINE_ERRORS = (sqlite3.Error, OverflowError)


def connect(db_path: str | Path, busy_timeout_ms: int = 5000) -> sqlite3.Connection:
    """Open a SQLite connection in autocommit mode with WAL and foreign keys enabled.

    Transactions are issued explicitly with BEGIN/COMMIT/ROLLBACK.
    """
    conn = sqlite3.connect(
        str(db_path), isolation_level=None, check_same_thread=False
    )
    conn.row_factory = sqlite3.Row
    if str(db_path) != MEMORY_PATH:
        conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys=ON")
    conn.execute(f"PRAGMA busy_timeout={int(busy_timeout_ms)}")
    return conn


def run_migrations(conn: sqlite3.Connection) -> list[str]:
    """Apply pending migrations in version order, each in its own transaction.

    A migration and its schema_versions row commit together; a failing
    migration is rolled back and raised as StorageError. Returns the names
    applied by this call.
    """
    conn.execute(
        "CREATE TABLE IF NOT EXISTS schema_versions ("
        "  version TEXT PRIMARY KEY,"
        "  applied_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP"
        ")"
    )
    applied = {
        row["version"]
        for row in conn.execute("SELECT version FROM schema_versions").fetchall()
    }
    pending = [name for name in _discover_migrations() if name not in applied]

    for name in pending:
        migration = importlib.import_module(f"{MIGRATIONS_PACKAGE}.{name}")
        try:
            conn.execute("BEGIN IMMEDIATE")
            migration.up(conn)
            conn.execute("INSERT INTO schema_versions (version) VALUES (?)", (name,))
            conn.execute("COMMIT")
        except sqlite3.Error as exc:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            raise StorageError(f"Migration {name} failed: {exc}") from exc
        logger.info("Applied migration %s", name)

    return pending


def _discover_migrations() -> list[str]:
    """Names of the v###_* modules in the migrations package, oldest first."""
    package = importlib.import_module(MIGRATIONS_PACKAGE)
    return sorted(
        info.name
        for info in pkgutil.iter_modules(package.__path__)
        if MIGRATION_NAME.match(info.name)
    )


class Database:
    """Process-wide SQLite handle: one serialized writer, pooled readers.

    All repository work is dispatched to ``executor``. Writes go through
    ``transaction()``, which holds the write lock for the whole
    BEGIN..COMMIT span, so no two write transactions are ever open at once.
    Reads use separate connections and, in WAL mode, see either the state
    before a write or the state after its commit.

    Hooks registered with ``add_commit_hook`` are called after every
    successful commit with the names of the tables that commit wrote.
    Hooks registered with ``add_close_hook`` are called once, after
    ``close()`` has released every connection.
    """

    def __init__(
        self,
        db_path: str | Path,
        max_workers: int = 4,
        busy_timeout_ms: int = 5000,
    ):
        self.db_path = str(db_path)
        self._busy_timeout_ms = busy_timeout_ms
        self._in_memory = self.db_path == MEMORY_PATH
        if not self._in_memory:
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

        self._writer = connect(self.db_path, busy_timeout_ms)
        self._write_lock = threading.Lock()
        self._readers: queue.SimpleQueue[sqlite3.Connection] = queue.SimpleQueue()
        self._opened_readers: list[sqlite3.Connection] = []
        self._readers_lock = threading.Lock()
        self._hooks: list[CommitHook] = []
        self._close_hooks: list[CloseHook] = []
        self._closed = False

        run_migrations(self._writer)
        self._install_change_tracking()

        self.executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="weatherstore-db"
        )
        logger.debug("Opened database %s (workers=%d)", self.db_path, max_workers)

    def __enter__(self) -> "Database":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    @property
    def closed(self) -> bool:
        return self._closed

    def _install_change_tracking(self) -> None:
        conn = self._writer
        conn.execute(
            f"CREATE TEMP TABLE IF NOT EXISTS {CHANGES_TABLE} "
            "(table_name TEXT PRIMARY KEY)"
        )
        tables = [
            row[0]
            for row in conn.execute(
                "SELECT name FROM sqlite_master WHERE type = 'table' "
                "AND name NOT LIKE 'sqlite_%' AND name != 'schema_versions'"
            ).fetchall()
        ]
        for table in tables:
            for op in ("INSERT", "UPDATE", "DELETE"):
                conn.execute(
                    f"CREATE TEMP TRIGGER IF NOT EXISTS "
                    f'"_track_{table}_{op.lower()}" AFTER {op} ON "{table}" '
                    f"BEGIN INSERT OR IGNORE INTO {CHANGES_TABLE} (table_name) "
                    f"VALUES ('{table}'); END"
                )
        logger.debug("Tracking changes on tables: %s", ", ".join(tables))

    # --- Commit hooks ---

    def add_commit_hook(self, hook: CommitHook) -> None:
        if hook not in self._hooks:
            self._hooks.append(hook)

    def remove_commit_hook(self, hook: CommitHook) -> None:
        if hook in self._hooks:
            self._hooks.remove(hook)

    def _fire_commit_hooks(self, tables: frozenset[str]) -> None:
        if not tables:
            return
        for hook in list(self._hooks):
            try:
                hook(tables)
            except Exception:
                logger.exception("Commit hook %r failed", hook)

    def add_close_hook(self, hook: CloseHook) -> None:
        if hook not in self._close_hooks:
            self._close_hooks.append(hook)

    def remove_close_hook(self, hook: CloseHook) -> None:
        if hook in self._close_hooks:
            self._close_hooks.remove(hook)

    # --- Transactions and reads ---

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Hold the write lock for one transaction.

        Commits on normal exit, rolls back on any exception (cancellation
        included). Engine and bind errors are re-raised as StorageError.
        """
        self._check_open()
        with self._write_lock:
            conn = self._writer
            try:
                conn.execute("BEGIN IMMEDIATE")
                conn.execute(f"DELETE FROM {CHANGES_TABLE}")
                yield conn
                written = frozenset(
                    row[0]
                    for row in conn.execute(
                        f"SELECT table_name FROM {CHANGES_TABLE}"
                    ).fetchall()
                )
                conn.execute("COMMIT")
            except BaseException as exc:
                if conn.in_transaction:
                    conn.execute("ROLLBACK")
                    logger.debug("Transaction rolled back: %r", exc)
                if isinstance(exc, ENGINE_ERRORS):
                    raise StorageError(str(exc)) from exc
                raise
        self._fire_commit_hooks(written)

    @contextmanager
    def reader(self) -> Iterator[sqlite3.Connection]:
        """Borrow a read-only connection. Engine and bind errors become StorageError."""
        self._check_open()
        if self._in_memory:
            # A private in-memory database is only visible to its own connection.
            with self._write_lock:
                try:
                    yield self._writer
                except ENGINE_ERRORS as exc:
                    raise StorageError(str(exc)) from exc
            return

        conn = self._acquire_reader()
        try:
            yield conn
        except ENGINE_ERRORS as exc:
            raise StorageError(str(exc)) from exc
        finally:
            self._readers.put(conn)

    def _acquire_reader(self) -> sqlite3.Connection:
        try:
            return self._readers.get_nowait()
        except queue.Empty:
            pass
        conn = connect(self.db_path, self._busy_timeout_ms)
        conn.execute("PRAGMA query_only=ON")
        with self._readers_lock:
            self._opened_readers.append(conn)
        logger.debug("Opened reader connection #%d", len(self._opened_readers))
        return conn

    # --- Async dispatch ---

    async def run_write(self, work: Callable[[sqlite3.Connection], T]) -> T:
        """Run ``work`` inside one transaction on the executor.

        Once submitted the write runs to commit or rollback even if the
        awaiting task is cancelled.
        """
        self._check_open()
        loop = asyncio.get_running_loop()

        def call() -> T:
            with self.transaction() as conn:
                return work(conn)

        future = loop.run_in_executor(self.executor, call)
        try:
            return await asyncio.shield(future)
        except asyncio.CancelledError:
            future.add_done_callback(_log_abandoned_write)
            raise

    async def run_read(self, query: Callable[[sqlite3.Connection], T]) -> T:
        """Run ``query`` on a reader connection on the executor.

        Cancelling the awaiting task interrupts the statement in flight.
        """
        self._check_open()
        loop = asyncio.get_running_loop()
        call = _InterruptibleRead(self, query)
        try:
            return await loop.run_in_executor(self.executor, call)
        except asyncio.CancelledError:
            call.cancel()
            raise

    # --- Lifecycle ---

    def _check_open(self) -> None:
        if self._closed:
            raise StorageError(f"Database {self.db_path} is closed")

    def close(self) -> None:
        """Stop the executor and close every connection. Safe to call twice."""
        if self._closed:
            return
        self._closed = True
        self.executor.shutdown(wait=True, cancel_futures=True)
        with self._write_lock:
            self._writer.close()
        with self._readers_lock:
            for conn in self._opened_readers:
                conn.close()
            self._opened_readers.clear()
        logger.debug("Closed database %s", self.db_path)
        for hook in list(self._close_hooks):
            try:
                hook()
            except Exception:
                logger.exception("Close hook %r failed", hook)


class _InterruptibleRead:
    """A read job whose statement can be interrupted from another thread."""

    def __init__(self, db: Database, query: Callable[[sqlite3.Connection], T]):
        self._db = db
        self._query = query
        self._lock = threading.Lock()
        self._conn: sqlite3.Connection | None = None
        self._cancelled = False

    def __call__(self):
        with self._db.reader() as conn:
            with self._lock:
                if self._cancelled:
                    raise asyncio.CancelledError()
                self._conn = conn
            try:
                return self._query(conn)
            finally:
                with self._lock:
                    self._conn = None

    def cancel(self) -> None:
        with self._lock:
            self._cancelled = True
            if self._conn is not None:
                self._conn.interrupt()


def _log_abandoned_write(future: "asyncio.Future | Future") -> None:
    if future.cancelled():
        return
    exc = future.exception()
    if exc is not None:
        logger.error("Write failed after its caller was cancelled: %s", exc)
