"""Table change notifier and the live queries it drives."""

import asyncio
import logging
import threading
from collections.abc import Awaitable, Callable
from typing import Generic, TypeVar

from weatherstore.storage.database import Database

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Observer:
    """Wakeup flag for one live query, bound to the event loop that created it.

    Signals coalesce: several commits before the next ``wait`` produce a
    single wakeup.
    """

    def __init__(self, tables: frozenset[str], loop: asyncio.AbstractEventLoop):
        self.tables = tables
        self._loop = loop
        self._event = asyncio.Event()

    def signal(self) -> None:
        """Thread-safe. Raises RuntimeError if the owning loop is closed."""
        self._loop.call_soon_threadsafe(self._event.set)

    async def wait(self) -> None:
        await self._event.wait()
        self._event.clear()


class ChangeNotifier:
    """Registry of live observers keyed by the table they watch."""

    def __init__(self):
        self._lock = threading.Lock()
        self._observers: dict[str, set[Observer]] = {}

    def attach(self, db: Database) -> None:
        """Listen to commits on ``db`` and wake everyone when it closes. Idempotent."""
        db.add_commit_hook(self.notify)
        db.add_close_hook(self.wake_all)

    def detach(self, db: Database) -> None:
        db.remove_commit_hook(self.notify)
        db.remove_close_hook(self.wake_all)

    def observe(self, *tables: str) -> Observer:
        """Register an observer on the running loop for ``tables``."""
        observer = Observer(frozenset(tables), asyncio.get_running_loop())
        with self._lock:
            for table in observer.tables:
                self._observers.setdefault(table, set()).add(observer)
        logger.debug("Observer registered on %s", ", ".join(sorted(tables)))
        return observer

    def remove(self, observer: Observer) -> None:
        with self._lock:
            for table in observer.tables:
                watchers = self._observers.get(table)
                if watchers is None:
                    continue
                watchers.discard(observer)
                if not watchers:
                    del self._observers[table]

    def observer_count(self, table: str) -> int:
        with self._lock:
            return len(self._observers.get(table, ()))

    def notify(self, tables: frozenset[str]) -> None:
        """Wake every observer of any table in ``tables``. Called after commit."""
        with self._lock:
            targets = set()
            for table in tables:
                targets.update(self._observers.get(table, ()))
        self._signal(targets)

    def wake_all(self) -> None:
        """Wake every observer so its next re-query sees the handle state."""
        with self._lock:
            targets = set().union(*self._observers.values())
        self._signal(targets)

    def _signal(self, observers: set[Observer]) -> None:
        for observer in observers:
            try:
                observer.signal()
            except RuntimeError:
                logger.warning("Dropping observer whose event loop is closed")
                self.remove(observer)


class LiveQuery(Generic[T]):
    """Push sequence of query results, re-run after each commit on its tables.

    The first iteration registers with the notifier and yields the current
    result immediately. Each following iteration waits for a commit on a
    watched table (or for the database to close), then re-runs the query.
    The sequence never ends on its own; ``aclose()`` (or leaving
    ``async with``) deregisters it. Any error
    while producing a result, cancellation included, also deregisters it
    before propagating.
    """

    def __init__(
        self,
        notifier: ChangeNotifier,
        tables: tuple[str, ...],
        query: Callable[[], Awaitable[T]],
    ):
        self._notifier = notifier
        self._tables = tables
        self._query = query
        self._observer: Observer | None = None
        self._closed = False

    @property
    def active(self) -> bool:
        return self._observer is not None

    def __aiter__(self) -> "LiveQuery[T]":
        return self

    async def __anext__(self) -> T:
        if self._closed:
            raise StopAsyncIteration
        try:
            if self._observer is None:
                self._observer = self._notifier.observe(*self._tables)
            else:
                await self._observer.wait()
            return await self._query()
        except BaseException:
            self.close()
            raise

    async def __aenter__(self) -> "LiveQuery[T]":
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        self.close()

    def close(self) -> None:
        self._closed = True
        if self._observer is not None:
            self._notifier.remove(self._observer)
            self._observer = None
