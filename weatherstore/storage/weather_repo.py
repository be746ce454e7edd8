"""Repository for the weather_conditions catalog."""

import logging
import sqlite3
from collections.abc import Sequence

from weatherstore.errors import StorageError
from weatherstore.models.weather import COLUMNS, TABLE, WeatherCondition
from weatherstore.storage.database import Database
from weatherstore.storage.notifier import ChangeNotifier, LiveQuery

logger = logging.getLogger(__name__)

UPSERT_SQL = (
    f"INSERT OR REPLACE INTO {TABLE} ({', '.join(COLUMNS)}) "
    f"VALUES ({', '.join('?' for _ in COLUMNS)})"
)

# SQLite column affinity coerces mismatched values instead of rejecting them.
FIELD_TYPES: dict[str, type] = {
    "id": int,
    "condition": str,
    "temperature": int,
    "emoji": str,
    "mood": str,
}


def check_row(row: WeatherCondition) -> None:
    """Raise StorageError unless every field has its column type."""
    if not isinstance(row, WeatherCondition):
        raise StorageError(f"Not a WeatherCondition: {row!r}")
    for name, expected in FIELD_TYPES.items():
        value = getattr(row, name)
        # bool is an int subclass but not a valid id or temperature.
        if isinstance(value, bool) or not isinstance(value, expected):
            raise StorageError(
                f"weather condition {row.id!r}: {name} must be "
                f"{expected.__name__}, got {type(value).__name__}"
            )


# --- Statements (run on a connection supplied by Database) ---

def upsert_rows(conn: sqlite3.Connection, rows: Sequence[WeatherCondition]) -> int:
    for row in rows:
        check_row(row)
        conn.execute(UPSERT_SQL, row.to_params())
    return len(rows)


def delete_rows(conn: sqlite3.Connection) -> int:
    return conn.execute(f"DELETE FROM {TABLE}").rowcount


def count_rows(conn: sqlite3.Connection) -> int:
    return conn.execute(f"SELECT COUNT(*) FROM {TABLE}").fetchone()[0]


def select_all(conn: sqlite3.Connection) -> list[WeatherCondition]:
    rows = conn.execute(f"SELECT * FROM {TABLE} ORDER BY id ASC").fetchall()
    return [WeatherCondition.from_row(r) for r in rows]


def select_by_id(conn: sqlite3.Connection, weather_id: int) -> WeatherCondition | None:
    row = conn.execute(
        f"SELECT * FROM {TABLE} WHERE id = ? LIMIT 1", (weather_id,)
    ).fetchone()
    if row is None:
        return None
    return WeatherCondition.from_row(row)


def select_random(conn: sqlite3.Connection) -> WeatherCondition | None:
    row = conn.execute(
        f"SELECT * FROM {TABLE} ORDER BY RANDOM() LIMIT 1"
    ).fetchone()
    if row is None:
        return None
    return WeatherCondition.from_row(row)


class WeatherRepository:
    """Async access to weather conditions.

    Writes run as single transactions and wake live listings on commit.
    Reads return ``None`` for a missing row, never raise for it.
    """

    def __init__(self, db: Database, notifier: ChangeNotifier):
        self._db = db
        self._notifier = notifier
        notifier.attach(db)

    async def insert_all(self, rows: Sequence[WeatherCondition]) -> None:
        """Upsert every row in one transaction. Any failure rolls back the batch."""
        rows = list(rows)
        if not rows:
            return
        await self._db.run_write(lambda conn: upsert_rows(conn, rows))
        logger.info("Upserted %d weather condition(s)", len(rows))

    async def insert_if_empty(self, rows: Sequence[WeatherCondition]) -> int:
        """Insert ``rows`` only if the table is empty. Returns rows inserted."""
        rows = list(rows)

        def work(conn: sqlite3.Connection) -> int:
            if count_rows(conn) > 0:
                return 0
            return upsert_rows(conn, rows)

        inserted = await self._db.run_write(work)
        if inserted:
            logger.info("Inserted %d weather condition(s) into empty table", inserted)
        return inserted

    async def delete_all(self) -> None:
        deleted = await self._db.run_write(delete_rows)
        logger.info("Deleted %d weather condition(s)", deleted)

    async def get_random_weather(self) -> WeatherCondition | None:
        return await self._db.run_read(select_random)

    async def get_weather_by_id(self, weather_id: int) -> WeatherCondition | None:
        logger.debug("Looking up weather condition %d", weather_id)
        return await self._db.run_read(lambda conn: select_by_id(conn, weather_id))

    async def count(self) -> int:
        return await self._db.run_read(count_rows)

    def get_all_weather(self) -> LiveQuery[list[WeatherCondition]]:
        """Live listing ordered by id, re-emitted after every commit on the table."""
        return LiveQuery(
            self._notifier, (TABLE,), lambda: self._db.run_read(select_all)
        )
