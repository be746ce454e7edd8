"""Initial schema: the weather_conditions catalog."""

import sqlite3

DDL = [
    """
    CREATE TABLE IF NOT EXISTS weather_conditions (
        id INTEGER PRIMARY KEY,
        condition TEXT NOT NULL,
        temperature INTEGER NOT NULL,
        emoji TEXT NOT NULL,
        mood TEXT NOT NULL
    )
    """,
]


def up(conn: sqlite3.Connection) -> None:
    for stmt in DDL:
        conn.execute(stmt)
