"""Weather condition row entity."""

import sqlite3
from dataclasses import astuple, dataclass

TABLE = "weather_conditions"

COLUMNS: tuple[str, ...] = ("id", "condition", "temperature", "emoji", "mood")


@dataclass(frozen=True)
class WeatherCondition:
    id: int
    condition: str
    temperature: int
    emoji: str
    mood: str

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "WeatherCondition":
        return cls(
            id=row["id"],
            condition=row["condition"],
            temperature=row["temperature"],
            emoji=row["emoji"],
            mood=row["mood"],
        )

    def to_params(self) -> tuple:
        """Bind parameters in COLUMNS order."""
        return astuple(self)
