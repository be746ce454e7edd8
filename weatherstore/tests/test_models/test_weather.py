"""Tests for the weather condition row mapping."""

import sqlite3

import pytest

from weatherstore.models.weather import COLUMNS, WeatherCondition


class TestWeatherCondition:
    def test_from_row_maps_by_column_name(self):
        conn = sqlite3.connect(":memory:")
        conn.row_factory = sqlite3.Row
        # Column order differs from the dataclass on purpose.
        row = conn.execute(
            "SELECT 'cozy' AS mood, 2 AS id, '🌧️' AS emoji, 15 AS temperature, 'Rainy' AS condition"
        ).fetchone()
        assert WeatherCondition.from_row(row) == WeatherCondition(2, "Rainy", 15, "🌧️", "cozy")
        conn.close()

    def test_to_params_follows_columns(self):
        w = WeatherCondition(4, "Snowy", -2, "❄️", "serene")
        params = w.to_params()
        assert len(params) == len(COLUMNS)
        assert dict(zip(COLUMNS, params)) == {
            "id": 4,
            "condition": "Snowy",
            "temperature": -2,
            "emoji": "❄️",
            "mood": "serene",
        }

    def test_frozen(self):
        w = WeatherCondition(1, "Sunny", 25, "☀️", "energetic")
        with pytest.raises(AttributeError):
            w.mood = "sleepy"  # type: ignore[misc]
