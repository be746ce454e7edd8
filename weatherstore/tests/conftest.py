"""Shared test fixtures."""

from collections.abc import Iterator
from pathlib import Path

import pytest
import yaml

from weatherstore.storage.database import Database
from weatherstore.storage.notifier import ChangeNotifier
from weatherstore.storage.weather_repo import WeatherRepository


@pytest.fixture
def db(tmp_path: Path) -> Iterator[Database]:
    """A migrated file database in a temp dir."""
    database = Database(tmp_path / "test.db", max_workers=4)
    yield database
    database.close()


@pytest.fixture
def notifier(db: Database) -> ChangeNotifier:
    n = ChangeNotifier()
    n.attach(db)
    return n


@pytest.fixture
def repo(db: Database, notifier: ChangeNotifier) -> WeatherRepository:
    return WeatherRepository(db, notifier)


@pytest.fixture
def config_yaml_path(tmp_path: Path) -> Path:
    """Write a minimal valid config YAML and return its path."""
    data = {
        "database": {"path": str(tmp_path / "configured.db"), "max_workers": 2},
        "seed_defaults": False,
    }
    path = tmp_path / "test_config.yaml"
    with open(path, "w") as f:
        yaml.dump(data, f)
    return path
