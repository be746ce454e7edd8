"""Wire the database, change notifier and repository from config."""

import logging
from dataclasses import dataclass

from weatherstore.config.schema import StoreConfig
from weatherstore.storage.database import Database
from weatherstore.storage.notifier import ChangeNotifier
from weatherstore.storage.seed import ensure_seeded
from weatherstore.storage.weather_repo import WeatherRepository

logger = logging.getLogger(__name__)


@dataclass
class WeatherStore:
    db: Database
    notifier: ChangeNotifier
    repository: WeatherRepository

    def close(self) -> None:
        self.db.close()
        self.notifier.detach(self.db)

    async def __aenter__(self) -> "WeatherStore":
        return self

    async def __aexit__(self, *args: object) -> None:
        self.close()


async def open_store(config: StoreConfig) -> WeatherStore:
    """Open the database, run migrations and optionally seed the catalog."""
    db = Database(
        config.database.path,
        max_workers=config.database.max_workers,
        busy_timeout_ms=config.database.busy_timeout_ms,
    )
    notifier = ChangeNotifier()
    store = WeatherStore(
        db=db, notifier=notifier, repository=WeatherRepository(db, notifier)
    )

    if config.seed_defaults:
        try:
            await ensure_seeded(store.repository)
        except BaseException:
            store.close()
            raise

    logger.info("Weather store ready at %s", config.database.path)
    return store
