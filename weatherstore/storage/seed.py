"""Populate an empty catalog with the default weather conditions."""

import logging
from collections.abc import Sequence

from weatherstore.config.defaults import DEFAULT_WEATHER_CONDITIONS
from weatherstore.models.weather import WeatherCondition
from weatherstore.storage.weather_repo import WeatherRepository

logger = logging.getLogger(__name__)


async def ensure_seeded(
    repo: WeatherRepository,
    rows: Sequence[WeatherCondition] = DEFAULT_WEATHER_CONDITIONS,
) -> int:
    """Insert ``rows`` if the catalog is empty. Returns the number inserted."""
    inserted = await repo.insert_if_empty(rows)
    if inserted:
        logger.info("Seeded %d default weather conditions", inserted)
    else:
        logger.debug("Catalog already populated, skipping seed")
    return inserted
