"""Pydantic v2 configuration schema with strict validation."""

from pydantic import BaseModel, Field


class DatabaseConfig(BaseModel):
    model_config = {"extra": "forbid"}

    path: str = "data/weather.db"
    max_workers: int = Field(default=4, ge=1)
    busy_timeout_ms: int = Field(default=5000, ge=0)


class StoreConfig(BaseModel):
    model_config = {"extra": "forbid"}

    database: DatabaseConfig = DatabaseConfig()
    seed_defaults: bool = True
