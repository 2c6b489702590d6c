from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./restworld.db"
    DATABASE_NAME: str = "restworld"

    # Migrations
    MIGRATIONS_LOCATION: str = "migrations"
    CHECK_MIGRATIONS: bool = True

    # Listing
    MAX_PAGE_SIZE: int = 100  # Hard ceiling for $top, larger requests are clamped

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False  # True for production (structured JSON), False for dev (colored)
    LOG_SQL: bool = False   # Enable SQLAlchemy query logging

    class Config:
        env_file = ".env"
        env_prefix = "RESTWORLD_"
        extra = "ignore"


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
