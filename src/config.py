"""Application configuration loaded from environment variables and .env file."""

from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings.

    Values are loaded from environment variables first,
    then from a .env file in the project root as fallback.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
    )

    DATABASE_URL: str = "sqlite:///./lootbox.db"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Tier metadata
    LOOTBOX_NAME: str = "Loot Box"
    LOOTBOX_SYMBOL: str = "LOOTBOX"
    LOOTBOX_BASE_URI: str = "https://lootbox.example/api/box/"

    # Identities
    OWNER_ID: str = "owner"
    STOCK_HOLDER_ID: str = "treasury"
    ENGINE_OPERATOR_ID: str = "lootbox_engine"

    # Randomness
    INITIAL_SEED: int = 0

    # Generation templates seed file
    TEMPLATES_PATH: Optional[str] = "src/data/seed_templates.json"


settings = Settings()
