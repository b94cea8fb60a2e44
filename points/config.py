from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="POINT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # App
    env: str = Field(default="development")
    debug: bool = Field(default=False)

    # Business rules
    max_balance: int = Field(default=5_000_000, gt=0, description="Upper bound of any user's balance")
    min_use_amount: int = Field(default=1_000, gt=0, description="Smallest amount a single use may spend")

    # Reads
    linearizable_reads: bool = Field(
        default=False,
        description="Serve balance and history lookups through the user's lane",
    )

    # In-memory store
    store_latency: float = Field(default=0.0, ge=0, description="Max simulated delay per store call, in seconds")


@lru_cache
def get_settings() -> Settings:
    return Settings()
