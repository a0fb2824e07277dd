"""
Runtime configuration.

Values come from the environment (prefix ``CREDIT_``) or a ``.env`` file:
    from confidential_credit.config import get_settings
    backend = get_settings().BACKEND
"""
from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_prefix="CREDIT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === Environment ===
    ENV: str = "development"
    LOG_LEVEL: str = "INFO"

    # === Encryption backend ===
    # "simulated" is reversible and only meant for tests and demos.
    BACKEND: Literal["simulated", "paillier"] = "simulated"
    SIMULATION_SEED: str = "confidential-credit-dev"
    PAILLIER_KEY_SIZE: int = 1024

    # === Identities ===
    OWNER_IDENTITY: str = "deployer"
    ORACLE_IDENTITY: str = "credit-oracle"
    SEED_DEMO_POOLS: bool = True

    # === API ===
    API_HOST: str = "127.0.0.1"
    API_PORT: int = 8000


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
