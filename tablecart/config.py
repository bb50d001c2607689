"""Runtime configuration read from the environment (and a local .env file)."""
import os
from typing import Literal

from dotenv import load_dotenv
from pydantic import BaseModel, Field


class Settings(BaseModel):
    """Cart storage and logging settings."""
    log_level: str = "INFO"
    environment: str = "development"
    storage_backend: Literal["memory", "redis"] = "memory"
    redis_url: str = ""
    redis_token: str = ""
    cart_ttl_seconds: int = Field(default=86400, gt=0)

    @classmethod
    def from_env(cls) -> "Settings":
        """
        Build settings from environment variables.

        Variables:
            LOG_LEVEL, TABLECART_ENV, CART_STORAGE_BACKEND (memory|redis),
            UPSTASH_REDIS_REST_URL, UPSTASH_REDIS_REST_TOKEN, CART_TTL_SECONDS
        """
        load_dotenv()
        return cls(
            log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper(),
            environment=os.getenv("TABLECART_ENV", "development").strip().lower(),
            storage_backend=os.getenv("CART_STORAGE_BACKEND", "memory").strip().lower(),
            redis_url=os.getenv("UPSTASH_REDIS_REST_URL", "").strip(),
            redis_token=os.getenv("UPSTASH_REDIS_REST_TOKEN", "").strip(),
            cart_ttl_seconds=os.getenv("CART_TTL_SECONDS", "86400").strip(),
        )
