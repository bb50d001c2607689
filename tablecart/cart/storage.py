"""Cart blob storage backends (in-memory and Upstash Redis)."""
from typing import Dict, Optional, Protocol

from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from tablecart.config import Settings
from tablecart.db import create_redis
from tablecart.errors import CartStorageConfigError, CartStorageError, ERROR_STORAGE_UNAVAILABLE
from tablecart.logging import get_logger, sanitize_string_for_logging

logger = get_logger(__name__)


class CartStorage(Protocol):
    """Scoped get/set/remove of serialized cart blobs, keyed by session key."""

    async def get(self, key: str) -> Optional[str]: ...

    async def set(self, key: str, blob: str) -> None: ...

    async def remove(self, key: str) -> None: ...


class MemoryCartStorage:
    """Process-local storage for tests, local runs and offline kiosks."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    async def set(self, key: str, blob: str) -> None:
        self._data[key] = blob

    async def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list:
        return sorted(self._data)


_redis_retry = retry(
    retry=retry_if_exception_type(CartStorageError),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=0.2, min=0.2, max=2),
    reraise=True,
)


class RedisCartStorage:
    """
    Upstash Redis storage.

    - Blobs are written with a TTL so abandoned table carts expire
    - Transient REST failures are retried before surfacing as CartStorageError
    - Missing credentials raise CartStorageConfigError on first use, without retries
    """

    def __init__(self, settings: Settings, redis=None):
        self._settings = settings
        self._redis = redis  # Lazy initialization

    @property
    def redis(self):
        """Get Redis client (lazy initialization)."""
        if self._redis is None:
            try:
                self._redis = create_redis(self._settings)
            except ValueError as e:
                raise CartStorageConfigError(f"{ERROR_STORAGE_UNAVAILABLE}: {e}") from e
        return self._redis

    @_redis_retry
    async def get(self, key: str) -> Optional[str]:
        try:
            return await self.redis.get(key)
        except (CartStorageError, CartStorageConfigError):
            raise
        except Exception as e:
            logger.warning(f"Redis GET failed for {sanitize_string_for_logging(key)}: {e}")
            raise CartStorageError(f"{ERROR_STORAGE_UNAVAILABLE}: {e}") from e

    @_redis_retry
    async def set(self, key: str, blob: str) -> None:
        try:
            await self.redis.set(key, blob, ex=self._settings.cart_ttl_seconds)
        except (CartStorageError, CartStorageConfigError):
            raise
        except Exception as e:
            logger.warning(f"Redis SET failed for {sanitize_string_for_logging(key)}: {e}")
            raise CartStorageError(f"{ERROR_STORAGE_UNAVAILABLE}: {e}") from e

    @_redis_retry
    async def remove(self, key: str) -> None:
        try:
            await self.redis.delete(key)
        except (CartStorageError, CartStorageConfigError):
            raise
        except Exception as e:
            logger.warning(f"Redis DEL failed for {sanitize_string_for_logging(key)}: {e}")
            raise CartStorageError(f"{ERROR_STORAGE_UNAVAILABLE}: {e}") from e


def build_storage(settings: Settings) -> CartStorage:
    """Pick the storage backend named by CART_STORAGE_BACKEND."""
    if settings.storage_backend == "redis":
        return RedisCartStorage(settings)
    return MemoryCartStorage()
