from typing import Optional

import redis
from pydantic import ValidationError

from app.core.config import CacheSettings
from app.schemas.product_schema import ProductOut
from app.utils.logger import get_logger

logger = get_logger("cache")


def product_key(product_id: int) -> str:
    """Cache key of a product: its identifier as decimal text."""
    return str(product_id)


class ProductCache:
    """Redis-backed store of product snapshots.

    Entries are written without expiry unless ``ttl`` is set, so the
    compression worker's ``invalidate_product`` is what keeps them fresh.
    Every call is bounded by the client's socket timeout and degrades to a
    logged failure instead of raising.
    """

    def __init__(self, client: redis.Redis, ttl: Optional[int] = None):
        self._client = client
        self._ttl = ttl

    @classmethod
    def from_settings(cls, cache_settings: CacheSettings) -> "ProductCache":
        client = redis.from_url(
            cache_settings.redis_url,
            socket_timeout=cache_settings.redis_socket_timeout,
            socket_connect_timeout=cache_settings.redis_socket_connect_timeout,
        )
        logger.info(f"Redis cache initialized with URL: {cache_settings.redis_url}")
        return cls(client, ttl=cache_settings.ttl_seconds)

    def ping(self) -> None:
        """Raise ``redis.RedisError`` when the server is unreachable."""
        self._client.ping()

    def close(self) -> None:
        self._client.close()

    # ------------------------------------------------------------------
    def get_product(self, product_id: int) -> Optional[ProductOut]:
        key = product_key(product_id)
        try:
            val = self._client.get(key)
        except (redis.RedisError, UnicodeDecodeError) as e:
            logger.error(f"Failed to fetch product from cache: {e}")
            return None

        if val is None:
            logger.info(f"Product {key} not found in cache")
            return None

        try:
            return ProductOut.model_validate_json(val)
        except (ValidationError, UnicodeDecodeError) as e:
            logger.error(f"Failed to decode cached product {key}: {e}")
            return None

    def set_product(self, product: ProductOut) -> bool:
        key = product_key(product.product_id)
        try:
            self._client.set(key, product.model_dump_json(), ex=self._ttl)
        except redis.RedisError as e:
            logger.error(f"Failed to cache product {key}: {e}")
            return False
        logger.debug(f"Set cache for key: {key}, TTL: {self._ttl or 'none'}")
        return True

    def invalidate_product(self, product_id: int) -> bool:
        key = product_key(product_id)
        try:
            self._client.delete(key)
        except redis.RedisError as e:
            logger.error(f"Failed to delete product from cache with product ID {key}: {e}")
            return False
        logger.debug(f"Invalidated cache key: {key}")
        return True
