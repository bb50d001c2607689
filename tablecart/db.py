"""
Redis client factory for cart persistence.

Carts live in Upstash Redis under the session keys produced by
tablecart.cart.session (cart_table_*, cart_customer_*, cart_ticket_*).
"""
from upstash_redis.asyncio import Redis as AsyncRedis

from tablecart.config import Settings


def create_redis(settings: Settings) -> AsyncRedis:
    """
    Create an async Upstash Redis client.

    Uses the standard Upstash env var names:
    - UPSTASH_REDIS_REST_URL
    - UPSTASH_REDIS_REST_TOKEN
    """
    if not settings.redis_url or not settings.redis_token:
        raise ValueError("UPSTASH_REDIS_REST_URL and UPSTASH_REDIS_REST_TOKEN must be set")
    return AsyncRedis(url=settings.redis_url, token=settings.redis_token)
