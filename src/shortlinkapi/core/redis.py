import redis

from shortlinkapi.core.config import settings


def get_redis_client() -> redis.Redis:
    """
    Creates a Redis client from settings.redis_url (REDIS_URL).
    decode_responses=True returns str instead of bytes.
    """
    return redis.Redis.from_url(settings.redis_url, decode_responses=True)
