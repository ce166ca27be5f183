from __future__ import annotations
from dataclasses import dataclass
import time

from redis import Redis


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    remaining: int
    reset_seconds: int


def check_rate_limit(
    r: Redis,
    key: str,
    limit: int,
    window_seconds: int,
) -> RateLimitResult:
    """
    Fixed window counter, used for redirects (keyed per client IP).

    INCR and TTL go out in one round trip. A key without an expiry (first hit
    of the window, or one that lost its TTL) gets the window set on it.
    """
    pipe = r.pipeline()
    pipe.incr(key)
    pipe.ttl(key)
    count, ttl = pipe.execute()
    count = int(count)

    if not isinstance(ttl, int) or ttl < 0:
        r.expire(key, window_seconds)
        ttl = window_seconds

    return RateLimitResult(
        allowed=count <= limit,
        remaining=max(0, limit - count),
        reset_seconds=ttl or window_seconds,
    )


# KEYS[1] bucket; ARGV: capacity, refill per second, now, cost, ttl
TOKEN_BUCKET_LUA = r"""
local capacity = tonumber(ARGV[1])
local refill_rate = tonumber(ARGV[2])
local now = tonumber(ARGV[3])
local cost = tonumber(ARGV[4])
local ttl = tonumber(ARGV[5])

local state = redis.call("HMGET", KEYS[1], "tokens", "ts")
local tokens = tonumber(state[1]) or capacity
local ts = tonumber(state[2]) or now

tokens = math.min(capacity, tokens + math.max(0, now - ts) * refill_rate)

local allowed = 0
local retry_after = 0
if tokens >= cost then
  allowed = 1
  tokens = tokens - cost
else
  retry_after = math.ceil((cost - tokens) / refill_rate)
end

redis.call("HSET", KEYS[1], "tokens", tokens, "ts", now)
redis.call("EXPIRE", KEYS[1], ttl)

return {allowed, tostring(tokens), retry_after}
"""


@dataclass(frozen=True)
class TokenBucketResult:
    allowed: bool
    remaining: int
    retry_after: int


def check_token_bucket(
    r: Redis,
    key: str,
    capacity: int,
    window_seconds: int,
    cost: int = 1,
    ttl_seconds: int | None = None,
) -> TokenBucketResult:
    """
    Token bucket, used for link creation (keyed per API key).

    Refills linearly at capacity / window_seconds tokens per second; the
    whole read-refill-spend step runs in one Lua script so it is atomic.
    """
    refill_rate = capacity / float(window_seconds)
    ttl = ttl_seconds if ttl_seconds is not None else window_seconds * 2

    allowed, tokens, retry_after = r.eval(
        TOKEN_BUCKET_LUA, 1, key, capacity, refill_rate, time.time(), cost, ttl
    )

    # Lua numbers come back truncated to int; tokens is sent as a string
    return TokenBucketResult(
        allowed=bool(int(allowed)),
        remaining=max(0, int(float(tokens))),
        retry_after=int(retry_after),
    )
