from __future__ import annotations

import hashlib
import os

from fastapi import Depends, Header, HTTPException, Request
from redis import Redis
from sqlalchemy.orm import Session

from shortlinkapi.core.redis import get_redis_client
from shortlinkapi.db.models import ApiKey
from shortlinkapi.db.session import SessionLocal, get_db
from shortlinkapi.services.geo import GeoLocator
from shortlinkapi.services.rate_limiter import check_rate_limit, check_token_bucket
from shortlinkapi.services.recorder import ClickRecorder, get_client_ip


def redirect_rate_limiter(
    request: Request,
    r: Redis = Depends(get_redis_client),
) -> None:
    """Per-IP fixed window on GET /{short_code}."""
    limit = int(os.getenv("REDIRECT_LIMIT", "60"))
    window = int(os.getenv("REDIRECT_WINDOW", "60"))

    ip = get_client_ip(request)
    result = check_rate_limit(r, key=f"rl:redirect:{ip}", limit=limit, window_seconds=window)

    if not result.allowed:
        raise HTTPException(
            status_code=429,
            detail=f"Rate limit exceeded. Try again in {result.reset_seconds}s.",
            headers={"Retry-After": str(result.reset_seconds)},
        )


def hash_api_key(raw_key: str) -> str:
    # SHA-256 hex digest (64 chars)
    return hashlib.sha256(raw_key.encode("utf-8")).hexdigest()


def get_current_owner(
    db: Session = Depends(get_db),
    x_api_key: str | None = Header(default=None, alias="X-API-Key"),
) -> str:
    """Resolves X-API-Key to the owner id that links are scoped to."""
    if not x_api_key:
        raise HTTPException(status_code=401, detail="Missing X-API-Key")

    api_key = db.query(ApiKey).filter(ApiKey.key_hash == hash_api_key(x_api_key)).first()
    if api_key is None:
        # Do not reveal whether a key exists; same error for missing/invalid
        raise HTTPException(status_code=401, detail="Invalid API key")

    return api_key.owner_id


def create_rate_limiter(
    request: Request,
    owner_id: str = Depends(get_current_owner),
    r: Redis = Depends(get_redis_client),
) -> None:
    """
    Per-owner token bucket limiter for POST /api/links.
    Runtime env read so tests and deployments can change limits without reload.
    """
    create_limit = int(os.getenv("CREATE_LIMIT", "60"))
    create_window = int(os.getenv("CREATE_WINDOW", "60"))

    result = check_token_bucket(
        r,
        key=f"rate:create:{owner_id}",
        capacity=create_limit,
        window_seconds=create_window,
        cost=1,
        ttl_seconds=create_window * 2,
    )

    if not result.allowed:
        raise HTTPException(
            status_code=429,
            detail=f"Too many create requests. Try again in {result.retry_after} seconds.",
            headers={
                "Retry-After": str(result.retry_after),
                "X-RateLimit-Limit": str(create_limit),
                "X-RateLimit-Remaining": str(result.remaining),
            },
        )


_geo_locator = GeoLocator()


def get_click_recorder() -> ClickRecorder:
    return ClickRecorder(session_factory=SessionLocal, locator=_geo_locator)
