from __future__ import annotations
from datetime import datetime, timezone
import logging
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from shortlinkapi.core.errors import LinkExpired, LinkNotFound, StoreFailure
from shortlinkapi.core.link_rules import is_expired
from shortlinkapi.db.models import Link

logger = logging.getLogger(__name__)


def find_resolvable_link(db: Session, short_code: str, now: Optional[datetime] = None) -> Link:
    """
    Looks up an active link and checks expiry.

    Raises LinkNotFound for a missing or inactive code and LinkExpired once
    expires_at has passed. Both render identically to the visitor.
    """
    now = now or datetime.now(timezone.utc)
    stmt = select(Link).where(Link.short_code == short_code, Link.is_active.is_(True))
    link = db.scalars(stmt).first()

    if link is None:
        raise LinkNotFound()
    if is_expired(link.expires_at, now):
        raise LinkExpired()
    return link


def count_click(db: Session, link: Link) -> None:
    """Atomic increment, committed before the redirect goes out."""
    try:
        db.execute(update(Link).where(Link.id == link.id).values(clicks=Link.clicks + 1))
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Could not count click for link %s: %s", link.id, exc)
        raise StoreFailure() from exc


def resolve_link(db: Session, short_code: str, now: Optional[datetime] = None) -> Link:
    link = find_resolvable_link(db, short_code, now=now)
    count_click(db, link)
    return link
