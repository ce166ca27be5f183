from __future__ import annotations
from datetime import datetime, timedelta, timezone
import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from shortlinkapi.core.errors import AliasTaken, LinkNotFound, ValidationFailed
from shortlinkapi.core.link_rules import ensure_utc, is_expired, normalize_original_url, validate_custom_alias
from shortlinkapi.db.models import Link
from shortlinkapi.schemas.links import CreateLinkRequest, UpdateLinkRequest
from shortlinkapi.services.codes import code_exists, generate_short_code

logger = logging.getLogger(__name__)


def create_link(
    db: Session,
    owner_id: str,
    req: CreateLinkRequest,
    now: Optional[datetime] = None,
) -> Link:
    now = now or datetime.now(timezone.utc)
    original_url = normalize_original_url(req.original_url)

    expires_at = ensure_utc(req.expires_at)
    if req.expires_in_seconds is not None:
        expires_at = now + timedelta(seconds=req.expires_in_seconds)
    elif expires_at is not None and expires_at <= now:
        raise ValidationFailed("Expiration date must be in the future")

    if req.custom_alias:
        short_code = validate_custom_alias(req.custom_alias)
        if code_exists(db, short_code):
            raise AliasTaken()
    else:
        short_code = generate_short_code(db)

    link = Link(
        short_code=short_code,
        custom_alias=req.custom_alias or None,
        original_url=original_url,
        title=(req.title or "").strip(),
        owner_id=owner_id,
        expires_at=expires_at,
        created_at=now,
        updated_at=now,
    )
    db.add(link)
    try:
        db.commit()
    except IntegrityError:
        # lost a race for the same code
        db.rollback()
        raise AliasTaken()
    db.refresh(link)

    logger.info("Created link %s (%s) for owner %s", link.id, link.short_code, owner_id)
    return link


def list_links(db: Session, owner_id: str) -> list[Link]:
    stmt = select(Link).where(Link.owner_id == owner_id).order_by(Link.created_at.desc(), Link.id.desc())
    return list(db.scalars(stmt))


def get_owned_link(db: Session, link_id: int, owner_id: str) -> Link:
    """Missing and not-yours are the same error."""
    link = db.get(Link, link_id)
    if link is None or link.owner_id != owner_id:
        raise LinkNotFound()
    return link


def update_link(
    db: Session,
    link: Link,
    req: UpdateLinkRequest,
    now: Optional[datetime] = None,
) -> Link:
    now = now or datetime.now(timezone.utc)
    fields = req.model_fields_set

    if "expires_at" in fields:
        # An expired link stays expired.
        if is_expired(link.expires_at, now):
            raise ValidationFailed("Link has expired; its expiry cannot be changed")
        link.expires_at = ensure_utc(req.expires_at)
    if "title" in fields:
        link.title = req.title.strip()
    if "is_active" in fields:
        link.is_active = req.is_active

    db.commit()
    db.refresh(link)
    return link


def delete_link(db: Session, link: Link) -> None:
    # Analytics events are kept; they reference the link id only.
    link_id = link.id
    db.delete(link)
    db.commit()
    logger.info("Deleted link %s", link_id)
