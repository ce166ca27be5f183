from sqlalchemy import String, Boolean, DateTime, Index, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime, timezone
from typing import Optional

from shortlinkapi.core.config import settings
from shortlinkapi.db.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Link(Base):
    __tablename__ = "links"

    id: Mapped[int] = mapped_column(primary_key=True)
    short_code: Mapped[str] = mapped_column(String(32), unique=True, index=True)
    # NULL for generated codes; unique constraints allow any number of NULLs
    custom_alias: Mapped[Optional[str]] = mapped_column(String(32), unique=True, nullable=True)
    original_url: Mapped[str] = mapped_column(Text, nullable=False)
    title: Mapped[str] = mapped_column(String(100), default="")
    owner_id: Mapped[str] = mapped_column(String(64), nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    clicks: Mapped[int] = mapped_column(Integer, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        onupdate=_utcnow,
    )

    __table_args__ = (
        Index("ix_links_owner_created", "owner_id", "created_at"),
        Index("ix_links_code_active", "short_code", "is_active"),
        # ids of deleted links are never handed out again; their events keep the old id
        {"sqlite_autoincrement": True},
    )

    @property
    def short_url(self) -> str:
        return f"{settings.base_url.rstrip('/')}/{self.short_code}"


class AnalyticsEvent(Base):
    """One row per successful redirect. Rows are never updated."""

    __tablename__ = "analytics_events"

    id: Mapped[int] = mapped_column(primary_key=True)
    # Plain column, not a ForeignKey: events outlive the link they belong to.
    link_id: Mapped[int] = mapped_column(Integer, index=True)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    country: Mapped[str] = mapped_column(String(100), default="Unknown")
    city: Mapped[str] = mapped_column(String(255), default="Unknown")
    region: Mapped[str] = mapped_column(String(255), default="Unknown")

    device: Mapped[str] = mapped_column(String(16), default="unknown")
    os: Mapped[str] = mapped_column(String(64), default="Unknown")
    browser: Mapped[str] = mapped_column(String(64), default="Unknown")

    referrer: Mapped[str] = mapped_column(Text, default="direct")
    referrer_domain: Mapped[str] = mapped_column(String(255), default="direct")
    user_agent: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    ip_hash: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    __table_args__ = (
        Index("ix_analytics_link_timestamp", "link_id", "timestamp"),
        Index("ix_analytics_link_country", "link_id", "country"),
        Index("ix_analytics_link_device", "link_id", "device"),
        Index("ix_analytics_link_referrer_domain", "link_id", "referrer_domain"),
    )


class ApiKey(Base):
    __tablename__ = "api_keys"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(64), default="default")
    key_hash: Mapped[str] = mapped_column(String(64), unique=True, index=True)
    owner_id: Mapped[str] = mapped_column(String(64), index=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
