from __future__ import annotations
from dataclasses import dataclass
import logging
from typing import Callable, Optional

from fastapi import Request
from sqlalchemy.orm import Session

from shortlinkapi.core.config import settings
from shortlinkapi.db.models import AnalyticsEvent
from shortlinkapi.services.classifier import DIRECT, extract_referrer_domain, hash_ip, parse_device
from shortlinkapi.services.geo import GeoLocator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClickContext:
    """What the recorder needs from a request, copied before the response goes out."""

    ip: str
    user_agent: str
    referrer: str


def get_client_ip(request: Request) -> str:
    # First hop of X-Forwarded-For is the original client when behind a proxy.
    forwarded = request.headers.get("x-forwarded-for", "")
    first_hop = forwarded.split(",")[0].strip()
    if first_hop:
        return first_hop
    return request.client.host if request.client else "unknown"


def client_context(request: Request) -> ClickContext:
    return ClickContext(
        ip=get_client_ip(request),
        user_agent=request.headers.get("user-agent", ""),
        referrer=request.headers.get("referer") or DIRECT,
    )


class ClickRecorder:
    """
    Turns one resolved redirect into one AnalyticsEvent.

    record() is scheduled as a background task and runs after the redirect
    has been sent. Errors are logged and dropped; nothing propagates.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        locator: Optional[GeoLocator] = None,
        ip_salt: Optional[str] = None,
    ):
        self.session_factory = session_factory
        self.locator = locator or GeoLocator()
        self.ip_salt = settings.ip_hash_salt if ip_salt is None else ip_salt

    def record(self, link_id: int, context: ClickContext) -> None:
        try:
            self._record(link_id, context)
        except Exception:
            logger.exception("Failed to record click for link %s", link_id)

    def build_event(self, link_id: int, context: ClickContext) -> AnalyticsEvent:
        device = parse_device(context.user_agent)
        location = self.locator.lookup(context.ip)
        return AnalyticsEvent(
            link_id=link_id,
            country=location.country,
            city=location.city,
            region=location.region,
            device=device.device,
            os=device.os,
            browser=device.browser,
            referrer=context.referrer or DIRECT,
            referrer_domain=extract_referrer_domain(context.referrer),
            user_agent=context.user_agent or None,
            ip_hash=hash_ip(context.ip, self.ip_salt) if context.ip != "unknown" else None,
        )

    def _record(self, link_id: int, context: ClickContext) -> None:
        event = self.build_event(link_id, context)
        with self.session_factory() as db:
            db.add(event)
            db.commit()
