from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.orm import Session

from shortlinkapi.api.deps import get_current_owner
from shortlinkapi.db.models import AnalyticsEvent, Link
from shortlinkapi.db.session import get_db
from shortlinkapi.schemas.analytics import (
    AnalyticsEventList,
    AnalyticsEventResponse,
    AnalyticsSummary,
    DashboardStats,
)
from shortlinkapi.services import aggregation
from shortlinkapi.services.links import get_owned_link

router = APIRouter(prefix="/api/analytics", tags=["analytics"])

RAW_EVENT_LIMIT = 1000


# Declared before /{link_id} so the path is not read as a link id.
@router.get("/dashboard-stats", response_model=DashboardStats)
def dashboard_stats(owner_id: str = Depends(get_current_owner), db: Session = Depends(get_db)):
    links = list(db.scalars(select(Link).where(Link.owner_id == owner_id).order_by(Link.id)))
    return aggregation.dashboard_stats(links)


@router.get("/{link_id}", response_model=AnalyticsEventList)
def link_events(link_id: int, owner_id: str = Depends(get_current_owner), db: Session = Depends(get_db)):
    link = get_owned_link(db, link_id, owner_id)
    stmt = (
        select(AnalyticsEvent)
        .where(AnalyticsEvent.link_id == link.id)
        .order_by(AnalyticsEvent.timestamp.desc(), AnalyticsEvent.id.desc())
        .limit(RAW_EVENT_LIMIT)
    )
    events = list(db.scalars(stmt))
    return AnalyticsEventList(
        count=len(events),
        data=[AnalyticsEventResponse.model_validate(event) for event in events],
    )


@router.get("/{link_id}/summary", response_model=AnalyticsSummary)
def link_summary(link_id: int, owner_id: str = Depends(get_current_owner), db: Session = Depends(get_db)):
    link = get_owned_link(db, link_id, owner_id)
    events = list(db.scalars(select(AnalyticsEvent).where(AnalyticsEvent.link_id == link.id)))
    return aggregation.summarize(events)
