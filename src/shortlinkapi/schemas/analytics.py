from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator

from shortlinkapi.core.link_rules import ensure_utc


class AnalyticsEventResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    link_id: int
    timestamp: datetime
    country: str
    city: str
    region: str
    device: str
    os: str
    browser: str
    referrer: str
    referrer_domain: str
    user_agent: Optional[str]
    ip_hash: Optional[str]

    @field_validator("timestamp")
    @classmethod
    def _as_utc(cls, value):
        return ensure_utc(value)


class AnalyticsEventList(BaseModel):
    count: int
    data: list[AnalyticsEventResponse]


class GroupCount(BaseModel):
    name: str
    count: int


class DailyCount(BaseModel):
    date: date
    count: int


class AnalyticsSummary(BaseModel):
    total_clicks: int
    by_country: list[GroupCount]
    by_device: list[GroupCount]
    by_browser: list[GroupCount]
    by_os: list[GroupCount]
    by_referrer_domain: list[GroupCount]
    recent_clicks: list[DailyCount]
    unique_visitors: int


class PopularLink(BaseModel):
    id: int
    title: str
    short_code: str
    short_url: str
    clicks: int
    original_url: str


class DashboardStats(BaseModel):
    total_links: int
    total_clicks: int
    most_popular_link: Optional[PopularLink]
    recent_links_count: int
