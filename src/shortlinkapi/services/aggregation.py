from __future__ import annotations
from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Iterable, Optional, Sequence

from shortlinkapi.core.link_rules import ensure_utc
from shortlinkapi.db.models import AnalyticsEvent, Link
from shortlinkapi.schemas.analytics import (
    AnalyticsSummary,
    DailyCount,
    DashboardStats,
    GroupCount,
    PopularLink,
)

UNKNOWN = "Unknown"
RECENT_CLICK_DAYS = 30
RECENT_LINK_DAYS = 7


def group_and_count(items: Iterable[Any], key: Callable[[Any], Optional[str]]) -> list[GroupCount]:
    """
    Counts items per key value, largest group first.

    Missing or empty values are counted as "Unknown". Equal counts are
    ordered by name so the output is stable.
    """
    counts = Counter(key(item) or UNKNOWN for item in items)
    ordered = sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))
    return [GroupCount(name=name, count=count) for name, count in ordered]


def recent_clicks(
    events: Iterable[AnalyticsEvent],
    days: int = RECENT_CLICK_DAYS,
    now: Optional[datetime] = None,
) -> list[DailyCount]:
    """Clicks per UTC calendar day over the last `days` days. Empty days are left out."""
    now = ensure_utc(now) if now else datetime.now(timezone.utc)
    cutoff = now - timedelta(days=days)

    per_day: Counter = Counter()
    for event in events:
        ts = ensure_utc(event.timestamp).astimezone(timezone.utc)
        if ts >= cutoff:
            per_day[ts.date()] += 1

    return [DailyCount(date=day, count=per_day[day]) for day in sorted(per_day)]


def count_unique(items: Iterable[Any], key: Callable[[Any], Optional[str]]) -> int:
    return len({value for value in map(key, items) if value})


def summarize(events: Sequence[AnalyticsEvent], now: Optional[datetime] = None) -> AnalyticsSummary:
    return AnalyticsSummary(
        total_clicks=len(events),
        by_country=group_and_count(events, lambda e: e.country),
        by_device=group_and_count(events, lambda e: e.device),
        by_browser=group_and_count(events, lambda e: e.browser),
        by_os=group_and_count(events, lambda e: e.os),
        by_referrer_domain=group_and_count(events, lambda e: e.referrer_domain),
        recent_clicks=recent_clicks(events, now=now),
        unique_visitors=count_unique(events, lambda e: e.ip_hash),
    )


def most_popular(links: Sequence[Link]) -> Optional[Link]:
    # max() keeps the first of equal elements, so the earliest link wins ties
    if not links:
        return None
    return max(links, key=lambda link: link.clicks)


def dashboard_stats(links: Sequence[Link], now: Optional[datetime] = None) -> DashboardStats:
    """Totals over one owner's links; `links` is expected in creation order."""
    now = ensure_utc(now) if now else datetime.now(timezone.utc)
    week_ago = now - timedelta(days=RECENT_LINK_DAYS)

    top = most_popular(links)
    return DashboardStats(
        total_links=len(links),
        total_clicks=sum(link.clicks for link in links),
        most_popular_link=PopularLink(
            id=top.id,
            title=top.title or "Untitled Link",
            short_code=top.short_code,
            short_url=top.short_url,
            clicks=top.clicks,
            original_url=top.original_url,
        ) if top is not None else None,
        recent_links_count=sum(1 for link in links if ensure_utc(link.created_at) >= week_ago),
    )
