"""
Click analytics for a single link.

Read-only and stateless: the same clicks and the same interval always give
the same answer.
"""

from collections import Counter
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from shortlink_app.config import settings
from shortlink_app.errors import NotFoundError
from shortlink_app.schemas.stats import BrowserDeviceStat, ClickBucket, LinkStats, ReferrerStat
from shortlink_app.services.intervals import Interval, as_utc
from shortlink_app.services.user_agent import classify
from shortlink_app.storage.clicks import ClickRecorder
from shortlink_app.storage.links import LinkStore


def bucket_clicks(timestamps: Iterable[datetime], interval: Interval) -> List[ClickBucket]:
    """One bucket per non-empty interval, ascending. Empty buckets are omitted."""
    counts = Counter(interval.truncate(moment) for moment in timestamps)
    return [
        ClickBucket(timestamp=bucket_start, clicks=clicks)
        for bucket_start, clicks in sorted(counts.items())
    ]


def browser_device_breakdown(user_agent_counts: Dict[Optional[str], int]) -> List[BrowserDeviceStat]:
    """Sum clicks per (browser, device), largest first."""
    totals = Counter()
    for user_agent, clicks in user_agent_counts.items():
        totals[classify(user_agent)] += clicks

    rows = sorted(totals.items(), key=lambda item: (-item[1], item[0]))
    return [
        BrowserDeviceStat(browser=browser, device=device, clicks=clicks)
        for (browser, device), clicks in rows
    ]


class AnalyticsService:
    """Builds the stats payload of the dashboard from the click history."""

    def __init__(self, db: Session, top_referrers_limit: Optional[int] = None):
        self.links = LinkStore(db)
        self.clicks = ClickRecorder(db)
        self.top_referrers_limit = top_referrers_limit or settings.top_referrers_limit

    async def get_stats(self, slug: str, interval: str) -> LinkStats:
        """
        Raises:
            InvalidInputError: ``interval`` is not one of the enumerated values
            NotFoundError: no link uses ``slug``
        """
        bucket = Interval.parse(interval)

        # Soft-deleted links keep their history, so stats still resolve
        link = self.links.find_by_slug(slug, include_deleted=True)
        if not link:
            raise NotFoundError()

        return LinkStats(
            slug=link.slug,
            url=link.original_url,
            created_at=as_utc(link.created_at),
            total_clicks=self.clicks.count_for_link(link.id),
            clicks_over_time=bucket_clicks(self.clicks.timestamps_for_link(link.id), bucket),
            browser_device_stats=browser_device_breakdown(self.clicks.user_agent_counts(link.id)),
            top_referrers=[
                ReferrerStat(referrer=referrer, clicks=clicks)
                for referrer, clicks in self.clicks.top_referrers(link.id, self.top_referrers_limit)
            ],
            interval=bucket.value,
        )
