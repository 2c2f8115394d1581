"""
Click recording and the aggregate queries analytics are built from.

Writing and reading live together here the same way a hit storage backend
owns both its inserts and its GROUP BY queries.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from shortlink_app.models.click import Click


@dataclass(frozen=True)
class ClickContext:
    """Tracking data taken from the inbound redirect request."""
    user_agent: Optional[str] = None
    referrer: Optional[str] = None
    ip: Optional[str] = None


class ClickRecorder:
    """Append-only click history."""

    def __init__(self, db: Session):
        self.db = db

    def add(
        self,
        link_id: int,
        context: ClickContext,
        timestamp: Optional[datetime] = None
    ) -> Click:
        """Insert one click and flush. ``timestamp`` defaults to now (UTC)."""
        click = Click(
            link_id=link_id,
            user_agent=context.user_agent,
            referrer=context.referrer,
            ip=context.ip,
        )
        if timestamp is not None:
            click.timestamp = timestamp
        self.db.add(click)
        self.db.flush()
        return click

    def count_for_link(self, link_id: int) -> int:
        return self.db.query(func.count(Click.id)).filter(Click.link_id == link_id).scalar()

    def timestamps_for_link(self, link_id: int) -> List[datetime]:
        # Loads every click of the link. Buckets are cut in Python by
        # Interval.truncate so no dialect-specific date SQL is needed.
        rows = (
            self.db.query(Click.timestamp)
            .filter(Click.link_id == link_id)
            .order_by(Click.timestamp)
            .all()
        )
        return [row[0] for row in rows]

    def user_agent_counts(self, link_id: int) -> Dict[Optional[str], int]:
        """Clicks per distinct user-agent string (``None`` included)."""
        rows = (
            self.db.query(Click.user_agent, func.count(Click.id))
            .filter(Click.link_id == link_id)
            .group_by(Click.user_agent)
            .all()
        )
        return {user_agent: count for user_agent, count in rows}

    def top_referrers(self, link_id: int, limit: int = 10) -> List[Tuple[str, int]]:
        """Non-null referrers by click count, highest first."""
        count = func.count(Click.id).label("count")
        rows = (
            self.db.query(Click.referrer, count)
            .filter(Click.link_id == link_id, Click.referrer.isnot(None))
            .group_by(Click.referrer)
            .order_by(count.desc(), Click.referrer)
            .limit(limit)
            .all()
        )
        return [(referrer, clicks) for referrer, clicks in rows]
