"""
Redirect resolution and click tracking.

Two tracking modes are supported and chosen by configuration:

- BLOCKING: the click insert and the hit counter increment commit before the
  redirect is sent. A failed write answers 500 and the destination is not
  revealed.
- BACKGROUND: a ClickEvent is published to the click queue and the redirect
  is sent at once. The click worker performs the same write later. A failed
  publish is logged and the redirect still happens. Events still queued in
  memory when the process exits are lost.
"""

import logging
from datetime import datetime
from enum import Enum
from typing import Mapping, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from shortlink_app.config import settings
from shortlink_app.errors import InternalError, NotFoundError
from shortlink_app.models.link import Link
from shortlink_app.queue.models import ClickEvent
from shortlink_app.queue.strategies import QueueStrategy
from shortlink_app.storage.clicks import ClickContext, ClickRecorder
from shortlink_app.storage.links import LinkStore

logger = logging.getLogger(__name__)


class TrackingMode(Enum):
    """When the click write happens relative to the redirect"""
    BLOCKING = "blocking"
    BACKGROUND = "background"


def extract_click_context(headers: Mapping[str, str], peer_host: Optional[str] = None) -> ClickContext:
    """
    Build tracking data from request headers.

    Client address: first hop of X-Forwarded-For, else X-Real-IP,
    else the direct peer address.
    """
    forwarded = headers.get("x-forwarded-for")
    first_hop = forwarded.split(",")[0].strip() if forwarded else None
    ip = first_hop or headers.get("x-real-ip") or peer_host or None

    return ClickContext(
        user_agent=headers.get("user-agent") or None,
        referrer=headers.get("referer") or None,
        ip=ip,
    )


class RedirectService:
    """Resolve slugs and record clicks, the only read-modify-write hot path."""

    def __init__(
        self,
        db: Session,
        queue: Optional[QueueStrategy] = None,
        mode: TrackingMode = TrackingMode.BLOCKING,
        queue_name: Optional[str] = None
    ):
        if mode == TrackingMode.BACKGROUND and queue is None:
            raise ValueError("Background tracking needs a queue")

        self.db = db
        self.queue = queue
        self.mode = mode
        self.queue_name = queue_name or settings.queue_name
        self.links = LinkStore(db)
        self.clicks = ClickRecorder(db)

    async def resolve(self, slug: str) -> Link:
        """
        Raises:
            NotFoundError: unknown or soft-deleted slug
            InternalError: the lookup itself failed
        """
        try:
            link = self.links.find_by_slug(slug)
        except SQLAlchemyError:
            logger.exception(f"Lookup failed for slug '{slug}'")
            raise InternalError()

        if not link:
            raise NotFoundError()
        return link

    async def track(
        self,
        link_id: int,
        context: ClickContext,
        timestamp: Optional[datetime] = None
    ) -> None:
        """
        Insert one click and add 1 to the hit counter in a single transaction.

        Raises:
            SQLAlchemyError: after rolling back, if either write failed
        """
        try:
            self.clicks.add(link_id, context, timestamp=timestamp)
            self.links.increment_hit_count(link_id)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise

    async def enqueue(self, link: Link, context: ClickContext) -> bool:
        event = ClickEvent(
            slug=link.slug,
            link_id=link.id,
            ip=context.ip,
            user_agent=context.user_agent,
            referrer=context.referrer,
        )
        published = await self.queue.publish(self.queue_name, event)
        if not published:
            logger.error(f"Click for slug '{link.slug}' was not queued")
        return published

    async def resolve_and_track(self, slug: str, context: ClickContext) -> str:
        """
        Look up ``slug``, record the click and return the destination URL.

        Raises:
            NotFoundError: unknown or soft-deleted slug
            InternalError: lookup failed, or the click write failed in blocking mode
        """
        link = await self.resolve(slug)
        destination = link.original_url

        if self.mode == TrackingMode.BACKGROUND:
            await self.enqueue(link, context)
            return destination

        try:
            await self.track(link.id, context)
        except SQLAlchemyError:
            logger.exception(f"Click tracking failed for slug '{slug}'")
            raise InternalError()

        logger.info(f"Click tracked for slug '{slug}' ip={context.ip} referrer={context.referrer}")
        return destination
