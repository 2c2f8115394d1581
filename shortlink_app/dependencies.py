"""
FastAPI dependencies for dependency injection.

The queue is a process-wide singleton; services are built per request
around the request's database session.
"""

from functools import lru_cache
from typing import Optional

from fastapi import Depends
from sqlalchemy.orm import Session

from shortlink_app.config import settings
from shortlink_app.database.connection import get_db
from shortlink_app.queue.factory import QueueFactory, QueueBackend
from shortlink_app.queue.strategies import QueueStrategy
from shortlink_app.services.analytics_service import AnalyticsService
from shortlink_app.services.link_service import LinkService
from shortlink_app.services.redirect_service import RedirectService, TrackingMode


@lru_cache()
def get_queue() -> QueueStrategy:
    """
    Get queue instance (singleton).

    Factory gets config from settings internally.
    @lru_cache ensures this is called only once.
    """
    backend = QueueBackend(settings.queue_backend)
    return QueueFactory.create(backend)


def get_link_service(db: Session = Depends(get_db)) -> LinkService:
    return LinkService(db=db)


def get_tracking_queue() -> Optional[QueueStrategy]:
    """The click queue in background mode; blocking mode never connects to it."""
    if TrackingMode(settings.tracking_mode) != TrackingMode.BACKGROUND:
        return None
    return get_queue()


def get_redirect_service(
    db: Session = Depends(get_db),
    queue: Optional[QueueStrategy] = Depends(get_tracking_queue)
) -> RedirectService:
    """Tracking mode is read per request so it can be switched by configuration."""
    return RedirectService(db=db, queue=queue, mode=TrackingMode(settings.tracking_mode))


def get_analytics_service(db: Session = Depends(get_db)) -> AnalyticsService:
    return AnalyticsService(db=db)
