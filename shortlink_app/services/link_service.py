import logging
from typing import List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from shortlink_app.config import settings
from shortlink_app.errors import ConflictError, InternalError, InvalidInputError, NotFoundError
from shortlink_app.models.link import Link
from shortlink_app.services.slug_factory import SlugFactory
from shortlink_app.services.slug_strategies import SlugStrategy, validate_custom_slug
from shortlink_app.storage.links import LinkStore

logger = logging.getLogger(__name__)


class LinkService:
    """
    Create, list and soft-delete short links.

    The slug strategy is injected (or taken from the factory) so tests can
    swap the alphabet without touching settings.
    """

    def __init__(self, db: Session, slug_strategy: Optional[SlugStrategy] = None):
        self.db = db
        self.links = LinkStore(db)
        self.slug_strategy = slug_strategy or SlugFactory.create_strategy()

    async def create_short_link(self, original_url: str, custom_slug: Optional[str] = None) -> Link:
        """Create a new short link.

        Always creates a new link even if the destination was shortened before,
        so every link keeps its own click history.

        Raises:
            InvalidInputError: custom slug breaks the length/charset rules
            ConflictError: custom slug already used (deleted links included)
        """
        destination = original_url

        if custom_slug is not None:
            slug = validate_custom_slug(
                custom_slug,
                min_length=settings.custom_slug_min_length,
                max_length=settings.custom_slug_max_length
            )
            if self.links.exists(slug):
                raise ConflictError()
            return self._insert(slug, destination, custom=True)

        # A generated slug can still lose a race to a concurrent insert; draw again
        while True:
            slug = self.slug_strategy.generate_unique(self.links)
            try:
                return self._insert(slug, destination, custom=False)
            except ConflictError:
                logger.info(f"Generated slug '{slug}' taken concurrently, drawing again")

    def _insert(self, slug: str, destination: str, custom: bool) -> Link:
        try:
            link = self.links.insert(slug, destination)
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ConflictError()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception(f"Failed to insert link slug='{slug}' custom={custom}")
            raise InternalError()

        self.db.refresh(link)
        logger.info(f"Created link '{slug}' -> {destination[:80]}")
        return link

    async def get_link(self, slug: str) -> Link:
        """Non-deleted link by slug.

        Raises:
            NotFoundError: unknown or soft-deleted slug
        """
        link = self.links.find_by_slug(slug)
        if not link:
            raise NotFoundError()
        return link

    async def list_links(self) -> List[Link]:
        """Non-deleted links, newest first"""
        return self.links.list_non_deleted()

    async def delete_link(self, slug: str) -> Link:
        """
        Soft delete a link. Its slug stays reserved and its clicks are kept.

        Raises:
            NotFoundError: unknown slug
            InvalidInputError: link already deleted
        """
        link = self.links.find_by_slug(slug, include_deleted=True)
        if not link:
            raise NotFoundError()
        if link.is_deleted:
            raise InvalidInputError("URL is already deleted")

        try:
            self.links.soft_delete(link)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception(f"Failed to soft delete link slug='{slug}'")
            raise InternalError()

        logger.info(f"Soft deleted link '{slug}'")
        return link
