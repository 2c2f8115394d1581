from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.orm import Session

from shortlink_app.models.link import Link


class LinkStore:
    """Slug -> destination mappings with soft delete and an atomic hit counter."""

    def __init__(self, db: Session):
        self.db = db

    def find_by_slug(self, slug: str, include_deleted: bool = False) -> Optional[Link]:
        query = self.db.query(Link).filter(Link.slug == slug)
        if not include_deleted:
            query = query.filter(Link.is_deleted == False)  # noqa: E712
        return query.first()

    def exists(self, slug: str) -> bool:
        """True if any row, deleted or not, already uses ``slug``."""
        return self.db.query(Link.id).filter(Link.slug == slug).first() is not None

    def insert(self, slug: str, original_url: str) -> Link:
        """
        Add a new link and flush it.

        Raises:
            sqlalchemy.exc.IntegrityError: if the slug is already taken
        """
        link = Link(slug=slug, original_url=original_url)
        self.db.add(link)
        self.db.flush()
        return link

    def increment_hit_count(self, link_id: int) -> int:
        """
        Add 1 to the hit counter inside the store.

        Expressed as ``hit_count = hit_count + 1`` so concurrent redirects
        cannot overwrite each other's increment.
        """
        return self.db.query(Link).filter(Link.id == link_id).update(
            {Link.hit_count: Link.hit_count + 1},
            synchronize_session=False
        )

    def soft_delete(self, link: Link) -> Link:
        link.is_deleted = True
        link.deleted_at = datetime.now(timezone.utc)
        self.db.flush()
        return link

    def list_non_deleted(self) -> List[Link]:
        return (
            self.db.query(Link)
            .filter(Link.is_deleted == False)  # noqa: E712
            .order_by(Link.created_at.desc(), Link.id.desc())
            .all()
        )
