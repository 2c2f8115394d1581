from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Text, DateTime, Boolean
from sqlalchemy.orm import relationship
from shortlink_app.database.connection import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Link(Base):
    """
    Short link record.

    Links are never hard-deleted. A soft-deleted link stops redirecting but
    keeps its slug reserved and keeps all of its clicks.
    """
    __tablename__ = "links"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    # unique=True also creates the index; deleted slugs stay reserved
    slug = Column(String(30), unique=True, nullable=False, index=True)
    original_url = Column(Text, nullable=False)
    hit_count = Column(Integer, nullable=False, default=0, server_default="0")
    is_deleted = Column(Boolean, nullable=False, default=False, server_default="0")
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    clicks = relationship("Click", back_populates="link", order_by="Click.id")

    def __repr__(self):
        return f"<Link slug={self.slug!r} deleted={self.is_deleted}>"
