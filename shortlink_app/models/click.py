from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from shortlink_app.database.connection import Base
from shortlink_app.models.link import utcnow


class Click(Base):
    """One recorded visit to a link. Written once, never updated or deleted."""
    __tablename__ = "clicks"

    id = Column(Integer, primary_key=True, autoincrement=True)
    link_id = Column(Integer, ForeignKey("links.id"), nullable=False, index=True)
    timestamp = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    user_agent = Column(Text, nullable=True)
    referrer = Column(Text, nullable=True)
    ip = Column(String(45), nullable=True)  # Fits an IPv6 literal

    link = relationship("Link", back_populates="clicks")
