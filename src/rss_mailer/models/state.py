"""
Persisted per-feed state rows.
"""

from datetime import datetime

from sqlalchemy import DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from rss_mailer.models.base import Base


class FeedStateModel(Base):
    """SQLAlchemy ORM model for one (feed, key) state value.

    ``value`` is JSON encoded; its shape depends on ``key``.
    """

    __tablename__ = "feed_state"

    feed_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    key: Mapped[str] = mapped_column(String(32), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )

    def __repr__(self) -> str:
        return f"<FeedStateModel(feed_id='{self.feed_id}', key='{self.key}')>"
