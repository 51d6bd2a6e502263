"""
Mail values and the outbox table.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy import BigInteger, DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from rss_mailer.models.base import Base


@dataclass(frozen=True)
class Mail:
    """An outbound notification. Never mutated after creation."""

    sender: str
    subject: str
    body_html: str
    body_text: str
    timestamp: int
    to: Optional[str] = None

    def __repr__(self) -> str:
        return f"<Mail(sender={self.sender!r}, subject={self.subject!r})>"


class MailModel(Base):
    """SQLAlchemy ORM model for a mail waiting in the outbox."""

    __tablename__ = "outbox"

    __table_args__ = (Index("ix_outbox_sent_at", "sent_at"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    sender: Mapped[str] = mapped_column(String(500), nullable=False)
    to: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    subject: Mapped[str] = mapped_column(String(1000), nullable=False)
    body_html: Mapped[str] = mapped_column(Text, nullable=False)
    body_text: Mapped[str] = mapped_column(Text, nullable=False)
    timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    sent_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    @classmethod
    def from_mail(cls, mail: Mail) -> "MailModel":
        return cls(
            sender=mail.sender,
            to=mail.to,
            subject=mail.subject,
            body_html=mail.body_html,
            body_text=mail.body_text,
            timestamp=mail.timestamp,
        )

    def to_mail(self) -> Mail:
        return Mail(
            sender=self.sender,
            to=self.to,
            subject=self.subject,
            body_html=self.body_html,
            body_text=self.body_text,
            timestamp=self.timestamp,
        )

    def __repr__(self) -> str:
        return f"<MailModel(id={self.id}, subject='{self.subject}')>"
