"""
Outbox repository for mails waiting for delivery.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from rss_mailer.models.mail import Mail, MailModel


class OutboxRepository:
    """Repository for outbox operations."""

    def __init__(self, session: Session) -> None:
        """Initialize repository with a database session.

        Args:
            session: SQLAlchemy Session instance
        """
        self.session = session

    def add_all(self, mails: list[Mail]) -> list[MailModel]:
        """Queue mails for delivery.

        Args:
            mails: Mails to queue

        Returns:
            Created MailModel instances
        """
        models = [MailModel.from_mail(mail) for mail in mails]
        self.session.add_all(models)
        self.session.flush()
        return models

    def list_pending(self, limit: Optional[int] = None) -> list[MailModel]:
        """List mails not sent yet, oldest first."""
        query = (
            self.session.query(MailModel)
            .filter(MailModel.sent_at.is_(None))
            .order_by(MailModel.id.asc())
        )
        if limit is not None:
            query = query.limit(limit)
        return query.all()

    def count_pending(self) -> int:
        return self.session.query(MailModel).filter(MailModel.sent_at.is_(None)).count()

    def mark_sent(self, mail_ids: list[int], sent_at: Optional[datetime] = None) -> int:
        """Mark mails as delivered.

        Returns:
            Number of mails updated
        """
        if not mail_ids:
            return 0
        count = (
            self.session.query(MailModel)
            .filter(MailModel.id.in_(mail_ids))
            .update({MailModel.sent_at: sent_at or datetime.utcnow()}, synchronize_session=False)
        )
        self.session.flush()
        return count
