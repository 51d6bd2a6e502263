"""Repositories over the state and outbox tables."""

from rss_mailer.storage.repositories.outbox_repo import OutboxRepository
from rss_mailer.storage.repositories.state_repo import StateRepository

__all__ = ["OutboxRepository", "StateRepository"]
