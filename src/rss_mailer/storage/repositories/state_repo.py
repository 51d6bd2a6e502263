"""
State repository: loads and saves the typed per-feed state.
"""

import json
from typing import Any

from sqlalchemy.orm import Session

from rss_mailer.core.seen_set import SeenEntrySet
from rss_mailer.logger import get_logger
from rss_mailer.models.feed import FeedId
from rss_mailer.models.state import FeedStateModel
from rss_mailer.storage.state import FeedState, StateKey

logger = get_logger(__name__)


def encode_value(key: StateKey, value: Any) -> str:
    """JSON encode a state value."""
    if key is StateKey.PREVIOUS_ENTRIES:
        return json.dumps(value.to_dict(), sort_keys=True)
    return json.dumps(value)


def decode_value(key: StateKey, raw: str) -> Any:
    """Decode a JSON encoded state value."""
    data = json.loads(raw)
    if key is StateKey.PREVIOUS_ENTRIES:
        return SeenEntrySet.from_dict(data)
    if key is StateKey.NEXT_UPDATE:
        return int(data)
    return str(data)


class StateRepository:
    """Repository persisting ``FeedState`` snapshots."""

    def __init__(self, session: Session) -> None:
        """Initialize repository with a database session.

        Args:
            session: SQLAlchemy Session instance
        """
        self.session = session

    def load(self) -> FeedState:
        """Load the whole state.

        Rows with an unknown key are skipped.

        Returns:
            FeedState snapshot
        """
        data: dict[FeedId, dict[StateKey, Any]] = {}
        for row in self.session.query(FeedStateModel).all():
            try:
                key = StateKey.from_name(row.key)
            except KeyError:
                logger.warning(f"Ignoring unknown state key {row.key!r} for feed {row.feed_id}")
                continue
            data.setdefault(FeedId(row.feed_id), {})[key] = decode_value(key, row.value)

        return FeedState(data)

    def save(self, state: FeedState) -> int:
        """Write every value of a state, replacing stored ones.

        Args:
            state: State to persist

        Returns:
            Number of rows written
        """
        existing = {
            (row.feed_id, row.key): row for row in self.session.query(FeedStateModel).all()
        }

        written = 0
        for feed_id, key, value in state.items():
            encoded = encode_value(key, value)
            row = existing.get((feed_id, key.key_name))
            if row is None:
                self.session.add(FeedStateModel(feed_id=feed_id, key=key.key_name, value=encoded))
                written += 1
            elif row.value != encoded:
                row.value = encoded
                written += 1

        self.session.flush()
        logger.debug(f"Saved state: {written} rows written")
        return written

    def delete_feed(self, feed_id: FeedId) -> int:
        """Forget everything about a feed.

        Returns:
            Number of rows deleted
        """
        count = (
            self.session.query(FeedStateModel)
            .filter(FeedStateModel.feed_id == feed_id)
            .delete()
        )
        self.session.flush()
        return count
