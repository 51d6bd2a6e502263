"""
Typed per-feed state.

State is a key-value store keyed by (feed id, state key). Each key has its
own value type, checked on write. ``FeedState`` is immutable: ``set``
returns a new state and leaves the receiver untouched, so a snapshot taken
at the start of a check cycle can be read concurrently while the updates
are composed afterwards.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterator
from enum import Enum
from typing import Any, Optional

from rss_mailer.core.seen_set import SeenEntrySet
from rss_mailer.models.feed import FeedId


class StateKey(Enum):
    """Recognized state keys and the type of their values."""

    NEXT_UPDATE = ("next_update", int)
    PREVIOUS_ENTRIES = ("previous_entries", SeenEntrySet)
    # Raw page contents, kept for diffing sources
    PAGE_CONTENTS = ("page_contents", str)

    def __init__(self, key_name: str, value_type: type) -> None:
        self.key_name = key_name
        self.value_type = value_type

    @classmethod
    def from_name(cls, key_name: str) -> "StateKey":
        for key in cls:
            if key.key_name == key_name:
                return key
        raise KeyError(f"Unknown state key: {key_name!r}")


class StateStore(ABC):
    """Abstract typed state store."""

    @abstractmethod
    def get(self, feed_id: FeedId, key: StateKey) -> Optional[Any]:
        """Value stored for ``feed_id`` under ``key``, or None."""

    @abstractmethod
    def set(self, feed_id: FeedId, key: StateKey, value: Any) -> "StateStore":
        """Return a store with ``value`` stored for ``feed_id`` under ``key``."""

    def get_next_update(self, feed_id: FeedId) -> Optional[int]:
        return self.get(feed_id, StateKey.NEXT_UPDATE)

    def set_next_update(self, feed_id: FeedId, value: int) -> "StateStore":
        return self.set(feed_id, StateKey.NEXT_UPDATE, value)

    def get_previous_entries(self, feed_id: FeedId) -> Optional[SeenEntrySet]:
        return self.get(feed_id, StateKey.PREVIOUS_ENTRIES)

    def set_previous_entries(self, feed_id: FeedId, value: SeenEntrySet) -> "StateStore":
        return self.set(feed_id, StateKey.PREVIOUS_ENTRIES, value)

    def get_page_contents(self, feed_id: FeedId) -> Optional[str]:
        return self.get(feed_id, StateKey.PAGE_CONTENTS)

    def set_page_contents(self, feed_id: FeedId, value: str) -> "StateStore":
        return self.set(feed_id, StateKey.PAGE_CONTENTS, value)


class FeedState(StateStore):
    """Immutable in-memory state store."""

    def __init__(self, data: Optional[dict[FeedId, dict[StateKey, Any]]] = None) -> None:
        self._data: dict[FeedId, dict[StateKey, Any]] = {
            feed_id: dict(values) for feed_id, values in (data or {}).items()
        }

    @classmethod
    def empty(cls) -> "FeedState":
        return cls()

    def get(self, feed_id: FeedId, key: StateKey) -> Optional[Any]:
        return self._data.get(feed_id, {}).get(key)

    def set(self, feed_id: FeedId, key: StateKey, value: Any) -> "FeedState":
        if not isinstance(value, key.value_type) or isinstance(value, bool):
            raise TypeError(
                f"State key {key.key_name} expects {key.value_type.__name__}, "
                f"got {type(value).__name__}"
            )
        data = dict(self._data)
        data[feed_id] = {**self._data.get(feed_id, {}), key: value}
        state = FeedState()
        state._data = data
        return state

    def feed_ids(self) -> list[FeedId]:
        return list(self._data)

    def items(self) -> Iterator[tuple[FeedId, StateKey, Any]]:
        """Iterate over every stored (feed id, key, value)."""
        for feed_id, values in self._data.items():
            for key, value in values.items():
                yield feed_id, key, value

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FeedState):
            return NotImplemented
        return self._data == other._data

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"<FeedState(feeds={len(self._data)})>"
