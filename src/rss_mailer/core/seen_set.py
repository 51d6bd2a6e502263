"""
Seen-entry expiry set.

Maps entry ids to the timestamp at which they may be forgotten. Ids still
listed by a feed get their expiry pushed forward on every check; ids that
left the feed keep their last expiry and are evicted once it has passed.
The set is immutable, every operation returns a new set.
"""

from collections.abc import Iterable, Iterator, Mapping
from typing import Optional

# One month, in seconds
DEFAULT_GRACE_PERIOD = 2_678_400


class SeenEntrySet(Mapping):
    """Immutable mapping of entry id to expiry timestamp."""

    __slots__ = ("_expiries",)

    def __init__(self, expiries: Optional[Mapping[str, int]] = None) -> None:
        self._expiries: dict[str, int] = dict(expiries or {})

    @classmethod
    def empty(cls) -> "SeenEntrySet":
        return cls()

    def __getitem__(self, entry_id: str) -> int:
        return self._expiries[entry_id]

    def __iter__(self) -> Iterator[str]:
        return iter(self._expiries)

    def __len__(self) -> int:
        return len(self._expiries)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, SeenEntrySet):
            return self._expiries == other._expiries
        return super().__eq__(other)

    def __hash__(self) -> int:
        return hash(frozenset(self._expiries.items()))

    def __repr__(self) -> str:
        return f"<SeenEntrySet(size={len(self._expiries)})>"

    def is_seen(self, entry_id: str) -> bool:
        """True if ``entry_id`` is known, whatever its expiry."""
        return entry_id in self._expiries

    def refresh(self, entry_ids: Iterable[str], expiry: int) -> "SeenEntrySet":
        """Set the expiry of every id in ``entry_ids``, adding missing ones.

        Ids not listed keep their current expiry.
        """
        expiries = dict(self._expiries)
        for entry_id in entry_ids:
            expiries[entry_id] = expiry
        return SeenEntrySet(expiries)

    def evict_expired(self, now: int) -> "SeenEntrySet":
        """Drop every id whose expiry is at or before ``now``."""
        return SeenEntrySet(
            {entry_id: expiry for entry_id, expiry in self._expiries.items() if expiry > now}
        )

    def to_dict(self) -> dict[str, int]:
        return dict(self._expiries)

    @classmethod
    def from_dict(cls, data: Mapping[str, int]) -> "SeenEntrySet":
        return cls({str(k): int(v) for k, v in data.items()})
