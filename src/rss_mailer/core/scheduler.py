"""
Next-check scheduling.

Turns a feed's refresh policy and the current time into the timestamp at
or after which the feed becomes eligible for another check. Timestamps are
integer seconds since the Unix epoch. Wall-clock policies are evaluated in
the configured timezone.
"""

from datetime import date, datetime, time, timedelta, tzinfo
from typing import Optional
from zoneinfo import ZoneInfo

from rss_mailer.config import get_config
from rss_mailer.models.feed import At, AtWeekly, Every, RefreshPolicy

SECONDS_PER_HOUR = 3600


def _at(day: date, hour: int, minute: int, tz: tzinfo) -> int:
    return int(datetime.combine(day, time(hour, minute), tzinfo=tz).timestamp())


def next_update(now: int, policy: RefreshPolicy, tz: Optional[tzinfo] = None) -> int:
    """Compute the next check time of a feed.

    Args:
        now: Current time
        policy: Refresh policy of the feed
        tz: Timezone for ``At``/``AtWeekly`` (default from config)

    Returns:
        Timestamp of the next check, strictly after ``now`` for wall-clock policies
    """
    if isinstance(policy, Every):
        return now + int(policy.hours * SECONDS_PER_HOUR)

    if tz is None:
        tz = ZoneInfo(get_config().checker.timezone)
    today = datetime.fromtimestamp(now, tz).date()

    if isinstance(policy, At):
        candidate = _at(today, policy.hour, policy.minute, tz)
        if candidate <= now:
            candidate = _at(today + timedelta(days=1), policy.hour, policy.minute, tz)
        return candidate

    if isinstance(policy, AtWeekly):
        day = today + timedelta(days=(policy.weekday - today.weekday()) % 7)
        candidate = _at(day, policy.hour, policy.minute, tz)
        if candidate <= now:
            candidate = _at(day + timedelta(days=7), policy.hour, policy.minute, tz)
        return candidate

    raise TypeError(f"Unknown refresh policy: {policy!r}")
