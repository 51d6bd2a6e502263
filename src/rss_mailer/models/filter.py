"""
Filter expression tree.

A filter is a boolean expression over an entry's title and content.
Leaves hold compiled regular expressions; a plain string is compiled on
construction.
"""

import re
from dataclasses import dataclass
from typing import Union


def _compile(pattern) -> re.Pattern:
    if isinstance(pattern, re.Pattern):
        return pattern
    return re.compile(pattern)


@dataclass(frozen=True)
class MatchTitle:
    """True when the entry has a title and the pattern matches anywhere in it."""

    pattern: re.Pattern

    def __post_init__(self):
        object.__setattr__(self, "pattern", _compile(self.pattern))


@dataclass(frozen=True)
class MatchContent:
    """True when the pattern matches anywhere in the summary or the content."""

    pattern: re.Pattern

    def __post_init__(self):
        object.__setattr__(self, "pattern", _compile(self.pattern))


@dataclass(frozen=True)
class And:
    filters: tuple["Filter", ...]

    def __post_init__(self):
        object.__setattr__(self, "filters", tuple(self.filters))


@dataclass(frozen=True)
class Or:
    filters: tuple["Filter", ...]

    def __post_init__(self):
        object.__setattr__(self, "filters", tuple(self.filters))


@dataclass(frozen=True)
class Not:
    filter: "Filter"


Filter = Union[And, Or, Not, MatchTitle, MatchContent]
