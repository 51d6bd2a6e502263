"""
Filter engine evaluating filter expressions against entries.

``MatchTitle`` searches the title, ``MatchContent`` searches the text of
the summary and of the content. Patterns match anywhere in the text.
"""

import re
from typing import Optional

from rss_mailer.models.entry import ParsedEntry
from rss_mailer.models.filter import And, Filter, MatchContent, MatchTitle, Not, Or
from rss_mailer.utils.text import html_to_text


def _match_regex(pattern: re.Pattern, text: Optional[str]) -> bool:
    """Search a pattern in optional text."""
    if text is None:
        return False
    return pattern.search(text) is not None


def _match_html(pattern: re.Pattern, html: Optional[str]) -> bool:
    if html is None:
        return False
    return pattern.search(html_to_text(html)) is not None


def evaluate(expr: Filter, entry: ParsedEntry) -> bool:
    """Evaluate a filter expression against an entry.

    Args:
        expr: Filter expression
        entry: Entry to test

    Returns:
        True if the entry is accepted
    """
    if isinstance(expr, And):
        return all(evaluate(f, entry) for f in expr.filters)
    if isinstance(expr, Or):
        return any(evaluate(f, entry) for f in expr.filters)
    if isinstance(expr, Not):
        return not evaluate(expr.filter, entry)
    if isinstance(expr, MatchTitle):
        return _match_regex(expr.pattern, entry.title)
    if isinstance(expr, MatchContent):
        return _match_html(expr.pattern, entry.summary) or _match_html(
            expr.pattern, entry.content
        )
    raise TypeError(f"Unknown filter node: {expr!r}")


class FilterEngine:
    """Applies an optional filter expression to entries.

    Without a filter every entry is accepted.
    """

    def __init__(self, expr: Optional[Filter] = None) -> None:
        self.expr = expr

    def accepts(self, entry: ParsedEntry) -> bool:
        if self.expr is None:
            return True
        return evaluate(self.expr, entry)
