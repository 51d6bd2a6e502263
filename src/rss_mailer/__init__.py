"""
RSS Mailer - turn new feed entries into mails.

This package checks RSS/Atom feeds and scraped HTML pages for entries that
were not seen before, batches them into mails and schedules the next check
of every feed.
"""

__version__ = "0.1.0"
