"""Core feed checking engine.

    seen_set       dedup cache with time-based eviction
    filter_engine  boolean filters over entry title and content
    scheduler      next check time from a refresh policy
    processor      new-entry detection for one parsed feed
    mailer         batching of new entries into mails
    orchestrator   one feed through fetch, parse, process, batch, schedule
    checker        all feeds concurrently, then a sequential state merge

Collaborators: ``fetcher`` (httpx), ``parser`` (feedparser), ``scraper``
(BeautifulSoup) and ``renderer`` (mail bodies).

Import from the submodules; the storage layer depends on ``seen_set``, so
this package does not import its submodules eagerly.
"""
