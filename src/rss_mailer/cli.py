"""
Command line interface.

    rss-mailer check [--print]    run one check cycle
    rss-mailer serve              run check cycles periodically
    rss-mailer web                serve the aggregated Atom feed
    rss-mailer list-feeds         show the configured feeds
    rss-mailer outbox             show mails waiting for delivery
"""

import argparse
import sys
import time
from typing import Optional

from rss_mailer import __version__
from rss_mailer.config import get_config, load_config_from_yaml, set_config
from rss_mailer.feeds_config import FeedConfigError, load_feeds
from rss_mailer.logger import get_logger, setup_logger
from rss_mailer.models.feed import At, AtWeekly, Every, RefreshPolicy, is_bundle
from rss_mailer.models.mail import Mail

logger = get_logger(__name__)

_WEEKDAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]


def describe_refresh(policy: RefreshPolicy) -> str:
    if isinstance(policy, Every):
        return f"every {policy.hours:g}h"
    if isinstance(policy, At):
        return f"at {policy.hour:02d}:{policy.minute:02d}"
    if isinstance(policy, AtWeekly):
        return f"{_WEEKDAY_NAMES[policy.weekday]} at {policy.hour:02d}:{policy.minute:02d}"
    return str(policy)


def format_mail(mail: Mail) -> str:
    header = [f"From: {mail.sender}", f"Subject: {mail.subject}"]
    if mail.to:
        header.insert(1, f"To: {mail.to}")
    return "\n".join(header) + "\n\n" + mail.body_text


def cmd_check(args: argparse.Namespace) -> int:
    from rss_mailer.runner import run_cycle

    result = run_cycle(now=args.now, feeds=load_feeds(args.feeds))

    if args.print:
        for mail in result.mails:
            print(format_mail(mail))
            print("=" * 72)

    print(f"{len(result.logs)} feeds checked, {result.updated} updated, "
          f"{len(result.errors)} errors, {len(result.mails)} mails queued")
    return 1 if result.errors and not result.updated else 0


def cmd_serve(args: argparse.Namespace) -> int:
    from rss_mailer.daemon import CycleScheduler
    from rss_mailer.runner import run_cycle

    # Fail on a broken feed list before going to the background
    load_feeds(args.feeds)

    scheduler = CycleScheduler(
        interval_minutes=args.interval,
        cycle=lambda: run_cycle(feeds=load_feeds(args.feeds)),
    )
    scheduler.start()

    try:
        while scheduler.is_running():
            time.sleep(1)
    except KeyboardInterrupt:
        logger.info("Interrupted, stopping")
    finally:
        if scheduler.is_running():
            scheduler.stop()

    stats = scheduler.get_stats()
    logger.info(
        f"{stats.total_executions} cycles run, {stats.failed_executions} failed, "
        f"{stats.mails_queued} mails queued"
    )
    return 0


def cmd_web(args: argparse.Namespace) -> int:
    from rss_mailer.web import create_app

    config = get_config().web
    feeds = load_feeds(args.feeds) if args.feeds else None
    app = create_app(feeds=feeds)
    app.run(host=args.host or config.host, port=args.port or config.port, debug=config.debug)
    return 0


def cmd_list_feeds(args: argparse.Namespace) -> int:
    feeds = load_feeds(args.feeds)
    for spec in feeds:
        flags = []
        if is_bundle(spec.descriptor):
            flags.append("bundle")
        if spec.options.filter is not None:
            flags.append("filtered")
        suffix = f" [{', '.join(flags)}]" if flags else ""
        print(f"{spec.feed_id}  {describe_refresh(spec.options.refresh):<20} {spec.url}{suffix}")
    print(f"{len(feeds)} feeds")
    return 0


def cmd_outbox(args: argparse.Namespace) -> int:
    from rss_mailer.storage.database import DatabaseManager
    from rss_mailer.storage.repositories import OutboxRepository

    with DatabaseManager() as db_manager:
        db_manager.init_db()
        with db_manager.session() as session:
            repo = OutboxRepository(session)
            pending = repo.list_pending(limit=args.limit)
            for model in pending:
                print(f"{model.id:>6}  {model.sender[:30]:<30}  {model.subject}")
            if args.mark_sent:
                count = repo.mark_sent([model.id for model in pending])
                print(f"{count} mails marked as sent")
            else:
                print(f"{repo.count_pending()} mails pending")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rss-mailer",
        description="Check RSS/Atom feeds and scraped pages, and queue mails for new entries",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--config", help="YAML configuration file")
    parser.add_argument("--feeds", help="YAML feed list (default from config)")
    parser.add_argument("--db-path", help="Database path (default from config)")
    parser.add_argument("--log-level", help="Log level (default from config)")

    subparsers = parser.add_subparsers(dest="command", required=True)

    check = subparsers.add_parser("check", help="Run one check cycle")
    check.add_argument("--print", action="store_true", help="Print the produced mails")
    check.add_argument("--now", type=int, help="Current time in epoch seconds")
    check.set_defaults(func=cmd_check)

    serve = subparsers.add_parser("serve", help="Run check cycles periodically")
    serve.add_argument("--interval", type=int, help="Minutes between cycles")
    serve.set_defaults(func=cmd_serve)

    web = subparsers.add_parser("web", help="Serve the aggregated Atom feed")
    web.add_argument("--host", help="Host to bind")
    web.add_argument("--port", type=int, help="Port to bind")
    web.set_defaults(func=cmd_web)

    list_feeds = subparsers.add_parser("list-feeds", help="Show the configured feeds")
    list_feeds.set_defaults(func=cmd_list_feeds)

    outbox = subparsers.add_parser("outbox", help="Show mails waiting for delivery")
    outbox.add_argument("--limit", type=int, help="Show at most this many mails")
    outbox.add_argument("--mark-sent", action="store_true", help="Mark the listed mails as sent")
    outbox.set_defaults(func=cmd_outbox)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    if args.config:
        set_config(load_config_from_yaml(args.config))
    if args.db_path:
        config = get_config()
        set_config(config.model_copy(
            update={"database": config.database.model_copy(update={"path": args.db_path})}
        ))

    setup_logger(level=args.log_level.upper() if args.log_level else None)

    try:
        return args.func(args)
    except FeedConfigError as e:
        logger.error(f"Invalid feed list: {e}")
        return 2


if __name__ == "__main__":
    sys.exit(main())
