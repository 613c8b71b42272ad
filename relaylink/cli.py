"""Command-line interface for newsletter link relay."""

import argparse
import logging
import sys
from email import policy
from email.message import EmailMessage
from email.parser import BytesParser
from pathlib import Path
from typing import cast

from relaylink.models import Document
from relaylink.relay import RelayOrchestrator


def setup_logging(verbose: bool = False) -> None:
    """Configure logging for CLI.

    Args:
        verbose: Whether to enable verbose (DEBUG) logging.
    """
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def load_document(path: Path) -> Document:
    """Read an RFC 822 message file into a Document."""
    with open(path, "rb") as f:
        message = cast(EmailMessage, BytesParser(policy=policy.default).parse(f))
    document = Document.from_message(message)
    if not document.message_id:
        document.message_id = path.name
    return document


def _orchestrator(args: argparse.Namespace) -> RelayOrchestrator | None:
    config_path = Path(args.config)
    if not config_path.exists():
        print(f"Error: Config file not found: {config_path}", file=sys.stderr)
        return None
    return RelayOrchestrator.from_config_path(config_path)


def resolve_files(args: argparse.Namespace) -> int:
    """Resolve article links in message files command.

    Args:
        args: Parsed command line arguments.

    Returns:
        Exit code (0 for success, 1 for failure).
    """
    orchestrator = _orchestrator(args)
    if orchestrator is None:
        return 1

    paths = [Path(p) for p in args.files]
    missing = [p for p in paths if not p.exists()]
    if missing:
        print(f"Error: File not found: {missing[0]}", file=sys.stderr)
        return 1

    try:
        orchestrator.dedup.load()
        history_urls = orchestrator.history.fetch()

        for path in paths:
            document = load_document(path)
            url = orchestrator.resolve(document)
            if url is None:
                print(f"{path.name}: no article link")
                continue
            status = "duplicate" if orchestrator.is_duplicate(url, history_urls) else "new"
            print(f"{path.name}: {url} [{status}]")

        return 0

    except Exception as e:
        logging.exception("Error resolving files")
        print(f"Error: {e}", file=sys.stderr)
        return 1


def check_url(args: argparse.Namespace) -> int:
    """Check whether a URL was already posted command."""
    orchestrator = _orchestrator(args)
    if orchestrator is None:
        return 1

    normalized = orchestrator.pipeline.normalizer.try_normalize(args.url)
    if normalized is None:
        print(f"Error: Not an absolute URL: {args.url}", file=sys.stderr)
        return 1

    orchestrator.dedup.load()
    status = "duplicate" if orchestrator.is_duplicate(normalized) else "new"
    print(f"{normalized} [{status}]")
    return 0


def record_urls(args: argparse.Namespace) -> int:
    """Mark URLs as posted command."""
    orchestrator = _orchestrator(args)
    if orchestrator is None:
        return 1

    recorded = 0
    with orchestrator.dedup.session() as dedup:
        for url in args.urls:
            entry = dedup.record(url)
            if entry is None:
                print(f"Skipping malformed URL: {url}", file=sys.stderr)
                continue
            print(f"Recorded: {entry.normalized_url}")
            recorded += 1

    return 0 if recorded == len(args.urls) else 1


def prune_state(args: argparse.Namespace) -> int:
    """Prune expired entries and rewrite state command."""
    orchestrator = _orchestrator(args)
    if orchestrator is None:
        return 1

    with orchestrator.dedup.session() as dedup, orchestrator.seen_ids.session() as seen_ids:
        print(f"Seen URLs: {dedup.count()}")
        print(f"Seen messages: {seen_ids.count()}")
    return 0


def show_report(args: argparse.Namespace) -> int:
    """Show report command.

    Args:
        args: Parsed command line arguments.

    Returns:
        Exit code.
    """
    orchestrator = _orchestrator(args)
    if orchestrator is None:
        return 1

    logs_dir = orchestrator.config.logs_dir

    if args.date:
        summary_path = logs_dir / f"daily_summary_{args.date}.md"
    else:
        # Find most recent summary
        summaries = sorted(logs_dir.glob("daily_summary_*.md"), reverse=True)
        if not summaries:
            print("No summary files found", file=sys.stderr)
            return 1
        summary_path = summaries[0]

    if not summary_path.exists():
        print(f"Summary not found: {summary_path}", file=sys.stderr)
        return 1

    print(summary_path.read_text())
    return 0


def main() -> int:
    """Main entry point for CLI.

    Returns:
        Exit code.
    """
    parser = argparse.ArgumentParser(
        description="Newsletter Link Relay - Find the article behind a newsletter and skip repeats",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  relaylink resolve issue.eml --config config.yaml
  relaylink check https://example.com/p/post
  relaylink prune
  relaylink report --date 2026-10-19
        """,
    )

    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose output",
    )
    parser.add_argument(
        "-c",
        "--config",
        default="config.yaml",
        help="Path to config file (default: config.yaml)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    resolve_parser = subparsers.add_parser(
        "resolve",
        help="Resolve the article link in message files",
    )
    resolve_parser.add_argument("files", nargs="+", help="RFC 822 message files (.eml)")
    resolve_parser.set_defaults(func=resolve_files)

    check_parser = subparsers.add_parser(
        "check",
        help="Check whether a URL was already posted",
    )
    check_parser.add_argument("url", help="URL to check")
    check_parser.set_defaults(func=check_url)

    record_parser = subparsers.add_parser(
        "record",
        help="Mark URLs as already posted",
    )
    record_parser.add_argument("urls", nargs="+", help="URLs to record")
    record_parser.set_defaults(func=record_urls)

    prune_parser = subparsers.add_parser(
        "prune",
        help="Drop expired dedup entries",
    )
    prune_parser.set_defaults(func=prune_state)

    report_parser = subparsers.add_parser(
        "report",
        help="Show daily summary report",
    )
    report_parser.add_argument(
        "--date",
        help="Date to show report for (YYYY-MM-DD format)",
    )
    report_parser.set_defaults(func=show_report)

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return 1

    setup_logging(args.verbose)
    result: int = args.func(args)
    return result


if __name__ == "__main__":
    sys.exit(main())
