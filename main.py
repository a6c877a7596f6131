"""
Anime Scraper - CLI Entry Point

Search the catalog, list episodes and resolve streams from the command line.
"""

import asyncio
import argparse
import json
import logging
import sys

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from animescraper.config import config
from animescraper.models import EpisodePage, ResolvedStream, SearchResult
from animescraper.orchestrator import Orchestrator


console = Console()


def setup_logging(level: str = "INFO") -> None:
    """Configure logging with rich handler."""
    logging.basicConfig(
        level=getattr(logging, level),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def print_search(results: list[SearchResult]) -> None:
    table = Table(title=f"{len(results)} results")
    table.add_column("Session", style="cyan")
    table.add_column("Title", style="bold")
    table.add_column("Type")
    table.add_column("Episodes", justify="right")
    table.add_column("Year", justify="right")
    table.add_column("Score", justify="right")

    for r in results:
        table.add_row(
            r.session_id,
            r.title,
            r.media_type or "",
            str(r.episode_count or ""),
            str(r.year or ""),
            str(r.score or ""),
        )
    console.print(table)


def print_episodes(page: EpisodePage) -> None:
    table = Table(title=f"{len(page.episodes)} episodes (last page: {page.last_page})")
    table.add_column("#", justify="right")
    table.add_column("Session", style="cyan")
    table.add_column("Duration")
    table.add_column("URL")

    for e in page.episodes:
        number = int(e.episode_number) if e.episode_number.is_integer() else e.episode_number
        table.add_row(str(number), e.session_id, e.duration or "", e.url)
    console.print(table)


def print_streams(streams: list[ResolvedStream]) -> None:
    table = Table(title=f"{len(streams)} streams")
    table.add_column("Quality")
    table.add_column("Audio")
    table.add_column("HLS")
    table.add_column("URL", overflow="fold")

    for s in streams:
        table.add_row(
            s.quality_label,
            s.audio_label,
            "yes" if s.is_hls else "no",
            s.direct_media_url or f"[yellow]{s.host_url}[/yellow]",
        )
    console.print(table)


def to_json(value) -> str:
    if isinstance(value, list):
        return json.dumps([v.to_dict() for v in value], indent=2)
    return json.dumps(value.to_dict(), indent=2)


async def main_async(args: argparse.Namespace) -> int:
    """Async main function."""
    setup_logging(args.log_level)

    if args.no_durable_cache:
        config.cache.durable_enabled = False

    async with Orchestrator() as orchestrator:
        if args.command == "search":
            result = await orchestrator.search(args.query)
            printer = print_search
        elif args.command == "episodes":
            if args.all:
                result = await orchestrator.get_all_episodes(args.session)
            else:
                result = await orchestrator.get_episodes(args.session, args.page)
            printer = print_episodes
        else:
            result = await orchestrator.get_streams(args.session, args.episode_session)
            printer = print_streams

        if args.json:
            print(to_json(result))
        else:
            printer(result)

        logging.getLogger(__name__).debug(f"Stats: {orchestrator.get_stats()}")

    return 0


def main() -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Anime Scraper - catalog search and stream resolution",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s search "Frieren"
  %(prog)s episodes <anime-session> --all
  %(prog)s streams <anime-session> <episode-session> --json
        """,
    )

    parser.add_argument(
        "--json",
        action="store_true",
        help="Print raw JSON instead of tables",
    )
    parser.add_argument(
        "--no-durable-cache",
        action="store_true",
        help="Use the in-memory cache only",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=config.log_level,
        help="Logging level (default: %(default)s)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    search = subparsers.add_parser("search", help="Search the catalog")
    search.add_argument("query", help="Title to search for")

    episodes = subparsers.add_parser("episodes", help="List a title's episodes")
    episodes.add_argument("session", help="Anime session id")
    episodes.add_argument("--page", "-p", type=int, default=1, help="Page number (default: 1)")
    episodes.add_argument("--all", action="store_true", help="Fetch every page")

    streams = subparsers.add_parser("streams", help="Resolve an episode's streams")
    streams.add_argument("session", help="Anime session id")
    streams.add_argument("episode_session", help="Episode session id")

    args = parser.parse_args()

    try:
        sys.exit(asyncio.run(main_async(args)))
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        sys.exit(130)


if __name__ == "__main__":
    main()
