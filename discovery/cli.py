"""
Command-line interface for the catalog discovery engine.

Runs searches, prints popular search terms and invalidates the response
cache against the configured stores.
"""

import asyncio
import argparse
import logging
import sys
from typing import List, Optional

from dotenv import load_dotenv

from discovery.config import DiscoverySettings, get_discovery_settings
from discovery.db import build_discovery_service, close_resources, init_resources
from discovery.error_handling import DiscoveryError
from discovery.models import FilterSet, PopularTerm, RankedResultPage, SearchRequest


# Configure logging
logging.basicConfig(
    level=logging.WARNING,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def format_page(page: RankedResultPage) -> str:
    """
    Format a result page for console output.

    Args:
        page: RankedResultPage to format

    Returns:
        Formatted string representation of the page
    """
    meta = page.pagination
    if not page.data:
        return "No holidays found matching your criteria.\n"

    lines = [
        f"\n{'=' * 60}",
        f"{meta.total} holiday(s), page {meta.page}/{meta.total_pages} "
        f"(sorted by {page.sort_by.value} {page.sort_order.value})",
        f"{'=' * 60}\n",
    ]
    for item in page.data:
        lines.append(f"{item.title}")
        lines.append(f"   Slug: {item.slug}")
        lines.append(f"   Where: {item.city}, {item.country}")
        price = f"{item.currency} {item.effective_price:.2f}"
        if item.discount_price is not None:
            price += f" (was {item.base_price:.2f})"
        lines.append(f"   Price: {price}")
        lines.append(f"   Theme: {item.theme.value} | Difficulty: {item.difficulty.value}")
        lines.append(f"   Rating: {item.average_rating:.1f} ({item.review_count} reviews)")
        lines.append("")
    return "\n".join(lines)


def format_popular(terms: List[PopularTerm], window_days: int) -> str:
    """Format popular search terms for console output."""
    if not terms:
        return f"No searches with results in the last {window_days} days.\n"

    lines = [f"Popular searches (last {window_days} days):"]
    for rank, term in enumerate(terms, start=1):
        lines.append(
            f"{rank:>3}. {term.term} - {term.search_count} searches, "
            f"{term.avg_results:.1f} results on average"
        )
    return "\n".join(lines) + "\n"


async def run_command(args: argparse.Namespace, settings: DiscoverySettings) -> int:
    """
    Execute one CLI command against freshly initialized resources.

    Returns:
        Exit code (0 for success, 1 for error)
    """
    resources = await init_resources(settings)
    service = build_discovery_service(settings, resources)
    try:
        if args.command == "search":
            page = await service.search(SearchRequest(
                query=args.query,
                filters=FilterSet(
                    country=args.country,
                    city=args.city,
                    theme=args.theme,
                    difficulty=args.difficulty,
                    min_price=args.min_price,
                    max_price=args.max_price,
                    min_rating=args.min_rating,
                ),
                sort_by=args.sort_by,
                sort_order=args.sort_order,
                page=args.page,
                limit=args.limit,
            ))
            print(format_page(page))
        elif args.command == "popular":
            terms = await service.popular_searches(args.limit)
            print(format_popular(terms, settings.analytics.popular_window_days))
        elif args.command == "invalidate":
            removed = await service.invalidate_cache(args.pattern)
            print(f"Invalidated {removed} cached response(s)")
        return 0
    except DiscoveryError as e:
        logger.error(f"{e.code}: {e.message}")
        print(f"Error: {e.message}", file=sys.stderr)
        return 1
    finally:
        await service.analytics.drain()
        await close_resources(resources)


def create_argument_parser() -> argparse.ArgumentParser:
    """
    Create and configure the argument parser for CLI.

    Returns:
        Configured ArgumentParser instance
    """
    parser = argparse.ArgumentParser(
        prog="eerie-discovery",
        description="Search the holiday catalog and manage the discovery cache",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Search for haunted holidays, cheapest first
  python -m discovery.cli search "haunted" --sort-by price --sort-order asc

  # Search with filters
  python -m discovery.cli search "witch" --country usa --max-price 1000

  # Show popular searches
  python -m discovery.cli popular --limit 5

  # Drop every cached discovery response
  python -m discovery.cli invalidate
        """
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging output"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    search = subparsers.add_parser("search", help="Run a free-text search")
    search.add_argument("query", help="Search keywords (e.g., 'haunted', 'salem witch')")
    search.add_argument("--country", default=None, help="Country filter (substring, e.g. 'usa')")
    search.add_argument("--city", default=None, help="City filter (substring)")
    search.add_argument("--theme", default=None, help="Theme (e.g. DARK_HISTORY)")
    search.add_argument("--difficulty", default=None, help="Difficulty (e.g. MODERATE)")
    search.add_argument("--min-price", default=None, help="Minimum base price")
    search.add_argument("--max-price", default=None, help="Maximum base price")
    search.add_argument("--min-rating", default=None, help="Minimum average rating (0-5)")
    search.add_argument(
        "--sort-by",
        default=None,
        help="relevance, popularity, price, rating, date or duration"
    )
    search.add_argument("--sort-order", default=None, help="asc or desc")
    search.add_argument("--page", default=None, help="Page number (default: 1)")
    search.add_argument("--limit", default=None, help="Page size (default: 10)")

    popular = subparsers.add_parser("popular", help="Show popular search terms")
    popular.add_argument("--limit", type=int, default=None, help="Number of terms (default: 10)")

    invalidate = subparsers.add_parser("invalidate", help="Invalidate cached responses")
    invalidate.add_argument(
        "--pattern",
        default=None,
        help="Key pattern (default: every discovery endpoint)"
    )

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for the CLI application.

    Returns:
        Exit code (0 for success, 1 for error)
    """
    load_dotenv()
    parser = create_argument_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        logger.debug("Verbose logging enabled")

    try:
        return asyncio.run(run_command(args, get_discovery_settings(reload=True)))
    except KeyboardInterrupt:
        print("\nInterrupted by user", file=sys.stderr)
        return 130
    except Exception as e:
        logger.exception(f"Unexpected error in main: {str(e)}")
        print(f"Unexpected error: {str(e)}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
