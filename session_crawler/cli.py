#!/usr/bin/env python3
"""CLI entry point for the session crawler."""

import argparse
import asyncio
import json
import logging
import sys

from .config import CrawlerConfig
from .crawler import SessionCrawler
from .db import ProductDatabase
from .errors import CrawlerError
from .ingest import ingest_detail, ingest_search
from .models import ProductDetail, SearchFilters, SearchQuery, SearchResultPage, SortBy
from .retry import with_retry
from .sites import SITES


def print_search(page: SearchResultPage) -> None:
    """Print search result summary."""
    p = page.pagination
    print(
        f"\n[{page.metadata.keyword}] {len(page.items)} items "
        f"(page {p.current_page}/{p.total_pages}, {p.total_items} total, "
        f"{page.metadata.response_time_ms}ms):"
    )
    for i, item in enumerate(page.items[:10], 1):
        print(f"  {i}. {item.title} - {item.price_text} ({item.shop_name or '?'})")
    if len(page.items) > 10:
        print(f"  ... and {len(page.items) - 10} more")


def build_query(args: argparse.Namespace) -> SearchQuery:
    filters = None
    if args.min_price is not None or args.max_price is not None or args.free_shipping:
        filters = SearchFilters(
            min_price=args.min_price,
            max_price=args.max_price,
            free_shipping=args.free_shipping,
        )
    return SearchQuery(
        keyword=args.search,
        page=args.page,
        page_size=args.page_size,
        sort_by=SortBy(args.sort),
        filters=filters,
    )


async def run_command(args: argparse.Namespace, config: CrawlerConfig) -> int:
    crawler = SessionCrawler(config)
    db = ProductDatabase(config.db_path) if args.save else None
    try:
        if args.clear:
            await crawler.clear_session()
            print("Session cleared")
            return 0

        if args.status:
            status = await crawler.get_session_status()
            print(json.dumps(status.to_dict(), ensure_ascii=False, indent=2))
            return 0 if status.is_logged_in else 1

        if args.login:
            result = await crawler.create_login_session(args.wait)
            print(json.dumps(result.to_dict(), ensure_ascii=False, indent=2))
            return 0 if result.success else 1

        if args.search:
            query = build_query(args)

            async def search() -> SearchResultPage:
                if db is not None:
                    page, _ = await ingest_search(crawler, db, query)
                    return page
                page = await crawler.search(query)
                page.raise_for_error()
                return page

            page = await with_retry(search, max_attempts=args.retries)
            if args.json:
                print(json.dumps(page.to_dict(), ensure_ascii=False, indent=2))
            else:
                print_search(page)
            return 0

        if args.detail:

            async def fetch() -> ProductDetail:
                if db is not None:
                    detail, _ = await ingest_detail(crawler, db, args.detail)
                    return detail
                return await crawler.get_detail(args.detail)

            detail = await with_retry(fetch, max_attempts=args.retries)
            print(json.dumps(detail.to_dict(), ensure_ascii=False, indent=2))
            return 0
    except CrawlerError as e:
        print(f"Error [{e.code}]: {e}", file=sys.stderr)
        return 1
    finally:
        await crawler.close()
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Authenticated storefront crawler",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  session-crawler --login --wait 180           # Log in manually, store the session
  session-crawler --status                     # Verify the stored session
  session-crawler --search "phone case" -p 2   # Search, second page
  session-crawler --detail "https://item.taobao.com/item.htm?id=1"
  session-crawler --clear                      # Delete the stored session
  session-crawler --serve                      # Run the HTTP API
        """,
    )

    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument("--login", action="store_true", help="Open the login page and store the session")
    group.add_argument("--status", action="store_true", help="Show stored session status")
    group.add_argument("--clear", action="store_true", help="Delete the stored session")
    group.add_argument("--search", "-s", metavar="KEYWORD", help="Search for a keyword")
    group.add_argument("--detail", "-d", metavar="URL", help="Fetch a product detail page")
    group.add_argument("--list", "-l", action="store_true", help="List available sites")
    group.add_argument("--serve", action="store_true", help="Run the HTTP API")

    parser.add_argument("--site", help="Target site (default: taobao)")
    parser.add_argument("--headless", action="store_true", help="Run the browser headless")
    parser.add_argument("--wait", type=int, default=120, help="Seconds to wait for manual login")
    parser.add_argument("--page", "-p", type=int, default=1, help="Result page (1-based)")
    parser.add_argument("--page-size", type=int, help="Page size used for pagination math")
    parser.add_argument("--sort", default="default", choices=[s.value for s in SortBy])
    parser.add_argument("--min-price", type=float)
    parser.add_argument("--max-price", type=float)
    parser.add_argument("--free-shipping", action="store_true")
    parser.add_argument("--retries", type=int, default=1, help="Attempts for search/detail (default: 1)")
    parser.add_argument("--save", action="store_true", help="Store results in the product database (needs a logged-in session)")
    parser.add_argument("--json", action="store_true", help="Print search results as JSON")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    if args.list:
        print("Available sites:")
        for name, site in SITES.items():
            print(f"  - {name} ({site.display_name})")
        return 0

    if args.serve:
        from .webapp.run import main as run_server

        run_server([])
        return 0

    overrides = {}
    if args.site:
        overrides["site"] = args.site
    if args.headless:
        overrides["headless"] = True
    config = CrawlerConfig.from_env(**overrides)

    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        return asyncio.run(run_command(args, config))
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
