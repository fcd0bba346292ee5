import argparse
import asyncio
import logging
import signal
import sys
from typing import List, Optional

from .categories import Category, SortOption, categorize_repos, filter_repos, sort_repos
from .client import GitHubClient
from .config import settings
from .domain import FetchProgress, FetchResult, validate_username
from .export import ExportFormat, export

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FETCH_FAILED = 1
EXIT_INVALID_USERNAME = 2


def parse_args(argv: Optional[List[str]] = None):
    p = argparse.ArgumentParser(
        description="Fetch a user's GitHub stars and sort them into categories"
    )
    p.add_argument("username", help="GitHub username whose stars to fetch")
    p.add_argument(
        "--token",
        default=settings.github_token,
        help="GitHub token (defaults to GITHUB_TOKEN); required for large star lists",
    )
    p.add_argument(
        "--format",
        choices=["summary"] + [f.value for f in ExportFormat],
        default="summary",
        help="Output format",
    )
    p.add_argument("--output", help="Write the export to this file instead of stdout")
    p.add_argument("--filter", default="", help="Only keep repos matching this text")
    p.add_argument(
        "--sort",
        choices=[o.value for o in SortOption],
        default=SortOption.STARS_DESC.value,
        help="Order of repositories within each category",
    )
    p.add_argument(
        "--hide-empty",
        action="store_true",
        help="Leave empty categories out of the summary",
    )
    p.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return p.parse_args(argv)


def report_progress(progress: FetchProgress) -> None:
    print(
        f"Fetched page {progress.current_page}/{progress.total_pages} "
        f"({progress.fetched_count} of ~{progress.estimated_total} stars)",
        file=sys.stderr,
    )


def arrange(
    result: FetchResult, query: str = "", sort: SortOption = SortOption.STARS_DESC
) -> List[Category]:
    """Filter, categorize and sort the fetched repositories."""
    return [
        Category(name=category.name, repos=sort_repos(category.repos, sort))
        for category in categorize_repos(filter_repos(result.repos, query))
    ]


def render_summary(
    username: str,
    result: FetchResult,
    categories: List[Category],
    hide_empty: bool = False,
) -> str:
    lines = [f"⭐ {len(result.repos)} starred repositories for @{username}"]
    if result.error:
        lines.append(f"⚠️ {result.error}")
    if result.requires_token:
        lines.append("🔑 Pass --token or set GITHUB_TOKEN to fetch the rest.")
    lines.append("")

    for category in categories:
        if hide_empty and not category.repos:
            continue
        lines.append(f"{category.name} ({category.count})")
        for repo in category.repos:
            lines.append(f"  - {repo.full_name} ⭐ {repo.stars:,}")

    if result.rate_limit is not None:
        rate_limit = result.rate_limit
        lines.append("")
        lines.append(
            f"🚦 {rate_limit.remaining}/{rate_limit.limit} API requests remaining"
            f", resets in {rate_limit.minutes_until_reset()} min"
        )
    return "\n".join(lines)


async def run(args) -> int:
    """Fetch, categorize and print or export one user's stars."""
    validation_error = validate_username(args.username)
    if validation_error:
        logger.error(f"❌ {validation_error}")
        return EXIT_INVALID_USERNAME

    cancel_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, cancel_event.set)
        handles_sigint = True
    except (NotImplementedError, RuntimeError):
        handles_sigint = False

    try:
        async with GitHubClient(token=args.token) as client:
            result = await client.fetch_starred(
                args.username, on_progress=report_progress, cancel_event=cancel_event
            )
    finally:
        if handles_sigint:
            loop.remove_signal_handler(signal.SIGINT)

    if not result.repos and result.error:
        logger.error(f"❌ {result.error}")
        return EXIT_FETCH_FAILED

    categories = arrange(result, args.filter, SortOption(args.sort))

    if args.format == "summary":
        output = render_summary(args.username, result, categories, args.hide_empty)
    else:
        output = export(ExportFormat(args.format), args.username, categories)
        if result.error:
            logger.warning(f"⚠️ Exporting a partial result: {result.error}")

    if args.output:
        with open(args.output, "w", encoding="utf-8") as fh:
            fh.write(output)
        logger.info(f"💾 Wrote {args.format} output to {args.output}")
    else:
        print(output)
    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
