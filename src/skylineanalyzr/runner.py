"""CLI runner for ranking properties and checking data sources.

Run via: python -m skylineanalyzr.runner rank
     or: python -m skylineanalyzr.runner sources
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .analysis.ranker import PropertyRanker
from .analysis.scoring import PROFILES
from .config import config
from .dataset import Dataset
from .errors import SkylineError
from .sources.manager import SourceManager

console = Console()


def setup_logging(verbose: bool = False) -> None:
    """Configure logging with Rich handler."""
    level = logging.DEBUG if verbose else getattr(logging, config.log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def _score_style(score: int) -> str:
    if score >= 80:
        return f"[green]{score}[/green]"
    if score >= 65:
        return f"[yellow]{score}[/yellow]"
    return f"[red]{score}[/red]"


def run_rank(
    profile: str,
    top: int,
    dataset_path: Path | None = None,
    submarket: str | None = None,
    report: bool = False,
) -> int:
    """Rank the dataset and print the leaders.

    Returns:
        Number of properties ranked
    """
    dataset = Dataset(
        path=dataset_path or config.dataset_path,
        synthetic_count=config.synthetic_count,
        seed=config.synthetic_seed,
    )
    ranker = PropertyRanker(profile=profile)
    records = dataset.filter(submarket=submarket) if submarket else dataset.records

    if not records:
        console.print("[yellow]No properties match.[/yellow]")
        return 0

    if report:
        console.print(ranker.generate_report(records, top_n=top))
        return len(records)

    ranked = ranker.rank(records)
    dims = ranker.profile.dimensions

    table = Table(show_header=True, header_style="bold", title=f"{profile} ranking")
    table.add_column("#", justify="right")
    table.add_column("Score", justify="right")
    table.add_column("Address", max_width=30)
    table.add_column("Submarket")
    table.add_column("Type")
    for dim in dims:
        table.add_column(dim.title(), justify="right")
    table.add_column("Price", justify="right")

    for record, score in ranked[:top]:
        subs = score.sub_scores()
        price = f"${record.asking_price:,.0f}" if record.asking_price else "N/A"
        table.add_row(
            str(score.rank),
            _score_style(score.overall),
            record.address[:30],
            record.submarket or "-",
            record.property_category.value if record.property_category else "-",
            *(str(subs[d]) for d in dims),
            price,
        )

    console.print(table)
    summary = ranker.summarize(ranked)
    console.print(
        f"[dim]{summary['totalAnalyzed']} analyzed, average {summary['averageScore']}/100[/dim]"
    )
    return len(ranked)


async def run_sources() -> int:
    """Fetch every source once and print its status.

    Returns:
        Number of degraded sources
    """
    manager = SourceManager()
    try:
        aggregate = await manager.fetch_all()
    finally:
        await manager.close()

    table = Table(show_header=True, header_style="bold", title="Data sources")
    table.add_column("Source")
    table.add_column("Status")
    table.add_column("Cached")
    table.add_column("Detail", max_width=50)

    for key, resp in aggregate.results.items():
        status = "[green]ok[/green]" if resp.success else "[red]unavailable[/red]"
        table.add_row(key, status, "yes" if resp.cached else "no", resp.error_message or "")

    console.print(table)
    if aggregate.warning:
        console.print(f"[yellow]{aggregate.warning.message}[/yellow]")
    return len(aggregate.degraded_sources)


def main() -> None:
    """Main entry point for CLI."""
    parser = argparse.ArgumentParser(
        description="SkylineAnalyzr conversion analytics",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m skylineanalyzr.runner rank
  python -m skylineanalyzr.runner rank --profile investment --top 20
  python -m skylineanalyzr.runner rank --dataset properties.json --report
  python -m skylineanalyzr.runner sources -v
        """,
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    rank = sub.add_parser("rank", help="Score and rank the property dataset")
    rank.add_argument("--profile", choices=sorted(PROFILES), default=config.default_profile)
    rank.add_argument("--top", type=int, default=10, help="Rows to show")
    rank.add_argument("--dataset", type=Path, help="JSON file of property records")
    rank.add_argument("--submarket", help="Only rank one submarket")
    rank.add_argument("--report", action="store_true", help="Print the text report instead of a table")

    sub.add_parser("sources", help="Fetch every data source and show its status")

    args = parser.parse_args()
    setup_logging(verbose=args.verbose)

    try:
        if args.command == "rank":
            run_rank(args.profile, args.top, args.dataset, args.submarket, args.report)
            sys.exit(0)
        degraded = asyncio.run(run_sources())
        sys.exit(0 if degraded == 0 else 1)
    except SkylineError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/yellow]")
        sys.exit(130)


if __name__ == "__main__":
    main()
