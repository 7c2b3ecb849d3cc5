"""Command line interface.

Usage:
    hndigest --config config.json
    hndigest --config config.json --reverse
    hndigest --config config.json --feeds-only
    hndigest --config config.json --vacuum
    python -m hndigest.pipeline.cli --help
"""

from __future__ import annotations

import asyncio
import logging
import sys

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from hndigest import __version__
from hndigest.errors import ConfigError, PersistenceError
from hndigest.pipeline.config import DEFAULT_CONFIG_PATH, AppConfig
from hndigest.pipeline.orchestrator import IngestOrchestrator
from hndigest.storage.models import IngestSummary

console = Console()
err_console = Console(stderr=True)

logger = logging.getLogger(__name__)


def run_async(coro):
    """Run an async function in a fresh event loop."""
    return asyncio.run(coro)


def setup_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(name)s: %(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=debug, rich_tracebacks=True)],
        force=True,
    )


def render_summary(summary: IngestSummary) -> Table:
    table = Table(title="Fetch Results")
    table.add_column("Source", style="cyan")
    table.add_column("Candidates", justify="right")
    table.add_column("New", justify="right")
    table.add_column("Rejected", justify="right", style="yellow")
    table.add_column("Digest", justify="right", style="green")
    table.add_column("Error", style="red", max_width=50)
    table.add_column("Time", justify="right")

    for r in summary.results:
        table.add_row(
            escape(r.label or r.source_id),
            str(r.candidates),
            str(r.new),
            str(r.total_rejected),
            str(r.digest_size),
            escape(r.error_message or r.send_error or ""),
            f"{r.duration_seconds:.1f}s",
        )
    table.add_section()
    table.add_row(
        "[bold]Total",
        f"[bold]{summary.total_candidates}",
        f"[bold]{summary.total_new}",
        "",
        f"[bold green]{summary.total_fetched}",
        f"[bold red]{summary.total_errors or ''}",
        f"[bold]{summary.duration_seconds:.1f}s",
    )
    return table


@click.command()
@click.option(
    "-c", "--config", "config_path",
    default=DEFAULT_CONFIG_PATH, show_default=True,
    help="Config file path (YAML or JSON).",
)
@click.option("-r", "--reverse", is_flag=True, help="Reverse the filters: exclude matching titles instead of keeping them.")
@click.option("-v", "--vacuum", is_flag=True, help="Remove ledger records older than purge_after_days and exit.")
@click.option("-f", "--feeds-only", is_flag=True, help="Fetch only RSS feeds, skip HackerNews.")
@click.option("--debug", is_flag=True, help="Verbose logging.")
@click.version_option(__version__, prog_name="hndigest")
def cli(config_path: str, reverse: bool, vacuum: bool, feeds_only: bool, debug: bool) -> None:
    """Fetch new HackerNews and RSS items, filter them and send a digest."""
    setup_logging(debug)

    try:
        config = AppConfig.from_file(config_path)
    except ConfigError as e:
        err_console.print(f"[red]Config error:[/red] {escape(str(e))}")
        sys.exit(2)

    try:
        orchestrator = IngestOrchestrator.from_config(config, reverse=reverse, console=console)
    except PersistenceError as e:
        err_console.print(f"[red]Cannot open ledger:[/red] {escape(str(e))}")
        sys.exit(1)

    if vacuum:
        try:
            removed = orchestrator.vacuum()
        except PersistenceError as e:
            err_console.print(f"[red]Vacuum failed:[/red] {escape(str(e))}")
            sys.exit(1)
        console.print(f"[green]Vacuumed the ledger:[/green] {removed} record(s) removed, {len(orchestrator.store)} kept")
        counts = orchestrator.store.count_by_source()
        if counts:
            table = Table(title="Ledger")
            table.add_column("Source", style="cyan")
            table.add_column("Records", justify="right")
            for source, count in sorted(counts.items()):
                table.add_row(escape(source), str(count))
            console.print(table)
        return

    summary = run_async(orchestrator.ingest_all(feeds_only=feeds_only))
    err_console.print(render_summary(summary))
    console.print(f"Fetched new items: {summary.total_fetched}")
    if not summary.success:
        sys.exit(1)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
