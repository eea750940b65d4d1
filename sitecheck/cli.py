"""CLI entry point for the broken-link crawler."""

from __future__ import annotations

import asyncio
import logging
import signal
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from sitecheck.crawler.session import CrawlSession
from sitecheck.errors import InvalidStartUrl
from sitecheck.models.config import SiteCheckConfig
from sitecheck.models.events import CrawlEvent
from sitecheck.orchestrator import Orchestrator
from sitecheck.reporter.event_stream import CallbackEventSink, NDJSONEventStream
from sitecheck.url_utils import validate_start_url

console = Console()
err_console = Console(stderr=True)

_EVENT_STYLES = {
    "log": "dim",
    "broken_link": "red",
    "broken_image": "magenta",
    "console_error": "yellow",
    "done": "bold green",
    "error": "bold red",
}


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, rich_tracebacks=True)],
    )


def render_event(event: CrawlEvent) -> None:
    style = _EVENT_STYLES.get(event.type, "")
    console.print(f"[{style}]{escape(event.message)}[/{style}]" if style else escape(event.message))


async def _run_crawl(
    orchestrator: Orchestrator, start_url: Optional[str], sitemap_url: Optional[str]
) -> CrawlSession:
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, orchestrator.stop)
    except (NotImplementedError, RuntimeError):
        pass  # signal handlers unsupported on this platform
    return await orchestrator.run(start_url, sitemap_url)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool) -> None:
    """Crawl a website and report broken links, broken images and console errors."""
    setup_logging(verbose)


@cli.command()
@click.argument("start_url", required=False)
@click.option("--sitemap", "-s", "sitemap_url", default=None, help="Sitemap URL to seed the crawl")
@click.option("--config", "-c", "config_path", default=None, help="Config file path")
@click.option("--max-pages", type=click.IntRange(min=1), default=None, help="Page visit limit")
@click.option("--batch-size", type=click.IntRange(min=1), default=None, help="Pages per batch")
@click.option("--check-external", is_flag=True, default=False, help="HEAD-check off-site links")
@click.option("--headed", is_flag=True, default=False, help="Show the browser window")
@click.option("--ndjson", is_flag=True, help="Write raw events to stdout as JSON lines")
@click.option("--fail-on-broken", is_flag=True, help="Exit with status 1 if anything is broken")
def crawl(
    start_url: Optional[str],
    sitemap_url: Optional[str],
    config_path: Optional[str],
    max_pages: Optional[int],
    batch_size: Optional[int],
    check_external: bool,
    headed: bool,
    ndjson: bool,
    fail_on_broken: bool,
) -> None:
    """Crawl START_URL (or the config's start_url) and report what is broken."""
    try:
        cfg = SiteCheckConfig.load(config_path) if config_path else SiteCheckConfig()
    except FileNotFoundError as e:
        err_console.print(f"[red]{e}[/red]")
        err_console.print("Run 'sitecheck init' to create a default config.")
        sys.exit(2)

    overrides = {}
    if max_pages is not None:
        overrides["max_pages"] = max_pages
    if batch_size is not None:
        overrides["batch_size"] = batch_size
    if check_external:
        overrides["check_external_links"] = True
    if headed:
        overrides["headless"] = False
    if overrides:
        cfg.crawl = cfg.crawl.model_copy(update=overrides)

    try:
        validate_start_url(start_url or cfg.start_url)
    except InvalidStartUrl as e:
        err_console.print(f"[red]{e}[/red]")
        sys.exit(2)

    sink = NDJSONEventStream(sys.stdout) if ndjson else CallbackEventSink(render_event)
    orchestrator = Orchestrator(cfg, sink)
    session = asyncio.run(_run_crawl(orchestrator, start_url, sitemap_url))

    if not ndjson:
        table = Table(title="Crawl Summary")
        table.add_column("Metric", style="bold")
        table.add_column("Value")
        summary = session.summary()
        table.add_row("Pages crawled", str(summary["pages_crawled"]))
        table.add_row("Resources checked", str(summary["resources_checked"]))
        table.add_row("Broken links", f"[red]{summary['broken_links']}[/red]")
        table.add_row("Broken images", f"[magenta]{summary['broken_images']}[/magenta]")
        table.add_row("Console errors", f"[yellow]{summary['console_errors']}[/yellow]")
        table.add_row("Left in queue", str(summary["remaining_in_queue"]))
        console.print(table)

    if fail_on_broken and (session.broken_links_count or session.broken_images_count):
        sys.exit(1)


@cli.command()
@click.option("--start-url", "-u", prompt="Start URL", help="Website URL to crawl")
@click.option("--sitemap", "-s", "sitemap_url", default=None, help="Sitemap URL")
@click.option("--config", "-c", "config_path", default="sitecheck.json", help="Config file path")
def init(start_url: str, sitemap_url: Optional[str], config_path: str) -> None:
    """Create a default configuration file."""
    try:
        start_url = validate_start_url(start_url)
    except InvalidStartUrl as e:
        err_console.print(f"[red]{e}[/red]")
        sys.exit(2)

    path = Path(config_path)
    if path.exists():
        if not click.confirm(f"{path} already exists. Overwrite?"):
            return

    cfg = SiteCheckConfig(start_url=start_url, sitemap_url=sitemap_url)
    cfg.save(path)
    console.print(f"[green]Created {path}[/green]")
    console.print("\nYou can now customize this file and run:")
    console.print(f"  [blue]sitecheck crawl --config {path}[/blue]")


if __name__ == "__main__":
    cli()
