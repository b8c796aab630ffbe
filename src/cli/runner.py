# src/cli/runner.py

"""Headless CLI commands: one cycle, watch loop, registration, history."""

import asyncio
import logging

from rich.console import Console
from rich.table import Table

from src.config.settings import Settings
from src.models.price_record import PriceRecord
from src.parsers.registry import ParserRegistry
from src.services.cycle_runner import run_forever
from src.services.reconciliation_job import CycleReport, ReconciliationJob
from src.storage.price_store import PersistenceError, PriceStore

logger = logging.getLogger("price_watch.cli")

# Stderr console for status messages so stdout stays clean for tables
_err = Console(stderr=True)


def print_report(report: CycleReport) -> None:
    """Render a Rich summary table of one cycle to stdout."""
    table = Table(
        title="Reconciliation Cycle",
        show_lines=True,
        title_style="bold cyan",
    )
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")

    duration = (
        f"{(report.finished_at - report.started_at).total_seconds():.1f}s"
        if report.finished_at
        else "—"
    )
    table.add_row("Started", report.started_at.strftime("%Y-%m-%d %H:%M:%S"))
    table.add_row("Duration", duration)
    table.add_row("Products checked", str(report.checked))
    table.add_row("[green]Changed[/green]", str(len(report.changes)))
    table.add_row("Unchanged", str(report.unchanged))
    table.add_row("[yellow]Skipped[/yellow]", str(report.skipped))
    table.add_row("Notified", str(report.notified))
    table.add_row(
        "[red]Failed notifications[/red]",
        str(report.notification_failures),
    )
    table.add_row("Records persisted", str(report.persisted))

    Console().print(table)
    for error_msg in report.errors:
        _err.print(f"[red]Error: {error_msg}[/red]")


def _print_history(records: list[PriceRecord], link: str) -> None:
    """Render a product's price history to stdout."""
    symbol = Settings.CURRENCY_SYMBOL
    table = Table(
        title=f"Price History: {link}",
        show_lines=True,
        title_style="bold cyan",
    )
    table.add_column("#", style="dim", width=4)
    table.add_column("Recorded", style="magenta")
    table.add_column("Price", justify="right", style="green")
    table.add_column("Card price", justify="right", style="green")

    for idx, rec in enumerate(records, 1):
        table.add_row(
            str(idx),
            rec.created_at.strftime("%Y-%m-%d %H:%M:%S"),
            f"{rec.base_price:,.2f} {symbol}",
            f"{rec.discounted_price:,.2f} {symbol}",
        )

    Console().print(table)


async def run_once() -> int:
    """Run a single cycle and return an exit code (0=ok, 1=fail)."""
    _err.print("[bold]Running price reconciliation cycle...[/bold]")
    try:
        report = await ReconciliationJob().run()
    except PersistenceError as exc:
        logger.critical("Cycle aborted: %s", exc, exc_info=True)
        _err.print(f"[red]Cycle failed: {exc}[/red]")
        return 1

    print_report(report)
    return 0


async def run_watch(
    interval: float | None = None,
    max_cycles: int | None = None,
) -> int:
    """Run cycles until interrupted; exit code 0."""
    every = interval if interval is not None else Settings.CYCLE_INTERVAL
    _err.print(
        f"[bold]Watching prices[/bold] [dim]every {every:.0f}s, "
        "Ctrl-C to stop[/dim]"
    )
    completed = await run_forever(
        ReconciliationJob,
        every,
        max_cycles=max_cycles,
        on_report=print_report,
    )
    _err.print(f"[dim]{completed} cycle(s) completed[/dim]")
    return 0


def run_track(chat_id: str, marketplace: str, link: str) -> int:
    """Register *link* for *chat_id*; exit code 1 on unknown marketplace."""
    registry = ParserRegistry()
    if marketplace.lower() not in registry.marketplace_ids:
        valid = ", ".join(registry.marketplace_ids)
        _err.print(f"[red]Unknown marketplace: {marketplace}[/red]")
        _err.print(f"[dim]Available: {valid}[/dim]")
        return 1

    with PriceStore() as store:
        user_id = store.add_user(chat_id)
        product_id = store.add_product(user_id, marketplace, link)

    _err.print(
        f"[green]✓ Tracking product {product_id} for chat {chat_id}[/green]"
    )
    return 0


def run_history(product_id: int) -> int:
    """Print the stored price history of one product."""
    with PriceStore() as store:
        product = store.get_product(product_id)
        if product is None:
            _err.print(f"[red]No product with id {product_id}[/red]")
            return 1
        records = store.get_price_history(product_id)

    if not records:
        _err.print("[yellow]No prices recorded yet.[/yellow]")
        return 0
    _print_history(records, product.link)
    return 0


def run_watch_blocking(interval: float | None) -> int:
    """``asyncio.run`` wrapper that turns Ctrl-C into a clean exit."""
    try:
        return asyncio.run(run_watch(interval))
    except KeyboardInterrupt:
        logger.info("Watch loop interrupted by user")
        _err.print("[dim]Stopped.[/dim]")
        return 0
