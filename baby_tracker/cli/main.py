"""
CLI interface for Baby Tracker.

Provides command-line access to sign-in, event logging and summaries.
"""

import logging
import sys
from contextlib import closing
from typing import List, Optional, Tuple

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from baby_tracker.config.loader import AppConfig, load_app_config
from baby_tracker.core.daily import (
    DiaperDayBucket,
    FeedDayBucket,
    diaper_chart_max,
    feed_chart_max,
)
from baby_tracker.core.formatting import (
    diaper_label,
    format_clock,
    format_ounces,
    group_recent,
)
from baby_tracker.sdk.auth_client import AuthError
from baby_tracker.sdk.tracker import EventNotFoundError, Tracker
from baby_tracker.storage.models import DiaperType

app = typer.Typer()
feed_app = typer.Typer(help="Log and review feeds.")
diaper_app = typer.Typer(help="Log and review diaper changes.")
app.add_typer(feed_app, name="feed")
app.add_typer(diaper_app, name="diaper")
console = Console()

EXIT_CODE_OK = 0
EXIT_CODE_FAIL = 1

DEFAULT_CONFIG_PATH = "baby_tracker.yaml"
CHART_WIDTH = 30

ConfigOption = typer.Option(
    DEFAULT_CONFIG_PATH, "--config", "-c", help="Path to YAML configuration file"
)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """Baby Tracker CLI."""
    _configure_logging(verbose)
    if ctx.invoked_subcommand is None:
        console.print("Baby Tracker - Use --help to see available commands")


def _load_config(config_path: str) -> AppConfig:
    try:
        return load_app_config(config_path)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Configuration error:[/] {e}")
        sys.exit(EXIT_CODE_FAIL)


def _start(config_path: str) -> Tracker:
    """Build a tracker and restore the stored session."""
    tracker = Tracker(_load_config(config_path))
    tracker.start()
    if tracker.session is None:
        tracker.close()
        console.print("[red]Not logged in.[/] Run `baby-tracker login EMAIL` first.")
        sys.exit(EXIT_CODE_FAIL)
    return tracker


def _parse_clock(value: Optional[str]) -> Optional[Tuple[int, int]]:
    """Parse ``HH:MM`` (24-hour) into hour and minute."""
    if value is None:
        return None
    try:
        hour_text, minute_text = value.split(":")
        hour, minute = int(hour_text), int(minute_text)
    except ValueError:
        raise typer.BadParameter(f"Expected HH:MM, got {value!r}")
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        raise typer.BadParameter(f"Time out of range: {value!r}")
    return hour, minute


def _report_write(result, action: str) -> None:
    if result.ok:
        console.print(f"[green]✓[/] {action}")
    else:
        # Write failures are not fatal; the list below shows the current state
        console.print(f"[yellow]![/] {action} may not have been saved")


# Authentication

@app.command()
def signup(
    email: str = typer.Argument(..., help="Account email"),
    password: str = typer.Option(..., prompt=True, hide_input=True),
    confirm_password: str = typer.Option(..., prompt="Confirm password", hide_input=True),
    config: str = ConfigOption,
):
    """Create an account and log in."""
    with closing(Tracker(_load_config(config))) as tracker:
        try:
            session = tracker.sign_up(email, password, confirm_password)
        except AuthError as e:
            console.print(f"[red]{e.message}[/]")
            sys.exit(EXIT_CODE_FAIL)
    console.print(f"[green]✓[/] Signed up as {session.email}")


@app.command()
def login(
    email: str = typer.Argument(..., help="Account email"),
    password: str = typer.Option(..., prompt=True, hide_input=True),
    config: str = ConfigOption,
):
    """Log in with email and password."""
    with closing(Tracker(_load_config(config))) as tracker:
        try:
            session = tracker.log_in(email, password)
        except AuthError as e:
            console.print(f"[red]{e.message}[/]")
            sys.exit(EXIT_CODE_FAIL)
    console.print(f"[green]✓[/] Logged in as {session.email}")


@app.command()
def logout(config: str = ConfigOption):
    """Forget the stored session."""
    with closing(Tracker(_load_config(config))) as tracker:
        tracker.log_out()
    console.print("[green]✓[/] Logged out")


@app.command()
def whoami(config: str = ConfigOption):
    """Show the logged-in account."""
    with closing(_start(config)) as tracker:
        console.print(tracker.session.email or tracker.session.local_id)


# Feeds

@feed_app.command("log")
def feed_log(
    ounces: float = typer.Option(4.0, "--oz", help="Ounces, 0.5-10 in 0.5 steps"),
    at: Optional[str] = typer.Option(None, "--at", help="Time today as HH:MM"),
    config: str = ConfigOption,
):
    """Log a feed."""
    with closing(_start(config)) as tracker:
        _apply_feed_entry(tracker, ounces, at)
        _report_write(tracker.save_feed(), f"Logged {format_ounces(ounces)} oz")
        _print_feeds(tracker)


@feed_app.command("edit")
def feed_edit(
    record_id: str = typer.Argument(..., help="Feed id"),
    ounces: Optional[float] = typer.Option(None, "--oz", help="New ounces"),
    at: Optional[str] = typer.Option(None, "--at", help="New time today as HH:MM"),
    config: str = ConfigOption,
):
    """Replace a feed's time and ounces."""
    with closing(_start(config)) as tracker:
        try:
            tracker.edit_feed(record_id)
        except EventNotFoundError as e:
            console.print(f"[red]{e}[/]")
            sys.exit(EXIT_CODE_FAIL)
        _apply_feed_entry(tracker, ounces, at)
        _report_write(tracker.save_feed(), "Feed updated")
        _print_feeds(tracker)


@feed_app.command("delete")
def feed_delete(
    record_id: str = typer.Argument(..., help="Feed id"),
    config: str = ConfigOption,
):
    """Delete a feed."""
    with closing(_start(config)) as tracker:
        _report_write(tracker.delete_feed(record_id), "Feed deleted")
        _print_feeds(tracker)


@feed_app.command("list")
def feed_list(config: str = ConfigOption):
    """Show today's feed stats and recent feeds."""
    with closing(_start(config)) as tracker:
        _print_feeds(tracker)


def _apply_feed_entry(tracker: Tracker, ounces: Optional[float], at: Optional[str]) -> None:
    clock = _parse_clock(at)
    try:
        if ounces is not None:
            tracker.set_ounces(ounces)
        if clock is not None:
            tracker.set_time(*clock)
    except ValueError as e:
        raise typer.BadParameter(str(e))


def _print_feeds(tracker: Tracker) -> None:
    summary = tracker.feed_today()
    console.print(
        f"\n[bold]Today:[/bold] {format_ounces(summary.total_oz)} oz in "
        f"{summary.feed_count} feeds (avg {summary.avg_display} oz)"
    )
    if summary.last_feed_ago:
        console.print(f"Last feed: {summary.last_feed_ago}")

    if not tracker.feeds.events:
        console.print("\n[dim]No feeds logged yet[/]")
        return

    table = Table(title="Recent Feeds")
    table.add_column("Day")
    table.add_column("Time")
    table.add_column("Ounces", justify="right")
    table.add_column("Id", style="dim")
    for header, feeds in group_recent(tracker.feeds.events, tracker.clock(), tracker.tz):
        for index, feed in enumerate(feeds):
            table.add_row(
                header if index == 0 else "",
                format_clock(feed.timestamp, tracker.tz),
                format_ounces(feed.ounces),
                feed.id or "",
            )
    console.print(table)


# Diapers

@diaper_app.command("log")
def diaper_log(
    diaper_type: DiaperType = typer.Option(DiaperType.WET, "--type", "-t"),
    at: Optional[str] = typer.Option(None, "--at", help="Time today as HH:MM"),
    config: str = ConfigOption,
):
    """Log a diaper change."""
    with closing(_start(config)) as tracker:
        _apply_diaper_entry(tracker, diaper_type, at)
        _report_write(tracker.save_diaper(), f"Logged {diaper_label(diaper_type).lower()} diaper")
        _print_diapers(tracker)


@diaper_app.command("edit")
def diaper_edit(
    record_id: str = typer.Argument(..., help="Diaper change id"),
    diaper_type: Optional[DiaperType] = typer.Option(None, "--type", "-t"),
    at: Optional[str] = typer.Option(None, "--at", help="New time today as HH:MM"),
    config: str = ConfigOption,
):
    """Replace a diaper change's time and type."""
    with closing(_start(config)) as tracker:
        try:
            tracker.edit_diaper(record_id)
        except EventNotFoundError as e:
            console.print(f"[red]{e}[/]")
            sys.exit(EXIT_CODE_FAIL)
        _apply_diaper_entry(tracker, diaper_type, at)
        _report_write(tracker.save_diaper(), "Diaper change updated")
        _print_diapers(tracker)


@diaper_app.command("delete")
def diaper_delete(
    record_id: str = typer.Argument(..., help="Diaper change id"),
    config: str = ConfigOption,
):
    """Delete a diaper change."""
    with closing(_start(config)) as tracker:
        _report_write(tracker.delete_diaper(record_id), "Diaper change deleted")
        _print_diapers(tracker)


@diaper_app.command("list")
def diaper_list(config: str = ConfigOption):
    """Show today's diaper stats and recent changes."""
    with closing(_start(config)) as tracker:
        _print_diapers(tracker)


def _apply_diaper_entry(
    tracker: Tracker, diaper_type: Optional[DiaperType], at: Optional[str]
) -> None:
    clock = _parse_clock(at)
    if diaper_type is not None:
        tracker.set_diaper_type(diaper_type)
    if clock is not None:
        tracker.set_time(*clock)


def _print_diapers(tracker: Tracker) -> None:
    summary = tracker.diaper_today()
    console.print(
        f"\n[bold]Today:[/bold] {summary.total} changes "
        f"({summary.wet} wet, {summary.dirty} dirty)"
    )
    if summary.last_change_ago:
        console.print(f"Last change: {summary.last_change_ago}")

    if not tracker.diapers.events:
        console.print("\n[dim]No diapers logged yet[/]")
        return

    table = Table(title="Recent Diapers")
    table.add_column("Day")
    table.add_column("Time")
    table.add_column("Type")
    table.add_column("Id", style="dim")
    for header, diapers in group_recent(tracker.diapers.events, tracker.clock(), tracker.tz):
        for index, diaper in enumerate(diapers):
            table.add_row(
                header if index == 0 else "",
                format_clock(diaper.timestamp, tracker.tz),
                diaper_label(diaper.type),
                diaper.id or "",
            )
    console.print(table)


# Summary

@app.command()
def summary(config: str = ConfigOption):
    """Show today's figures and the daily charts."""
    with closing(_start(config)) as tracker:
        feeds = tracker.feed_today()
        diapers = tracker.diaper_today()

        console.print("\n[bold]Today[/bold]")
        console.print("-" * 40)
        console.print(
            f"Feeds: {format_ounces(feeds.total_oz)} oz, {feeds.feed_count} feeds, "
            f"avg {feeds.avg_display} oz"
            + (f", last {feeds.last_feed_ago}" if feeds.last_feed_ago else "")
        )
        console.print(
            f"Diapers: {diapers.total} total, {diapers.wet} wet, {diapers.dirty} dirty"
            + (f", last {diapers.last_change_ago}" if diapers.last_change_ago else "")
        )

        _print_feed_chart(tracker.feed_series())
        _print_diaper_chart(tracker.diaper_series())


def _bar(value: float, scale: float) -> str:
    return "█" * int(round(CHART_WIDTH * value / scale)) if scale else ""


def _print_feed_chart(buckets: List[FeedDayBucket]) -> None:
    scale = feed_chart_max(buckets)
    table = Table(title=f"Ounces, last {len(buckets)} days")
    table.add_column("Day", justify="right")
    table.add_column("Oz", justify="right")
    table.add_column("")
    for bucket in buckets:
        style = "bold blue" if bucket.is_today else "blue"
        table.add_row(
            bucket.label,
            format_ounces(bucket.ounces),
            f"[{style}]{_bar(bucket.ounces, scale)}[/]",
        )
    console.print(table)


def _print_diaper_chart(buckets: List[DiaperDayBucket]) -> None:
    scale = diaper_chart_max(buckets)
    table = Table(title=f"Diapers, last {len(buckets)} days")
    table.add_column("Day", justify="right")
    table.add_column("Wet", justify="right")
    table.add_column("Dirty", justify="right")
    table.add_column("Total", justify="right")
    table.add_column("")
    for bucket in buckets:
        style = "bold cyan" if bucket.is_today else "cyan"
        table.add_row(
            bucket.label,
            str(bucket.wet),
            str(bucket.dirty),
            str(bucket.total),
            f"[{style}]{_bar(bucket.total, scale)}[/]",
        )
    console.print(table)


if __name__ == "__main__":
    app()
