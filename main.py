#!/usr/bin/env python3
"""
MomoXRSS - RSS to Discord Relay
===============================

Main application entry point with CLI interface for management and testing.

Usage:
    python main.py --help                    # Show all commands
    python main.py check-config              # Validate configuration
    python main.py init-db                   # Initialize database
    python main.py serve                     # Start API + poll scheduler
    python main.py test-feed URL             # Fetch a feed and show latest items
    python main.py list-feeds                # Show stored subscriptions
    python main.py run-once                  # Run a single scheduler tick
"""

import sys
import asyncio
from datetime import datetime, timezone
from pathlib import Path

import click
import uvicorn
from rich.console import Console
from rich.table import Table

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent))

from momoxrss.config.settings import get_settings
from momoxrss.database.schema import DatabaseSchema
from momoxrss.database.connection import get_db_manager
from momoxrss.storage.subscription_repository import SubscriptionRepository
from momoxrss.processing.feed_fetcher import FeedFetcher
from momoxrss.processing.novelty import select_latest
from momoxrss.utils.logging import configure_application_logging
from momoxrss.utils.exceptions import MomoXRSSError

console = Console()


def _setup_logging(settings, debug: bool = False) -> None:
    configure_application_logging(
        log_level="DEBUG" if debug else settings.get_effective_log_level(),
        log_file=settings.logging.file_path,
        enable_console=settings.logging.console_logging,
        structured_logging=settings.logging.structured_logging,
        max_file_size_mb=settings.logging.max_file_size_mb,
        backup_count=settings.logging.backup_count,
    )


def _format_epoch_ms(value) -> str:
    if not value:
        return "No date"
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc).strftime("%Y-%m-%d %H:%M UTC")


def _shorten(text: str, width: int) -> str:
    return text[: width - 3] + "..." if len(text) > width else text


@click.group(invoke_without_command=True)
@click.option('--debug', is_flag=True, help='Enable debug mode')
@click.pass_context
def cli(ctx, debug):
    """MomoXRSS - RSS to Discord relay."""
    ctx.ensure_object(dict)
    ctx.obj['debug'] = debug

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@cli.command()
def check_config():
    """Validate configuration and environment variables."""
    console.print("[bold blue]🔧 Checking MomoXRSS Configuration[/bold blue]")

    try:
        settings = get_settings()

        table = Table(title="Configuration Status")
        table.add_column("Component", style="cyan")
        table.add_column("Status", style="green")
        table.add_column("Details")

        checks = [
            ("Database", _check_database_config),
            ("Logging", _check_logging_config),
            ("Discord", _check_discord_config),
            ("API", _check_api_config),
            ("Scheduler", _check_scheduler_config),
        ]

        all_passed = True
        for name, check_func in checks:
            try:
                status, details = check_func(settings)
                table.add_row(name, "✅ Valid" if status else "❌ Invalid", details)
                if not status:
                    all_passed = False
            except Exception as e:
                table.add_row(name, "❌ Error", str(e))
                all_passed = False

        console.print(table)

        if all_passed:
            console.print("[bold green]✅ All configuration checks passed![/bold green]")
            sys.exit(0)
        else:
            console.print("[bold red]❌ Configuration validation failed[/bold red]")
            sys.exit(1)

    except MomoXRSSError as e:
        console.print(f"[bold red]❌ Configuration error: {e}[/bold red]")
        sys.exit(1)


@cli.command()
def init_db():
    """Initialize database with schema."""
    console.print("[bold blue]🗄️ Initializing MomoXRSS Database[/bold blue]")

    try:
        settings = get_settings()
        schema = DatabaseSchema(settings.database.path)
        schema.create_tables()

        if not schema.verify_schema():
            console.print("[bold red]❌ Database schema verification failed[/bold red]")
            sys.exit(1)

        repository = SubscriptionRepository(
            get_db_manager(settings.database.path, settings.database.pool_size)
        )
        subscriptions = repository.list_all()

        info_table = Table(title="Database Information")
        info_table.add_column("Property", style="cyan")
        info_table.add_column("Value", style="green")
        info_table.add_row("Database Path", settings.database.path)
        info_table.add_row("Subscriptions", str(len(subscriptions)))
        info_table.add_row("Active", str(sum(1 for s in subscriptions if s.active)))

        console.print("[bold green]✅ Database initialized successfully![/bold green]")
        console.print(info_table)

    except MomoXRSSError as e:
        console.print(f"[bold red]❌ Database initialization error: {e}[/bold red]")
        sys.exit(1)


@cli.command()
@click.option('--host', default=None, help='Bind address (default from config)')
@click.option('--port', default=None, type=int, help='Bind port (default from config)')
@click.option('--no-scheduler', is_flag=True, help='Serve the API without polling feeds')
@click.pass_context
def serve(ctx, host, port, no_scheduler):
    """Start the management API and the poll scheduler."""
    from momoxrss.api.app import create_app

    settings = get_settings()
    _setup_logging(settings, ctx.obj.get('debug'))

    console.print(f"[bold blue]🚀 Starting {settings.app_name} v{settings.version}[/bold blue]")
    if not settings.discord.bot_token:
        console.print("[yellow]⚠️ Discord bot token not set, deliveries will fail[/yellow]")

    app = create_app(settings, start_scheduler=not no_scheduler)
    uvicorn.run(
        app,
        host=host or settings.api.host,
        port=port or settings.api.port,
        log_config=None,
    )


@cli.command()
@click.argument('url')
@click.option('--limit', default=5, help='Number of items to show (default: 5)')
def test_feed(url, limit):
    """Fetch a feed and show its latest items without touching the database."""
    console.print(f"[bold blue]📡 Fetching RSS Feed: {url}[/bold blue]")

    async def run_fetch():
        fetcher = FeedFetcher()
        try:
            parsed = await fetcher.fetch(url)
        except MomoXRSSError as e:
            console.print(f"[bold red]❌ {e}[/bold red]")
            sys.exit(1)

        console.print(f"[bold green]✅ Feed fetched: {parsed.title or 'Untitled'}[/bold green]")

        items_table = Table(title=f"Items ({len(parsed.items)} total)")
        items_table.add_column("Title", style="cyan")
        items_table.add_column("Published", style="yellow")
        items_table.add_column("Link", style="blue")
        for item in parsed.items[:limit]:
            items_table.add_row(
                _shorten(item.title or "Untitled", 50),
                _format_epoch_ms(item.published_at),
                _shorten(item.link_or_guid, 60),
            )
        console.print(items_table)

        latest = select_latest(parsed.items)
        if latest is not None:
            console.print(f"\n[bold]Would deliver:[/bold] {latest.title or 'Article'}")
            console.print(f"   🔗 {latest.link_or_guid or 'no link'}")

    asyncio.run(run_fetch())


@cli.command()
@click.option('--target', help='Filter by Discord channel id')
def list_feeds(target):
    """Show stored subscriptions with their status."""
    console.print("[bold blue]📊 Subscription Report[/bold blue]")

    try:
        settings = get_settings()
        repository = SubscriptionRepository(
            get_db_manager(settings.database.path, settings.database.pool_size)
        )
        subscriptions = repository.find_by_target(target) if target else repository.list_all()

        if not subscriptions:
            console.print("[yellow]⚠️ No subscriptions found in database[/yellow]")
            return

        feeds_table = Table(title="Subscriptions")
        feeds_table.add_column("Status", style="green")
        feeds_table.add_column("URL", style="blue")
        feeds_table.add_column("Channel", style="yellow")
        feeds_table.add_column("Interval")
        feeds_table.add_column("Last Item", style="cyan")
        feeds_table.add_column("Last Date")

        for subscription in subscriptions:
            feeds_table.add_row(
                "🟢" if subscription.active else "⚪",
                _shorten(subscription.url, 40),
                subscription.target,
                f"{subscription.interval_ms // 1000}s",
                _shorten(subscription.last_seen_link or "-", 40),
                _format_epoch_ms(subscription.last_seen_timestamp),
            )

        console.print(feeds_table)

    except MomoXRSSError as e:
        console.print(f"[bold red]❌ Error listing subscriptions: {e}[/bold red]")
        sys.exit(1)


@cli.command()
@click.pass_context
def run_once(ctx):
    """Run a single scheduler tick over every active subscription."""
    from momoxrss.api.dependencies import build_services

    async def run_tick():
        settings = get_settings()
        _setup_logging(settings, ctx.obj.get('debug'))
        services = build_services(settings)

        try:
            result = await services.scheduler.tick()
        finally:
            await services.close()

        results_table = Table(title="Check Results")
        results_table.add_column("Feed", style="cyan")
        results_table.add_column("Channel", style="yellow")
        results_table.add_column("Status", style="green")
        results_table.add_column("Details")

        for check in result.results:
            if check.error:
                status, details = "❌ Failed", check.error
            elif check.delivered:
                status, details = "📨 Delivered", check.link or ""
            else:
                status, details = "✅ Up to date", ""
            results_table.add_row(_shorten(check.feed_url, 50), check.target, status, _shorten(details, 60))

        console.print(results_table)
        console.print(
            f"\n[bold blue]📊 Summary: {result.due} due, {result.delivered} delivered, "
            f"{result.failed} failed[/bold blue]"
        )
        if result.failed:
            sys.exit(1)

    asyncio.run(run_tick())


# Helper functions for configuration checks
def _check_database_config(settings) -> tuple[bool, str]:
    """Check database configuration."""
    try:
        db_path = Path(settings.database.path)
        db_path.parent.mkdir(parents=True, exist_ok=True)
        return True, f"Path: {settings.database.path}"
    except OSError as e:
        return False, str(e)


def _check_logging_config(settings) -> tuple[bool, str]:
    """Check logging configuration."""
    try:
        if settings.logging.file_path:
            log_path = Path(settings.logging.file_path)
            log_path.parent.mkdir(parents=True, exist_ok=True)
        return True, f"Level: {settings.logging.level.value}, Console: {settings.logging.console_logging}"
    except OSError as e:
        return False, str(e)


def _check_discord_config(settings) -> tuple[bool, str]:
    """Check Discord configuration."""
    if not settings.discord.bot_token:
        return False, "Bot token not set (MOMOXRSS_DISCORD__BOT_TOKEN)"
    return True, f"Bot token configured, API {settings.discord.api_base}"


def _check_api_config(settings) -> tuple[bool, str]:
    auth = "API key required" if settings.api.api_key else "open (no API key)"
    return True, f"{settings.api.host}:{settings.api.port}, {auth}"


def _check_scheduler_config(settings) -> tuple[bool, str]:
    if not settings.scheduler.enabled:
        return True, "Disabled"
    return True, f"Tick every {settings.scheduler.tick_seconds:g}s"


if __name__ == '__main__':
    cli()
