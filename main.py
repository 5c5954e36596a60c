#!/usr/bin/env python3
"""
FeedWorker - Background RSS Ingestion
====================================

Main application entry point with CLI interface for management and testing.

Usage:
    python main.py --help                          # Show all commands
    python main.py check-config                    # Validate configuration
    python main.py init-db                         # Initialize database
    python main.py add-user NAME                   # Create a feed owner
    python main.py add-feed NAME URL --user-id ID  # Subscribe to a feed
    python main.py show-feeds                      # List feeds and watermarks
    python main.py show-posts FEED_ID              # List stored posts of a feed
    python main.py fetch-feed URL                  # Fetch and parse one feed, no storage
    python main.py run-once                        # Run a single ingestion cycle
    python main.py run-worker                      # Run the ingestion loop
"""

import sys
import asyncio
import logging
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent))

from feedworker.config.settings import FeedWorkerSettings, get_settings
from feedworker.database.connection import DatabaseConnection
from feedworker.database.models import Feed, User
from feedworker.database.schema import DatabaseSchema
from feedworker.ingestion.feed_fetcher import FeedFetcher
from feedworker.scheduler.feed_worker import FeedWorker
from feedworker.storage import FeedRepository, PostRepository, SQLiteFeedStore, UserRepository
from feedworker.utils.exceptions import FeedWorkerError
from feedworker.utils.logging import configure_application_logging
from feedworker.utils.validators import URLValidator, validate_name

console = Console()
logger = logging.getLogger(__name__)


def _configure_logging(settings: FeedWorkerSettings, debug: bool) -> None:
    configure_application_logging(
        log_level="DEBUG" if debug else settings.get_effective_log_level(),
        log_file=settings.logging.file_path,
        enable_console=settings.logging.console_logging,
        structured_logging=settings.logging.structured_logging,
        max_file_size=settings.logging.max_file_size_mb * 1024 * 1024,
        backup_count=settings.logging.backup_count,
    )


def _open_database(settings: FeedWorkerSettings) -> DatabaseConnection:
    DatabaseSchema(settings.database.path).create_tables()
    return DatabaseConnection(settings.database.path, settings.database.pool_size)


@click.group(invoke_without_command=True)
@click.option('--debug', is_flag=True, help='Enable debug mode')
@click.pass_context
def cli(ctx, debug):
    """FeedWorker - background RSS/Atom ingestion."""
    ctx.ensure_object(dict)
    ctx.obj['debug'] = debug

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@cli.command()
def check_config():
    """Validate configuration and environment variables."""
    console.print("[bold blue]🔧 Checking FeedWorker Configuration[/bold blue]")

    try:
        settings = get_settings()
    except FeedWorkerError as e:
        console.print(f"[bold red]❌ Configuration error: {e}[/bold red]")
        sys.exit(1)

    table = Table(title="Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Database path", settings.database.path)
    table.add_row("Connection pool", str(settings.database.pool_size))
    table.add_row("Batch size", str(settings.worker.batch_size))
    table.add_row("Interval", f"{settings.worker.interval_seconds}s")
    table.add_row("Fetch timeout", f"{settings.worker.fetch_timeout}s")
    table.add_row("User-Agent", settings.http.user_agent)
    table.add_row("Log level", settings.get_effective_log_level())
    table.add_row("Log file", settings.logging.file_path or "disabled")

    console.print(table)
    console.print("[bold green]✅ Configuration is valid[/bold green]")


@cli.command()
def init_db():
    """Initialize database with schema."""
    console.print("[bold blue]🗄️ Initializing FeedWorker Database[/bold blue]")

    try:
        settings = get_settings()
        schema = DatabaseSchema(settings.database.path)
        schema.create_tables()

        if not schema.verify_schema():
            console.print("[bold red]❌ Database schema verification failed[/bold red]")
            sys.exit(1)

        db = DatabaseConnection(settings.database.path, settings.database.pool_size)
        info = db.get_database_info()
        db.close_all_connections()

    except Exception as e:
        console.print(f"[bold red]❌ Database initialization error: {e}[/bold red]")
        sys.exit(1)

    console.print("[bold green]✅ Database initialized successfully![/bold green]")

    info_table = Table(title="Database Information")
    info_table.add_column("Property", style="cyan")
    info_table.add_column("Value", style="green")

    info_table.add_row("Database Path", settings.database.path)
    info_table.add_row("Size", f"{info['database_size_mb']:.2f} MB")
    for table_name, count in info['table_counts'].items():
        info_table.add_row(f"{table_name.capitalize()}", str(count))

    console.print(info_table)


@cli.command()
@click.argument('name')
def add_user(name):
    """Create a user that can own feeds."""
    try:
        settings = get_settings()
        db = _open_database(settings)
        user = UserRepository(db).create_user(User(name=validate_name(name)))
    except FeedWorkerError as e:
        console.print(f"[bold red]❌ {e.user_message}[/bold red]")
        sys.exit(1)

    console.print(f"[bold green]✅ Created user {user.name}[/bold green]")
    console.print(f"   ID: {user.id}")
    console.print(f"   API key: {user.api_key}")


@cli.command()
@click.argument('name')
@click.argument('url')
@click.option('--user-id', required=True, help='Owning user ID')
def add_feed(name, url, user_id):
    """Subscribe to a feed."""
    try:
        settings = get_settings()
        db = _open_database(settings)

        if UserRepository(db).get_user(user_id) is None:
            console.print(f"[bold red]❌ Unknown user: {user_id}[/bold red]")
            sys.exit(1)

        feed = Feed(
            name=validate_name(name),
            url=URLValidator.validate_feed_url(url),
            user_id=user_id,
        )
        FeedRepository(db).create_feed(feed)
    except FeedWorkerError as e:
        console.print(f"[bold red]❌ {e.user_message}[/bold red]")
        sys.exit(1)

    console.print(f"[bold green]✅ Added feed {feed.name}[/bold green] ({feed.url})")
    console.print(f"   ID: {feed.id}")


@cli.command()
def show_feeds():
    """List feeds with their last fetch time."""
    try:
        settings = get_settings()
        db = _open_database(settings)
        feeds = FeedRepository(db).get_all_feeds()
        posts = PostRepository(db)
        counts = {feed.id: posts.count_posts_for_feed(feed.id) for feed in feeds}
    except FeedWorkerError as e:
        console.print(f"[bold red]❌ {e.user_message}[/bold red]")
        sys.exit(1)

    if not feeds:
        console.print("[yellow]No feeds configured[/yellow]")
        return

    table = Table(title=f"Feeds ({len(feeds)})")
    table.add_column("ID", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("URL")
    table.add_column("Last fetched", style="green")
    table.add_column("Posts", justify="right")

    for feed in feeds:
        last_fetched = feed.last_fetched_at.strftime('%Y-%m-%d %H:%M:%S') if feed.last_fetched_at else "never"
        table.add_row(feed.id, feed.name, feed.url, last_fetched, str(counts[feed.id]))

    console.print(table)


@cli.command()
@click.argument('feed_id')
@click.option('--limit', default=20, help='Maximum posts to show (default: 20)')
def show_posts(feed_id, limit):
    """List stored posts of a feed, newest first."""
    try:
        settings = get_settings()
        db = _open_database(settings)
        posts = PostRepository(db).get_posts_for_feed(feed_id, limit=limit)
    except FeedWorkerError as e:
        console.print(f"[bold red]❌ {e.user_message}[/bold red]")
        sys.exit(1)

    if not posts:
        console.print(f"[yellow]No posts stored for feed {feed_id}[/yellow]")
        return

    table = Table(title=f"Posts ({len(posts)})")
    table.add_column("Published", style="green")
    table.add_column("Title", style="cyan")
    table.add_column("URL")

    for post in posts:
        title = post.title[:67] + "..." if len(post.title) > 70 else post.title
        table.add_row(post.published_at.strftime('%Y-%m-%d %H:%M'), title, post.url)

    console.print(table)


@cli.command()
@click.argument('url')
@click.option('--items', default=5, help='Number of items to show (default: 5)')
@click.pass_context
def fetch_feed(ctx, url, items):
    """Fetch and parse a single feed without storing anything."""
    console.print(f"[bold blue]📡 Fetching Feed: {url}[/bold blue]")

    settings = get_settings()
    _configure_logging(settings, ctx.obj.get('debug', False))
    fetcher = FeedFetcher.from_settings(settings)

    try:
        raw_feed = asyncio.run(fetcher.fetch(url))
    except FeedWorkerError as e:
        console.print(f"[bold red]❌ {e}[/bold red]")
        sys.exit(1)

    console.print("[bold green]✅ Feed fetched successfully![/bold green]")

    info_table = Table(title="Feed Information")
    info_table.add_column("Property", style="cyan")
    info_table.add_column("Value", style="green")
    info_table.add_row("Title", raw_feed.title or "Unknown")
    info_table.add_row("Items Found", str(len(raw_feed.items)))
    info_table.add_row("Feed URL", url)
    console.print(info_table)

    if raw_feed.items:
        console.print(f"\n[bold blue]📰 Items (showing first {min(items, len(raw_feed.items))}):[/bold blue]")
        for i, item in enumerate(raw_feed.items[:items], 1):
            console.print(f"\n{i}. [bold]{item.title or '(untitled)'}[/bold]")
            console.print(f"   📅 Published: {item.pub_date or 'No date'}")
            console.print(f"   🔗 Link: {item.link or 'No link'}")


@cli.command()
@click.pass_context
def run_once(ctx):
    """Run a single ingestion cycle."""
    settings = get_settings()
    _configure_logging(settings, ctx.obj.get('debug', False))
    db = _open_database(settings)
    worker = FeedWorker.from_settings(SQLiteFeedStore(db), settings)

    try:
        result = asyncio.run(worker.run_cycle())
    finally:
        db.close_all_connections()

    if result.error:
        console.print(f"[bold red]❌ Cycle failed: {result.error}[/bold red]")
        sys.exit(1)

    if not result.selected:
        console.print("[yellow]No feeds due for fetching[/yellow]")
        return

    table = Table(title="Cycle Results")
    table.add_column("Feed", style="cyan")
    table.add_column("Status", style="green")
    table.add_column("New", justify="right")
    table.add_column("Duplicates", justify="right")
    table.add_column("Details")

    for outcome in result.outcomes:
        url = outcome.feed_url
        table.add_row(
            url[:50] + "..." if len(url) > 50 else url,
            "✅ Success" if outcome.success else "❌ Failed",
            str(outcome.stats.stored) if outcome.stats else "-",
            str(outcome.stats.duplicates) if outcome.stats else "-",
            outcome.error or "",
        )

    console.print(table)
    console.print(
        f"[bold]{result.succeeded}/{result.selected} feeds fetched, "
        f"{result.new_entries} new posts in {result.duration_seconds:.2f}s[/bold]"
    )


@cli.command()
@click.option('--max-cycles', type=int, default=None, help='Stop after this many cycles')
@click.pass_context
def run_worker(ctx, max_cycles):
    """Run the ingestion loop until interrupted."""
    settings = get_settings()
    _configure_logging(settings, ctx.obj.get('debug', False))
    db = _open_database(settings)
    worker = FeedWorker.from_settings(SQLiteFeedStore(db), settings)

    console.print(
        f"[bold blue]🔄 FeedWorker running: {settings.worker.batch_size} feeds "
        f"every {settings.worker.interval_seconds}s[/bold blue]"
    )
    console.print("Press Ctrl+C to stop.")

    try:
        cycles = asyncio.run(worker.run_forever(max_cycles=max_cycles))
        console.print(f"[bold green]✅ Completed {cycles} cycles[/bold green]")
    except KeyboardInterrupt:
        console.print("\n[yellow]👋 Worker stopped by user[/yellow]")
    finally:
        db.close_all_connections()


if __name__ == '__main__':
    cli()
