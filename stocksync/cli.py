"""Command-line interface for the StockSync client."""

import asyncio
import base64
import logging
import sys
from collections.abc import Awaitable, Callable
from pathlib import Path

import click
from jose import JWTError, jwt

from stocksync import __version__
from stocksync.compression import (
    ImageCompressionError,
    compress_image_with_stats,
    file_to_data_url,
    payload_size_kb,
)
from stocksync.config import DEFAULT_CONFIG_FILE, StockSyncConfig, get_config
from stocksync.connectivity import ConnectivityMonitor
from stocksync.notifications import Level, Notification, Notifier
from stocksync.remote import RemoteCollections
from stocksync.storage import LocalStore
from stocksync.store import CATEGORIES_KEY, ITEMS_KEY, StockStore


def setup_logging(level: str) -> None:
    """Set up logging configuration.

    Args:
        level: Log level string.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=numeric_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler()],
    )


def owner_from_token(token: str) -> str:
    """Read the owner id from an access token without verifying it.

    The server verifies every request; the client only needs the subject.

    Raises:
        click.ClickException: If the token is not a readable JWT.
    """
    try:
        claims = jwt.get_unverified_claims(token)
    except JWTError as e:
        raise click.ClickException(f"Invalid access token: {e}")
    owner_id = claims.get("sub")
    if not owner_id:
        raise click.ClickException("Access token has no subject")
    return owner_id


def _show_notification(notification: Notification) -> None:
    prefix = {Level.SUCCESS: "+", Level.INFO: "-", Level.ERROR: "x"}[notification.level]
    click.echo(f"{prefix} {notification.message}", err=notification.level == Level.ERROR)


def run_with_store(
    config: StockSyncConfig,
    action: Callable[[StockStore], Awaitable[object]],
) -> object:
    """Open a session, run ``action`` against the store and close everything.

    The local snapshot is shown first and revalidated from the server before
    ``action`` runs, so read commands still work offline.
    """
    if not config.is_configured():
        click.echo("Error: Client not configured. Run 'stocksync configure' first.")
        sys.exit(1)

    owner_id = owner_from_token(config.api_token)

    async def runner():
        connectivity = ConnectivityMonitor()
        async with RemoteCollections.from_config(config) as remote:
            await connectivity.probe(remote.client, "/health")
            store = StockStore(
                remote,
                LocalStore(config.cache_dir),
                notifier=Notifier(display=_show_notification),
                connectivity=connectivity,
                max_photo_size_kb=config.max_photo_size_kb,
                raw_photo_prefix=config.raw_photo_prefix,
                initial_categories=config.initial_categories,
            )
            await store.authenticate(owner_id)
            return await action(store)

    return asyncio.run(runner())


def _category_names(store: StockStore) -> dict[str, str]:
    return {c.id: c.name for c in store.categories}


def _print_items(store: StockStore, items) -> None:
    names = _category_names(store)
    if not items:
        click.echo("No items found")
        return
    for item in items:
        category = names.get(item.category_id, "-")
        photos = f" [{len(item.photos)} photo(s)]" if item.photos else ""
        click.echo(f"{item.id}  {item.name}  ({category}){photos}")
        if item.description:
            click.echo(f"    {item.description}")


def _load_photos(paths: tuple[str, ...]) -> list[str]:
    try:
        return [file_to_data_url(path) for path in paths]
    except ImageCompressionError as e:
        raise click.ClickException(str(e))


@click.group()
@click.version_option(version=__version__)
@click.option("--log-level", default=None, help="Override the configured log level.")
@click.pass_context
def main(ctx, log_level: str | None):
    """StockSync - offline-tolerant inventory client for StockGenius.

    Reads are served from the local cache and revalidated against the
    server; writes always go to the server first.
    """
    config = get_config()
    setup_logging(log_level or config.log_level)
    ctx.obj = config


@main.command()
@click.option("--server", "-s", prompt="StockGenius Server URL", help="URL of your server.")
@click.option(
    "--token",
    "-t",
    prompt="Access Token",
    hide_input=True,
    help="Token from 'stockgenius issue-token'.",
)
@click.option("--max-photo-kb", type=int, default=None, help="Target photo size in KB.")
@click.pass_obj
def configure(config: StockSyncConfig, server: str, token: str, max_photo_kb: int | None):
    """Save server URL and access token."""
    owner_from_token(token)
    config.server_url = server.rstrip("/")
    config.api_token = token
    if max_photo_kb:
        config.max_photo_size_kb = max_photo_kb

    config.save()
    click.echo(f"\nConfiguration saved to {DEFAULT_CONFIG_FILE}")
    click.echo("Run 'stocksync sync' to download your inventory.")


@main.command()
@click.pass_obj
def status(config: StockSyncConfig):
    """Show configuration and local cache status."""
    click.echo("\n=== StockSync Status ===\n")

    if not config.is_configured():
        click.echo("Status: NOT CONFIGURED")
        click.echo("\nRun 'stocksync configure' to set up the client.")
        return

    token = config.api_token
    click.echo(f"Server URL: {config.server_url}")
    click.echo(f"Token: {'*' * 8}...{token[-4:] if len(token) > 4 else '****'}")
    click.echo(f"Owner: {owner_from_token(token)}")
    click.echo(f"Photo Target: {config.max_photo_size_kb}KB")
    click.echo(f"Raw Photo Prefix: {config.raw_photo_prefix}")

    local = LocalStore(config.cache_dir)
    usage = local.usage()
    click.echo("\n=== Local Cache ===\n")
    click.echo(f"Directory: {config.cache_dir}")
    click.echo(f"Writable: {'yes' if local.is_available() else 'no'}")
    click.echo(f"Cached categories: {len(local.get_item(CATEGORIES_KEY, []))}")
    click.echo(f"Cached items: {len(local.get_item(ITEMS_KEY, []))}")
    click.echo(f"Usage: {usage['used']} bytes ({usage['percentage']:.1f}%)")
    local.purge_check()


@main.command()
@click.pass_obj
def sync(config: StockSyncConfig):
    """Refresh the local cache from the server."""

    async def action(store: StockStore):
        click.echo(f"{len(store.categories)} categories, {len(store.items)} items cached")

    run_with_store(config, action)


@main.command("clear-cache")
@click.pass_obj
def clear_cache(config: StockSyncConfig):
    """Remove the local snapshot."""
    local = LocalStore(config.cache_dir)
    local.remove_item(CATEGORIES_KEY)
    local.remove_item(ITEMS_KEY)
    click.echo("Local cache cleared.")


@main.command()
@click.pass_obj
def categories(config: StockSyncConfig):
    """List categories."""

    async def action(store: StockStore):
        counts = {}
        for item in store.items:
            counts[item.category_id] = counts.get(item.category_id, 0) + 1
        if not store.categories:
            click.echo("No categories")
        for category in store.categories:
            click.echo(f"{category.id}  {category.name} ({counts.get(category.id, 0)})")

    run_with_store(config, action)


@main.command("add-category")
@click.argument("name")
@click.pass_obj
def add_category(config: StockSyncConfig, name: str):
    """Create a category."""

    async def action(store: StockStore):
        return await store.add_category(name)

    if run_with_store(config, action) is None:
        sys.exit(1)


@main.command("delete-category")
@click.argument("category_id")
@click.option("--yes", "-y", is_flag=True, help="Skip the confirmation prompt.")
@click.pass_obj
def delete_category(config: StockSyncConfig, category_id: str, yes: bool):
    """Delete a category and every item in it."""

    def confirm(message: str) -> bool:
        return yes or click.confirm(message, default=False)

    async def action(store: StockStore):
        return await store.delete_category(category_id, confirm)

    if not run_with_store(config, action):
        sys.exit(1)


@main.command()
@click.option("--search", "-q", default="", help="Match against name or description.")
@click.option("--category", "-c", default=None, help="Restrict to a category ID.")
@click.pass_obj
def items(config: StockSyncConfig, search: str, category: str | None):
    """List items, newest first."""

    async def action(store: StockStore):
        store.set_search_query(search)
        store.set_selected_category(category)
        _print_items(store, store.filtered_items)

    run_with_store(config, action)


@main.command("add-item")
@click.argument("name")
@click.option("--category", "-c", required=True, help="Category ID.")
@click.option("--description", "-d", default=None)
@click.option("--photo", "-p", "photos", multiple=True, type=click.Path(exists=True))
@click.pass_obj
def add_item(
    config: StockSyncConfig,
    name: str,
    category: str,
    description: str | None,
    photos: tuple[str, ...],
):
    """Create an item, compressing attached photos."""
    payloads = _load_photos(photos)

    async def action(store: StockStore):
        return await store.add_item(
            {
                "name": name,
                "description": description,
                "category_id": category,
                "photos": payloads,
            }
        )

    if run_with_store(config, action) is None:
        sys.exit(1)


@main.command("update-item")
@click.argument("item_id")
@click.option("--name", "-n", default=None)
@click.option("--description", "-d", default=None)
@click.option("--category", "-c", default=None, help="Category ID.")
@click.option("--photo", "-p", "photos", multiple=True, type=click.Path(exists=True))
@click.option("--replace-photos", is_flag=True, help="Drop existing photos instead of appending.")
@click.pass_obj
def update_item(
    config: StockSyncConfig,
    item_id: str,
    name: str | None,
    description: str | None,
    category: str | None,
    photos: tuple[str, ...],
    replace_photos: bool,
):
    """Update an item's fields or photos."""
    new_payloads = _load_photos(photos)

    async def action(store: StockStore):
        changes = {}
        if name is not None:
            changes["name"] = name
        if description is not None:
            changes["description"] = description
        if category is not None:
            changes["category_id"] = category
        if new_payloads or replace_photos:
            existing = next((i for i in store.items if i.id == item_id), None)
            kept = [] if replace_photos or existing is None else existing.photos
            changes["photos"] = [*kept, *new_payloads]
        if not changes:
            click.echo("Nothing to update")
            return None
        return await store.update_item(item_id, changes)

    if run_with_store(config, action) is None:
        sys.exit(1)


@main.command("delete-item")
@click.argument("item_id")
@click.confirmation_option(prompt="Are you sure you want to delete this item?")
@click.pass_obj
def delete_item(config: StockSyncConfig, item_id: str):
    """Delete an item."""

    async def action(store: StockStore):
        return await store.delete_item(item_id)

    if not run_with_store(config, action):
        sys.exit(1)


@main.command()
@click.option("--top", default=5, show_default=True, help="Categories to list.")
@click.pass_obj
def stats(config: StockSyncConfig, top: int):
    """Show inventory totals and the largest categories."""

    async def action(store: StockStore):
        summary = store.stats(top=top)
        click.echo(f"\nTotal items: {summary['total_items']}")
        click.echo(f"Categories: {summary['total_categories']}")
        click.echo(f"Uncategorized: {summary['uncategorized']}\n")
        for entry in summary["top_categories"]:
            click.echo(f"  {entry['count']:>5}  {entry['name']}")

    run_with_store(config, action)


@main.command()
@click.argument("source", type=click.Path(exists=True, dir_okay=False))
@click.option("--output", "-o", type=click.Path(dir_okay=False), default=None)
@click.option("--max-kb", type=float, default=None, help="Target size in KB.")
@click.pass_obj
def compress(config: StockSyncConfig, source: str, output: str | None, max_kb: float | None):
    """Compress an image file the way photos are compressed before upload."""
    payload = _load_photos((source,))[0]
    target = max_kb or config.max_photo_size_kb

    try:
        result = asyncio.run(compress_image_with_stats(payload, target))
    except ImageCompressionError as e:
        raise click.ClickException(str(e))

    click.echo(f"Original: {payload_size_kb(payload):.1f}KB")
    click.echo(
        f"Compressed: {result.size_kb:.1f}KB at quality {result.quality:.2f} "
        f"({result.attempts} search attempt(s))"
    )

    if output:
        _, _, data = result.payload.partition(",")
        Path(output).write_bytes(base64.b64decode(data))
        click.echo(f"Written to {output}")


if __name__ == "__main__":
    main()
