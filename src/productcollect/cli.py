"""Admin command-line interface for product collects.

Built with Typer for commands and Rich for output. Commands only parse
input, call :class:`CollectManager`, and render results.
"""

from typing import Optional

import typer
from pydantic import BaseModel, ValidationError
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from .catalog import SkuCatalog
from .collects import (
    CollectCreate,
    CollectManager,
    CollectResponse,
    CollectStatus,
    CollectUpdate,
    ProductCollect,
)
from .config import get_config
from .db import get_db
from .exceptions import ProductCollectError
from .logging_config import setup_logging

# Create the main app
app = typer.Typer(
    name="productcollect",
    help="Manage users' product collects (favorites).",
    no_args_is_help=True,
)

# Rich console for pretty output
console = Console()


@app.callback()
def main_callback() -> None:
    """Manage users' product collects (favorites)."""
    config = get_config()
    setup_logging(config.log_level, config.log_file)


# ============================================================================
# Helper Functions
# ============================================================================


def print_error(message: str) -> None:
    """Print an error message."""
    console.print(f"[bold red]Error:[/bold red] {message}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[bold green]Success:[/bold green] {message}")


def print_warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[bold yellow]Warning:[/bold yellow] {message}")


def get_manager() -> CollectManager:
    """Build a manager over the global database using configured limits."""
    return CollectManager.from_config(get_db(), get_config())


def get_catalog() -> SkuCatalog:
    return SkuCatalog(get_db())


def fail(error: ProductCollectError) -> None:
    """Report a domain error and exit with status 1."""
    print_error(escape(error.message))
    raise typer.Exit(1)


def validate_input(schema: type[BaseModel], **data) -> BaseModel:
    """Check command input against a schema, exiting on the first problem."""
    try:
        return schema(**data)
    except ValidationError as e:
        error = e.errors()[0]
        field = ".".join(str(part) for part in error["loc"])
        print_error(escape(f"{field}: {error['msg']}"))
        raise typer.Exit(1)


def parse_status(value: Optional[str]) -> Optional[CollectStatus]:
    if value is None:
        return None
    try:
        return CollectStatus.parse(value)
    except ProductCollectError as e:
        fail(e)


STATUS_STYLES = {
    "success": "green",
    "secondary": "dim",
    "warning": "yellow",
}


def format_collect_table(collects: list[ProductCollect], title: str = "Collects") -> Table:
    """Create a rich table for displaying collect records."""
    details = get_catalog().describe_many(c.sku_id for c in collects)

    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("ID", style="dim")
    table.add_column("User", style="cyan")
    table.add_column("SKU", style="cyan")
    table.add_column("Product", max_width=40)
    table.add_column("Status")
    table.add_column("Group", style="green")
    table.add_column("Top", justify="center")
    table.add_column("Sort", justify="right")
    table.add_column("Created")

    for collect in collects:
        status = collect.status_enum
        product, _thumb = details.get(collect.sku_id, ("-", None))
        style = STATUS_STYLES[status.badge_class]
        table.add_row(
            collect.id,
            collect.user_id,
            collect.sku_id,
            product,
            f"[{style}]{status.label}[/{style}]",
            collect.collect_group or "-",
            "★" if collect.is_top else "",
            str(collect.sort_number),
            collect.create_time.strftime("%Y-%m-%d %H:%M:%S") if collect.create_time else "-",
        )

    return table


def show_collects(collects: list[ProductCollect], title: str) -> None:
    if not collects:
        console.print("[dim]No collects found.[/dim]")
        return
    console.print(format_collect_table(collects, title=title))


# ============================================================================
# Setup Commands
# ============================================================================


@app.command()
def init() -> None:
    """Create the database tables."""
    config = get_config()
    for problem in config.validate():
        print_warning(problem)

    db = get_db()
    db.create_tables()
    print_success(f"Database ready at {db.db_path}")


@app.command("sku-add")
def sku_add(
    sku_id: str = typer.Argument(..., help="SKU id"),
    title: str = typer.Argument(..., help="Product title"),
    thumb: Optional[list[str]] = typer.Option(None, "--thumb", "-t", help="Thumbnail URL"),
) -> None:
    """Register a SKU in the catalog."""
    sku = get_catalog().add_sku(sku_id, title, thumbs=thumb or None)
    print_success(f"SKU {sku.id} registered: {sku.title}")


# ============================================================================
# Collect Commands
# ============================================================================


@app.command()
def add(
    user_id: str = typer.Argument(..., help="User id"),
    sku_id: str = typer.Argument(..., help="SKU id"),
    group: Optional[str] = typer.Option(None, "--group", "-g", help="Collect group"),
    note: Optional[str] = typer.Option(None, "--note", "-n", help="Note"),
) -> None:
    """Collect a SKU for a user."""
    data = validate_input(
        CollectCreate, user_id=user_id, sku_id=sku_id, collect_group=group, note=note
    )
    try:
        sku = get_catalog().require_sku(data.sku_id)
        collect = get_manager().add_to_collection(
            data.user_id, sku.id, data.collect_group, data.note
        )
    except ProductCollectError as e:
        fail(e)

    print_success(f"Collected {sku.title} for {user_id} (#{collect.id})")


@app.command()
def remove(
    user_id: str = typer.Argument(..., help="User id"),
    sku_id: str = typer.Argument(..., help="SKU id"),
) -> None:
    """Permanently delete a user's collect record."""
    try:
        get_manager().remove_from_collection(user_id, sku_id)
    except ProductCollectError as e:
        fail(e)

    print_success(f"Removed {sku_id} from {user_id}'s collects")


@app.command()
def cancel(
    user_id: str = typer.Argument(..., help="User id"),
    sku_id: str = typer.Argument(..., help="SKU id"),
) -> None:
    """Cancel a user's collect."""
    try:
        get_manager().cancel_collection(user_id, sku_id)
    except ProductCollectError as e:
        fail(e)

    print_success(f"Cancelled {sku_id} for {user_id}")


@app.command()
def restore(
    user_id: str = typer.Argument(..., help="User id"),
    sku_id: str = typer.Argument(..., help="SKU id"),
) -> None:
    """Restore a cancelled or hidden collect."""
    try:
        get_manager().restore_collection(user_id, sku_id)
    except ProductCollectError as e:
        fail(e)

    print_success(f"Restored {sku_id} for {user_id}")


@app.command()
def hide(
    user_id: str = typer.Argument(..., help="User id"),
    sku_id: str = typer.Argument(..., help="SKU id"),
) -> None:
    """Hide a user's collect."""
    try:
        get_manager().hide_collection(user_id, sku_id)
    except ProductCollectError as e:
        fail(e)

    print_success(f"Hid {sku_id} for {user_id}")


@app.command()
def toggle(
    user_id: str = typer.Argument(..., help="User id"),
    sku_id: str = typer.Argument(..., help="SKU id"),
    group: Optional[str] = typer.Option(None, "--group", "-g", help="Group if newly collected"),
    note: Optional[str] = typer.Option(None, "--note", "-n", help="Note if newly collected"),
) -> None:
    """Collect a SKU, or cancel/reactivate an existing collect."""
    data = validate_input(
        CollectCreate, user_id=user_id, sku_id=sku_id, collect_group=group, note=note
    )
    try:
        sku = get_catalog().require_sku(data.sku_id)
        collect = get_manager().toggle_collection(
            data.user_id, sku.id, data.collect_group, data.note
        )
    except ProductCollectError as e:
        fail(e)

    print_success(f"{sku_id} is now {collect.status_enum.label.lower()} for {user_id}")


@app.command("batch-add")
def batch_add(
    user_id: str = typer.Argument(..., help="User id"),
    sku_ids: list[str] = typer.Argument(..., help="SKU ids"),
    group: Optional[str] = typer.Option(None, "--group", "-g", help="Collect group"),
) -> None:
    """Collect several SKUs, skipping ones the user already has."""
    for sku_id in sku_ids:
        validate_input(CollectCreate, user_id=user_id, sku_id=sku_id, collect_group=group)

    catalog = get_catalog()
    try:
        for sku_id in dict.fromkeys(sku_ids):
            catalog.require_sku(sku_id)
        created = get_manager().batch_add_to_collection(user_id, sku_ids, group)
    except ProductCollectError as e:
        fail(e)

    skipped = len(set(sku_ids)) - len(created)
    print_success(f"Collected {len(created)} SKU(s), skipped {skipped}")


@app.command("batch-status")
def batch_status(
    status: str = typer.Argument(..., help="Target status: active, cancelled or hidden"),
    collect_ids: list[str] = typer.Argument(..., help="Collect record ids"),
) -> None:
    """Set the status of several collect records."""
    try:
        updated = get_manager().batch_update_status(collect_ids, status)
    except ProductCollectError as e:
        fail(e)

    print_success(f"Updated {updated} collect record(s) to {CollectStatus.parse(status).label}")


# ============================================================================
# Attribute Commands
# ============================================================================


@app.command("toggle-top")
def toggle_top(collect_id: str = typer.Argument(..., help="Collect record id")) -> None:
    """Pin or unpin a collect record."""
    try:
        collect = get_manager().toggle_top(collect_id)
    except ProductCollectError as e:
        fail(e)

    print_success(f"Collect #{collect.id} {'pinned' if collect.is_top else 'unpinned'}")


@app.command()
def pin(
    user_id: str = typer.Argument(..., help="User id"),
    sku_id: str = typer.Argument(..., help="SKU id"),
    off: bool = typer.Option(False, "--off", help="Unpin instead"),
) -> None:
    """Pin a user's collected SKU to the top."""
    if not get_manager().update_collection_top(user_id, sku_id, not off):
        print_error(f"{user_id} has not collected {sku_id}")
        raise typer.Exit(1)

    print_success(f"{sku_id} {'unpinned' if off else 'pinned'} for {user_id}")


@app.command()
def note(
    user_id: str = typer.Argument(..., help="User id"),
    sku_id: str = typer.Argument(..., help="SKU id"),
    text: Optional[str] = typer.Argument(None, help="Note text; omit to clear"),
) -> None:
    """Set or clear the note on a collected SKU."""
    validate_input(CollectUpdate, note=text)
    if not get_manager().update_collection_note(user_id, sku_id, text):
        print_error(f"{user_id} has not collected {sku_id}")
        raise typer.Exit(1)

    print_success("Note updated" if text else "Note cleared")


@app.command()
def sort(
    user_id: str = typer.Argument(..., help="User id"),
    sku_id: str = typer.Argument(..., help="SKU id"),
    sort_number: int = typer.Argument(..., min=0, help="Sort weight, lower first"),
) -> None:
    """Set the sort weight of a collected SKU."""
    if not get_manager().update_collection_sort(user_id, sku_id, sort_number):
        print_error(f"{user_id} has not collected {sku_id}")
        raise typer.Exit(1)

    print_success(f"Sort weight set to {sort_number}")


@app.command("set-group")
def set_group(
    collect_id: str = typer.Argument(..., help="Collect record id"),
    group: Optional[str] = typer.Argument(None, help="Group name; omit to ungroup"),
) -> None:
    """Move a collect record into a group."""
    validate_input(CollectUpdate, collect_group=group)
    try:
        get_manager().update_collection_group(collect_id, group)
    except ProductCollectError as e:
        fail(e)

    print_success(f"Collect #{collect_id} moved to {group or 'ungrouped'}")


# ============================================================================
# Listing Commands
# ============================================================================


@app.command()
def show(
    collect_id: str = typer.Argument(..., help="Collect record id"),
    json_format: bool = typer.Option(False, "--json", "-j", help="Print as JSON"),
) -> None:
    """Show one collect record."""
    collect = get_manager().get_collection(collect_id)
    if collect is None:
        print_error(f"Collect record {collect_id} does not exist")
        raise typer.Exit(1)

    response = CollectResponse.model_validate(collect)
    if json_format:
        typer.echo(response.model_dump_json(indent=2))
        return

    title, thumb = get_catalog().describe(response.sku_id)
    lines = [
        f"[bold]{escape(title or response.sku_id)}[/bold]",
        f"User: {response.user_id}",
        f"SKU: {response.sku_id}",
        f"Status: {response.status.label}",
        f"Group: {escape(response.collect_group or '-')}",
        f"Pinned: {'yes' if response.is_top else 'no'}",
        f"Sort: {response.sort_number}",
    ]
    if thumb:
        lines.append(f"Thumbnail: {thumb}")
    if response.note:
        lines.append(f"Note: {escape(response.note)}")
    lines.append(f"Created: {response.create_time:%Y-%m-%d %H:%M:%S}")
    lines.append(f"Updated: {response.update_time:%Y-%m-%d %H:%M:%S}")

    console.print(Panel("\n".join(lines), title=f"Collect #{response.id}"))


@app.command("list")
def list_collects(
    user_id: str = typer.Argument(..., help="User id"),
    status: Optional[str] = typer.Option(None, "--status", "-s", help="Filter by status"),
    group: Optional[str] = typer.Option(None, "--group", "-g", help="Filter by group"),
    ungrouped: bool = typer.Option(False, "--ungrouped", help="Only ungrouped collects"),
) -> None:
    """List a user's collects (pinned first)."""
    manager = get_manager()
    status_filter = parse_status(status)

    if group is not None or ungrouped:
        collects = manager.get_user_collections_by_group(user_id, group, status_filter)
        title = f"{user_id} / {group or 'ungrouped'}"
    else:
        collects = manager.get_user_collections(user_id, status_filter)
        title = f"Collects of {user_id}"

    show_collects(collects, title)


@app.command()
def groups(user_id: str = typer.Argument(..., help="User id")) -> None:
    """Show a user's collect groups with active counts."""
    group_counts = get_manager().get_user_collection_groups(user_id)
    if not group_counts:
        console.print("[dim]No groups.[/dim]")
        return

    table = Table(title=f"Groups of {user_id}")
    table.add_column("Group", style="green")
    table.add_column("Collects", justify="right")
    for group in group_counts:
        table.add_row(group.name, str(group.count))
    console.print(table)


@app.command()
def top(
    user_id: str = typer.Argument(..., help="User id"),
    limit: int = typer.Option(10, "--limit", "-l", help="Max results"),
) -> None:
    """Show a user's pinned collects."""
    show_collects(get_manager().get_top_collections(user_id, limit), f"Pinned by {user_id}")


@app.command()
def recent(
    user_id: str = typer.Argument(..., help="User id"),
    limit: int = typer.Option(20, "--limit", "-l", help="Max results"),
) -> None:
    """Show a user's most recent collects."""
    show_collects(get_manager().get_recent_collections(user_id, limit), f"Recent for {user_id}")


@app.command()
def popular(limit: int = typer.Option(10, "--limit", "-l", help="Max results")) -> None:
    """Show the most collected SKUs."""
    ranking = get_manager().get_popular_skus(limit)
    if not ranking:
        console.print("[dim]Nothing collected yet.[/dim]")
        return

    details = get_catalog().describe_many(item.sku_id for item in ranking)
    table = Table(title="Popular SKUs")
    table.add_column("#", justify="right", style="dim")
    table.add_column("SKU", style="cyan")
    table.add_column("Product")
    table.add_column("Collects", justify="right", style="green")
    for rank, item in enumerate(ranking, 1):
        title, _thumb = details.get(item.sku_id, ("-", None))
        table.add_row(str(rank), item.sku_id, title, str(item.collect_count))
    console.print(table)


# ============================================================================
# Statistics and Maintenance
# ============================================================================


@app.command()
def stats(user_id: str = typer.Argument(..., help="User id")) -> None:
    """Show a user's collect counts by status."""
    statistics = get_manager().get_collection_statistics(user_id)

    table = Table(title=f"Collects of {user_id}", show_header=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green", justify="right")
    table.add_row("Total", str(statistics.total))
    table.add_row("Active", str(statistics.active))
    table.add_row("Cancelled", str(statistics.cancelled))
    table.add_row("Hidden", str(statistics.hidden))
    console.print(table)


@app.command("global-stats")
def global_stats() -> None:
    """Show collect counts across all users."""
    statistics = get_manager().get_global_collection_statistics()

    table = Table(title="All Collects", show_header=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green", justify="right")
    table.add_row("Total collects", str(statistics.total_collections))
    table.add_row("Active", str(statistics.active_collections))
    table.add_row("Cancelled", str(statistics.cancelled_collections))
    table.add_row("Users", str(statistics.unique_users))
    table.add_row("SKUs", str(statistics.unique_skus))
    table.add_row("Active per user", f"{statistics.avg_collections_per_user:.2f}")
    console.print(table)


@app.command()
def cleanup(
    days: Optional[int] = typer.Option(
        None, "--days", "-d", min=0, help="Age in days (default from config)"
    ),
) -> None:
    """Purge cancelled collects that have not changed for a while."""
    deleted = get_manager().cleanup_cancelled_collections(days)
    print_success(f"Purged {deleted} cancelled collect(s)")


@app.command()
def version() -> None:
    """Show version information."""
    from . import __version__

    console.print(f"productcollect version {__version__}")


# ============================================================================
# Main Entry Point
# ============================================================================


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
