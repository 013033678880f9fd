"""Console helpers shared by the db2snow commands."""

from typing import List, Optional, Sequence

from rich.console import Console
from rich.prompt import Prompt
from rich.table import Table

from .database.models import SourceTableMetadata
from .errors import Db2SnowError
from .export import ExportSummary

console = Console()


def print_error(error: BaseException) -> None:
    """Print an error, with its underlying cause when there is one."""
    console.print(f"[red]Error: {error}[/red]")
    cause = getattr(error, "cause", None)
    if isinstance(error, Db2SnowError) and cause is not None:
        console.print(f"[dim]  Caused by: {cause}[/dim]")


def format_bytes(size: Optional[int]) -> str:
    if size is None:
        return "-"
    value = float(size)
    for unit in ("B", "KB", "MB", "GB"):
        if value < 1024 or unit == "GB":
            return f"{value:.0f} {unit}" if unit == "B" else f"{value:.1f} {unit}"
        value /= 1024
    return f"{value:.1f} GB"


def format_duration(seconds: float) -> str:
    if seconds < 60:
        return f"{seconds:.1f}s"
    minutes, secs = divmod(int(seconds), 60)
    return f"{minutes}m {secs}s"


def parse_selection(answer: str, items: Sequence[str]) -> Optional[List[str]]:
    """Parse a selection answer against a list of items.

    Accepts ``all``, 1-based numbers and item names, comma separated.
    Returns None when any token matches nothing.
    """
    answer = answer.strip()
    if answer.lower() in ("all", "*"):
        return list(items)

    selected: List[str] = []
    for token in (t.strip() for t in answer.split(",")):
        if not token:
            continue
        if token.isdigit() and 1 <= int(token) <= len(items):
            item = items[int(token) - 1]
        elif token in items:
            item = token
        else:
            return None
        if item not in selected:
            selected.append(item)
    return selected or None


def choose_items(items: Sequence[str], label: str) -> List[str]:
    """Ask the user to pick items from a numbered list."""
    table = Table(title=f"Available {label}")
    table.add_column("#", style="dim", justify="right")
    table.add_column(label.capitalize(), style="cyan")
    for index, item in enumerate(items, start=1):
        table.add_row(str(index), item)
    console.print(table)

    while True:
        answer = Prompt.ask(f"Select {label} (numbers or names, comma separated)", default="all")
        selected = parse_selection(answer, items)
        if selected:
            return selected
        console.print(f"[yellow]Invalid selection: {answer}[/yellow]")


def tables_table(tables: Sequence[SourceTableMetadata], title: str = "Mapped Tables") -> Table:
    table = Table(title=title)
    table.add_column("Table", style="cyan")
    table.add_column("Columns", justify="right")
    table.add_column("Primary Key", style="green")
    table.add_column("Foreign Keys", justify="right")
    table.add_column("Indexes", justify="right")
    for t in tables:
        table.add_row(
            t.display_name,
            str(len(t.columns)),
            ", ".join(t.primary_key.columns) if t.primary_key else "-",
            str(len(t.foreign_keys)),
            str(len(t.indexes)),
        )
    return table


def export_summary_table(summary: ExportSummary) -> Table:
    table = Table(title="Export Summary")
    table.add_column("Table", style="cyan")
    table.add_column("Status")
    table.add_column("Rows", justify="right")
    table.add_column("Size", justify="right")
    table.add_column("Duration", justify="right")
    table.add_column("Details", overflow="fold")
    for result in summary.results:
        status = "[green]success[/green]" if result.succeeded else "[red]error[/red]"
        table.add_row(
            result.display_name,
            status,
            f"{result.row_count:,}",
            format_bytes(result.file_size),
            format_duration(result.duration),
            result.file_path if result.succeeded else (result.error or ""),
        )
    return table
