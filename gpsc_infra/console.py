"""Rich console output shared by all commands."""

from typing import Any, Iterable, Mapping, Optional, Sequence

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

console = Console(soft_wrap=True)


def print_header(title: str) -> None:
    console.print(Panel(escape(title), style="bold blue", expand=False))


def print_status(message: str) -> None:
    console.print(f"[blue]\\[INFO][/blue] {escape(message)}")


def print_success(message: str) -> None:
    console.print(f"[green]\\[SUCCESS][/green] {escape(message)}")


def print_warning(message: str) -> None:
    console.print(f"[yellow]\\[WARNING][/yellow] {escape(message)}")


def print_error(message: str) -> None:
    console.print(f"[red]\\[ERROR][/red] {escape(message)}")


def print_info(message: str) -> None:
    console.print(f"[cyan]{escape(message)}[/cyan]")


def print_key_values(title: str, values: Mapping[str, Any]) -> None:
    """Render a two-column table of labels and values."""
    table = Table(title=title, show_header=False)
    table.add_column("Key", style="cyan")
    table.add_column("Value")
    for key, value in values.items():
        table.add_row(escape(str(key)), escape(str(value)))
    console.print(table)


def print_table(
    title: str,
    columns: Sequence[str],
    rows: Iterable[Sequence[Any]],
    caption: Optional[str] = None,
) -> None:
    table = Table(title=title, caption=caption)
    for column in columns:
        table.add_column(column)
    for row in rows:
        table.add_row(*(escape(str(cell)) for cell in row))
    console.print(table)
