"""Rich console output helpers."""

from __future__ import annotations

from rich.console import Console
from rich.table import Table

from ..board.models import Card

# Shared console instance
console = Console()
error_console = Console(stderr=True)


def print_error(message: str) -> None:
    """Print an error message."""
    error_console.print(f"[red]Error:[/red] {message}")


def print_warning(message: str) -> None:
    console.print(f"[yellow]Warning:[/yellow] {message}")


def print_info(message: str) -> None:
    console.print(f"[dim]{message}[/dim]")


_PRIORITY_STYLE = {"critical": "bold red", "high": "red", "medium": "yellow", "low": "green"}


def print_board(board: dict[str, list[Card]], total: int | None = None) -> None:
    """Print one table per column with the visible cards in order."""
    shown = sum(len(cards) for cards in board.values())
    for column, cards in board.items():
        table = Table(title=f"{column} ({len(cards)})", show_header=True, header_style="bold cyan")
        table.add_column("Pos", style="dim", justify="right", width=8)
        table.add_column("Title")
        table.add_column("Priority", width=9)
        table.add_column("Due", style="dim", width=10)
        table.add_column("Labels", style="magenta")

        for card in cards:
            priority = card.priority or "-"
            table.add_row(
                str(card.position),
                card.title,
                f"[{_PRIORITY_STYLE.get(priority, 'dim')}]{priority}[/]",
                card.due_date.isoformat() if card.due_date else "-",
                ", ".join(sorted(card.labels)) or "-",
            )
        console.print(table)

    if total is not None and total != shown:
        print_info(f"{shown}/{total} cards match the filter")
