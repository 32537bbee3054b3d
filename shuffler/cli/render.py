"""Rendering helpers dedicated to the CLI experience."""

from __future__ import annotations

from typing import Collection, Iterable, Sequence

from rich import box
from rich.console import RenderableType
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ..achievements import Achievement, UserStats
from ..cards import Card, Suit
from ..patterns import Pattern, PatternType

_SUIT_STYLES = {
    Suit.HEARTS: "red",
    Suit.DIAMONDS: "magenta",
    Suit.CLUBS: "green",
    Suit.SPADES: "cyan",
}

_TYPE_STYLES = {
    PatternType.LEGENDARY: "bold yellow",
    PatternType.ROYAL_FLUSH: "bold yellow",
    PatternType.STRAIGHT_FLUSH: "bold magenta",
    PatternType.SPECIAL: "cyan",
}


def format_card(card: Card) -> str:
    """Return a Rich-rendered label for ``card``."""

    color = _SUIT_STYLES.get(card.suit, "white")
    return f"[{color}]{card.label()}[/{color}]"


def highlighted_positions(patterns: Iterable[Pattern]) -> set[int]:
    return {index for pattern in patterns for index in pattern.indices}


def render_deck(cards: Sequence[Card], highlight: Collection[int] = (), *, columns: int = 13) -> RenderableType:
    """Lay ``cards`` out in rows, emphasising the positions in ``highlight``."""

    if not cards:
        return Text.from_markup("[dim]No cards[/dim]")

    columns = max(1, columns)
    grid = Table.grid(expand=False, padding=(0, 1))
    for _ in range(min(columns, len(cards))):
        grid.add_column(justify="right")

    for start in range(0, len(cards), columns):
        row: list[str] = []
        for position, card in enumerate(cards[start : start + columns], start=start):
            label = format_card(card)
            if position in highlight:
                label = f"[bold reverse]{label}[/bold reverse]"
            row.append(label)
        grid.add_row(*row)
    return grid


def pattern_table(patterns: Sequence[Pattern]) -> RenderableType:
    if not patterns:
        return Text.from_markup("[dim]No patterns this time[/dim]")
    table = Table(box=box.SIMPLE_HEAVY, expand=True)
    table.add_column("Pattern", justify="left", style="bold")
    table.add_column("Type", justify="left")
    table.add_column("Details", justify="left")
    for pattern in patterns:
        style = _TYPE_STYLES.get(pattern.type, "white")
        table.add_row(pattern.name, f"[{style}]{pattern.type.value}[/{style}]", pattern.description)
    return table


def achievement_table(achievements: Sequence[Achievement], *, title: str | None = None) -> RenderableType:
    table = Table(title=title, box=box.SIMPLE_HEAVY, expand=True)
    table.add_column("Achievement", justify="left", style="bold yellow")
    table.add_column("Category", justify="left")
    table.add_column("Description", justify="left")
    for achievement in achievements:
        table.add_row(achievement.name, achievement.category.value, achievement.description)
    if not achievements:
        table.add_row(Text.from_markup("[dim]None yet[/dim]"), "-", "-")
    return table


def stats_panel(stats: UserStats, *, title: str = "Your Stats") -> Panel:
    grid = Table.grid(expand=True)
    grid.add_column(justify="left")
    grid.add_row(f"[cyan]Shuffles[/cyan]: {stats.total_shuffles}")
    grid.add_row(f"[cyan]Streak[/cyan]: {stats.shuffle_streak} day(s)")
    grid.add_row(f"[cyan]Achievements[/cyan]: {stats.achievements_count}")
    if stats.most_common_cards:
        common = ", ".join(f"{format_card(entry.card)} ×{entry.count}" for entry in stats.most_common_cards)
        grid.add_row(f"[cyan]Most common openers[/cyan]: {common}")
    return Panel(grid, title=title, box=box.SQUARE, border_style="blue")
