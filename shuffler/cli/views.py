"""Composable view primitives for the shuffler CLI."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from rich import box
from rich.console import Group, RenderableType
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ..leaderboard import LeaderboardPage
from ..service import AchievementStatus, ShuffleOutcome
from ..store import ShuffleRecord
from .render import achievement_table, format_card, highlighted_positions, pattern_table, render_deck


@dataclass(slots=True)
class ShuffleView:
    """Renderable summarising one shuffle and what it earned."""

    outcome: ShuffleOutcome

    def render(self) -> RenderableType:
        highlight = highlighted_positions(self.outcome.patterns)
        title = "Shuffle"
        if self.outcome.record is not None:
            title = f"Shuffle #{self.outcome.record.id}"
        components: list[RenderableType] = [
            Panel(render_deck(self.outcome.deck, highlight), title=title, border_style="cyan"),
            Panel(pattern_table(self.outcome.patterns), title="Patterns", border_style="green"),
        ]
        if self.outcome.achievements:
            components.append(
                Panel(
                    achievement_table(self.outcome.achievements),
                    title="[bold yellow]Achievements unlocked[/bold yellow]",
                    border_style="yellow",
                )
            )
        if self.outcome.record is None:
            components.append(Text.from_markup("[dim]Anonymous shuffle: pass --user to keep your progress.[/dim]"))
        return Group(*components)


@dataclass(slots=True)
class AchievementBoardView:
    statuses: Sequence[AchievementStatus]

    def render(self) -> RenderableType:
        table = Table(box=box.ROUNDED, expand=True)
        table.add_column("", justify="center", width=2)
        table.add_column("Achievement", justify="left", style="bold")
        table.add_column("Category", justify="left")
        table.add_column("Description", justify="left")
        table.add_column("Unlocked", justify="left")
        unlocked = 0
        for status in self.statuses:
            if status.unlocked_at is not None:
                unlocked += 1
                mark = "[green]✔[/green]"
                when = status.unlocked_at.strftime("%Y-%m-%d %H:%M")
                name = f"[yellow]{status.achievement.name}[/yellow]"
            else:
                mark = "[dim]·[/dim]"
                when = "[dim]-[/dim]"
                name = f"[dim]{status.achievement.name}[/dim]"
            table.add_row(mark, name, status.achievement.category.value, status.achievement.description, when)
        return Panel(table, title=f"Achievements {unlocked}/{len(self.statuses)}", border_style="yellow")


@dataclass(slots=True)
class LeaderboardView:
    page: LeaderboardPage

    def render(self) -> RenderableType:
        table = Table(box=box.SIMPLE_HEAVY, expand=True)
        table.add_column("#", justify="right")
        table.add_column("Player", justify="left", style="bold")
        table.add_column("Shuffles", justify="right")
        table.add_column("Streak", justify="right")
        table.add_column("Achievements", justify="right")
        for entry in self.page.entries:
            rank = f"[bold yellow]{entry.rank}[/bold yellow]" if entry.rank <= 3 else str(entry.rank)
            table.add_row(
                rank,
                entry.username,
                str(entry.total_shuffles),
                str(entry.shuffle_streak),
                str(entry.achievements_count),
            )
        if not self.page.entries:
            table.add_row("-", Text.from_markup("[dim]No players yet[/dim]"), "-", "-", "-")
        title = f"Leaderboard by {self.page.sort_by.value.replace('_', ' ')} (page {self.page.page}/{self.page.pages})"
        return Panel(table, title=title, border_style="bright_blue")


@dataclass(slots=True)
class HistoryView:
    records: Sequence[ShuffleRecord]
    title: str = "Shuffle History"

    def render(self) -> RenderableType:
        table = Table(box=box.MINIMAL, expand=True)
        table.add_column("ID", justify="right", style="bold")
        table.add_column("When", justify="left")
        table.add_column("Opening", justify="left")
        table.add_column("Saved", justify="center")
        table.add_column("Share code", justify="left")
        for record in self.records:
            opening = " ".join(format_card(card) for card in record.cards[:5])
            table.add_row(
                str(record.id),
                record.created_at.strftime("%Y-%m-%d %H:%M"),
                opening,
                "[green]✔[/green]" if record.is_saved else "",
                record.share_code or "",
            )
        if not self.records:
            table.add_row("-", Text.from_markup("[dim]Nothing here yet[/dim]"), "", "", "")
        return Panel(table, title=self.title, box=box.SQUARE, border_style="blue")
