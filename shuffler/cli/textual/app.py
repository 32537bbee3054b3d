"""Textual-powered interactive shuffler."""

from __future__ import annotations

import logging

from rich import box
from rich.console import RenderableType
from rich.panel import Panel
from rich.table import Table
from rich.text import Text
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.reactive import reactive
from textual.widgets import Footer, Header, Static

from ...errors import ShufflerError, handle_error
from ...service import ShuffleOutcome, ShuffleService
from ...stats_state import StatsTracker, SyncState
from ..render import format_card, highlighted_positions, pattern_table, render_deck

MAX_EVENT_LINES = 18

logger = logging.getLogger(__name__)


class EventLog(Static):
    """Rolling log of unlocked achievements and notable patterns."""

    lines: reactive[tuple[str, ...]] = reactive((), init=False)

    def on_mount(self) -> None:  # pragma: no cover - widget lifecycle glue
        self._refresh()

    def add(self, message: str) -> None:
        log = list(self.lines)
        log.append(message)
        self.lines = tuple(log[-MAX_EVENT_LINES:])

    def watch_lines(self, value: tuple[str, ...]) -> None:
        self._refresh(value)

    def _refresh(self, lines: tuple[str, ...] | None = None) -> None:
        content = Table.grid(padding=(0, 1))
        content.expand = True
        content.add_column(justify="left")
        rows = lines if lines is not None else self.lines
        if rows:
            for line in rows:
                content.add_row(Text.from_markup(line))
        else:
            content.add_row(Text.from_markup("[dim]Unlocked achievements will appear here[/dim]"))
        self.update(Panel(content, title="Unlocks", border_style="magenta"))


class InfoPanel(Static):
    """Reusable wrapper that expects ``update_panel`` calls with Rich renderables."""

    def update_panel(self, title: str, body: RenderableType, border_style: str = "cyan") -> None:
        self.update(Panel(body, title=title, border_style=border_style))


class StatusStrip(Static):
    """Single line status helper."""

    message: reactive[str] = reactive("", init=False)

    def watch_message(self, value: str) -> None:
        self.update(Panel(Text.from_markup(value or "[dim]Ready[/dim]"), border_style="green"))


_SYNC_LABELS = {
    SyncState.STALE: "[yellow]stale[/yellow]",
    SyncState.OPTIMISTIC: "[cyan]updating…[/cyan]",
    SyncState.RECONCILED: "[green]in sync[/green]",
}


def _stats_renderable(tracker: StatsTracker) -> RenderableType:
    stats = tracker.stats
    table = Table(box=box.SIMPLE_HEAVY, expand=True, show_header=False)
    table.add_column("Metric", justify="left", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Shuffles", str(stats.total_shuffles))
    table.add_row("Streak", f"{stats.shuffle_streak} day(s)")
    table.add_row("Achievements", str(stats.achievements_count))
    table.add_row("Everyone", str(tracker.global_count))
    for entry in stats.most_common_cards[:3]:
        table.add_row("Common opener", f"{format_card(entry.card)} ×{entry.count}")
    table.add_row("Status", _SYNC_LABELS[tracker.state])
    return table


class ShuffleApp(App):
    """Interactive deck shuffler."""

    CSS = """
    Screen {
        layout: vertical;
        height: 100%;
    }

    #main {
        layout: horizontal;
        height: 1fr;
    }

    #left {
        width: 2fr;
        padding: 0 1;
        overflow-y: auto;
    }

    #right {
        width: 1fr;
        padding: 0 1;
        overflow-y: auto;
    }

    InfoPanel, EventLog {
        width: 100%;
        min-height: 6;
    }
    """

    BINDINGS = [
        Binding("space", "shuffle", "Shuffle"),
        Binding("s", "shuffle", "Shuffle", show=False),
        Binding("r", "refresh_stats", "Refresh stats"),
        Binding("q", "quit", "Quit"),
    ]

    def __init__(self, service: ShuffleService) -> None:
        super().__init__()
        self.service = service
        self.user_id = service.identity.current_user()
        self.tracker = StatsTracker(refresh_interval=service.config.stats_cache_ttl)
        self.last_outcome: ShuffleOutcome | None = None

        # Widgets initialised in compose
        self.status_strip: StatusStrip | None = None
        self.deck_panel: InfoPanel | None = None
        self.pattern_panel: InfoPanel | None = None
        self.stats_panel: InfoPanel | None = None
        self.event_log: EventLog | None = None

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)
        self.status_strip = StatusStrip(id="status")
        yield self.status_strip

        self.deck_panel = InfoPanel(id="deck")
        self.pattern_panel = InfoPanel(id="patterns")
        self.deck_panel.update_panel("Deck", Text.from_markup("[dim]Press space to shuffle[/dim]"))
        self.pattern_panel.update_panel("Patterns", Text.from_markup("[dim]Waiting…[/dim]"), "green")

        self.stats_panel = InfoPanel(id="stats")
        self.event_log = EventLog(id="events")

        yield Horizontal(
            Vertical(self.deck_panel, self.pattern_panel, id="left"),
            Vertical(self.stats_panel, self.event_log, id="right"),
            id="main",
        )
        yield Footer()

    def on_mount(self) -> None:
        self.title = f"Shuffler • {self.user_id or 'anonymous'}"
        self.tracker.subscribe(self._on_stats_changed)
        self.action_refresh_stats()

    def _on_stats_changed(self, tracker: StatsTracker) -> None:
        if self.stats_panel is not None:
            self.stats_panel.update_panel("Stats", _stats_renderable(tracker), "blue")

    def _set_status(self, message: str) -> None:
        if self.status_strip is not None:
            self.status_strip.message = message

    def action_refresh_stats(self) -> None:
        try:
            stats = self.service.user_stats() if self.user_id is not None else self.tracker.stats
            self.tracker.fetch_success(stats, self.service.global_count())
        except ShufflerError as exc:
            self.tracker.fetch_failure(handle_error(exc, logger))

    def action_shuffle(self) -> None:
        try:
            outcome = self.service.shuffle()
        except ShufflerError as exc:
            error = handle_error(exc, logger)
            self._set_status(f"[red]{error.message}[/red]")
            return

        self.last_outcome = outcome
        self.tracker.local_update(1, len(outcome.achievements))
        highlight = highlighted_positions(outcome.patterns)
        if self.deck_panel is not None:
            title = f"Deck #{outcome.record.id}" if outcome.record is not None else "Deck"
            self.deck_panel.update_panel(title, render_deck(outcome.deck, highlight))
        if self.pattern_panel is not None:
            self.pattern_panel.update_panel(f"Patterns ({len(outcome.patterns)})", pattern_table(outcome.patterns), "green")
        if self.event_log is not None:
            for achievement in outcome.achievements:
                self.event_log.add(f"[bold yellow]★ {achievement.name}[/bold yellow] {achievement.description}")

        if outcome.achievements:
            self._set_status(f"[yellow]{len(outcome.achievements)} achievement(s) unlocked![/yellow]")
        else:
            self._set_status(f"{len(outcome.patterns)} pattern(s) found.")

        if self.user_id is not None and self.tracker.needs_refresh():
            self.action_refresh_stats()


def run_textual_app(service: ShuffleService) -> None:
    """Launch the Textual UI."""

    app = ShuffleApp(service)
    app.run()
