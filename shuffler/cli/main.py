"""Typer entry-point wiring for the shuffler CLI."""

from __future__ import annotations

import logging
import random
from contextlib import contextmanager
from typing import Iterator, Optional

import typer
from rich import box
from rich.console import Console
from rich.table import Table

from .. import analysis
from ..config import load_config
from ..errors import ShufflerError, handle_error
from ..identity import StaticIdentity
from ..leaderboard import SortKey
from ..logging_config import setup_logging
from ..service import ShuffleService
from ..store import ShuffleStore
from ..validation import validate_username
from .render import achievement_table, format_card, render_deck, stats_panel
from .textual import run_textual_app
from .views import AchievementBoardView, HistoryView, LeaderboardView, ShuffleView

app = typer.Typer(add_completion=False, rich_markup_mode="rich", help="A virtual deck shuffler with achievements.")
console = Console()
logger = logging.getLogger(__name__)

_USER_OPTION = typer.Option(None, "--user", "-u", envvar="SHUFFLER_USER", help="Username to shuffle as.")


@contextmanager
def _service(user: Optional[str], seed: Optional[int] = None) -> Iterator[ShuffleService]:
    """Open the configured store and yield a service bound to ``user``."""

    config = load_config()
    setup_logging(config)
    try:
        user_id = validate_username(user) if user else None
        with ShuffleStore(config.database_path) as store:
            if user_id is not None:
                store.ensure_user(user_id, user_id)
            rng = random.Random(seed) if seed is not None else None
            yield ShuffleService(store, StaticIdentity(user_id), config, rng=rng)
    except ShufflerError as exc:
        error = handle_error(exc, logger)
        console.print(f"[red]{error.message}[/red]")
        raise typer.Exit(code=1) from exc


@app.command()
def shuffle(
    user: Optional[str] = _USER_OPTION,
    seed: Optional[int] = typer.Option(None, help="Random seed for a reproducible shuffle (omit for randomness)."),
) -> None:
    """Shuffle a fresh deck and look for patterns."""

    with _service(user, seed) as service:
        outcome = service.shuffle()
        console.print(ShuffleView(outcome).render())
        if outcome.stats is not None:
            console.print(stats_panel(outcome.stats))


@app.command()
def stats(user: Optional[str] = _USER_OPTION) -> None:
    """Show shuffle counters and unlocked achievements."""

    with _service(user) as service:
        console.print(stats_panel(service.user_stats()))
        console.print(achievement_table(service.unlocked_achievements(), title="Unlocked"))
        console.print(f"[cyan]{service.global_count()} shuffle(s) recorded by everyone.[/cyan]")


@app.command()
def achievements(user: Optional[str] = _USER_OPTION) -> None:
    """List every achievement and which ones you have."""

    with _service(user) as service:
        console.print(AchievementBoardView(service.achievement_board()).render())


@app.command()
def leaderboard(
    sort: SortKey = typer.Option(SortKey.TOTAL_SHUFFLES, "--sort", help="Counter to rank players by."),
    page: int = typer.Option(1, min=1, help="Page number."),
) -> None:
    """Rank players by shuffles, streak or achievements."""

    with _service(None) as service:
        console.print(LeaderboardView(service.leaderboard(sort, page)).render())


@app.command()
def history(
    user: Optional[str] = _USER_OPTION,
    saved: bool = typer.Option(False, "--saved", help="Only list saved shuffles."),
    page: int = typer.Option(1, min=1, help="Page number."),
) -> None:
    """List your previous shuffles, newest first."""

    with _service(user) as service:
        records = service.history(saved_only=saved, page=page)
        console.print(HistoryView(records, title="Saved Shuffles" if saved else "Shuffle History").render())


@app.command()
def save(
    shuffle_id: int = typer.Argument(..., help="Shuffle id as shown by `history`."),
    user: Optional[str] = _USER_OPTION,
    unsave: bool = typer.Option(False, "--unsave", help="Remove the shuffle from your saved list."),
) -> None:
    """Save (or unsave) one of your shuffles."""

    with _service(user) as service:
        record = service.save(shuffle_id, saved=not unsave)
        if record.is_saved:
            console.print(f"[green]Saved shuffle #{record.id}.[/green] Share code: [bold]{record.share_code}[/bold]")
        else:
            console.print(f"[yellow]Shuffle #{record.id} removed from saved shuffles.[/yellow]")


@app.command()
def share(
    shuffle_id: int = typer.Argument(..., help="Shuffle id as shown by `history`."),
    user: Optional[str] = _USER_OPTION,
) -> None:
    """Publish a shuffle and print its share code."""

    with _service(user) as service:
        record = service.share(shuffle_id)
        console.print(f"[green]Shuffle #{record.id} is public.[/green] Share code: [bold]{record.share_code}[/bold]")


@app.command()
def shared(
    code: str = typer.Argument(..., help="Share code of a published shuffle."),
    user: Optional[str] = _USER_OPTION,
) -> None:
    """Show a shuffle someone shared."""

    with _service(user) as service:
        record = service.shared(code)
        console.print(render_deck(record.cards))
        summary = f"Shuffled {record.created_at:%Y-%m-%d %H:%M}"
        if record.cards:
            summary += f", opening {format_card(record.cards[0])}"
        console.print(f"[dim]{summary}[/dim]")


@app.command()
def simulate(
    trials: int = typer.Option(2000, min=1, help="Number of shuffles to simulate."),
    seed: int = typer.Option(123, help="Random seed for the simulation."),
    patterns: bool = typer.Option(True, "--patterns/--no-patterns", help="Also tally detected patterns."),
) -> None:
    """Check that every card is equally likely in every position."""

    rng = random.Random(seed)
    report = analysis.uniformity_report(analysis.position_frequencies(trials, rng))

    table = Table(title="Shuffle Uniformity", box=box.SIMPLE_HEAVY)
    table.add_column("Metric", justify="left")
    table.add_column("Value", justify="right")
    table.add_row("Trials", str(report.trials))
    table.add_row("Expected per cell", f"{report.expected:.2f}")
    table.add_row("Chi-square", f"{report.chi_square:.1f}")
    table.add_row("Degrees of freedom", str(report.degrees_of_freedom))
    table.add_row("Min / max ratio", f"{report.min_ratio:.2f} / {report.max_ratio:.2f}")
    console.print(table)

    if patterns:
        counts = analysis.pattern_frequencies(trials, rng)
        pattern_table = Table(title="Pattern Frequency", box=box.SIMPLE_HEAVY)
        pattern_table.add_column("Pattern", justify="left")
        pattern_table.add_column("Shuffles", justify="right")
        pattern_table.add_column("Rate", justify="right")
        for pattern_id, count in counts.most_common():
            pattern_table.add_row(pattern_id, str(count), f"{count / trials:.2%}")
        console.print(pattern_table)


@app.command()
def tui(
    user: Optional[str] = _USER_OPTION,
    seed: Optional[int] = typer.Option(None, help="Random seed for reproducible shuffles (omit for randomness)."),
) -> None:
    """Launch the interactive shuffler."""

    with _service(user, seed) as service:
        run_textual_app(service)


def main() -> None:
    """Entry-point for ``python -m shuffler``."""

    app()


if __name__ == "__main__":  # pragma: no cover - CLI invocation
    main()
