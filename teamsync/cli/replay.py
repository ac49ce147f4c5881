"""CLI replay command: run recorded history through the engine and report.

Usage:
    teamsync replay history.jsonl [--window 30]

Prints every conflict the engine opened (kind, resource, resolution and the
merged payload when there is one) followed by the aggregate stats.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from teamsync.cli.history import ReplayResult, load_history, replay_history
from teamsync.models import Conflict, ConflictStats

# Module-level console used by the CLI commands
console = Console()


# ---------------------------------------------------------------------------
# Display helpers
# ---------------------------------------------------------------------------


def _payload_text(conflict: Conflict) -> str:
    if conflict.merged_payload is None:
        return "[dim]-[/dim]"
    data = conflict.merged_payload.model_dump(mode="json", exclude={"entity"}, exclude_unset=True)
    return escape(json.dumps(data, sort_keys=True))


def build_conflict_table(conflicts: list[Conflict]) -> Table:
    """Rich table with one row per conflict."""
    table = Table(title="Conflicts", show_lines=False)
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Kind")
    table.add_column("Resource")
    table.add_column("Actors")
    table.add_column("Resolution")
    table.add_column("Merged payload")

    for conflict in conflicts:
        actors = ", ".join(sorted({e.actor_id for e in conflict.events}))
        if conflict.is_resolved:
            resolution = f"[green]{conflict.resolution.value}[/green]"
        else:
            resolution = f"[yellow]{conflict.resolution.value} (open)[/yellow]"
        table.add_row(
            conflict.id,
            conflict.kind.value,
            conflict.resource_id,
            actors,
            resolution,
            _payload_text(conflict),
        )
    return table


def build_stats_panel(stats: ConflictStats) -> Panel:
    """Rich panel summarising ConflictStats."""
    by_kind = "\n".join(
        f"  {kind.value}: {count}" for kind, count in stats.by_kind.items()
    )
    pending_style = "yellow" if stats.pending else "green"
    return Panel(
        f"Total:           {stats.total}\n"
        f"Resolved:        {stats.resolved}\n"
        f"[{pending_style}]Pending:         {stats.pending}[/{pending_style}]\n"
        f"Auto-resolved:   {stats.auto_resolved}\n"
        f"Manual-resolved: {stats.manual_resolved}\n\n"
        f"[bold]By kind[/bold]\n{by_kind}",
        title="Conflict Stats",
        border_style="blue",
    )


def run_replay(events_file: Path, window: Optional[float]) -> ReplayResult:
    """Load and replay ``events_file``, exiting with code 1 on a bad file."""
    try:
        records = load_history(events_file)
    except (OSError, ValueError) as exc:
        console.print(f"[red]Could not read history: {escape(str(exc))}[/red]")
        raise typer.Exit(code=1)

    result = replay_history(records, window_seconds=window)
    for lineno, reason in result.rejected:
        console.print(f"[yellow]Line {lineno} skipped: {escape(reason)}[/yellow]")
    return result


# ---------------------------------------------------------------------------
# Command
# ---------------------------------------------------------------------------


def replay(
    events_file: Path = typer.Argument(
        ...,
        exists=True,
        dir_okay=False,
        readable=True,
        help="JSON Lines file of recorded mutation events.",
    ),
    window: Optional[float] = typer.Option(
        None,
        "--window",
        help="Look-back window in seconds (default: TEAMSYNC_LOOKBACK_WINDOW_SECONDS).",
    ),
) -> None:
    """Replay recorded events and report the conflicts they produce."""
    result = run_replay(events_file, window)
    engine = result.engine

    conflicts = [
        c
        for resource_id in sorted({e.resource_id for e in result.events})
        for c in engine.get_resource_conflicts(resource_id)
    ]

    console.print(f"\n[bold]Replayed {len(result.events)} event(s)[/bold]\n")
    if conflicts:
        console.print(build_conflict_table(conflicts))
    else:
        console.print("[green]No conflicts detected.[/green]")
    console.print(build_stats_panel(engine.get_conflict_stats()))
