"""CLI review command for conflicts the engine could not settle on its own.

Replays a history file, then walks the operator through every conflict left
open for a manual decision.  For each one the operator can:

  - Merge     : combine the participants' changes, later writes winning
  - Override  : keep only the latest change
  - Rollback  : revert the resource to its pre-conflict state
  - Skip      : leave it open

Usage:
    teamsync review history.jsonl --actor-id alice

    # Or set TEAMSYNC_ACTOR_ID in the environment:
    export TEAMSYNC_ACTOR_ID=alice
    teamsync review history.jsonl
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import questionary
import typer
from rich.markup import escape
from rich.panel import Panel

from teamsync.cli.replay import build_stats_panel, console, run_replay
from teamsync.models import Conflict, ResolutionMode

_CHOICES = {
    "Merge": ResolutionMode.MERGE,
    "Override (latest change wins)": ResolutionMode.OVERRIDE,
    "Rollback": ResolutionMode.ROLLBACK,
    "Skip (decide later)": None,
}


def _build_event_lines(conflict: Conflict) -> str:
    """One line per participating event, oldest first."""
    lines = []
    for event in sorted(conflict.events, key=lambda e: (e.timestamp, e.version)):
        written = event.payload.model_dump(
            mode="json", include=set(event.payload.changed_fields())
        )
        changes = json.dumps(written, sort_keys=True)
        lines.append(
            f"  [bold]{escape(event.actor_id)}[/bold] "
            f"[dim]{event.timestamp.strftime('%H:%M:%S')} v{event.version} {event.kind.value}[/dim] "
            f"{escape(changes)}"
        )
    return "\n".join(lines)


def review(
    events_file: Path = typer.Argument(
        ...,
        exists=True,
        dir_okay=False,
        readable=True,
        help="JSON Lines file of recorded mutation events.",
    ),
    actor_id: str = typer.Option(
        ...,
        "--actor-id",
        envvar="TEAMSYNC_ACTOR_ID",
        help="Who is making the decisions; recorded as resolved_by.",
    ),
    window: Optional[float] = typer.Option(
        None,
        "--window",
        help="Look-back window in seconds (default: TEAMSYNC_LOOKBACK_WINDOW_SECONDS).",
    ),
) -> None:
    """Replay recorded events and decide the conflicts left for manual review."""
    engine = run_replay(events_file, window).engine
    pending = engine.get_unresolved_conflicts()

    # -----------------------------------------------------------------------
    # Nothing to decide
    # -----------------------------------------------------------------------
    if not pending:
        console.print(Panel(
            "[green]All clear! No conflicts need a decision.[/green]",
            title="TeamSync",
            border_style="green",
        ))
        return

    console.print(f"\n[bold]{len(pending)} conflict(s) need a decision[/bold]\n")

    resolved_count = 0
    skipped_count = 0

    for idx, conflict in enumerate(pending):
        console.print(Panel(
            f"[bold]{conflict.kind.value}[/bold] on {escape(conflict.resource_id)}\n\n"
            f"{_build_event_lines(conflict)}",
            title=f"Conflict {idx + 1}/{len(pending)}",
            border_style="blue",
        ))

        choice = questionary.select(
            "How should this be resolved?",
            choices=list(_CHOICES),
        ).ask()

        # Ctrl+C or EOF
        if choice is None:
            console.print("\n[yellow]Review interrupted.[/yellow]")
            break

        mode = _CHOICES[choice]
        if mode is None:
            skipped_count += 1
            continue

        result = engine.resolve_conflict(conflict.id, mode, actor_id=actor_id)
        if isinstance(result, Conflict):
            console.print(f"[yellow]{mode.value} cannot be applied here; left open.[/yellow]\n")
            skipped_count += 1
        else:
            console.print(f"[green]Resolved via {mode.value}.[/green]\n")
            resolved_count += 1

    # -----------------------------------------------------------------------
    # Session summary
    # -----------------------------------------------------------------------
    console.print(Panel(
        f"[bold green]Review session complete![/bold green]\n\n"
        f"Resolved: {resolved_count}\n"
        f"Skipped:  {skipped_count}",
        title="Session Summary",
        border_style="green",
    ))
    console.print(build_stats_panel(engine.get_conflict_stats()))
