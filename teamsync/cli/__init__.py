"""TeamSync CLI: inspect and settle edit conflicts from recorded history.

Entry point registered in pyproject.toml:
    teamsync = "teamsync.cli:app"

Commands:
    teamsync replay   - replay a history file and report conflicts and stats
    teamsync review   - decide the conflicts left open for manual review

Usage:
    teamsync --help
    teamsync replay history.jsonl
    teamsync --log-level DEBUG review history.jsonl --actor-id alice
"""

import logging

import typer

from teamsync.cli.replay import replay
from teamsync.cli.review import review
from teamsync.config import settings

app = typer.Typer(
    name="teamsync",
    help="TeamSync CLI: inspect and settle edit conflicts",
    no_args_is_help=True,
)


@app.callback()
def main(
    log_level: str = typer.Option(
        settings.log_level,
        "--log-level",
        help="Logging level for engine diagnostics.",
    ),
) -> None:
    """Configure logging before any command runs."""
    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


app.command()(replay)
app.command()(review)
