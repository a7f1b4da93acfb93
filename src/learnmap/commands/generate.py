"""Command: generate a new learning map for a topic."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import TYPE_CHECKING

import click

from learnmap.commands._base import LmCommand
from learnmap.infrastructure.snapshot import export_filename, write_map

if TYPE_CHECKING:
    from learnmap.commands._context import AppContext

_GENERATE_EXAMPLES = """\
  learnmap generate "Machine Learning"
  learnmap --json generate "Linear Algebra"
  learnmap generate rust -o maps/rust.json"""


@click.command("generate", cls=LmCommand, examples=_GENERATE_EXAMPLES)
@click.argument("topic")
@click.option(
    "-o",
    "--output",
    type=click.Path(path_type=Path),
    default=None,
    help="Output file (default: <topic>-learning-map.json).",
)
@click.pass_obj
def generate(app: AppContext, topic: str, output: Path | None) -> None:
    """Generate a learning map for TOPIC and save it as JSON."""
    session = app.new_session()
    result = asyncio.run(session.generate(topic))
    if not result.ok:
        app.emit(result)

    target = output or Path(export_filename(session.main_topic or topic))
    snapshot = session.snapshot()
    write_map(target, snapshot)
    app.autosave(snapshot, topic)
    app.emit(result.model_copy(update={"data": {**result.data, "path": str(target)}}))
