"""Command group: offline operations on a learning-map JSON file."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import TYPE_CHECKING

import click

from learnmap.commands._base import LmGroup
from learnmap.domain.types import LevelFilter
from learnmap.infrastructure.snapshot import SnapshotError, read_map, write_map
from learnmap.services.result import ServiceResult

if TYPE_CHECKING:
    from learnmap.commands._context import AppContext
    from learnmap.domain.models import LearningMap

_MAP_EXAMPLES = """\
  learnmap map validate rust-learning-map.json
  learnmap map layout rust-learning-map.json
  learnmap map view rust-learning-map.json --level Beginner
  learnmap map expand rust-learning-map.json ownership
  learnmap --json map view rust-learning-map.json"""

_LEVEL_CHOICE = click.Choice([str(lf) for lf in LevelFilter], case_sensitive=False)


def load_map_file(app: AppContext, path: Path, op: str) -> LearningMap:
    """Read *path* or emit an ``INVALID_MAP`` failure (exit 1)."""
    try:
        return read_map(path)
    except SnapshotError as exc:
        app.emit(ServiceResult.failure(op, "INVALID_MAP", str(exc), path=str(path)))
        raise  # unreachable: emit() exits on failure


@click.group("map", cls=LmGroup, examples=_MAP_EXAMPLES)
@click.pass_obj
def map_group(app: AppContext) -> None:
    """Lay out, inspect, and grow a saved learning map."""


@map_group.command(
    examples="""\
  learnmap map validate rust-learning-map.json
  learnmap --json map validate imported.json"""
)
@click.argument("file", type=click.Path(path_type=Path))
@click.pass_obj
def validate(app: AppContext, file: Path) -> None:
    """Check that FILE is an importable learning map."""
    learning_map = load_map_file(app, file, "validate")
    app.emit(
        ServiceResult(
            ok=True,
            op="validate",
            data={
                "path": str(file),
                "main_topic": learning_map.main_topic,
                "node_count": len(learning_map.nodes),
                "edge_count": len(learning_map.edges),
                "subtopics": list(learning_map.subtopics),
            },
        )
    )


@map_group.command(
    examples="""\
  learnmap map layout rust-learning-map.json
  learnmap --json map layout rust-learning-map.json"""
)
@click.argument("file", type=click.Path(path_type=Path))
@click.pass_obj
def layout(app: AppContext, file: Path) -> None:
    """Compute prerequisite layers and positions for every node in FILE."""
    session = app.new_session()
    loaded = session.load(load_map_file(app, file, "layout"))
    frame = session.view_result()
    app.emit(
        ServiceResult(
            ok=True,
            op="layout",
            data={
                "main_topic": session.main_topic,
                "depth": loaded.data["depth"],
                "items": [
                    {
                        "id": item["id"],
                        "label": item["label"],
                        "layer": item["layer"],
                        "position": item["position"],
                    }
                    for item in frame.data["items"]
                ],
            },
            warnings=loaded.warnings,
            meta=frame.meta,
        )
    )


@map_group.command(
    examples="""\
  learnmap map view rust-learning-map.json
  learnmap map view rust-learning-map.json --level Advanced
  learnmap -q map view rust-learning-map.json"""
)
@click.argument("file", type=click.Path(path_type=Path))
@click.option(
    "--level", type=_LEVEL_CHOICE, default="All", show_default=True, help="Difficulty filter."
)
@click.pass_obj
def view(app: AppContext, file: Path, level: str) -> None:
    """Show the nodes of FILE, optionally filtered by difficulty."""
    session = app.new_session()
    loaded = session.load(load_map_file(app, file, "view"))
    filtered = session.set_level_filter(level)
    if not filtered.ok:
        app.emit(filtered)
    result = session.view_result()
    warnings = [*loaded.warnings, *filtered.warnings]
    app.emit(result.model_copy(update={"warnings": warnings}) if warnings else result)


@map_group.command(
    examples="""\
  learnmap map expand rust-learning-map.json ownership
  learnmap map expand rust-learning-map.json ownership -o rust-expanded.json"""
)
@click.argument("file", type=click.Path(path_type=Path))
@click.argument("node_id")
@click.option(
    "-o",
    "--output",
    type=click.Path(path_type=Path),
    default=None,
    help="Write the grown map here instead of back into FILE.",
)
@click.pass_obj
def expand(app: AppContext, file: Path, node_id: str, output: Path | None) -> None:
    """Generate sub-concepts for NODE_ID and add them to the map."""
    session = app.new_session()
    session.load(load_map_file(app, file, "expand"))
    result = asyncio.run(session.expand(node_id))
    if not result.ok:
        app.emit(result)

    target = output or file
    snapshot = session.snapshot()
    write_map(target, snapshot)
    app.autosave(snapshot, session.main_topic)
    app.emit(result.model_copy(update={"data": {**result.data, "path": str(target)}}))

