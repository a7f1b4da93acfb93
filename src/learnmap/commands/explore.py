"""Command: interactive exploration session over one learning map.

The session keeps every expansion cache for its lifetime, so collapsing and
restoring a subtree never calls the generation backend again. After each
change the accumulated map is auto-saved (when enabled) for ``--resume``.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING

import click

from learnmap.commands._base import LmCommand
from learnmap.commands.map_cmd import load_map_file
from learnmap.infrastructure.snapshot import export_filename, load_autosave, write_map
from learnmap.services.result import ServiceResult

if TYPE_CHECKING:
    from learnmap.commands._context import AppContext
    from learnmap.services.session import MapSession

_EXPLORE_EXAMPLES = """\
  learnmap explore rust-learning-map.json
  learnmap explore --topic "Distributed Systems"
  learnmap explore --resume"""

_HELP = """\
Commands:
  show                 list the visible nodes
  expand NODE_ID       generate sub-concepts for a node
  collapse NODE_ID     hide a node's expanded subtree
  restore NODE_ID      show a collapsed subtree again
  toggle NODE_ID       collapse or restore
  level LEVEL          filter by All, Beginner, Intermediate or Advanced
  new TOPIC            replace the map with a freshly generated one
  save [FILE]          export the accumulated map as JSON
  help                 show this help
  quit                 leave the session"""

# Ops that change the accumulated map or its visibility.
_MUTATING_OPS = frozenset({"expand", "collapse", "restore", "generate"})

type _Handler = Callable[[MapSession, str], ServiceResult]


@click.command("explore", cls=LmCommand, examples=_EXPLORE_EXAMPLES)
@click.argument("file", required=False, type=click.Path(path_type=Path))
@click.option("--resume", is_flag=True, help="Continue from the last auto-saved map.")
@click.option("--topic", default=None, help="Generate a new map for TOPIC to start from.")
@click.pass_obj
def explore(app: AppContext, file: Path | None, resume: bool, topic: str | None) -> None:
    """Explore a learning map interactively, expanding nodes as you go."""
    session = app.new_session()

    if resume:
        saved = load_autosave(app.settings.autosave_file)
        if saved is None:
            app.emit(
                ServiceResult.failure(
                    "load",
                    "NOT_FOUND",
                    "No auto-saved map to resume",
                    path=str(app.settings.autosave_file),
                )
            )
            return
        learning_map, topic = saved
        result = session.load(learning_map)
    elif file is not None:
        result = session.load(load_map_file(app, file, "load"))
    else:
        topic = topic or click.prompt("Topic")
        result = asyncio.run(session.generate(topic))

    app.emit(result)
    app.autosave(session.snapshot(), topic)
    _run_loop(app, session, topic)


def _run_loop(app: AppContext, session: MapSession, topic: str | None) -> None:
    handlers: dict[str, _Handler] = {
        "expand": lambda s, arg: asyncio.run(s.expand(arg)),
        "collapse": lambda s, arg: s.collapse(arg),
        "restore": lambda s, arg: s.restore(arg),
        "toggle": lambda s, arg: s.toggle(arg),
        "level": lambda s, arg: s.set_level_filter(arg),
        "new": lambda s, arg: asyncio.run(s.generate(arg)),
    }

    click.echo("Type 'help' for commands.")
    while True:
        try:
            line = click.prompt("learnmap", default="", show_default=False, prompt_suffix="> ")
        except click.Abort:
            break

        verb, _, arg = line.strip().partition(" ")
        verb, arg = verb.lower(), arg.strip()
        if not verb:
            continue
        if verb in ("quit", "exit"):
            break
        if verb == "help":
            click.echo(_HELP)
            continue
        if verb == "show":
            app.emit(session.view_result(), exit_on_error=False)
            continue
        if verb == "save":
            app.emit(_save(session, arg), exit_on_error=False)
            continue

        handler = handlers.get(verb)
        if handler is None:
            click.echo(f"Unknown command '{verb}'. Type 'help' for commands.", err=True)
            continue
        if not arg:
            click.echo(f"Usage: {verb} {'LEVEL' if verb == 'level' else 'NODE_ID'}", err=True)
            continue

        result = handler(session, arg)
        app.emit(result, exit_on_error=False)
        if result.ok and result.op in _MUTATING_OPS and result.data.get("changed", True):
            if result.op == "generate":
                topic = arg
            app.autosave(session.snapshot(), topic)


def _save(session: MapSession, arg: str) -> ServiceResult:
    snapshot = session.snapshot()
    target = Path(arg) if arg else Path(export_filename(session.main_topic))
    try:
        write_map(target, snapshot)
    except OSError as exc:
        return ServiceResult.failure("save", "SAVE_FAILED", f"Cannot write {target}: {exc}")
    return ServiceResult(
        ok=True,
        op="save",
        data={"path": str(target), "node_count": len(snapshot.nodes)},
    )
