"""Operation-specific Rich renderers for ServiceResult.

Each renderer writes to a Rich Console (backed by StringIO).  The caller
extracts the rendered text via ``get_output(console)``.

Renderers are dispatched by ``result.op`` in :func:`render_result`.
Unknown ops fall through to a generic key-value renderer.
"""

from __future__ import annotations

import json as _json
from typing import TYPE_CHECKING, Any

from rich.table import Table
from rich.text import Text

from learnmap.output.console import create_console, get_output, style_for_level

if TYPE_CHECKING:
    from rich.console import Console

    from learnmap.services.result import ServiceResult


# ── Public API ────────────────────────────────────────────────────────


def render_result(result: ServiceResult, *, verbose: bool = False) -> str:
    """Render a ServiceResult to a styled string via Rich.

    Returns plain text (no ANSI) when Rich detects no terminal,
    which is the case inside Click's CliRunner and piped output.
    """
    console = create_console()

    if result.ok:
        renderer = _OP_RENDERERS.get(result.op, _render_generic)
        renderer(result, console, verbose=verbose)
    else:
        _render_error(result, console, verbose=verbose)

    return get_output(console).rstrip("\n")


def render_quiet(result: ServiceResult) -> str:
    """Render minimal output for ``--quiet`` mode."""
    if not result.ok:
        msg = result.error.message if result.error else "Unknown error"
        return f"ERROR: {result.op} — {msg}"

    # For node tables return ids only; for mutations the ids they touched
    items = result.data.get("items")
    if items and isinstance(items, list):
        return "\n".join(_extract_id(item) for item in items if _extract_id(item))
    for key in ("child_ids", "hidden_ids", "restored_ids"):
        ids = result.data.get(key)
        if ids and isinstance(ids, list):
            return "\n".join(str(i) for i in ids)

    return f"OK: {result.op}"


# ── Helpers ───────────────────────────────────────────────────────────


def _extract_id(item: Any) -> str:
    if isinstance(item, dict):
        val = item.get("id")
        return str(val) if val is not None else ""
    return ""


def _status_line(console: Console, result: ServiceResult) -> None:
    """Print the OK/ERROR status line."""
    label = Text("OK", style="lm.ok")
    op = Text(f"  {result.op}", style="lm.op")
    console.print(label, op, end="")
    console.print()


def _field(console: Console, key: str, value: Any) -> None:
    """Print a single indented key-value field."""
    k = Text(f"  {key}: ", style="lm.key")
    if key == "id" or key.endswith("_id"):
        v = Text(str(value), style="lm.id")
    elif key == "path":
        v = Text(str(value), style="lm.path")
    elif key in ("label", "main_topic"):
        v = Text(str(value), style="lm.label")
    elif isinstance(value, (dict, list)):
        v = Text(_json.dumps(value, separators=(",", ":")))
    else:
        v = Text(str(value))
    console.print(k, v, end="")
    console.print()


def _render_meta(console: Console, result: ServiceResult) -> None:
    """Print meta block including telemetry span tree (verbose only)."""
    if not result.meta:
        return

    console.print()
    console.print(Text("  meta:", style="dim"))

    for k, v in result.meta.items():
        if k == "telemetry":
            _render_telemetry_tree(console, v, indent=4)
        else:
            console.print(f"    {k}: {v}")


def _render_telemetry_tree(
    console: Console,
    span_data: dict[str, Any],
    indent: int = 4,
) -> None:
    """Render a hierarchical span tree with color-coded timing."""
    prefix = " " * indent
    name = span_data.get("name", "?")
    duration = span_data.get("duration_ms", 0.0)

    if duration > 1000:
        style = "bold red"
    elif duration > 100:
        style = "yellow"
    else:
        style = "dim"

    line = f"{prefix}[{style}]{duration:>8.2f}ms[/{style}]  {name}"

    extras = [f"{ak}={av}" for ak, av in (span_data.get("annotations") or {}).items()]
    if extras:
        line += f"  ({', '.join(extras)})"

    console.print(line)

    for child in span_data.get("children", []):
        _render_telemetry_tree(console, child, indent=indent + 4)


def _flag_summary(item: dict[str, Any]) -> str:
    """Compact expansion-state marker for one rendered node."""
    if item.get("isExpanding"):
        return "expanding…"
    if item.get("hasCachedChildren"):
        return "expanded" if item.get("childrenVisible") else "collapsed"
    return ""


def _position_cell(item: dict[str, Any]) -> tuple[str, str]:
    position = item.get("position") or {}
    return f"{position.get('x', 0):.0f}", f"{position.get('y', 0):.0f}"


# ── Error renderer ────────────────────────────────────────────────────


def _render_error(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    err = result.error
    msg = err.message if err else "Unknown error"
    label = Text("ERROR", style="lm.error")
    op = Text(f"  {result.op}", style="lm.op")
    sep = Text(" — ")
    console.print(label, op, sep, Text(msg))

    if verbose and err and err.detail:
        console.print(Text("  detail:", style="dim"))
        for k, v in err.detail.items():
            console.print(f"    {k}: {v}")


# ── Map renderers ─────────────────────────────────────────────────────


def _render_load(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render load/generate results: counts plus (verbose) the layer table."""
    _status_line(console, result)
    for key in ("main_topic", "node_count", "edge_count", "depth", "path"):
        if key in result.data:
            _field(console, key, result.data[key])

    layers: dict[str, int] = result.data.get("layers") or {}
    if verbose and layers:
        console.print()
        table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
        table.add_column("Layer", justify="right")
        table.add_column("Nodes", style="lm.id")
        by_layer: dict[int, list[str]] = {}
        for node_id, layer in layers.items():
            by_layer.setdefault(layer, []).append(node_id)
        for layer in sorted(by_layer):
            table.add_row(str(layer), ", ".join(by_layer[layer]))
        console.print(table)
        _render_meta(console, result)


def _render_layout(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render computed layer and position per node."""
    items = result.data.get("items", [])
    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    table.add_column("ID", style="lm.id", no_wrap=True)
    table.add_column("Label", style="lm.label")
    table.add_column("Layer", justify="right")
    table.add_column("X", justify="right")
    table.add_column("Y", justify="right")
    for item in items:
        x, y = _position_cell(item)
        layer = item.get("layer")
        table.add_row(
            str(item.get("id", "")),
            str(item.get("label", "")),
            "" if layer is None else str(layer),
            x,
            y,
        )
    console.print(table)
    console.print(f"\n{len(items)} nodes in {result.data.get('depth', 0)} layers")
    if verbose:
        _render_meta(console, result)


def _render_view(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render the visible slice of the map as a node table."""
    d = result.data
    items = d.get("items", [])
    topic = d.get("main_topic") or "(untitled)"
    console.print(f"[lm.label]{topic}[/lm.label]  level: {d.get('level_filter', 'All')}")

    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    table.add_column("ID", style="lm.id", no_wrap=True)
    table.add_column("Label", style="lm.label")
    table.add_column("Level")
    table.add_column("Subtopic")
    table.add_column("State", style="lm.flag")
    if verbose:
        table.add_column("Color")
        table.add_column("X", justify="right")
        table.add_column("Y", justify="right")

    for item in items:
        level = str(item.get("effectiveLevel", ""))
        row: list[Any] = [
            str(item.get("id", "")),
            str(item.get("label", "")),
            Text(level, style=style_for_level(level)),
            str(item.get("subtopic") or ""),
            _flag_summary(item),
        ]
        if verbose:
            color = str(item.get("color", ""))
            row.append(Text(color, style=color or ""))
            row.extend(_position_cell(item))
        table.add_row(*row)

    console.print(table)
    console.print(f"\n{d.get('node_count', len(items))} nodes, {d.get('edge_count', 0)} edges")
    if verbose:
        for edge in d.get("edges", []):
            console.print(f"  [lm.id]{edge['source']}[/lm.id] → [lm.id]{edge['target']}[/lm.id]")
        _render_meta(console, result)


def _render_expand(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    d = result.data
    _status_line(console, result)
    _field(console, "node_id", d.get("node_id", ""))
    if "label" in d:
        _field(console, "label", d["label"])
    _field(console, "added", d.get("added", 0))
    for child_id in d.get("child_ids", []):
        console.print(f"    [lm.ok]+[/lm.ok] [lm.id]{child_id}[/lm.id]")
    skipped = d.get("skipped_ids", [])
    if skipped:
        _field(console, "skipped", ", ".join(skipped))
    if "path" in d:
        _field(console, "path", d["path"])
    if verbose:
        _render_meta(console, result)


def _render_visibility(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render collapse/restore results."""
    d = result.data
    _status_line(console, result)
    _field(console, "node_id", d.get("node_id", ""))
    if not d.get("changed"):
        console.print("  nothing to change")
    key = "hidden_ids" if result.op == "collapse" else "restored_ids"
    ids = d.get(key, [])
    if ids:
        _field(console, key.replace("_ids", ""), ", ".join(ids))
    if verbose:
        _render_meta(console, result)


def _render_validate(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    d = result.data
    _status_line(console, result)
    for key in ("path", "main_topic", "node_count", "edge_count"):
        if key in d:
            _field(console, key, d[key])
    subtopics = d.get("subtopics", [])
    if subtopics:
        _field(console, "subtopics", ", ".join(subtopics))


# ── Generic fallback ──────────────────────────────────────────────────


def _render_generic(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Fallback renderer: status line + all data as key-value pairs."""
    _status_line(console, result)
    for key, value in result.data.items():
        _field(console, key, value)
    if verbose:
        _render_meta(console, result)


# ── Dispatch table ────────────────────────────────────────────────────

_OP_RENDERERS: dict[str, Any] = {
    "load": _render_load,
    "generate": _render_load,
    "layout": _render_layout,
    "view": _render_view,
    "expand": _render_expand,
    "collapse": _render_visibility,
    "restore": _render_visibility,
    "validate": _render_validate,
    "save": _render_generic,
    "level": _render_generic,
}
