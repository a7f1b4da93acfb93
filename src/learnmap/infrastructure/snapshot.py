"""Persistence collaborator — JSON import/export and auto-save of maps.

Import is atomic: a document is either fully valid and returned as a
:class:`LearningMap`, or rejected with :class:`SnapshotError` and nothing is
applied.
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from learnmap.domain.models import LearningMap

logger = logging.getLogger(__name__)


class SnapshotError(Exception):
    """A map document could not be read or failed validation."""


def _shape_errors(data: Any) -> list[str]:
    """Collect structural problems that disqualify an imported document."""
    if not isinstance(data, dict):
        return ["document is not a JSON object"]

    errors: list[str] = []
    if not isinstance(data.get("mainTopic"), str):
        errors.append("mainTopic must be a string")

    nodes = data.get("nodes")
    if not isinstance(nodes, list):
        errors.append("nodes must be a list")
        return errors

    for index, node in enumerate(nodes):
        if not isinstance(node, dict):
            errors.append(f"nodes[{index}] is not an object")
            continue
        if not isinstance(node.get("id"), str):
            errors.append(f"nodes[{index}].id must be a string")
        if not isinstance(node.get("label"), str):
            errors.append(f"nodes[{index}].label must be a string")
        resources = node.get("resources")
        if not isinstance(resources, list) or not all(isinstance(r, str) for r in resources):
            errors.append(f"nodes[{index}].resources must be a list of strings")
    return errors


def validate_map(data: Any) -> LearningMap:
    """Validate an imported document and return it as a LearningMap.

    Raises:
        SnapshotError: If any node lacks a string id/label or a list of string
            resources, ``mainTopic`` is not a string, or the model rejects it.
    """
    errors = _shape_errors(data)
    if errors:
        raise SnapshotError("Invalid learning map JSON: " + "; ".join(errors[:5]))
    try:
        return LearningMap.model_validate(data)
    except ValidationError as exc:
        raise SnapshotError(f"Invalid learning map JSON: {exc.error_count()} field error(s)") from exc


def read_map(path: Path) -> LearningMap:
    """Read and validate a map document from *path*."""
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise SnapshotError(f"Cannot read {path}: {exc.strerror or exc}") from exc
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise SnapshotError(f"Invalid learning map JSON in {path}: {exc.msg}") from exc
    return validate_map(data)


def write_map(path: Path, learning_map: LearningMap) -> Path:
    """Write *learning_map* to *path* as indented JSON, creating parent dirs."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(learning_map.to_dict(), indent=2) + "\n", encoding="utf-8")
    return path


def export_filename(topic: str) -> str:
    """Slugified export file name, e.g. ``machine-learning-learning-map.json``."""
    slug = re.sub(r"\s+", "-", (topic or "learning-map").lower())
    slug = re.sub(r"[^a-z0-9\-_]", "", slug)
    return f"{slug or 'learning-map'}-learning-map.json"


# ----------------------------------------------------------------------
# Auto-save / resume
# ----------------------------------------------------------------------


def save_autosave(path: Path, learning_map: LearningMap, topic: str | None = None) -> None:
    """Persist the current map for a later resume.

    Auto-save is best-effort: failures are logged, never raised.
    """
    snapshot = {"map": learning_map.to_dict(), "topic": topic or learning_map.main_topic}
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_suffix(".tmp")
        tmp_path.write_text(json.dumps(snapshot), encoding="utf-8")
        tmp_path.replace(path)
    except OSError:
        logger.warning("Failed to auto-save learning map to %s", path, exc_info=True)


def load_autosave(path: Path) -> tuple[LearningMap, str] | None:
    """Return ``(map, topic)`` from the auto-save file, or None if absent or unusable."""
    if not path.is_file():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError):
        logger.warning("Failed to read saved map from %s", path, exc_info=True)
        return None
    if not isinstance(data, dict) or not isinstance(data.get("map"), dict):
        return None
    try:
        learning_map = validate_map(data["map"])
    except SnapshotError:
        logger.warning("Saved map at %s is invalid, ignoring it", path)
        return None
    topic = data.get("topic")
    return learning_map, topic if isinstance(topic, str) and topic else learning_map.main_topic
