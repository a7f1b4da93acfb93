"""Locate ``learnmap.toml`` for the current project.

The nearest file found by walking up from the working directory wins, the
way git finds ``.git/``. ``LEARNMAP_CONFIG`` short-circuits the search; an
explicit ``--config`` is handled by :meth:`LearnmapSettings.from_cli`.
"""

from __future__ import annotations

import os
from pathlib import Path

CONFIG_FILENAME = "learnmap.toml"
CONFIG_ENV_VAR = "LEARNMAP_CONFIG"


def find_config(start: Path | None = None) -> Path | None:
    """Return the config file governing *start* (default: cwd), or None.

    A ``LEARNMAP_CONFIG`` pointing at a missing file disables discovery
    instead of falling back to the walk-up.
    """
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        path = Path(env_path)
        return path if path.is_file() else None

    directory = (start or Path.cwd()).resolve()
    for candidate_dir in (directory, *directory.parents):
        candidate = candidate_dir / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None
