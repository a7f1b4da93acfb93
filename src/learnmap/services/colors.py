"""ColorAssigner — stable grouping-key → palette color mapping.

Append-only: the first time a key is seen it takes the next palette slot
(cycling once the palette is exhausted) and keeps it for the rest of the
session. Assignment is deterministic given the order keys are first seen.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from learnmap.config.models import DEFAULT_PALETTE
from learnmap.domain.models import Node


class ColorAssigner:
    """Assigns palette colors to grouping keys (subtopics) on first sight."""

    def __init__(self, palette: Sequence[str] = DEFAULT_PALETTE) -> None:
        if not palette:
            raise ValueError("palette must contain at least one color")
        self._palette = tuple(palette)
        self._assigned: dict[str, str] = {}

    def assign(self, key: str) -> str:
        """Return the color for *key*, assigning the next slot if it is new."""
        color = self._assigned.get(key)
        if color is None:
            color = self._palette[len(self._assigned) % len(self._palette)]
            self._assigned[key] = color
        return color

    def seed(self, nodes: Iterable[Node]) -> None:
        """Assign colors for the grouping keys of *nodes*, in order."""
        for node in nodes:
            self.assign(node.group_key)

    def get(self, key: str) -> str | None:
        return self._assigned.get(key)

    def mapping(self) -> dict[str, str]:
        return dict(self._assigned)

    def __len__(self) -> int:
        return len(self._assigned)
