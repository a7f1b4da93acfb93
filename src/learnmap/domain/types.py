"""Learning levels, level filters, and expansion states."""

from __future__ import annotations

from enum import StrEnum


class Level(StrEnum):
    """Difficulty level of a concept node."""

    BEGINNER = "Beginner"
    INTERMEDIATE = "Intermediate"
    ADVANCED = "Advanced"


class LevelFilter(StrEnum):
    """Level filter applied by the view projection. ``ALL`` disables filtering."""

    ALL = "All"
    BEGINNER = "Beginner"
    INTERMEDIATE = "Intermediate"
    ADVANCED = "Advanced"


class ExpansionState(StrEnum):
    """Per-node expansion state."""

    NOT_EXPANDED = "not_expanded"
    EXPANDING = "expanding"
    EXPANDED = "expanded"
