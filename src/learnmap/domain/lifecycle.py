"""Expansion lifecycle: allowed state transitions per node.

A node expands at most once per session. After that, collapse/restore toggles
visibility of the cached subtree; it never re-enters ``expanding``.
"""

from __future__ import annotations

from learnmap.domain.types import ExpansionState

EXPANSION_TRANSITIONS: dict[str, list[str]] = {
    ExpansionState.NOT_EXPANDED: [ExpansionState.EXPANDING],
    ExpansionState.EXPANDING: [ExpansionState.EXPANDED, ExpansionState.NOT_EXPANDED],
    ExpansionState.EXPANDED: [],
}


def is_valid_transition(
    current: str,
    target: str,
    transitions: dict[str, list[str]] = EXPANSION_TRANSITIONS,
) -> bool:
    """Check if transitioning from *current* to *target* is allowed."""
    allowed = transitions.get(current, [])
    return target in allowed
