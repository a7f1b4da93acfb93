"""Pluggy hook specifications for learnmap session events.

``render_frame`` is the render boundary: it fires after every state change
with the freshly projected frame. The ``post_*`` hooks describe what changed.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import pluggy

if TYPE_CHECKING:
    from learnmap.services.projection import ViewFrame

hookspec = pluggy.HookspecMarker("learnmap")
hookimpl = pluggy.HookimplMarker("learnmap")


class LearnmapHookSpec:
    """Hook specifications for the learnmap plugin system."""

    @hookspec
    def render_frame(self, frame: ViewFrame) -> None:
        """Called with the current visible nodes/edges after every state change."""

    @hookspec
    def post_load(self, main_topic: str, node_count: int, generation: int) -> None:
        """Called after a map is loaded into a session."""

    @hookspec
    def post_expand(self, node_id: str, child_ids: list[str]) -> None:
        """Called after a node was expanded with new children."""

    @hookspec
    def post_collapse(self, node_id: str, hidden_ids: list[str]) -> None:
        """Called after a node's subtree was hidden."""

    @hookspec
    def post_restore(self, node_id: str, restored_ids: list[str]) -> None:
        """Called after a node's cached children were shown again."""
