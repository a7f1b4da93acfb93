"""Node, Edge, and LearningMap models.

``LearningMap`` is the document exchanged with the generation and persistence
collaborators. Field names are snake_case in Python and camelCase on the wire
(``mainTopic``), so dumps must use ``by_alias=True``.

INVARIANT: A node's identity is its ``id``. Nothing in this package ever holds
two nodes with the same id in one graph.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, Field

from learnmap.domain.types import Level


class Node(BaseModel):
    """A single concept in a learning map."""

    model_config = {"frozen": True}

    id: str
    label: str
    description: str = ""
    subtopic: str | None = None
    resources: list[str] = Field(default_factory=list)
    level: Level | None = None
    unverified: bool | None = None

    @property
    def group_key(self) -> str:
        """Grouping key used for color assignment (subtopic, else the id).

        An empty subtopic is still a subtopic: such nodes share one color.
        """
        return self.subtopic if self.subtopic is not None else self.id

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


class Edge(BaseModel):
    """Directed prerequisite edge: ``source`` must be learned before ``target``."""

    model_config = {"frozen": True}

    source: str
    target: str

    @property
    def key(self) -> tuple[str, str]:
        return (self.source, self.target)


class LearningMap(BaseModel):
    """Full learning map document: topic, subtopics, nodes, and edges."""

    model_config = {"frozen": True, "populate_by_name": True}

    main_topic: str = Field(alias="mainTopic")
    subtopics: list[str] = Field(default_factory=list)
    nodes: list[Node] = Field(default_factory=list)
    edges: list[Edge] = Field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Serialize using the wire (camelCase) field names."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


@dataclass(frozen=True)
class Position:
    """Canvas coordinates of a node. Derived, never authoritative."""

    x: float
    y: float

    def to_dict(self) -> dict[str, float]:
        return {"x": self.x, "y": self.y}
