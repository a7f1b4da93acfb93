"""Keyword heuristic for nodes that carry no explicit level."""

from __future__ import annotations

from learnmap.domain.models import Node
from learnmap.domain.types import Level

BEGINNER_KEYWORDS: tuple[str, ...] = (
    "introduction",
    "intro",
    "basics",
    "beginner",
    "getting started",
    "overview",
    "foundation",
)

ADVANCED_KEYWORDS: tuple[str, ...] = (
    "advanced",
    "expert",
    "deep dive",
    "specialized",
    "cutting-edge",
    "complex",
)


def classify_level(label: str, description: str = "") -> Level:
    """Guess a level from keywords in the label and description.

    Beginner keywords win over advanced ones; no match means Intermediate.
    """
    haystack = f"{description} {label}".lower()
    if any(keyword in haystack for keyword in BEGINNER_KEYWORDS):
        return Level.BEGINNER
    if any(keyword in haystack for keyword in ADVANCED_KEYWORDS):
        return Level.ADVANCED
    return Level.INTERMEDIATE


def effective_level(node: Node) -> Level:
    """Return the node's explicit level, or the heuristic classification."""
    if node.level is not None:
        return node.level
    return classify_level(node.label, node.description)
