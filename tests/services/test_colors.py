"""Tests for ColorAssigner."""

from __future__ import annotations

import pytest

from learnmap.config.models import DEFAULT_PALETTE
from learnmap.domain.models import Node
from learnmap.services.colors import ColorAssigner


class TestColorAssigner:
    def test_first_key_gets_first_color(self) -> None:
        assert ColorAssigner().assign("Memory") == DEFAULT_PALETTE[0]

    def test_stable_for_known_key(self) -> None:
        colors = ColorAssigner()
        first = colors.assign("Memory")
        colors.assign("Traits")
        assert colors.assign("Memory") == first
        assert len(colors) == 2

    def test_cycles_palette(self) -> None:
        colors = ColorAssigner(["red", "blue"])
        assert [colors.assign(k) for k in ("a", "b", "c")] == ["red", "blue", "red"]

    def test_seed_uses_grouping_key_in_order(self) -> None:
        colors = ColorAssigner(["red", "blue", "green"])
        colors.seed(
            [
                Node(id="n1", label="1", subtopic="Memory"),
                Node(id="n2", label="2"),
                Node(id="n3", label="3", subtopic="Memory"),
            ]
        )
        assert colors.mapping() == {"Memory": "red", "n2": "blue"}

    def test_empty_subtopics_share_a_color(self) -> None:
        colors = ColorAssigner(["red", "blue"])
        colors.seed([Node(id="n1", label="1", subtopic=""), Node(id="n2", label="2", subtopic="")])
        assert colors.mapping() == {"": "red"}

    def test_mapping_is_a_copy(self) -> None:
        colors = ColorAssigner()
        colors.assign("a")
        colors.mapping()["a"] = "tampered"
        assert colors.get("a") == DEFAULT_PALETTE[0]

    def test_get_unknown(self) -> None:
        assert ColorAssigner().get("missing") is None

    def test_empty_palette_rejected(self) -> None:
        with pytest.raises(ValueError, match="palette"):
            ColorAssigner([])
