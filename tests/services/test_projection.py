"""Tests for the pure view projection."""

from __future__ import annotations

from learnmap.domain.models import Edge, LearningMap, Node, Position
from learnmap.domain.types import ExpansionState, Level, LevelFilter
from learnmap.infrastructure.graph.model import GraphModel
from learnmap.services.expansion import CachedSubtree, ExpansionRecord
from learnmap.services.projection import FALLBACK_COLOR, project


class TestProject:
    def test_all_keeps_every_visible_node(self, sample_map: LearningMap) -> None:
        model = GraphModel.from_map(sample_map)
        frame = project(model, {})
        assert frame.node_ids == ["basics", "ownership", "lifetimes", "traits"]
        assert list(frame.edges) == sample_map.edges
        assert frame.level_filter is LevelFilter.ALL

    def test_level_filter_uses_explicit_level(self, sample_map: LearningMap) -> None:
        frame = project(GraphModel.from_map(sample_map), {}, LevelFilter.ADVANCED)
        assert frame.node_ids == ["lifetimes"]
        assert frame.edges == ()

    def test_level_filter_uses_keywords(self, sample_map: LearningMap) -> None:
        frame = project(GraphModel.from_map(sample_map), {}, "Beginner")
        assert frame.node_ids == ["basics"]
        assert frame.nodes[0].level is Level.BEGINNER

    def test_advanced_without_levels_or_keywords_is_empty(self) -> None:
        model = GraphModel.from_map(
            LearningMap(
                main_topic="T",
                nodes=[Node(id="a", label="Ownership"), Node(id="b", label="Traits")],
                edges=[Edge(source="a", target="b")],
            )
        )
        frame = project(model, {}, LevelFilter.ADVANCED)
        assert frame.nodes == ()
        assert frame.edges == ()

    def test_edges_need_both_endpoints(self, sample_map: LearningMap) -> None:
        model = GraphModel.from_map(sample_map)
        model.hide(["ownership"])
        frame = project(model, {})
        assert "ownership" not in frame.node_ids
        assert [e.key for e in frame.edges] == [("basics", "traits")]

    def test_render_node_attributes(self, sample_map: LearningMap) -> None:
        model = GraphModel.from_map(sample_map)
        model.set_position("basics", Position(10.0, 20.0))
        model.set_color("basics", "#7c3aed")
        record = ExpansionRecord(
            state=ExpansionState.EXPANDED,
            cached=CachedSubtree(nodes=(Node(id="x", label="X"),)),
            visible_children=["x"],
        )
        frame = project(model, {"basics": record})
        basics, ownership = frame.nodes[0], frame.nodes[1]
        assert basics.position == Position(10.0, 20.0)
        assert basics.color == "#7c3aed"
        assert basics.flags.is_expanded and basics.flags.children_visible
        assert ownership.color == FALLBACK_COLOR
        assert ownership.position == Position(0.0, 0.0)
        assert not ownership.flags.is_expanded

    def test_pure(self, sample_map: LearningMap) -> None:
        model = GraphModel.from_map(sample_map)
        before = model.visible_ids()
        assert project(model, {}, "Advanced") == project(model, {}, "Advanced")
        assert model.visible_ids() == before

    def test_to_dict(self, sample_map: LearningMap) -> None:
        data = project(GraphModel.from_map(sample_map), {}, "Advanced").to_dict()
        assert data["level_filter"] == "Advanced"
        node = data["nodes"][0]
        assert node["id"] == "lifetimes"
        assert node["effectiveLevel"] == "Advanced"
        assert node["position"] == {"x": 0.0, "y": 0.0}
        assert node["isExpanded"] is False
        assert data["edges"] == []
