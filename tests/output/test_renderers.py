"""Tests for the op-specific Rich renderers."""

from __future__ import annotations

from learnmap.output.renderers import render_quiet, render_result
from learnmap.services.result import ServiceResult


def _item(node_id: str, label: str, **extra: object) -> dict[str, object]:
    return {
        "id": node_id,
        "label": label,
        "position": {"x": 0.0, "y": 210.0},
        "color": "#2563eb",
        "effectiveLevel": "Intermediate",
        "isExpanding": False,
        "isExpanded": False,
        "hasCachedChildren": False,
        "childrenVisible": False,
        "layer": 1,
        **extra,
    }


class TestLoadRenderer:
    def test_counts(self) -> None:
        result = ServiceResult(
            ok=True,
            op="load",
            data={
                "main_topic": "Rust",
                "node_count": 4,
                "edge_count": 3,
                "depth": 3,
                "layers": {"basics": 0, "ownership": 1},
            },
        )
        output = render_result(result)
        assert "OK" in output
        assert "main_topic: Rust" in output
        assert "depth: 3" in output
        assert "basics" not in output

    def test_verbose_shows_layers(self) -> None:
        result = ServiceResult(
            ok=True, op="generate", data={"node_count": 2, "layers": {"a": 0, "b": 1}}
        )
        output = render_result(result, verbose=True)
        assert "Layer" in output
        assert "a" in output and "b" in output


class TestViewRenderer:
    def test_table(self) -> None:
        result = ServiceResult(
            ok=True,
            op="view",
            data={
                "main_topic": "Rust",
                "level_filter": "All",
                "node_count": 2,
                "edge_count": 1,
                "items": [
                    _item("ownership", "Ownership", hasCachedChildren=True, childrenVisible=True),
                    _item("traits", "Traits", hasCachedChildren=True),
                ],
                "edges": [{"source": "ownership", "target": "traits"}],
            },
        )
        output = render_result(result)
        assert "Ownership" in output
        assert "expanded" in output
        assert "collapsed" in output
        assert "2 nodes, 1 edges" in output

    def test_verbose_lists_edges(self) -> None:
        result = ServiceResult(
            ok=True,
            op="view",
            data={
                "items": [_item("a", "A"), _item("b", "B")],
                "edges": [{"source": "a", "target": "b"}],
            },
        )
        assert "a → b" in render_result(result, verbose=True)


class TestLayoutRenderer:
    def test_positions(self) -> None:
        result = ServiceResult(
            ok=True,
            op="layout",
            data={"depth": 2, "items": [_item("a", "Alpha", position={"x": -180.0, "y": 210.0})]},
        )
        output = render_result(result)
        assert "Alpha" in output
        assert "-180" in output
        assert "1 nodes in 2 layers" in output


class TestMutationRenderers:
    def test_expand(self) -> None:
        result = ServiceResult(
            ok=True,
            op="expand",
            data={"node_id": "a", "label": "A", "added": 1, "child_ids": ["c"], "skipped_ids": ["b"]},
        )
        output = render_result(result)
        assert "added: 1" in output
        assert "+ c" in output
        assert "skipped: b" in output

    def test_noop_collapse(self) -> None:
        result = ServiceResult(
            ok=True, op="collapse", data={"node_id": "a", "changed": False, "hidden_ids": []}
        )
        assert "nothing to change" in render_result(result)

    def test_restore(self) -> None:
        result = ServiceResult(
            ok=True,
            op="restore",
            data={"node_id": "a", "changed": True, "restored_ids": ["b", "c"]},
        )
        assert "restored: b, c" in render_result(result)


class TestErrorAndFallback:
    def test_error(self) -> None:
        result = ServiceResult.failure("expand", "COOLDOWN", "Wait a moment")
        output = render_result(result)
        assert output.startswith("ERROR")
        assert "Wait a moment" in output

    def test_unknown_op_uses_generic(self) -> None:
        result = ServiceResult(ok=True, op="mystery", data={"answer": 42, "ids": ["x"]})
        output = render_result(result)
        assert "answer: 42" in output
        assert 'ids: ["x"]' in output

    def test_quiet_hidden_ids(self) -> None:
        result = ServiceResult(ok=True, op="collapse", data={"hidden_ids": ["x", "y"]})
        assert render_quiet(result) == "x\ny"
