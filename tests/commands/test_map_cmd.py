"""Tests for the ``map`` command group."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from learnmap.cli import cli
from learnmap.domain.models import LearningMap, Node
from learnmap.infrastructure.snapshot import read_map, write_map


class StubClient:
    def __init__(self, children: dict[str, list[Node]]) -> None:
        self.children = children
        self.calls: list[str] = []

    async def request_map_generation(self, topic: str) -> LearningMap:
        raise AssertionError("not used")

    async def request_node_expansion(self, node_label: str) -> list[Node]:
        self.calls.append(node_label)
        return list(self.children.get(node_label, []))


@pytest.fixture
def map_file(_isolated_project: Path, sample_map: LearningMap) -> Path:
    return write_map(_isolated_project / "rust.json", sample_map)


@pytest.fixture
def stub_client(monkeypatch: pytest.MonkeyPatch) -> StubClient:
    client = StubClient(
        {
            "Ownership": [
                Node(id="borrowing", label="Borrowing", subtopic="Memory"),
                Node(id="moves", label="Move Semantics", subtopic="Memory"),
                Node(id="lifetimes", label="Lifetimes"),
            ]
        }
    )
    monkeypatch.setattr(
        "learnmap.infrastructure.generation.create_client", lambda config: client
    )
    return client


class TestValidate:
    def test_valid_file(self, cli_runner: CliRunner, map_file: Path) -> None:
        result = cli_runner.invoke(cli, ["map", "validate", str(map_file)])
        assert result.exit_code == 0, result.output
        assert "OK" in result.output
        assert "node_count: 4" in result.output
        assert "Foundations, Memory, Abstraction" in result.output

    def test_invalid_file(self, cli_runner: CliRunner, _isolated_project: Path) -> None:
        bad = _isolated_project / "bad.json"
        bad.write_text(json.dumps({"mainTopic": "X", "nodes": [{"id": 1}]}))
        result = cli_runner.invoke(cli, ["map", "validate", str(bad)])
        assert result.exit_code == 1
        assert "Invalid learning map JSON" in result.output

    def test_missing_file_json(self, cli_runner: CliRunner, _isolated_project: Path) -> None:
        result = cli_runner.invoke(cli, ["--json", "map", "validate", "nope.json"])
        assert result.exit_code == 1
        data = json.loads(result.output)
        assert data["ok"] is False
        assert data["error"]["code"] == "INVALID_MAP"


class TestLayout:
    def test_json_positions(self, cli_runner: CliRunner, map_file: Path) -> None:
        result = cli_runner.invoke(cli, ["--json", "map", "layout", str(map_file)])
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["op"] == "layout"
        assert data["data"]["depth"] == 3
        items = {item["id"]: item for item in data["data"]["items"]}
        assert items["basics"]["layer"] == 0
        assert items["basics"]["position"] == {"x": 0.0, "y": 0.0}
        assert items["ownership"]["position"] == {"x": -180.0, "y": 210.0}
        assert items["traits"]["position"] == {"x": 180.0, "y": 210.0}
        assert items["lifetimes"]["layer"] == 2

    def test_table(self, cli_runner: CliRunner, map_file: Path) -> None:
        result = cli_runner.invoke(cli, ["map", "layout", str(map_file)])
        assert result.exit_code == 0, result.output
        assert "4 nodes in 3 layers" in result.output


class TestView:
    def test_all_levels(self, cli_runner: CliRunner, map_file: Path) -> None:
        result = cli_runner.invoke(cli, ["map", "view", str(map_file)])
        assert result.exit_code == 0, result.output
        assert "Rust Basics" in result.output
        assert "4 nodes, 3 edges" in result.output

    def test_level_filter_quiet(self, cli_runner: CliRunner, map_file: Path) -> None:
        result = cli_runner.invoke(cli, ["-q", "map", "view", str(map_file), "--level", "advanced"])
        assert result.exit_code == 0, result.output
        assert result.output.strip() == "lifetimes"

    def test_unknown_level_rejected(self, cli_runner: CliRunner, map_file: Path) -> None:
        result = cli_runner.invoke(cli, ["map", "view", str(map_file), "--level", "Expert"])
        assert result.exit_code == 2


class TestExpand:
    def test_writes_map_and_autosave(
        self,
        cli_runner: CliRunner,
        map_file: Path,
        stub_client: StubClient,
        _isolated_project: Path,
    ) -> None:
        result = cli_runner.invoke(cli, ["map", "expand", str(map_file), "ownership"])
        assert result.exit_code == 0, result.output
        assert "added: 2" in result.output
        assert "skipped: lifetimes" in result.output
        assert stub_client.calls == ["Ownership"]

        grown = read_map(map_file)
        ids = [node.id for node in grown.nodes]
        assert ids[-2:] == ["borrowing", "moves"]
        assert any(e.source == "ownership" and e.target == "moves" for e in grown.edges)
        assert (_isolated_project / ".learnmap" / "last-map.json").is_file()

    def test_output_option(
        self, cli_runner: CliRunner, map_file: Path, stub_client: StubClient, _isolated_project: Path
    ) -> None:
        target = _isolated_project / "out" / "grown.json"
        result = cli_runner.invoke(
            cli, ["--json", "map", "expand", str(map_file), "ownership", "-o", str(target)]
        )
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["data"]["child_ids"] == ["borrowing", "moves"]
        assert data["data"]["path"] == str(target)
        assert len(read_map(target).nodes) == 6
        assert len(read_map(map_file).nodes) == 4

    def test_unknown_node(
        self, cli_runner: CliRunner, map_file: Path, stub_client: StubClient
    ) -> None:
        result = cli_runner.invoke(cli, ["map", "expand", str(map_file), "missing"])
        assert result.exit_code == 1
        assert "not found" in result.output
        assert stub_client.calls == []

    def test_empty_expansion_leaves_file(
        self, cli_runner: CliRunner, map_file: Path, stub_client: StubClient
    ) -> None:
        before = map_file.read_text()
        result = cli_runner.invoke(cli, ["map", "expand", str(map_file), "traits"])
        assert result.exit_code == 1
        assert "Could not expand this node" in result.output
        assert map_file.read_text() == before
