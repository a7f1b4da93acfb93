"""Tests for the ``generate`` command."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from learnmap.cli import cli
from learnmap.domain.models import Edge, LearningMap, Node
from learnmap.infrastructure.generation import GenerationError
from learnmap.infrastructure.snapshot import load_autosave, read_map


class StubClient:
    def __init__(self, maps: dict[str, LearningMap]) -> None:
        self.maps = maps

    async def request_map_generation(self, topic: str) -> LearningMap:
        if topic not in self.maps:
            raise GenerationError("Map generation failed with status 500")
        return self.maps[topic]

    async def request_node_expansion(self, node_label: str) -> list[Node]:
        return []


@pytest.fixture
def stub_client(monkeypatch: pytest.MonkeyPatch) -> StubClient:
    client = StubClient(
        {
            "Machine Learning": LearningMap(
                main_topic="Machine Learning",
                nodes=[
                    Node(id="intro", label="Introduction to ML"),
                    Node(id="regression", label="Regression"),
                ],
                edges=[Edge(source="intro", target="regression")],
            )
        }
    )
    monkeypatch.setattr(
        "learnmap.infrastructure.generation.create_client", lambda config: client
    )
    return client


@pytest.mark.usefixtures("_isolated_project", "stub_client")
class TestGenerate:
    def test_default_filename(self, cli_runner: CliRunner, _isolated_project: Path) -> None:
        result = cli_runner.invoke(cli, ["generate", "Machine Learning"])
        assert result.exit_code == 0, result.output
        path = _isolated_project / "machine-learning-learning-map.json"
        assert read_map(path).main_topic == "Machine Learning"
        assert "node_count: 2" in result.output

        saved = load_autosave(_isolated_project / ".learnmap" / "last-map.json")
        assert saved is not None
        assert saved[1] == "Machine Learning"

    def test_output_option_json(self, cli_runner: CliRunner, _isolated_project: Path) -> None:
        target = _isolated_project / "maps" / "ml.json"
        result = cli_runner.invoke(cli, ["--json", "generate", "Machine Learning", "-o", str(target)])
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["op"] == "generate"
        assert data["data"]["path"] == str(target)
        assert target.is_file()

    def test_failure_writes_nothing(self, cli_runner: CliRunner, _isolated_project: Path) -> None:
        result = cli_runner.invoke(cli, ["generate", "Quantum Chemistry"])
        assert result.exit_code == 1
        assert "GENERATION_FAILED" not in result.output
        assert "status 500" in result.output
        assert list(_isolated_project.glob("*.json")) == []

    def test_blank_topic(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["generate", "   "])
        assert result.exit_code == 1
        assert "non-empty" in result.output
