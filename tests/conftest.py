"""Shared pytest fixtures and test doubles for learnmap tests."""

from __future__ import annotations

import asyncio
from collections.abc import Generator
from pathlib import Path

import pytest
from click.testing import CliRunner

from learnmap.domain.models import Edge, LearningMap, Node
from learnmap.infrastructure.generation import GenerationError
from learnmap.services.telemetry import disable_telemetry


class FakeClock:
    """Monotonic clock in seconds that only moves when told to."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance_ms(self, ms: float) -> None:
        self.now += ms / 1000


class FakeClient:
    """In-memory generation collaborator.

    ``expansions`` maps a node label to the children returned for it, or to
    an exception instance that is raised instead. ``gate`` (when set) makes
    every expansion wait until the event is set, so tests can interleave
    concurrent requests.
    """

    def __init__(
        self,
        *,
        maps: dict[str, LearningMap | Exception] | None = None,
        expansions: dict[str, list[Node] | Exception] | None = None,
    ) -> None:
        self.maps = maps or {}
        self.expansions = expansions or {}
        self.map_calls: list[str] = []
        self.expansion_calls: list[str] = []
        self.gate: asyncio.Event | None = None

    async def request_map_generation(self, topic: str) -> LearningMap:
        self.map_calls.append(topic)
        outcome = self.maps.get(topic)
        if outcome is None:
            raise GenerationError(f"no map for {topic}")
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    async def request_node_expansion(self, node_label: str) -> list[Node]:
        self.expansion_calls.append(node_label)
        if self.gate is not None:
            await self.gate.wait()
        outcome = self.expansions.get(node_label, [])
        if isinstance(outcome, Exception):
            raise outcome
        return list(outcome)


def make_node(node_id: str, label: str | None = None, **fields: object) -> Node:
    """Node with a label derived from its id unless given."""
    return Node(id=node_id, label=label or node_id.replace("-", " ").title(), **fields)


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sample_map() -> LearningMap:
    """Small prerequisite DAG: basics -> ownership -> lifetimes, basics -> traits."""
    return LearningMap(
        main_topic="Rust",
        subtopics=["Foundations", "Memory", "Abstraction"],
        nodes=[
            make_node(
                "basics",
                "Rust Basics",
                description="Introduction to syntax",
                subtopic="Foundations",
                resources=["https://doc.rust-lang.org/book/"],
            ),
            make_node("ownership", "Ownership", subtopic="Memory", level="Intermediate"),
            make_node("lifetimes", "Lifetimes", subtopic="Memory", level="Advanced"),
            make_node("traits", "Traits", subtopic="Abstraction"),
        ],
        edges=[
            Edge(source="basics", target="ownership"),
            Edge(source="ownership", target="lifetimes"),
            Edge(source="basics", target="traits"),
        ],
    )


@pytest.fixture
def fake_client() -> FakeClient:
    return FakeClient()


@pytest.fixture
def _isolated_project(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Run from an empty temp directory with no config env overrides.

    Use via ``@pytest.mark.usefixtures("_isolated_project")`` on command test
    classes.
    """
    monkeypatch.chdir(tmp_path)
    for var in ("LEARNMAP_CONFIG", "GEMINI_API_KEY"):
        monkeypatch.delenv(var, raising=False)
    return tmp_path


@pytest.fixture(autouse=True)
def _reset_telemetry() -> Generator[None]:
    """Commands enable telemetry with -v; keep it from leaking across tests."""
    yield
    disable_telemetry()
