"""Tests for telemetry primitives: Span, trace_span, @traced."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Generator

import pytest

from learnmap.services.result import ServiceResult
from learnmap.services.telemetry import (
    Span,
    _current_span,
    disable_telemetry,
    enable_telemetry,
    get_current_span,
    trace_span,
    traced,
)


@pytest.fixture(autouse=True)
def _reset_telemetry_state() -> Generator[None]:
    """Ensure clean telemetry state for every test."""
    yield
    disable_telemetry()
    _current_span.set(None)


class _Service:
    @traced
    def sync_op(self) -> ServiceResult:
        with trace_span("inner") as span:
            if span:
                span.annotate("rows", 3)
        return ServiceResult(ok=True, op="sync_op")

    @traced
    async def async_op(self) -> ServiceResult:
        with trace_span("await_backend"):
            await asyncio.sleep(0)
        return ServiceResult(ok=True, op="async_op", meta={"source": "test"})

    @traced
    def plain(self) -> int:
        return 7

    @traced
    async def explode(self) -> ServiceResult:
        raise ValueError("nope")


class TestSpan:
    def test_duration_before_end_is_zero(self) -> None:
        assert Span(name="test").duration_ms == 0.0

    def test_duration_after_end(self) -> None:
        span = Span(name="test")
        time.sleep(0.005)
        span.end()
        assert span.duration_ms > 0

    def test_to_dict_with_children_and_annotations(self) -> None:
        root = Span(name="root")
        child = Span(name="child", parent=root)
        root.children.append(child)
        root.annotate("nodes", 4)
        child.end()
        root.end()
        d = root.to_dict()
        assert d["annotations"] == {"nodes": 4}
        assert d["children"][0]["name"] == "child"

    def test_to_dict_minimal(self) -> None:
        span = Span(name="root")
        span.end()
        assert set(span.to_dict()) == {"name", "duration_ms"}


class TestTraceSpan:
    def test_disabled_yields_none(self) -> None:
        with trace_span("x") as span:
            assert span is None

    def test_enabled_without_parent_yields_none(self) -> None:
        enable_telemetry()
        with trace_span("x") as span:
            assert span is None

    def test_get_current_span_disabled(self) -> None:
        assert get_current_span() is None


class TestTraced:
    def test_disabled_leaves_meta_alone(self) -> None:
        assert _Service().sync_op().meta is None

    def test_sync_injects_span_tree(self) -> None:
        enable_telemetry()
        result = _Service().sync_op()
        telemetry = result.meta["telemetry"]
        assert telemetry["name"] == "_Service.sync_op"
        assert telemetry["children"][0]["name"] == "inner"
        assert telemetry["children"][0]["annotations"] == {"rows": 3}

    def test_async_injects_span_tree(self) -> None:
        enable_telemetry()
        result = asyncio.run(_Service().async_op())
        assert result.meta["source"] == "test"
        assert result.meta["telemetry"]["name"] == "_Service.async_op"
        assert result.meta["telemetry"]["children"][0]["name"] == "await_backend"

    def test_non_result_passthrough(self) -> None:
        enable_telemetry()
        assert _Service().plain() == 7

    def test_exception_propagates(self) -> None:
        enable_telemetry()
        with pytest.raises(ValueError, match="nope"):
            asyncio.run(_Service().explode())
        assert _current_span.get() is None
