"""Tests for ServiceResult and ServiceError."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from learnmap.services.result import ServiceError, ServiceResult


class TestServiceResult:
    def test_success_defaults(self) -> None:
        result = ServiceResult(ok=True, op="expand", data={"added": 2})
        assert result.warnings == []
        assert result.error is None
        assert result.meta is None

    def test_failure_shorthand(self) -> None:
        result = ServiceResult.failure("expand", "COOLDOWN", "wait", retry_after_ms=300)
        assert not result.ok
        assert result.error == ServiceError(
            code="COOLDOWN", message="wait", detail={"retry_after_ms": 300}
        )

    def test_frozen(self) -> None:
        result = ServiceResult(ok=True, op="view")
        with pytest.raises(ValidationError):
            result.ok = False  # type: ignore[misc]

    def test_json_round_trip(self) -> None:
        result = ServiceResult.failure("load", "INVALID_MAP", "bad", path="x.json")
        restored = ServiceResult.model_validate_json(result.model_dump_json())
        assert restored == result
