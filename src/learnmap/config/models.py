"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, learnmap.toml only contains overrides.
A fresh setup needs nothing at all unless the Gemini provider is used, which
wants a ``[generation] api_key`` (or ``GEMINI_API_KEY`` in the environment).
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

DEFAULT_PALETTE: tuple[str, ...] = (
    "#2563eb",
    "#7c3aed",
    "#0ea5e9",
    "#f97316",
    "#10b981",
    "#ec4899",
    "#6366f1",
    "#14b8a6",
    "#f59e0b",
)

# --- learnmap.toml sections ---


class LayoutConfig(BaseModel):
    """[layout] section."""

    model_config = {"frozen": True}

    spacing_x: float = 360.0
    spacing_y: float = 210.0
    fallback_spacing_x: float = 240.0


class ExpansionConfig(BaseModel):
    """[expansion] section."""

    model_config = {"frozen": True}

    cooldown_ms: int = 800
    child_spacing_x: float = 210.0
    child_offset_y: float = 190.0


class ColorsConfig(BaseModel):
    """[colors] section."""

    model_config = {"frozen": True}

    palette: list[str] = Field(default_factory=lambda: list(DEFAULT_PALETTE), min_length=1)


class GenerationConfig(BaseModel):
    """[generation] section."""

    model_config = {"frozen": True}

    provider: Literal["http", "gemini"] = "http"
    api_base: str = "http://localhost:3001"
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    model: str = "gemini-1.5-flash"
    api_key: str | None = None
    temperature: float = 0.7
    timeout_seconds: float = 60.0


class SnapshotConfig(BaseModel):
    """[snapshot] section."""

    model_config = {"frozen": True}

    autosave: bool = True
    autosave_path: str = ".learnmap/last-map.json"


class LearnmapConfig(BaseModel):
    """Root configuration composing all sections."""

    model_config = {"frozen": True}

    layout: LayoutConfig = Field(default_factory=LayoutConfig)
    expansion: ExpansionConfig = Field(default_factory=ExpansionConfig)
    colors: ColorsConfig = Field(default_factory=ColorsConfig)
    generation: GenerationConfig = Field(default_factory=GenerationConfig)
    snapshot: SnapshotConfig = Field(default_factory=SnapshotConfig)
