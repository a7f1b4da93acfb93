"""Generation collaborator — clients that originate maps and node expansions.

Two providers share one contract (:class:`GenerationClient`):

- ``http``: the learning-map backend (``POST /api/generate-map`` and
  ``POST /api/expand-node``).
- ``gemini``: the Gemini ``generateContent`` REST endpoint, called directly.

Every failure (network error, timeout, non-OK status, non-JSON body,
malformed shape) surfaces as :class:`GenerationError`. Callers treat all of
them the same way and never inspect the reason beyond logging it.
"""

from __future__ import annotations

import json
import logging
import os
import re
from typing import Any, Protocol

import aiohttp
from pydantic import ValidationError

from learnmap.config.models import GenerationConfig
from learnmap.domain.models import Edge, LearningMap, Node

logger = logging.getLogger(__name__)

_FENCE_OPEN_JSON = re.compile(r"^```json\s*", re.IGNORECASE)
_FENCE_OPEN = re.compile(r"^```\s*")
_FENCE_CLOSE = re.compile(r"\s*```$")

_MAP_PROMPT = """\
You are an expert educational content creator. Generate a comprehensive learning map \
for the topic: "{topic}".

Return a JSON object with this exact structure:
{{
  "mainTopic": "string",
  "subtopics": ["string"],
  "nodes": [
    {{
      "id": "string (unique identifier)",
      "label": "string (short title)",
      "description": "string (detailed explanation)",
      "subtopic": "string (one of the subtopics)",
      "level": "Beginner | Intermediate | Advanced",
      "resources": ["string (fully-qualified https URL)"]
    }}
  ],
  "edges": [{{"source": "string (node id)", "target": "string (node id)"}}]
}}

Requirements:
- 3-8 subtopics and 8-15 nodes; nodes are learning concepts, not just topics
- Edges show prerequisites and point from prerequisite to dependent concept
- Every edge source/target must be an id in nodes
- Each node has 2-3 learning resources
- Return strictly valid JSON only, no markdown, comments, or explanations."""

_EXPAND_PROMPT = """\
You are an expert educational content creator. Break the concept "{label}" down \
into 3-6 more specific sub-concepts a learner should study next.

Return a JSON object with this exact structure:
{{
  "node": "{label}",
  "children": [
    {{
      "id": "string (unique, descriptive identifier)",
      "label": "string (short title)",
      "description": "string (detailed explanation)",
      "subtopic": "string",
      "level": "Beginner | Intermediate | Advanced",
      "resources": ["string (fully-qualified https URL)"]
    }}
  ]
}}

Return strictly valid JSON only, no markdown, comments, or explanations."""


class GenerationError(Exception):
    """A generation or expansion request failed or returned unusable data."""


class GenerationClient(Protocol):
    """Contract consumed by the session and the expansion controller."""

    async def request_map_generation(self, topic: str) -> LearningMap: ...

    async def request_node_expansion(self, node_label: str) -> list[Node]: ...


# ----------------------------------------------------------------------
# Payload normalization
# ----------------------------------------------------------------------


def sanitize_resources(resources: Any) -> list[str]:
    """Keep non-empty string resources, trimmed. Anything else becomes ``[]``."""
    if not isinstance(resources, list):
        return []
    return [r.strip() for r in resources if isinstance(r, str) and r.strip()]


def _parse_node(raw: Any) -> Node | None:
    if not isinstance(raw, dict):
        return None
    if not isinstance(raw.get("id"), str) or not isinstance(raw.get("label"), str):
        return None
    data = {**raw, "resources": sanitize_resources(raw.get("resources"))}
    if data.get("level") not in ("Beginner", "Intermediate", "Advanced"):
        data.pop("level", None)
    if not isinstance(data.get("description"), str):
        data["description"] = ""
    if not isinstance(data.get("subtopic"), str):
        data.pop("subtopic", None)
    try:
        return Node.model_validate(data)
    except ValidationError:
        return None


def parse_map_payload(payload: Any, topic: str) -> LearningMap:
    """Normalize a generated map document.

    Raises:
        GenerationError: If the payload is not a JSON object.
    """
    if not isinstance(payload, dict):
        raise GenerationError("Generated map is not a JSON object")

    nodes = [n for n in (_parse_node(raw) for raw in payload.get("nodes") or []) if n]
    edges: list[Edge] = []
    for raw in payload.get("edges") or []:
        if isinstance(raw, dict) and isinstance(raw.get("source"), str) and isinstance(
            raw.get("target"), str
        ):
            edges.append(Edge(source=raw["source"], target=raw["target"]))

    main_topic = payload.get("mainTopic")
    subtopics = payload.get("subtopics")
    return LearningMap(
        main_topic=main_topic if isinstance(main_topic, str) and main_topic else topic,
        subtopics=[s for s in subtopics if isinstance(s, str)] if isinstance(subtopics, list) else [],
        nodes=nodes,
        edges=edges,
    )


def parse_expansion_payload(payload: Any) -> list[Node]:
    """Extract child nodes from an expansion response.

    A missing ``children`` list is an empty expansion, not an error. Children
    without a string id and label are dropped.

    Raises:
        GenerationError: If the payload is not a JSON object.
    """
    if not isinstance(payload, dict):
        raise GenerationError("Expansion response is not a JSON object")
    children = payload.get("children")
    if not isinstance(children, list):
        return []
    return [n for n in (_parse_node(raw) for raw in children) if n]


def strip_code_fences(text: str) -> str:
    """Remove a surrounding markdown code fence from model output."""
    text = _FENCE_OPEN_JSON.sub("", text)
    text = _FENCE_OPEN.sub("", text)
    text = _FENCE_CLOSE.sub("", text)
    return text.strip()


def extract_gemini_text(body: Any) -> str:
    """Pull the generated text out of a ``generateContent`` response body."""
    try:
        candidate = body["candidates"][0]
    except (KeyError, IndexError, TypeError) as exc:
        raise GenerationError("Gemini returned an unexpected response format.") from exc

    content: Any = None
    try:
        content = candidate["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        content = candidate.get("output") if isinstance(candidate, dict) else None

    if not isinstance(content, str) or not content:
        raise GenerationError("Gemini returned an unexpected response format.")
    return content


def decode_json(text: str, *, what: str) -> Any:
    """Parse *text* as JSON, raising GenerationError with a short excerpt on failure."""
    if not text or not text.strip():
        raise GenerationError(f"{what} was empty")
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise GenerationError(f"{what} is not valid JSON: {exc.msg}. Raw: {text[:200]}") from exc


# ----------------------------------------------------------------------
# Clients
# ----------------------------------------------------------------------


class _BaseClient:
    """Shared POST-and-decode plumbing over aiohttp."""

    def __init__(self, *, timeout_seconds: float = 60.0) -> None:
        self._timeout = aiohttp.ClientTimeout(total=timeout_seconds)

    async def _post_json(self, url: str, body: dict[str, Any], *, what: str) -> Any:
        try:
            async with aiohttp.ClientSession(timeout=self._timeout) as http:
                async with http.post(url, json=body) as response:
                    text = await response.text()
                    status = response.status
        except TimeoutError as exc:
            raise GenerationError(f"{what} timed out") from exc
        except aiohttp.ClientError as exc:
            raise GenerationError(f"{what} failed: {exc}") from exc

        logger.debug("%s responded with status %d (%d bytes)", what, status, len(text))
        if status >= 400:
            message = _error_message(text) or f"{what} failed with status {status}"
            raise GenerationError(message)
        return decode_json(text, what=f"{what} response")


def _error_message(text: str) -> str | None:
    """Best-effort error message from a JSON ``{"error": ...}`` body."""
    try:
        body = json.loads(text)
    except (json.JSONDecodeError, TypeError):
        return text.strip() or None
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict):
            error = error.get("message")
        if isinstance(error, str) and error:
            return error
    return None


class HttpGenerationClient(_BaseClient):
    """Client for the learning-map backend API."""

    def __init__(self, api_base: str, *, timeout_seconds: float = 60.0) -> None:
        super().__init__(timeout_seconds=timeout_seconds)
        self._api_base = api_base.rstrip("/")

    async def request_map_generation(self, topic: str) -> LearningMap:
        payload = await self._post_json(
            f"{self._api_base}/api/generate-map",
            {"topic": topic},
            what="Map generation",
        )
        return parse_map_payload(payload, topic)

    async def request_node_expansion(self, node_label: str) -> list[Node]:
        payload = await self._post_json(
            f"{self._api_base}/api/expand-node",
            {"nodeTitle": node_label},
            what="Node expansion",
        )
        return parse_expansion_payload(payload)


class GeminiGenerationClient(_BaseClient):
    """Client that prompts Gemini directly for maps and expansions."""

    def __init__(
        self,
        api_key: str,
        *,
        model: str = "gemini-1.5-flash",
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        temperature: float = 0.7,
        timeout_seconds: float = 60.0,
    ) -> None:
        super().__init__(timeout_seconds=timeout_seconds)
        self._api_key = api_key
        self._model = model if model.startswith("models/") else f"models/{model}"
        self._base_url = base_url.rstrip("/")
        self._temperature = temperature

    async def _generate(self, prompt: str, *, what: str) -> Any:
        body = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {"temperature": self._temperature},
        }
        url = f"{self._base_url}/{self._model}:generateContent?key={self._api_key}"
        response = await self._post_json(url, body, what=what)
        content = strip_code_fences(extract_gemini_text(response))
        return decode_json(content, what=f"{what} content")

    async def request_map_generation(self, topic: str) -> LearningMap:
        payload = await self._generate(_MAP_PROMPT.format(topic=topic), what="Map generation")
        return parse_map_payload(payload, topic)

    async def request_node_expansion(self, node_label: str) -> list[Node]:
        payload = await self._generate(
            _EXPAND_PROMPT.format(label=node_label), what="Node expansion"
        )
        return parse_expansion_payload(payload)


def create_client(config: GenerationConfig) -> GenerationClient:
    """Build the client selected by ``config.provider``.

    Raises:
        GenerationError: If the Gemini provider is selected without an API key.
    """
    if config.provider == "gemini":
        api_key = config.api_key or os.environ.get("GEMINI_API_KEY")
        if not api_key:
            raise GenerationError("GEMINI_API_KEY is not set")
        return GeminiGenerationClient(
            api_key,
            model=config.model,
            base_url=config.gemini_base_url,
            temperature=config.temperature,
            timeout_seconds=config.timeout_seconds,
        )
    return HttpGenerationClient(config.api_base, timeout_seconds=config.timeout_seconds)

