"""Label analysis service using LLM vision models."""

import base64
from dataclasses import dataclass
from typing import Protocol

from pydantic import ValidationError

from label_scanner.domain.analysis import AnalysisExtract
from label_scanner.domain.errors import AnalysisError
from label_scanner.domain.nutrition import NutrientDraft

_VALUES_PROPERTIES: dict[str, object] = {
    name: {"type": "number", "minimum": 0.0}
    for name in ("calories", "protein", "carbs", "fat", "fiber", "sugar")
}

ANALYSIS_SCHEMA_NAME = "nutrition_label"

ANALYSIS_SCHEMA: dict[str, object] = {
    "type": "object",
    "properties": {
        "error": {
            "anyOf": [
                {
                    "type": "object",
                    "properties": {
                        "error_reason": {"type": "string"},
                        "suggestion_for_better_results": {"type": "string"},
                    },
                    "required": ["error_reason", "suggestion_for_better_results"],
                    "additionalProperties": False,
                },
                {"type": "null"},
            ]
        },
        "success": {
            "anyOf": [
                {
                    "type": "object",
                    "properties": _VALUES_PROPERTIES,
                    "required": list(_VALUES_PROPERTIES),
                    "additionalProperties": False,
                },
                {"type": "null"},
            ]
        },
    },
    "required": ["error", "success"],
    "additionalProperties": False,
}

ANALYSIS_PROMPT = (
    "Analyze this nutritional label image and extract the values per 100g: "
    "calories, protein, carbohydrates, fat, fiber and sugar. "
    "Populate exactly one of 'error' or 'success'. "
    "Not all values can be zero. If most values are zero, return an error "
    "explaining what went wrong and how to take a better photo."
)

# Below this every value is treated as zero.
NEAR_ZERO = 0.01


class AnalyzerClient(Protocol):
    """Interface for LLM label extraction."""

    async def extract(  # noqa: PLR0913
        self,
        *,
        model: str,
        reasoning_effort: str | None,
        store: bool,
        image_data_url: str,
        schema_name: str,
        schema: dict[str, object],
        prompt: str,
    ) -> dict[str, object]:
        """Return structured extraction data."""


class Analyzer(Protocol):
    """Turns raw image bytes into candidate nutrient values."""

    async def analyze(self, image_bytes: bytes) -> NutrientDraft:
        """Return a draft or raise AnalysisError."""


@dataclass
class AnalyzerService(Analyzer):
    """Analyzer that prompts a vision model and validates its answer."""

    client: AnalyzerClient
    model: str
    reasoning_effort: str | None
    store: bool

    async def analyze(self, image_bytes: bytes) -> NutrientDraft:
        """Extract per-100g nutrient values from a label photo."""
        raw = await self.client.extract(
            model=self.model,
            reasoning_effort=self.reasoning_effort,
            store=self.store,
            image_data_url=_to_data_url(image_bytes),
            schema_name=ANALYSIS_SCHEMA_NAME,
            schema=ANALYSIS_SCHEMA,
            prompt=ANALYSIS_PROMPT,
        )
        try:
            extract = AnalysisExtract.model_validate(raw)
        except ValidationError as exc:
            raise AnalysisError(f"Malformed analyzer output: {exc}") from exc
        return parse_extract(extract)


def parse_extract(extract: AnalysisExtract) -> NutrientDraft:
    """Convert validated model output into a draft, rejecting failures."""
    if extract.error is not None and extract.error.error_reason:
        suggestion = extract.error.suggestion_for_better_results
        detail = extract.error.error_reason
        if suggestion:
            detail = f"{detail}; suggestion: {suggestion}"
        raise AnalysisError(detail)
    values = extract.success
    if values is None:
        raise AnalysisError("Missing success object in analyzer output")
    draft = NutrientDraft(
        calories=values.calories,
        protein=values.protein,
        carbs=values.carbs,
        fat=values.fat,
        fiber=values.fiber,
        sugar=values.sugar,
    )
    if _is_degenerate(draft):
        raise AnalysisError("All extracted values are zero")
    return draft


def _is_degenerate(draft: NutrientDraft) -> bool:
    values = (
        draft.calories,
        draft.protein,
        draft.carbs,
        draft.fat,
        draft.fiber,
        draft.sugar,
    )
    return all(value < NEAR_ZERO for value in values)


def _to_data_url(image_bytes: bytes) -> str:
    """Convert bytes to a base64 data URL for image input."""
    mime_type = _detect_mime_type(image_bytes)
    encoded = base64.b64encode(image_bytes).decode("utf-8")
    return f"data:{mime_type};base64,{encoded}"


def _detect_mime_type(image_bytes: bytes) -> str:
    """Infer a basic image MIME type from file signatures."""
    if image_bytes.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if image_bytes.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if image_bytes[:4] == b"RIFF" and image_bytes[8:12] == b"WEBP":
        return "image/webp"
    return "image/jpeg"
