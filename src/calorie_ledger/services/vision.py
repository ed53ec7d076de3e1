"""Meal photo analysis using LLMs."""

import base64
from dataclasses import dataclass
from typing import Protocol

from calorie_ledger.domain.vision import NutritionEstimate

NUTRITION_SCHEMA: dict[str, object] = {
    "type": "object",
    "properties": {
        "name": {"type": "string"},
        "ccal": {"type": "number", "minimum": 0},
        "protein": {"type": "number", "minimum": 0},
        "fat": {"type": "number", "minimum": 0},
        "carbohydrates": {"type": "number", "minimum": 0},
    },
    "required": ["name", "ccal", "protein", "fat", "carbohydrates"],
    "additionalProperties": False,
}

NUTRITION_PROMPT = (
    "You are a nutrition assistant. Analyze this meal photo and estimate "
    "its name, total calories (ccal) and protein, fat and carbohydrates "
    "in grams."
)


class VisionClient(Protocol):
    """Interface for LLM vision extraction."""

    async def extract(  # noqa: PLR0913
        self,
        *,
        model: str,
        reasoning_effort: str | None,
        store: bool,
        image_data_url: str,
        schema: dict[str, object],
        prompt: str,
    ) -> dict[str, object]:
        """Return structured vision extraction data."""


@dataclass
class VisionService:
    """Service that prepares vision prompts and validates results."""

    client: VisionClient
    model: str
    reasoning_effort: str | None
    store: bool

    async def estimate(self, image_bytes: bytes) -> NutritionEstimate:
        """Estimate the nutrition of a meal photo via the configured client."""
        raw = await self.client.extract(
            model=self.model,
            reasoning_effort=self.reasoning_effort,
            store=self.store,
            image_data_url=_to_data_url(image_bytes),
            schema=NUTRITION_SCHEMA,
            prompt=NUTRITION_PROMPT,
        )
        return NutritionEstimate.model_validate(raw)


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
