"""OpenAI Responses API client for meal photo analysis."""

import json
import logging
from dataclasses import dataclass

from openai import AsyncOpenAI

from calorie_ledger.services.vision import VisionClient

logger = logging.getLogger(__name__)


@dataclass
class OpenAIVisionClient(VisionClient):
    """Estimates meal nutrition with a strict JSON schema response."""

    client: AsyncOpenAI
    image_detail: str = "auto"

    @classmethod
    def create(
        cls, api_key: str, timeout_seconds: float = 60.0, image_detail: str = "auto"
    ) -> "OpenAIVisionClient":
        """Create a client with its own HTTP connection pool."""
        return cls(
            client=AsyncOpenAI(api_key=api_key, timeout=timeout_seconds),
            image_detail=image_detail,
        )

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
        """Send one photo and return the decoded estimate."""
        request = self._request(
            model, reasoning_effort, store, image_data_url, schema, prompt
        )
        response = await self.client.responses.create(**request)
        output_text = response.output_text
        if not output_text:
            raise RuntimeError("OpenAI returned an empty nutrition estimate")
        try:
            estimate = json.loads(output_text)
        except json.JSONDecodeError as exc:
            logger.warning("Undecodable nutrition estimate", extra={"model": model})
            raise RuntimeError("OpenAI returned malformed JSON") from exc
        if not isinstance(estimate, dict):
            raise RuntimeError("OpenAI returned a non-object nutrition estimate")
        return estimate

    def _request(  # noqa: PLR0913
        self,
        model: str,
        reasoning_effort: str | None,
        store: bool,
        image_data_url: str,
        schema: dict[str, object],
        prompt: str,
    ) -> dict[str, object]:
        content = [
            {"type": "input_text", "text": prompt},
            {
                "type": "input_image",
                "image_url": image_data_url,
                "detail": self.image_detail,
            },
        ]
        request: dict[str, object] = {
            "model": model,
            "input": [{"role": "user", "content": content}],
            "text": {
                "format": {
                    "type": "json_schema",
                    "name": "nutrition_estimate",
                    "strict": True,
                    "schema": schema,
                }
            },
            "store": store,
        }
        if reasoning_effort:
            request["reasoning"] = {"effort": reasoning_effort}
        return request

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self.client.close()
