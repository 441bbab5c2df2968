"""OpenAI Responses API client for nutrition label extraction."""

import json
from dataclasses import dataclass

from openai import AsyncOpenAI

from label_scanner.services.analyzer import AnalyzerClient


@dataclass
class OpenAIAnalyzerClient(AnalyzerClient):
    """Sends one label photo per request and returns the parsed JSON answer.

    ``max_output_tokens`` caps the answer; a response cut short by the cap is
    reported as a failure instead of being parsed as partial JSON.
    """

    client: AsyncOpenAI
    max_output_tokens: int | None = None

    @classmethod
    def create(
        cls, api_key: str, max_output_tokens: int | None = None
    ) -> "OpenAIAnalyzerClient":
        return cls(
            client=AsyncOpenAI(api_key=api_key),
            max_output_tokens=max_output_tokens,
        )

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
        """Ask the model to read the label and answer with ``schema``."""
        request: dict[str, object] = {
            "model": model,
            "input": [_label_message(prompt, image_data_url)],
            "text": {
                "format": {
                    "type": "json_schema",
                    "name": schema_name,
                    "strict": True,
                    "schema": schema,
                }
            },
            "store": store,
        }
        if reasoning_effort:
            request["reasoning"] = {"effort": reasoning_effort}
        if self.max_output_tokens:
            request["max_output_tokens"] = self.max_output_tokens

        response = await self.client.responses.create(**request)
        if getattr(response, "status", None) == "incomplete":
            details = getattr(response, "incomplete_details", None)
            reason = getattr(details, "reason", None) or "unknown"
            raise RuntimeError(f"Label extraction incomplete: {reason}")
        if not response.output_text:
            raise RuntimeError("OpenAI returned an empty response")
        return json.loads(response.output_text)

    async def close(self) -> None:
        await self.client.close()


def _label_message(prompt: str, image_data_url: str) -> dict[str, object]:
    return {
        "role": "user",
        "content": [
            {"type": "input_text", "text": prompt},
            {"type": "input_image", "image_url": image_data_url, "detail": "high"},
        ],
    }
