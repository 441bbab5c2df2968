"""Tests for the OpenAI analyzer adapter."""

import asyncio
import json
from types import SimpleNamespace

import pytest

from label_scanner.adapters.openai_analyzer_client import OpenAIAnalyzerClient


class _FakeResponses:
    def __init__(self, output_text: str, **fields: object) -> None:
        self.response = SimpleNamespace(output_text=output_text, **fields)
        self.last_payload: dict[str, object] | None = None

    async def create(self, **kwargs):  # type: ignore[no-untyped-def]
        self.last_payload = kwargs
        return self.response


class _FakeOpenAI:
    def __init__(self, output_text: str, **fields: object) -> None:
        self.responses = _FakeResponses(output_text, **fields)


def _extract(
    client: OpenAIAnalyzerClient, reasoning_effort: str | None = "low"
) -> dict[str, object]:
    return asyncio.run(
        client.extract(
            model="gpt-5.2",
            reasoning_effort=reasoning_effort,
            store=False,
            image_data_url="data:image/jpeg;base64,ZmFrZQ==",
            schema_name="nutrition_label",
            schema={"type": "object"},
            prompt="Read the label",
        )
    )


def test_openai_analyzer_client_parses_output() -> None:
    payload = {"error": None, "success": {"calories": 52}}
    fake = _FakeOpenAI(json.dumps(payload), status="completed")
    client = OpenAIAnalyzerClient(client=fake, max_output_tokens=2000)

    result = _extract(client)

    assert result == payload
    request = fake.responses.last_payload
    assert request is not None
    assert request["reasoning"] == {"effort": "low"}
    assert request["max_output_tokens"] == 2000
    assert request["text"]["format"]["name"] == "nutrition_label"
    content = request["input"][0]["content"]
    assert content[0] == {"type": "input_text", "text": "Read the label"}
    assert content[1]["image_url"] == "data:image/jpeg;base64,ZmFrZQ=="


def test_openai_analyzer_client_omits_optional_fields_when_unset() -> None:
    fake = _FakeOpenAI("{}")
    client = OpenAIAnalyzerClient(client=fake)

    _extract(client, reasoning_effort=None)

    assert fake.responses.last_payload is not None
    assert "reasoning" not in fake.responses.last_payload
    assert "max_output_tokens" not in fake.responses.last_payload


def test_openai_analyzer_client_rejects_empty_output() -> None:
    client = OpenAIAnalyzerClient(client=_FakeOpenAI(""))

    with pytest.raises(RuntimeError):
        _extract(client)


def test_openai_analyzer_client_rejects_truncated_output() -> None:
    fake = _FakeOpenAI(
        '{"error": null, "succ',
        status="incomplete",
        incomplete_details=SimpleNamespace(reason="max_output_tokens"),
    )
    client = OpenAIAnalyzerClient(client=fake, max_output_tokens=16)

    with pytest.raises(RuntimeError, match="max_output_tokens"):
        _extract(client)
