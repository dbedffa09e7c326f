"""Tests for GenerationClient invocation, response validation, and error mapping."""

from __future__ import annotations

import json
from typing import Any
import unittest

import httpx
from ollama import ResponseError

from ai_playground.chat import GenerationClient
from ai_playground.exceptions import BackendUnavailableError, EmptyResponseError
from ai_playground.models import PendingAttachment
from ai_playground.prompt import StructuredPayload, assemble
from ai_playground.request import validate_request


def _reply(content: Any) -> dict[str, Any]:
    return {"message": {"role": "assistant", "content": content}}


class FakeClient:
    """Simple fake backend client for deterministic tests."""

    def __init__(
        self,
        responses: list[Any] | None = None,
        error: Exception | None = None,
        models: list[str] | None = None,
    ) -> None:
        self.responses = responses or []
        self.error = error
        self.calls: list[dict[str, Any]] = []
        self.models = models or ["llama3.2:latest"]
        self.pull_calls: list[str] = []

    async def chat(self, **kwargs: Any) -> Any:
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return self.responses[min(len(self.calls), len(self.responses)) - 1]

    async def list(self) -> dict[str, list[dict[str, str]]]:
        if self.error is not None:
            raise self.error
        return {"models": [{"model": name} for name in self.models]}

    async def pull(
        self, model: str, stream: bool = False  # noqa: ARG002
    ) -> dict[str, str]:
        self.pull_calls.append(model)
        self.models.append(model)
        return {"status": "success"}


class _SdkMessage:
    def __init__(self, content: str | None) -> None:
        self.content = content


class _SdkResponse:
    def __init__(self, content: str | None) -> None:
        self.message = _SdkMessage(content)


def _client(fake: FakeClient, **kwargs: Any) -> GenerationClient:
    return GenerationClient(
        host="http://localhost:11434", model="llama3.2", client=fake, **kwargs
    )


class InvokeTests(unittest.IsolatedAsyncioTestCase):
    """Validate the single-call request/response contract."""

    async def test_structured_reply_returns_text(self) -> None:
        fake = FakeClient(responses=[_reply(json.dumps({"text": "A summary."}))])
        client = _client(fake)

        text = await client.invoke(StructuredPayload(system="sys", text="body"))

        self.assertEqual(text, "A summary.")
        self.assertEqual(len(fake.calls), 1)
        call = fake.calls[0]
        self.assertEqual(call["model"], "llama3.2")
        self.assertFalse(call["stream"])
        self.assertEqual(call["format"]["required"], ["text"])
        self.assertEqual(call["messages"][0], {"role": "system", "content": "sys"})

    async def test_sdk_object_response_is_supported(self) -> None:
        fake = FakeClient(responses=[_SdkResponse(json.dumps({"text": "ok"}))])
        text = await _client(fake).invoke(StructuredPayload(system="s", text="t"))
        self.assertEqual(text, "ok")

    async def test_plain_output_returns_content_verbatim(self) -> None:
        fake = FakeClient(responses=[_reply("Just text")])
        client = _client(fake, structured_output=False)

        text = await client.invoke(StructuredPayload(system="s", text="t"))

        self.assertEqual(text, "Just text")
        self.assertNotIn("format", fake.calls[0])

    async def test_null_content_is_empty_response(self) -> None:
        fake = FakeClient(responses=[_reply(None)])
        with self.assertRaises(EmptyResponseError):
            await _client(fake).invoke(StructuredPayload(system="s", text="t"))

    async def test_missing_text_field_is_empty_response(self) -> None:
        fake = FakeClient(responses=[_reply(json.dumps({"answer": "nope"}))])
        with self.assertRaises(EmptyResponseError):
            await _client(fake).invoke(StructuredPayload(system="s", text="t"))

    async def test_null_text_field_is_empty_response(self) -> None:
        fake = FakeClient(responses=[_reply(json.dumps({"text": None}))])
        with self.assertRaises(EmptyResponseError):
            await _client(fake).invoke(StructuredPayload(system="s", text="t"))

    async def test_non_json_structured_reply_is_empty_response(self) -> None:
        fake = FakeClient(responses=[_reply("not json")])
        with self.assertRaises(EmptyResponseError):
            await _client(fake).invoke(StructuredPayload(system="s", text="t"))

    async def test_connection_failure_is_backend_unavailable(self) -> None:
        fake = FakeClient(error=httpx.ConnectError("refused"))
        with self.assertRaises(BackendUnavailableError):
            await _client(fake).invoke(StructuredPayload(system="s", text="t"))
        self.assertEqual(len(fake.calls), 1)

    async def test_api_error_is_backend_unavailable(self) -> None:
        fake = FakeClient(error=ResponseError("model 'llama3.2' not found", 404))
        with self.assertRaises(BackendUnavailableError) as ctx:
            await _client(fake).invoke(StructuredPayload(system="s", text="t"))
        self.assertIn("404", str(ctx.exception))

    async def test_unexpected_failure_is_not_retried(self) -> None:
        fake = FakeClient(error=RuntimeError("boom"))
        with self.assertRaises(BackendUnavailableError):
            await _client(fake).invoke(StructuredPayload(system="s", text="t"))
        self.assertEqual(len(fake.calls), 1)

    async def test_generate_assembles_request_with_image(self) -> None:
        fake = FakeClient(responses=[_reply(json.dumps({"text": "A cat."}))])
        client = _client(fake, system_instruction="Be brief.")
        image = PendingAttachment(
            "cat.png", "image", "data:image/png;base64,iVBORw0KGgo=", "image/png"
        )
        request = validate_request("What is this?", image)

        self.assertEqual(await client.generate(request), "A cat.")
        expected = assemble(request, "Be brief.").to_messages()
        self.assertEqual(fake.calls[0]["messages"], expected)
        self.assertEqual(fake.calls[0]["messages"][1]["images"], ["iVBORw0KGgo="])

    async def test_generate_text_sends_bare_prompt(self) -> None:
        fake = FakeClient(responses=[_reply("Hello")])
        text = await _client(fake).generate_text("Say hello")
        self.assertEqual(text, "Hello")
        self.assertEqual(
            fake.calls[0]["messages"], [{"role": "user", "content": "Say hello"}]
        )
        self.assertNotIn("format", fake.calls[0])


class ModelReadyTests(unittest.IsolatedAsyncioTestCase):
    """Validate startup model availability checks."""

    async def test_list_models_reads_names(self) -> None:
        fake = FakeClient(models=["llama3.2:latest", "qwen2.5:7b"])
        self.assertEqual(
            await _client(fake).list_models(), ["llama3.2:latest", "qwen2.5:7b"]
        )

    async def test_untagged_model_matches_tagged_listing(self) -> None:
        fake = FakeClient(models=["llama3.2:latest"])
        self.assertTrue(await _client(fake).ensure_model_ready(pull_if_missing=False))
        self.assertEqual(fake.pull_calls, [])

    async def test_missing_model_is_pulled(self) -> None:
        fake = FakeClient(models=["other:latest"])
        self.assertTrue(await _client(fake).ensure_model_ready(pull_if_missing=True))
        self.assertEqual(fake.pull_calls, ["llama3.2"])

    async def test_missing_model_without_pull_returns_false(self) -> None:
        fake = FakeClient(models=["other:latest"])
        self.assertFalse(await _client(fake).ensure_model_ready(pull_if_missing=False))

    async def test_check_connection_reports_failures(self) -> None:
        self.assertTrue(await _client(FakeClient()).check_connection())
        fake = FakeClient(error=httpx.ConnectError("refused"))
        self.assertFalse(await _client(fake).check_connection())


if __name__ == "__main__":
    unittest.main()
