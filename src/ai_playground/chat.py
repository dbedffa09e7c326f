"""Async generation client over an Ollama-compatible chat backend."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx
from ollama import AsyncClient, ResponseError
from pydantic import ValidationError

from .exceptions import (
    BackendUnavailableError,
    EmptyResponseError,
    GenerationError,
)
from .prompt import SYSTEM_INSTRUCTION, StructuredPayload, assemble
from .request import GenerationRequest, GenerationResponse

LOGGER = logging.getLogger(__name__)


class GenerationClient:
    """Send one assembled payload to the backend and return its text.

    Each call is a single request/response exchange. Failures are never
    retried here; callers surface them and let the user resubmit.
    """

    def __init__(
        self,
        host: str,
        model: str,
        *,
        timeout: int = 120,
        api_key: str = "",
        system_instruction: str = SYSTEM_INSTRUCTION,
        structured_output: bool = True,
        client: Any | None = None,
    ) -> None:
        self.host = host
        self.model = model
        self.timeout = timeout
        self.system_instruction = system_instruction
        self.structured_output = structured_output

        if client is not None:
            self._client = client
        else:
            headers = {"Authorization": f"Bearer {api_key}"} if api_key else None
            self._client = AsyncClient(host=host, timeout=timeout, headers=headers)

    @staticmethod
    def _extract_content(response: Any) -> Any:
        """Return message.content from an SDK object or dict response, or None."""
        message_obj = getattr(response, "message", None)
        if message_obj is not None:
            return getattr(message_obj, "content", None)

        if hasattr(response, "model_dump"):
            response = response.model_dump()

        if isinstance(response, dict):
            message = response.get("message")
            if isinstance(message, dict):
                return message.get("content")
            # Generate-style payloads carry the text at the top level.
            return response.get("response")
        return None

    @staticmethod
    def _parse_text(content: Any, structured: bool) -> str:
        if not isinstance(content, str):
            raise EmptyResponseError("The backend returned no text.")
        if not structured:
            return content
        try:
            parsed = GenerationResponse.model_validate_json(content)
        except ValidationError as exc:
            raise EmptyResponseError(
                "The backend reply did not match the expected output schema."
            ) from exc
        return parsed.text

    def _map_exception(self, exc: Exception) -> GenerationError:
        if isinstance(exc, GenerationError):
            return exc

        if isinstance(
            exc,
            (
                httpx.ConnectError,
                httpx.TimeoutException,
                httpx.NetworkError,
                ConnectionError,
            ),
        ):
            return BackendUnavailableError(
                f"Unable to connect to generation backend at {self.host}."
            )

        if isinstance(exc, ResponseError):
            return BackendUnavailableError(
                f"Backend rejected the request ({exc.status_code}): {exc.error}"
            )

        return BackendUnavailableError(
            f"Generation request to {self.host} failed: {exc}"
        )

    async def _chat(self, messages: list[dict[str, Any]], structured: bool) -> str:
        kwargs: dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "stream": False,
        }
        if structured:
            kwargs["format"] = GenerationResponse.model_json_schema()

        LOGGER.info(
            "chat.request.start",
            extra={
                "event": "chat.request.start",
                "model": self.model,
                "structured": structured,
            },
        )
        try:
            response = await self._client.chat(**kwargs)
        except asyncio.CancelledError:
            LOGGER.info(
                "chat.request.cancelled", extra={"event": "chat.request.cancelled"}
            )
            raise
        except Exception as exc:  # noqa: BLE001 - external API can fail in many ways.
            mapped = self._map_exception(exc)
            LOGGER.warning(
                "chat.request.failed",
                extra={
                    "event": "chat.request.failed",
                    "error_type": mapped.__class__.__name__,
                    "error": str(exc),
                },
            )
            raise mapped from exc

        content = self._extract_content(response)
        try:
            text = self._parse_text(content, structured)
        except EmptyResponseError:
            LOGGER.warning(
                "chat.response.empty", extra={"event": "chat.response.empty"}
            )
            raise
        LOGGER.info(
            "chat.request.complete",
            extra={"event": "chat.request.complete", "chars": len(text)},
        )
        return text

    async def invoke(self, payload: StructuredPayload) -> str:
        """Send an assembled payload and return the generated text.

        Raises:
            BackendUnavailableError: the call itself failed
            EmptyResponseError: the reply carried no usable text
        """
        return await self._chat(payload.to_messages(), self.structured_output)

    async def generate(self, request: GenerationRequest) -> str:
        """Assemble ``request`` with this client's system instruction and invoke it."""
        return await self.invoke(assemble(request, self.system_instruction))

    async def generate_text(self, prompt: str) -> str:
        """Plain text-to-text generation without the context template."""
        return await self._chat([{"role": "user", "content": prompt}], False)

    @staticmethod
    def _model_name_matches(requested_model: str, available_model: str) -> bool:
        requested = requested_model.strip().lower()
        available = available_model.strip().lower()
        if requested == available:
            return True
        if ":" not in requested and available.startswith(f"{requested}:"):
            return True
        return False

    async def list_models(self) -> list[str]:
        """Return model names available on the backend."""
        try:
            response = await self._client.list()
        except Exception as exc:  # noqa: BLE001
            raise self._map_exception(exc) from exc

        models: Any = None
        if hasattr(response, "models"):
            models = response.models
        elif isinstance(response, dict):
            models = response.get("models")

        names: list[str] = []
        for model in models if isinstance(models, list) else []:
            for key in ("model", "name"):
                if isinstance(model, dict):
                    value = model.get(key)
                else:
                    value = getattr(model, key, None)
                if isinstance(value, str) and value.strip():
                    names.append(value.strip())
                    break
        return names

    async def check_connection(self) -> bool:
        """Return whether the backend host is reachable."""
        try:
            await self._client.list()
            return True
        except Exception:  # noqa: BLE001
            return False

    async def ensure_model_ready(self, pull_if_missing: bool = True) -> bool:
        """Ensure the configured model is available; optionally pull it.

        Returns False when the model is missing and pulling is disabled.
        """
        available = await self.list_models()
        if any(self._model_name_matches(self.model, name) for name in available):
            LOGGER.info(
                "chat.model.ready",
                extra={"event": "chat.model.ready", "model": self.model},
            )
            return True

        if not pull_if_missing:
            LOGGER.warning(
                "chat.model.missing",
                extra={"event": "chat.model.missing", "model": self.model},
            )
            return False

        LOGGER.info(
            "chat.model.pull.start",
            extra={"event": "chat.model.pull.start", "model": self.model},
        )
        try:
            await self._client.pull(model=self.model, stream=False)
        except Exception as exc:  # noqa: BLE001
            raise self._map_exception(exc) from exc
        LOGGER.info(
            "chat.model.pull.complete",
            extra={"event": "chat.model.pull.complete", "model": self.model},
        )
        return True
