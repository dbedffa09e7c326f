"""Submission pipeline: attachment, store, history, request, backend, store."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
import logging
from pathlib import Path
from typing import Any, Literal

from .chat import GenerationClient
from .exceptions import (
    AttachmentError,
    GenerationError,
    GenerationInProgressError,
    RequestValidationError,
    UnknownConversationError,
)
from .history import project
from .managers.attachment import AttachmentManager
from .managers.conversation import ConversationStore
from .models import Message, PendingAttachment
from .persistence import JsonFileStore, KeyValueStore, MemoryStore
from .prompt import assemble
from .request import validate_request
from .state import GenerationGate

LOGGER = logging.getLogger(__name__)

FAILURE_REPLY = "Sorry, I couldn't generate a response. Please try again."


@dataclass(frozen=True)
class Notice:
    """A transient, user-facing notification."""

    level: Literal["info", "warning", "error"]
    title: str
    message: str


class ChatPipeline:
    """Run submissions through validation, assembly, generation, and storage.

    The store is mutated only between suspension points, so a user message is
    always recorded before the backend call and the reply after it.
    """

    def __init__(
        self,
        store: ConversationStore,
        attachments: AttachmentManager,
        client: GenerationClient,
    ) -> None:
        self.store = store
        self.attachments = attachments
        self.client = client
        self.gate = GenerationGate()
        self._on_notice: Callable[[Notice], None] | None = None

    def on_notice(self, callback: Callable[[Notice], None]) -> None:
        """Register callback for transient notices."""
        self._on_notice = callback

    def _notify(
        self, level: Literal["info", "warning", "error"], title: str, message: str
    ) -> None:
        if self._on_notice:
            self._on_notice(Notice(level=level, title=title, message=message))

    async def attach_file(
        self, path: str | Path, declared_type: str | None = None
    ) -> PendingAttachment | None:
        """Classify a file and make it the pending attachment.

        Returns None when the file was rejected or a newer attach superseded it.
        """
        ticket = self.attachments.next_ticket()
        try:
            attachment = await self.attachments.classify(path, declared_type)
        except AttachmentError as exc:
            self._notify("error", "Attachment Error", str(exc))
            return None

        if not self.attachments.is_latest(ticket):
            LOGGER.debug(
                "pipeline.attachment.superseded",
                extra={"event": "pipeline.attachment.superseded"},
            )
            return None

        if self.store.active_id is None:
            self.store.create_conversation()
        self.attachments.set_pending(attachment)
        self._notify("info", "File attached", attachment.name)
        return attachment

    async def submit(self, prompt: str) -> Message | None:
        """Submit a prompt with the pending attachment, if any.

        Returns the assistant message that was appended, or None when the
        submission was refused or its result was dropped.
        """
        try:
            await self.gate.begin()
        except GenerationInProgressError as exc:
            self._notify("warning", "Please wait", str(exc))
            return None
        try:
            return await self._submit(prompt)
        finally:
            await self.gate.finish()

    async def _submit(self, prompt: str) -> Message | None:
        attachment = self.attachments.pending
        try:
            request = validate_request(prompt, attachment)
        except RequestValidationError as exc:
            self._notify("error", "Input Required", str(exc))
            return None

        conversation_id = self.store.active_id or self.store.create_conversation()
        conversation = self.store.append_message(
            conversation_id,
            Message.from_user(prompt, attachment),
            attachment_name=attachment.name if attachment else None,
        )
        self.attachments.clear()

        request = request.with_history(project(conversation))
        payload = assemble(request, self.client.system_instruction)

        try:
            reply = Message(role="assistant", content=await self.client.invoke(payload))
        except GenerationError as exc:
            LOGGER.warning(
                "pipeline.generation.failed",
                extra={
                    "event": "pipeline.generation.failed",
                    "conversation_id": conversation_id,
                    "error_type": exc.__class__.__name__,
                },
            )
            reply = Message(role="assistant", content=FAILURE_REPLY)
            self._notify(
                "error",
                "Error",
                "Failed to generate response. Please check your backend settings "
                "and try again.",
            )

        try:
            self.store.append_message(conversation_id, reply)
        except UnknownConversationError:
            # Conversation was deleted while the backend was answering.
            LOGGER.info(
                "pipeline.result.dropped",
                extra={
                    "event": "pipeline.result.dropped",
                    "conversation_id": conversation_id,
                },
            )
            return None
        return reply


def build_storage(persistence_config: dict[str, Any]) -> KeyValueStore:
    """Return the durable store described by the [persistence] section."""
    if persistence_config.get("enabled", True):
        return JsonFileStore(persistence_config["path"])
    return MemoryStore()


def build_pipeline(
    config: dict[str, dict[str, Any]],
    *,
    client: Any | None = None,
    storage: KeyValueStore | None = None,
) -> ChatPipeline:
    """Wire a loaded pipeline from validated config.

    ``client`` replaces the backend SDK client and ``storage`` the durable
    store; both are intended for tests and tooling.
    """
    attachments_cfg = config["attachments"]
    attachments = AttachmentManager(
        max_image_bytes=int(attachments_cfg["max_image_bytes"]),
        max_document_bytes=int(attachments_cfg["max_document_bytes"]),
    )

    store = ConversationStore(
        storage if storage is not None else build_storage(config["persistence"]),
        attachments,
    )
    store.load()

    backend_cfg = config["backend"]
    generation = GenerationClient(
        host=backend_cfg["host"],
        model=backend_cfg["model"],
        timeout=int(backend_cfg["timeout"]),
        api_key=backend_cfg.get("api_key", ""),
        system_instruction=backend_cfg["system_instruction"],
        structured_output=bool(backend_cfg["structured_output"]),
        client=client,
    )
    return ChatPipeline(store, attachments, generation)
