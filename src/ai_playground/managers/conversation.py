"""Conversation list, active pointer, and their persistence.

All mutations are synchronous and each is followed by a write of the full
state to the durable store.
"""

from __future__ import annotations

from collections.abc import Callable
import json
import logging
from typing import TYPE_CHECKING, Any
from uuid import uuid4

from ..exceptions import UnknownConversationError
from ..models import Conversation, Message, derive_title
from ..persistence import KeyValueStore, PersistenceError, PersistenceFormatError

if TYPE_CHECKING:
    from .attachment import AttachmentManager

LOGGER = logging.getLogger(__name__)

CONVERSATIONS_KEY = "ai_playground.conversations"
ACTIVE_ID_KEY = "ai_playground.active_conversation_id"


def _new_conversation_id() -> str:
    return uuid4().hex


def _decode_conversations(raw: str | None) -> list[Conversation]:
    if raw is None:
        return []
    try:
        payload: Any = json.loads(raw)
    except ValueError as exc:
        raise PersistenceFormatError(
            "Stored conversations are not valid JSON."
        ) from exc
    if not isinstance(payload, list):
        raise PersistenceFormatError("Stored conversations must be a list.")
    try:
        conversations = [Conversation.from_dict(item) for item in payload]
    except ValueError as exc:
        raise PersistenceFormatError(f"Stored conversation is invalid: {exc}") from exc
    ids = [conversation.id for conversation in conversations]
    if len(ids) != len(set(ids)):
        raise PersistenceFormatError("Stored conversations contain duplicate ids.")
    return conversations


class ConversationStore:
    """Owns the conversations and the pointer to the active one.

    Responsibilities:
    - Create, select, and delete conversations
    - Append messages and derive titles
    - Keep the active pointer valid
    - Load and save state through a KeyValueStore
    """

    def __init__(
        self,
        storage: KeyValueStore,
        attachments: AttachmentManager | None = None,
        id_factory: Callable[[], str] | None = None,
    ) -> None:
        self.storage = storage
        self.attachments = attachments
        self._id_factory = id_factory or _new_conversation_id
        self._conversations: list[Conversation] = []
        self._active_id: str | None = None

    @property
    def conversations(self) -> list[Conversation]:
        """Return conversations, most recently created first."""
        return list(self._conversations)

    @property
    def active_id(self) -> str | None:
        return self._active_id

    @property
    def active_conversation(self) -> Conversation | None:
        if self._active_id is None:
            return None
        return self.get(self._active_id)

    def get(self, conversation_id: str) -> Conversation | None:
        for conversation in self._conversations:
            if conversation.id == conversation_id:
                return conversation
        return None

    def _clear_pending_attachment(self) -> None:
        if self.attachments is not None:
            self.attachments.clear()

    def create_conversation(self) -> str:
        """Start an untitled conversation, make it active, and return its id."""
        conversation = Conversation(id=self._id_factory())
        self._conversations.insert(0, conversation)
        self._active_id = conversation.id
        self._clear_pending_attachment()
        LOGGER.info(
            "store.conversation.created",
            extra={
                "event": "store.conversation.created",
                "conversation_id": conversation.id,
            },
        )
        self.save()
        return conversation.id

    def select_conversation(self, conversation_id: str) -> bool:
        """Make ``conversation_id`` active; returns False for unknown ids."""
        if self.get(conversation_id) is None:
            return False
        self._active_id = conversation_id
        self._clear_pending_attachment()
        self.save()
        return True

    def delete_conversation(self, conversation_id: str) -> bool:
        """Remove a conversation.

        Deleting the active conversation clears the active pointer (it is not
        reassigned) and drops the pending attachment.
        """
        conversation = self.get(conversation_id)
        if conversation is None:
            return False
        self._conversations.remove(conversation)
        if self._active_id == conversation_id:
            self._active_id = None
            self._clear_pending_attachment()
        LOGGER.info(
            "store.conversation.deleted",
            extra={
                "event": "store.conversation.deleted",
                "conversation_id": conversation_id,
            },
        )
        self.save()
        return True

    def append_message(
        self,
        conversation_id: str,
        message: Message,
        *,
        attachment_name: str | None = None,
    ) -> Conversation:
        """Append ``message``; the first append also sets the title.

        Raises:
            UnknownConversationError: the conversation does not exist (anymore)
        """
        conversation = self.get(conversation_id)
        if conversation is None:
            raise UnknownConversationError(conversation_id)
        if not conversation.messages:
            conversation.title = derive_title(message.content, attachment_name)
        conversation.messages.append(message)
        self.save()
        return conversation

    def _enforce_active_invariant(self) -> bool:
        """Clear a dangling active pointer; returns True when it was repaired."""
        if self._active_id is not None and self.get(self._active_id) is None:
            LOGGER.warning(
                "store.active.cleared",
                extra={
                    "event": "store.active.cleared",
                    "conversation_id": self._active_id,
                },
            )
            self._active_id = None
            return True
        return False

    def load(self) -> None:
        """Re-hydrate state from storage; malformed data yields an empty store."""
        try:
            conversations = _decode_conversations(self.storage.get(CONVERSATIONS_KEY))
            active_id = self.storage.get(ACTIVE_ID_KEY)
        except PersistenceError as exc:
            LOGGER.warning(
                "store.load.failed",
                extra={"event": "store.load.failed", "error": str(exc)},
            )
            conversations, active_id = [], None

        self._conversations = conversations
        self._active_id = active_id or None
        repaired = self._enforce_active_invariant()
        LOGGER.info(
            "store.loaded",
            extra={"event": "store.loaded", "conversations": len(conversations)},
        )
        if repaired:
            self.save()

    def save(self) -> None:
        """Persist conversations and the active pointer; failures are logged."""
        serialized = json.dumps(
            [conversation.to_dict() for conversation in self._conversations],
            ensure_ascii=False,
        )
        try:
            self.storage.set(CONVERSATIONS_KEY, serialized)
            if self._active_id is None:
                self.storage.remove(ACTIVE_ID_KEY)
            else:
                self.storage.set(ACTIVE_ID_KEY, self._active_id)
        except PersistenceError as exc:
            LOGGER.error(
                "store.save.failed",
                extra={"event": "store.save.failed", "error": str(exc)},
            )
