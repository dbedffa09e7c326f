"""Conversation, message, and pending-attachment value types."""

from __future__ import annotations

from dataclasses import dataclass, field
import re
from typing import Any, Literal

Role = Literal["user", "assistant"]
AttachmentKind = Literal["image", "document"]

UNTITLED = "New Conversation"
TITLE_MAX_CHARS = 40
TITLE_ELLIPSIS = "..."

_DATA_URI_PATTERN = re.compile(
    r"^data:(?P<type>[\w.+-]+/[\w.+-]+);base64,(?P<data>.*)$", re.DOTALL
)


def build_data_uri(media_type: str, data: str) -> str:
    """Return a ``data:<type>;base64,<data>`` URI for already-encoded data."""
    return f"data:{media_type};base64,{data}"


def split_data_uri(uri: str) -> tuple[str, str]:
    """Split a base64 data URI into ``(media_type, base64_data)``."""
    match = _DATA_URI_PATTERN.match(uri)
    if match is None:
        raise ValueError(
            "Expected a data URI of the form data:<mimetype>;base64,<data>."
        )
    return match.group("type"), match.group("data")


def derive_title(content: str, attachment_name: str | None = None) -> str:
    """Derive a conversation title from the first message of a conversation.

    Falls back to the attachment name when the prompt is empty, and to the
    untitled sentinel when neither is available.
    """
    text = content.strip()
    if not text:
        if not attachment_name:
            return UNTITLED
        text = f"Chat about {attachment_name}"
    if len(text) > TITLE_MAX_CHARS:
        return text[:TITLE_MAX_CHARS] + TITLE_ELLIPSIS
    return text


@dataclass(frozen=True)
class PendingAttachment:
    """A classified file waiting to be sent with the next prompt."""

    name: str
    kind: AttachmentKind
    payload: str
    media_type: str

    @property
    def image_data_uri(self) -> str | None:
        return self.payload if self.kind == "image" else None

    @property
    def document_text(self) -> str | None:
        return self.payload if self.kind == "document" else None


@dataclass(frozen=True)
class Message:
    """One immutable chat message."""

    role: Role
    content: str
    image_ref: str | None = None
    document_name: str | None = None

    def __post_init__(self) -> None:
        if self.role not in ("user", "assistant"):
            raise ValueError(f"Unsupported message role {self.role!r}.")
        if self.image_ref is not None and self.document_name is not None:
            raise ValueError("A message cannot carry both an image and a document.")
        if self.role == "assistant" and (
            self.image_ref is not None or self.document_name is not None
        ):
            raise ValueError("Only user messages may carry attachments.")

    @classmethod
    def from_user(cls, content: str, attachment: PendingAttachment | None) -> Message:
        """Build the user message recorded for a submission."""
        if attachment is None:
            return cls(role="user", content=content)
        if attachment.kind == "image":
            return cls(role="user", content=content, image_ref=attachment.payload)
        return cls(role="user", content=content, document_name=attachment.name)

    def to_dict(self) -> dict[str, str]:
        payload = {"role": self.role, "content": self.content}
        if self.image_ref is not None:
            payload["imageDataUri"] = self.image_ref
        if self.document_name is not None:
            payload["documentName"] = self.document_name
        return payload

    @classmethod
    def from_dict(cls, data: Any) -> Message:
        """Rebuild a message from persisted data; raises ValueError when malformed."""
        if not isinstance(data, dict):
            raise ValueError("Message payload must be an object.")
        role = data.get("role")
        # Older payloads used the wire role name for assistant turns.
        if role == "ai":
            role = "assistant"
        content = data.get("content")
        image_ref = data.get("imageDataUri")
        document_name = data.get("documentName")
        if not isinstance(content, str):
            raise ValueError("Message content must be a string.")
        if image_ref is not None and not isinstance(image_ref, str):
            raise ValueError("imageDataUri must be a string.")
        if document_name is not None and not isinstance(document_name, str):
            raise ValueError("documentName must be a string.")
        return cls(
            role=role,  # type: ignore[arg-type]
            content=content,
            image_ref=image_ref,
            document_name=document_name,
        )


@dataclass
class Conversation:
    """A titled, append-only sequence of messages."""

    id: str
    title: str = UNTITLED
    messages: list[Message] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "messages": [message.to_dict() for message in self.messages],
        }

    @classmethod
    def from_dict(cls, data: Any) -> Conversation:
        """Rebuild a conversation from persisted data; raises ValueError if invalid."""
        if not isinstance(data, dict):
            raise ValueError("Conversation payload must be an object.")
        conversation_id = data.get("id")
        title = data.get("title")
        messages = data.get("messages")
        if not isinstance(conversation_id, str) or not conversation_id:
            raise ValueError("Conversation id must be a non-empty string.")
        if not isinstance(title, str):
            raise ValueError("Conversation title must be a string.")
        if not isinstance(messages, list):
            raise ValueError("Conversation messages must be a list.")
        return cls(
            id=conversation_id,
            title=title,
            messages=[Message.from_dict(item) for item in messages],
        )
