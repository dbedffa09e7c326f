"""Deterministic rendering of a GenerationRequest into the backend payload."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .models import split_data_uri
from .request import GenerationRequest

SYSTEM_INSTRUCTION = (
    "You are an expert AI assistant. Generate content based on the following "
    "information. Prioritize the user's prompt, but use the image, document text, "
    "and conversation history as context if provided."
)

CLOSING_INSTRUCTION = (
    "Generate the response based on the prompt and any provided context."
)

SECTION_DELIMITER = "---"


@dataclass(frozen=True)
class StructuredPayload:
    """Fully rendered prompt text plus any image travelling alongside it."""

    system: str
    text: str
    images: tuple[str, ...] = ()

    def to_messages(self) -> list[dict[str, Any]]:
        """Render chat messages for the backend; images as raw base64 data."""
        user_message: dict[str, Any] = {"role": "user", "content": self.text}
        if self.images:
            user_message["images"] = [split_data_uri(uri)[1] for uri in self.images]
        return [{"role": "system", "content": self.system}, user_message]


def _history_section(request: GenerationRequest) -> str:
    lines = ["Conversation History:", SECTION_DELIMITER]
    for turn in request.prior_turns:
        speaker = "User" if turn.role == "user" else "AI"
        lines.append(f"{speaker}: {turn.content}")
    lines.append(SECTION_DELIMITER)
    return "\n".join(lines)


def _document_section(document_text: str) -> str:
    return "\n".join(
        ["Document Context:", SECTION_DELIMITER, document_text, SECTION_DELIMITER]
    )


def assemble(
    request: GenerationRequest, system_instruction: str = SYSTEM_INSTRUCTION
) -> StructuredPayload:
    """Render ``request`` into a StructuredPayload.

    Sections appear in a fixed order (history, prompt, image, document) and
    only when their input is present, so equal requests render identically.
    """
    sections: list[str] = []
    if request.prior_turns:
        sections.append(_history_section(request))

    sections.append(f"User Prompt: {request.prompt}")

    images: tuple[str, ...] = ()
    if request.image_data_uri is not None:
        sections.append(f"Image Context:\n[image attached: {request.image_media_type}]")
        images = (request.image_data_uri,)

    if request.document_text:
        sections.append(_document_section(request.document_text))

    sections.append(CLOSING_INSTRUCTION)
    return StructuredPayload(
        system=system_instruction, text="\n\n".join(sections), images=images
    )
