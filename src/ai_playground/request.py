"""Validated, immutable generation request and backend response schemas."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any, Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    ValidationError,
    field_validator,
    model_validator,
)

from .exceptions import EmptyInputError, RequestValidationError
from .models import PendingAttachment, split_data_uri


class Turn(BaseModel):
    """One prior exchange supplied to the backend as context."""

    model_config = ConfigDict(frozen=True)

    role: Literal["user", "assistant"]
    content: str

    @field_validator("role", mode="before")
    @classmethod
    def _normalize_role(cls, value: Any) -> Any:
        if value == "ai":
            return "assistant"
        return value

    @property
    def wire_role(self) -> str:
        return "user" if self.role == "user" else "ai"


class GenerationRequest(BaseModel):
    """Everything needed to render one prompt for the backend."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    prompt: str = ""
    image_data_uri: str | None = None
    document_text: str | None = None
    prior_turns: tuple[Turn, ...] = ()

    @field_validator("image_data_uri")
    @classmethod
    def _validate_data_uri(cls, value: str | None) -> str | None:
        if value is not None:
            split_data_uri(value)
        return value

    @model_validator(mode="after")
    def _validate_inputs(self) -> GenerationRequest:
        if self.image_data_uri is not None and self.document_text is not None:
            raise ValueError("image_data_uri and document_text are mutually exclusive.")
        if (
            not self.prompt.strip()
            and self.image_data_uri is None
            and self.document_text is None
        ):
            raise ValueError("Please enter a prompt or attach a file.")
        return self

    @property
    def image_media_type(self) -> str | None:
        if self.image_data_uri is None:
            return None
        media_type, _ = split_data_uri(self.image_data_uri)
        return media_type

    def with_history(self, turns: Iterable[Turn]) -> GenerationRequest:
        """Return a copy of this request carrying ``turns`` as prior context."""
        return self.model_copy(update={"prior_turns": tuple(turns)})

    def to_wire(self) -> dict[str, Any]:
        """Render the logical request schema, omitting absent optionals."""
        payload: dict[str, Any] = {"prompt": self.prompt}
        if self.image_data_uri is not None:
            payload["imageDataUri"] = self.image_data_uri
        if self.document_text is not None:
            payload["documentText"] = self.document_text
        if self.prior_turns:
            payload["conversationHistory"] = [
                {"role": turn.wire_role, "content": turn.content}
                for turn in self.prior_turns
            ]
        return payload


class GenerationResponse(BaseModel):
    """Expected shape of a backend reply."""

    model_config = ConfigDict(extra="ignore")

    text: str


def validate_request(
    prompt: str,
    attachment: PendingAttachment | None,
    prior_turns: Iterable[Turn | dict[str, Any]] | None = None,
) -> GenerationRequest:
    """Build a GenerationRequest from raw submission input.

    Raises:
        EmptyInputError: no prompt text and no attachment
        RequestValidationError: any other malformed input
    """
    if not prompt.strip() and attachment is None:
        raise EmptyInputError("Please enter a prompt or attach a file.")

    try:
        return GenerationRequest(
            prompt=prompt,
            image_data_uri=attachment.image_data_uri if attachment else None,
            document_text=attachment.document_text if attachment else None,
            prior_turns=tuple(prior_turns or ()),
        )
    except ValidationError as exc:
        raise RequestValidationError(f"Invalid generation request: {exc}") from exc
