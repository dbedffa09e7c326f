"""Domain exception hierarchy for the AI Playground pipeline."""

from __future__ import annotations


class PlaygroundError(RuntimeError):
    """Base class for all domain-level errors."""


class RequestValidationError(PlaygroundError):
    """Raised when a generation request cannot be built from the given input."""


class EmptyInputError(RequestValidationError):
    """Raised when neither a prompt nor an attachment was supplied."""


class AttachmentError(PlaygroundError):
    """Base class for attachment classification and read failures."""


class UnsupportedTypeError(AttachmentError):
    """Raised when a file's declared media type is not accepted."""

    def __init__(self, declared_type: str) -> None:
        self.declared_type = declared_type
        super().__init__(
            f'File type "{declared_type}" is not supported. Please upload an image '
            "(JPG, PNG, GIF, WEBP) or a plain text file (.txt)."
        )


class FileReadError(AttachmentError):
    """Raised when an accepted file cannot be read or decoded."""


class AttachmentTooLargeError(AttachmentError):
    """Raised when an attachment exceeds its configured size limit."""


class GenerationError(PlaygroundError):
    """Base class for generation backend failures."""


class BackendUnavailableError(GenerationError):
    """Raised when the backend call fails at the transport or API level."""


class EmptyResponseError(GenerationError):
    """Raised when the backend answered without the expected text field."""


class UnknownConversationError(PlaygroundError):
    """Raised when an operation targets a conversation that no longer exists."""

    def __init__(self, conversation_id: str) -> None:
        self.conversation_id = conversation_id
        super().__init__(f"Unknown conversation {conversation_id!r}.")


class GenerationInProgressError(PlaygroundError):
    """Raised when a submission arrives while another generation is outstanding."""

    def __init__(self) -> None:
        super().__init__("A response is still being generated.")


class ConfigValidationError(PlaygroundError):
    """Raised when configuration cannot be validated safely."""
