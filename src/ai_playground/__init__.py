"""Top-level package for ai-playground."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .chat import GenerationClient
    from .config import ensure_config_dir, load_config
    from .exceptions import (
        BackendUnavailableError,
        EmptyInputError,
        EmptyResponseError,
        PlaygroundError,
        UnknownConversationError,
        UnsupportedTypeError,
    )
    from .managers import AttachmentManager, ConversationStore
    from .pipeline import ChatPipeline, build_pipeline
    from .prompt import assemble
    from .request import GenerationRequest, validate_request

__all__ = [
    "AttachmentManager",
    "BackendUnavailableError",
    "ChatPipeline",
    "ConversationStore",
    "EmptyInputError",
    "EmptyResponseError",
    "GenerationClient",
    "GenerationRequest",
    "PlaygroundError",
    "UnknownConversationError",
    "UnsupportedTypeError",
    "assemble",
    "build_pipeline",
    "ensure_config_dir",
    "load_config",
    "validate_request",
]

_EXPORTS = {
    "AttachmentManager": ".managers",
    "BackendUnavailableError": ".exceptions",
    "ChatPipeline": ".pipeline",
    "ConversationStore": ".managers",
    "EmptyInputError": ".exceptions",
    "EmptyResponseError": ".exceptions",
    "GenerationClient": ".chat",
    "GenerationRequest": ".request",
    "PlaygroundError": ".exceptions",
    "UnknownConversationError": ".exceptions",
    "UnsupportedTypeError": ".exceptions",
    "assemble": ".prompt",
    "build_pipeline": ".pipeline",
    "ensure_config_dir": ".config",
    "load_config": ".config",
    "validate_request": ".request",
}


def __getattr__(name: str) -> Any:
    """Lazily import symbols so importing the package stays cheap."""
    module_name = _EXPORTS.get(name)
    if module_name is None:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
    from importlib import import_module

    return getattr(import_module(module_name, __name__), name)
