"""Stateful managers owned by the pipeline.

Available managers:
- AttachmentManager: File classification and the pending-attachment slot
- ConversationStore: Conversations, the active pointer, and persistence
"""

from __future__ import annotations

from .attachment import DOCUMENT_MEDIA_TYPES, IMAGE_MEDIA_TYPES, AttachmentManager
from .conversation import ConversationStore

__all__ = [
    "AttachmentManager",
    "ConversationStore",
    "DOCUMENT_MEDIA_TYPES",
    "IMAGE_MEDIA_TYPES",
]
