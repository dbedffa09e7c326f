"""Projection of a conversation into prior turns for the next request."""

from __future__ import annotations

from .models import Conversation
from .request import Turn


def project(conversation: Conversation) -> tuple[Turn, ...]:
    """Return every turn except the most recent one, which is being answered."""
    return tuple(
        Turn(role=message.role, content=message.content)
        for message in conversation.messages[:-1]
    )
