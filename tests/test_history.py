"""Tests for history projection."""

from __future__ import annotations

import unittest

from ai_playground.history import project
from ai_playground.models import Conversation, Message
from ai_playground.request import Turn


class ProjectTests(unittest.TestCase):
    """Validate that only the in-flight message is excluded."""

    def test_excludes_only_most_recent_message(self) -> None:
        conversation = Conversation(
            id="c1",
            messages=[
                Message(role="user", content="U1"),
                Message(role="assistant", content="A1"),
                Message(role="user", content="U2"),
            ],
        )
        self.assertEqual(
            project(conversation),
            (Turn(role="user", content="U1"), Turn(role="assistant", content="A1")),
        )

    def test_single_message_projects_to_nothing(self) -> None:
        conversation = Conversation(
            id="c1", messages=[Message(role="user", content="U1")]
        )
        self.assertEqual(project(conversation), ())

    def test_empty_conversation_projects_to_nothing(self) -> None:
        self.assertEqual(project(Conversation(id="c1")), ())

    def test_attachments_are_not_projected(self) -> None:
        conversation = Conversation(
            id="c1",
            messages=[
                Message(role="user", content="", document_name="notes.txt"),
                Message(role="assistant", content="A1"),
                Message(role="user", content="U2"),
            ],
        )
        self.assertEqual(project(conversation)[0], Turn(role="user", content=""))

    def test_projection_does_not_mutate_conversation(self) -> None:
        messages = [
            Message(role="user", content="U1"),
            Message(role="user", content="U2"),
        ]
        conversation = Conversation(id="c1", messages=list(messages))
        project(conversation)
        self.assertEqual(conversation.messages, messages)


if __name__ == "__main__":
    unittest.main()
