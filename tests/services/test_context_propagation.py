"""
Tests for context propagation between chat nodes.
"""

import pytest

from opencanvas.core.graph.commands import AppendMessage
from opencanvas.models.message import Message, Role
from opencanvas.services.context_propagation import (
    DONOR_SEPARATOR,
    END_OF_DONOR_CONTEXT,
    donor_header,
)


async def say(workspace, node_id: str, role: Role, content: str) -> None:
    message = Message(role=role, content=content)
    await workspace.apply(AppendMessage(node_id=node_id, message=message))


def layout(transcript: list[Message]) -> list[tuple[str, str]]:
    return [(m.role.value, m.content) for m in transcript]


@pytest.mark.unit
@pytest.mark.asyncio
class TestContextPropagation:
    """Test donor transcript assembly."""

    async def test_no_donors(self, workspace):
        chat = await workspace.add_chat_node("Solo")
        assert workspace.context.build_transcript(chat.id) == []

    async def test_two_donors_layout(self, workspace):
        """Donors appear in edge order, separated, with a closing marker."""
        research = await workspace.add_chat_node("Research")
        notes = await workspace.add_chat_node("Notes")
        receiver = await workspace.add_chat_node("Summary")
        await say(workspace, research.id, Role.USER, "What is RAG?")
        await say(workspace, research.id, Role.ASSISTANT, "Retrieval-augmented generation.")
        await say(workspace, notes.id, Role.USER, "Remember the deadline")
        await workspace.connect(research.id, receiver.id)
        await workspace.connect(notes.id, receiver.id)

        transcript = workspace.context.build_transcript(receiver.id)

        assert layout(transcript) == [
            ("system", donor_header("Research")),
            ("user", "What is RAG?"),
            ("assistant", "Retrieval-augmented generation."),
            ("system", DONOR_SEPARATOR),
            ("system", donor_header("Notes")),
            ("user", "Remember the deadline"),
            ("system", END_OF_DONOR_CONTEXT),
        ]

    async def test_donor_header_format(self):
        assert donor_header("Plan") == 'Context from "Plan" (donor node):'

    async def test_donor_system_messages_are_dropped(self, workspace):
        donor = await workspace.add_chat_node("Donor")
        receiver = await workspace.add_chat_node("Receiver")
        await say(workspace, donor.id, Role.SYSTEM, "internal instructions")
        await say(workspace, donor.id, Role.USER, "hello")
        await workspace.connect(donor.id, receiver.id)

        contents = [m.content for m in workspace.context.build_transcript(receiver.id)]

        assert "internal instructions" not in contents
        assert "hello" in contents

    async def test_only_direct_donors(self, workspace):
        """A -> B -> C: C sees B's conversation, not A's."""
        a = await workspace.add_chat_node("A")
        b = await workspace.add_chat_node("B")
        c = await workspace.add_chat_node("C")
        await say(workspace, a.id, Role.USER, "from A")
        await say(workspace, b.id, Role.USER, "from B")
        await workspace.connect(a.id, b.id)
        await workspace.connect(b.id, c.id)

        contents = [m.content for m in workspace.context.build_transcript(c.id)]

        assert "from B" in contents
        assert "from A" not in contents
        assert donor_header("A") not in contents

    async def test_self_loop_is_ignored(self, workspace):
        chat = await workspace.add_chat_node("Loop")
        await say(workspace, chat.id, Role.USER, "talking to myself")
        await workspace.connect(chat.id, chat.id)

        assert workspace.context.build_transcript(chat.id) == []

    async def test_non_chat_source_is_skipped(self, workspace):
        first = await workspace.add_memory_node("Docs")
        second = await workspace.add_memory_node("More docs")
        await workspace.connect(first.id, second.id)

        assert workspace.context.collect_donors(second.id) == []

    async def test_reads_current_titles_and_messages(self, workspace):
        """The transcript reflects graph state at the moment it is built."""
        donor = await workspace.add_chat_node("Old title")
        receiver = await workspace.add_chat_node("Receiver")
        await workspace.connect(donor.id, receiver.id)
        await workspace.rename_node(donor.id, "New title")
        await say(workspace, donor.id, Role.USER, "late message")

        contents = [m.content for m in workspace.context.build_transcript(receiver.id)]

        assert donor_header("New title") in contents
        assert "late message" in contents

    async def test_donor_messages_are_fresh_copies(self, workspace):
        donor = await workspace.add_chat_node("Donor")
        receiver = await workspace.add_chat_node("Receiver")
        await say(workspace, donor.id, Role.USER, "hi")
        await workspace.connect(donor.id, receiver.id)

        transcript = workspace.context.build_transcript(receiver.id)
        original = workspace.graph.get_node(donor.id).payload.messages[0]

        assert transcript[1].content == original.content
        assert transcript[1].id != original.id
