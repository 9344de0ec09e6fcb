"""
Tests for the canvas workspace.

Covers node and edge operations, branching, merging and an end-to-end
conversation over uploaded documents.
"""

import pytest

from opencanvas.models.edge import EdgeKind
from opencanvas.models.node import Position, Size
from opencanvas.services.ingestion import UploadedFile
from opencanvas.utils.exceptions import CycleError, ValidationError


@pytest.mark.unit
@pytest.mark.asyncio
class TestNodesAndEdges:
    """Test node and edge operations."""

    async def test_chat_defaults_from_config(self, workspace):
        chat = await workspace.add_chat_node()

        assert chat.id.startswith("chat_")
        assert chat.payload.provider == "ollama"
        assert chat.payload.model == "llama3.1:8b"
        assert chat.payload.messages == []

    async def test_update_chat_settings(self, workspace):
        chat = await workspace.add_chat_node("Chat")

        updated = await workspace.update_chat_settings(
            chat.id, provider="openai", model="gpt-4o-mini", system_prompt="Be terse"
        )

        assert updated.payload.provider == "openai"
        assert updated.payload.model == "gpt-4o-mini"
        assert updated.payload.system_prompt == "Be terse"

    async def test_resize_and_move(self, workspace):
        memory = await workspace.add_memory_node("Docs")

        await workspace.resize_node(memory.id, Size(width=300, height=200))
        moved = await workspace.move_node(memory.id, Position(x=10, y=20))

        assert moved.size == Size(width=300, height=200)
        assert moved.position == Position(x=10, y=20)

    async def test_missing_node_operations(self, workspace):
        assert await workspace.move_node("chat_missing", Position()) is None
        assert await workspace.rename_node("chat_missing", "x") is None
        assert await workspace.delete_node("chat_missing") is None

    async def test_edge_kinds(self, workspace):
        a = await workspace.add_chat_node("A")
        b = await workspace.add_chat_node("B")
        memory = await workspace.add_memory_node("Docs")

        context = await workspace.connect(a.id, b.id)
        rag = await workspace.connect(memory.id, b.id)

        assert context.kind == EdgeKind.CONTEXT
        assert rag.kind == EdgeKind.RAG
        assert workspace.attached_memory_ids(b.id) == (memory.id,)
        assert workspace.attached_memory_ids(a.id) == ()

    async def test_duplicate_edge_is_ignored(self, workspace):
        a = await workspace.add_chat_node("A")
        b = await workspace.add_chat_node("B")

        assert await workspace.connect(a.id, b.id) is not None
        assert await workspace.connect(a.id, b.id) is None
        assert len(workspace.graph.edges) == 1

    async def test_context_cycle_rejected(self, workspace):
        a = await workspace.add_chat_node("A")
        b = await workspace.add_chat_node("B")
        c = await workspace.add_chat_node("C")
        await workspace.connect(a.id, b.id)
        await workspace.connect(b.id, c.id)

        with pytest.raises(CycleError):
            await workspace.connect(c.id, a.id)
        assert len(workspace.graph.edges) == 2

    async def test_disconnect_detaches_memory(self, workspace):
        chat = await workspace.add_chat_node("Chat")
        memory = await workspace.add_memory_node("Docs")
        edge = await workspace.connect(memory.id, chat.id)

        await workspace.disconnect(edge.id)

        assert workspace.attached_memory_ids(chat.id) == ()

    async def test_delete_removes_edges(self, workspace):
        chat = await workspace.add_chat_node("Chat")
        memory = await workspace.add_memory_node("Docs")
        await workspace.connect(memory.id, chat.id)

        await workspace.delete_node(memory.id)

        assert workspace.graph.edges == []
        assert workspace.attached_memory_ids(chat.id) == ()


@pytest.mark.unit
@pytest.mark.asyncio
class TestBranchAndMerge:
    """Test branching and merging conversations."""

    async def test_branch(self, workspace):
        parent = await workspace.add_chat_node(
            "Plan", model="qwen2.5:7b", system_prompt="Think aloud", position=Position(x=100, y=100)
        )

        child = await workspace.branch(parent.id)

        assert child.title == "Plan (Branch)"
        assert child.payload.model == "qwen2.5:7b"
        assert child.payload.system_prompt == "Think aloud"
        assert child.payload.messages == []
        assert child.position == Position(x=600, y=100)
        edges = workspace.graph.incoming_edges(child.id)
        assert [(e.source, e.kind) for e in edges] == [(parent.id, EdgeKind.CONTEXT)]

    async def test_branches_stack_downwards(self, workspace):
        parent = await workspace.add_chat_node("Plan", position=Position(x=0, y=0))

        first = await workspace.branch(parent.id)
        second = await workspace.branch(parent.id)

        assert first.position == Position(x=500, y=0)
        assert second.position == Position(x=500, y=150)

    async def test_branch_memory_node(self, workspace):
        memory = await workspace.add_memory_node("Docs")
        with pytest.raises(ValidationError):
            await workspace.branch(memory.id)

    async def test_branch_missing_node(self, workspace):
        assert await workspace.branch("chat_missing") is None

    async def test_merge(self, workspace):
        a = await workspace.add_chat_node("A", model="m1", position=Position(x=0, y=0))
        b = await workspace.add_chat_node("B", model="m2", position=Position(x=200, y=100))

        merged = await workspace.merge([a.id, b.id])

        assert merged.title == "Merged Chat"
        assert merged.payload.model == "m1"
        assert merged.position == Position(x=350, y=350)
        sources = [e.source for e in workspace.graph.incoming_edges(merged.id)]
        assert sources == [a.id, b.id]

    async def test_merge_needs_two_chats(self, workspace):
        a = await workspace.add_chat_node("A")
        memory = await workspace.add_memory_node("Docs")

        with pytest.raises(ValidationError):
            await workspace.merge([a.id, memory.id])
        with pytest.raises(ValidationError):
            await workspace.merge([a.id, a.id])


@pytest.mark.integration
@pytest.mark.asyncio
class TestEndToEnd:
    """Full flow over the fake providers."""

    async def test_upload_connect_send_restart(self, workspace, workspace_factory, fake_llm):
        memory = await workspace.add_memory_node("Handbook")
        await workspace.upload_documents(
            memory.id, [UploadedFile(name="policy.md", data=b"# Leave\nTwenty days per year.")]
        )
        chat = await workspace.add_chat_node("HR questions")
        await workspace.connect(memory.id, chat.id)
        branch = await workspace.branch(chat.id)

        await workspace.send_message(chat.id, "How many leave days?")
        await workspace.send_message(branch.id, "And in the first year?")

        # The branch sees its parent's conversation but not its memory
        branch_prompt = [m.content for m in fake_llm.prompts[1]]
        assert "How many leave days?" in branch_prompt
        assert not any("Twenty days" in content for content in branch_prompt)
        assert any("Twenty days" in m.content for m in fake_llm.prompts[0])

        restarted = await workspace_factory()

        assert restarted.persistence.current_session_id == workspace.persistence.current_session_id
        restored = restarted.graph.get_node(branch.id)
        assert [m.content for m in restored.payload.messages] == [
            "And in the first year?",
            "Hello world",
        ]
        assert restarted.attached_memory_ids(chat.id) == (memory.id,)
        index = await restarted.indices.get(memory.id)
        assert index.count == 1
