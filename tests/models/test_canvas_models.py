"""
Tests for data models.

Tests validation, discriminated payloads and immutability of messages.
"""

import pytest
from pydantic import ValidationError

from opencanvas.models import (
    CanvasSession,
    CanvasSnapshot,
    ChatPayload,
    ChunkMetadata,
    Edge,
    EdgeKind,
    MemoryPayload,
    Message,
    Node,
    NodeKind,
    Role,
    infer_edge_kind,
)


@pytest.mark.unit
class TestNodeModel:
    """Test Node model."""

    def test_chat_node_defaults(self):
        node = Node(id="chat_1", kind=NodeKind.CHAT, payload=ChatPayload())

        assert node.title == "New Chat"
        assert node.is_chat and not node.is_memory
        assert node.size.width == 400
        assert node.size.height == 500
        assert node.position.x == 0.0

    def test_payload_must_match_kind(self):
        with pytest.raises(ValidationError):
            Node(id="chat_1", kind=NodeKind.CHAT, payload=MemoryPayload())

    def test_payload_discriminator_from_dict(self):
        """Raw dicts resolve to the right payload class."""
        node = Node.model_validate(
            {
                "id": "memory_1",
                "kind": "memory",
                "payload": {"kind": "memory", "title": "Docs", "chunk_count": 4},
            }
        )

        assert isinstance(node.payload, MemoryPayload)
        assert node.payload.chunk_count == 4
        assert node.payload.embedding_provider is None

    def test_json_round_trip(self):
        node = Node(
            id="chat_1",
            kind=NodeKind.CHAT,
            payload=ChatPayload(messages=[Message(role=Role.USER, content="hi")]),
        )

        restored = Node.model_validate_json(node.model_dump_json())

        assert restored == node


@pytest.mark.unit
class TestMessageModel:
    """Test Message model."""

    def test_message_is_frozen(self):
        message = Message(role=Role.USER, content="hello")
        with pytest.raises(ValidationError):
            message.content = "changed"

    def test_with_content_keeps_identity(self):
        message = Message(role=Role.ASSISTANT, content="Hel")

        updated = message.with_content("Hello")

        assert updated.content == "Hello"
        assert updated.id == message.id
        assert updated.timestamp == message.timestamp
        assert message.content == "Hel"

    def test_provider_dict(self):
        message = Message(role=Role.SYSTEM, content="Be brief")
        assert message.to_provider_dict() == {"role": "system", "content": "Be brief"}


@pytest.mark.unit
class TestEdgeModel:
    """Test Edge model and kind inference."""

    @pytest.mark.parametrize(
        "source,target,expected",
        [
            (NodeKind.MEMORY, NodeKind.CHAT, EdgeKind.RAG),
            (NodeKind.CHAT, NodeKind.CHAT, EdgeKind.CONTEXT),
            (NodeKind.CHAT, NodeKind.MEMORY, EdgeKind.CONTEXT),
            (NodeKind.MEMORY, NodeKind.MEMORY, EdgeKind.CONTEXT),
        ],
    )
    def test_infer_edge_kind(self, source, target, expected):
        assert infer_edge_kind(source, target) == expected

    def test_self_loop(self):
        assert Edge(id="e", source="a", target="a").is_self_loop
        assert not Edge(id="e", source="a", target="b").is_self_loop


@pytest.mark.unit
class TestSessionModels:
    """Test session and snapshot models."""

    def test_empty_snapshot(self):
        assert CanvasSnapshot().is_empty
        assert not CanvasSnapshot(edges=[Edge(id="e", source="a", target="b")]).is_empty

    def test_session_snapshot(self):
        session = CanvasSession(id="canvas-1")

        assert session.title == "New Canvas"
        assert session.snapshot().is_empty
        assert session.viewport.zoom == 1.0

    def test_chunk_metadata_allows_extra_keys(self):
        metadata = ChunkMetadata(source="data.csv", type="csv", columns=["a", "b"])
        assert metadata.model_dump()["columns"] == ["a", "b"]
