"""
Context propagation between chat nodes.

A context edge A -> B makes A's conversation part of B's prompt. Only direct
donors count: if A itself receives context from another node, that transcript
is not forwarded to B.
"""

from pydantic import BaseModel, Field

from opencanvas.core.graph.store import CanvasGraph
from opencanvas.models.edge import EdgeKind
from opencanvas.models.message import Message, Role
from opencanvas.utils.logger import get_logger

logger = get_logger(__name__)

DONOR_SEPARATOR = "---"
END_OF_DONOR_CONTEXT = "--- End of donor context. Continue the conversation below. ---"


def donor_header(title: str) -> str:
    return f'Context from "{title}" (donor node):'


class DonorContext(BaseModel):
    """Conversation borrowed from one donor chat node."""

    node_id: str
    title: str
    messages: list[Message] = Field(default_factory=list)


class ContextPropagationEngine:
    """Builds the donor transcript prepended to a chat node's prompt."""

    def __init__(self, graph: CanvasGraph):
        self.graph = graph

    def collect_donors(self, receiver_id: str) -> list[DonorContext]:
        """
        Read donors of a chat node from current graph state.

        Donors are the sources of incoming context edges, in edge insertion
        order. Self-loops and non-chat sources are skipped; donor messages are
        filtered to user and assistant turns.
        """
        donors: list[DonorContext] = []
        for edge in self.graph.incoming_edges(receiver_id, EdgeKind.CONTEXT):
            if edge.is_self_loop:
                continue
            source = self.graph.get_node(edge.source)
            if source is None:
                continue
            if not source.is_chat:
                logger.debug(f"Skipping non-chat context source {source.id}")
                continue

            donors.append(
                DonorContext(
                    node_id=source.id,
                    title=source.title,
                    messages=[
                        m for m in source.payload.messages if m.role in (Role.USER, Role.ASSISTANT)
                    ],
                )
            )
        return donors

    def build_transcript(self, receiver_id: str) -> list[Message]:
        """
        Donor transcript for a chat node.

        Layout: for each donor a system header, then its messages, with a
        separator between donors and a closing marker after the last one.
        Empty when the node has no donors.
        """
        donors = self.collect_donors(receiver_id)
        if not donors:
            return []

        transcript: list[Message] = []
        for i, donor in enumerate(donors):
            if i > 0:
                transcript.append(Message(role=Role.SYSTEM, content=DONOR_SEPARATOR))
            transcript.append(Message(role=Role.SYSTEM, content=donor_header(donor.title)))
            transcript.extend(Message(role=m.role, content=m.content) for m in donor.messages)

        transcript.append(Message(role=Role.SYSTEM, content=END_OF_DONOR_CONTEXT))
        logger.debug(f"Built context from {len(donors)} donors for {receiver_id}")
        return transcript
