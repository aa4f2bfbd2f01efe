"""Schemas for the conversation browsing endpoints."""

from typing import Any

from pydantic import BaseModel, Field

from career_assistant.core.types import ConversationTurn
from career_assistant.schemas.ask import CitedChunk


class LastMessage(BaseModel):
    id: str
    role: str
    text: str
    source: str | None = None
    created_at: str


class ConversationSummary(BaseModel):
    id: str
    title: str
    resume_id: str | None = None
    created_at: str
    updated_at: str
    last_message: LastMessage | None = None


class ConversationList(BaseModel):
    conversations: list[ConversationSummary]


class Message(BaseModel):
    id: str
    role: str
    text: str
    source: str | None = None
    cited_chunks: list[CitedChunk] = Field(default_factory=list)
    created_at: str

    @classmethod
    def from_turn(cls, turn: ConversationTurn) -> "Message":
        return cls(
            id=turn.id,
            role=turn.role,
            text=turn.text,
            source=turn.source,
            cited_chunks=[CitedChunk.from_chunk(c) for c in turn.cited_chunks or []],
            created_at=turn.created_at,
        )


class ConversationDetail(BaseModel):
    """One conversation with its messages, oldest first."""

    id: str
    title: str
    resume_id: str | None = None
    created_at: str
    updated_at: str
    message_count: int
    messages: list[Message]

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "ConversationDetail":
        return cls(
            id=record["id"],
            title=record["title"],
            resume_id=record.get("resume_id"),
            created_at=record["created_at"],
            updated_at=record["updated_at"],
            message_count=record["message_count"],
            messages=[Message.from_turn(t) for t in record["messages"]],
        )
