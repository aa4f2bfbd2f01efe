"""Schemas for the ask endpoint."""

from pydantic import BaseModel, Field

from career_assistant.core.types import AnswerBundle, RetrievedChunk


class AskRequest(BaseModel):
    """Request body for POST /ask. Conversation history is stored server-side by conversation_id."""

    question: str = Field(..., description="User question about their resume, career or job search.")
    user_id: str = Field(..., min_length=1, description="Caller's user id; authentication happens upstream.")
    conversation_id: str | None = Field(None, description="Existing conversation to continue; omitted starts a new one.")
    resume_id: str | None = Field(None, description="Restrict resume retrieval to one indexed resume.")


class CitedChunk(BaseModel):
    id: str
    score: float
    content: str
    document_id: str
    chunk_index: int
    source: str = Field(..., description="rag, web or job")

    @classmethod
    def from_chunk(cls, chunk: RetrievedChunk) -> "CitedChunk":
        return cls(**chunk.to_dict())


class AskResponse(BaseModel):
    """Response for POST /ask."""

    conversation_id: str = Field(..., description="Conversation the answer was appended to; empty on a rejected or failed request.")
    answer: str
    cited_chunks: list[CitedChunk] = Field(default_factory=list)
    source: str = Field(..., description="rag, web, job, combined or error")

    @classmethod
    def from_bundle(cls, bundle: AnswerBundle) -> "AskResponse":
        return cls(
            conversation_id=bundle.conversation_id,
            answer=bundle.answer,
            cited_chunks=[CitedChunk.from_chunk(c) for c in bundle.cited_chunks],
            source=bundle.source.value,
        )
