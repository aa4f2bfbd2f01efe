"""
Domain types shared by the classifier, cache, retrieval, cascade and store.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Intent(str, Enum):
    """Classified purpose of a question"""
    RESUME_QUERY = "resume_query"  # "What is my name?"
    CAREER_GUIDANCE = "career_guidance"  # "How do I move into data engineering?"
    JOB_SEARCH = "job_search"  # "Find Python jobs in Berlin"
    IRRELEVANT = "irrelevant"  # Off-topic or gibberish


class ChunkSource(str, Enum):
    RAG = "rag"
    WEB = "web"
    JOB = "job"


class AnswerSource(str, Enum):
    RAG = "rag"
    WEB = "web"
    JOB = "job"
    COMBINED = "combined"
    ERROR = "error"


@dataclass
class JobParameters:
    title: str | None = None
    location: str | None = None
    skills: list[str] = field(default_factory=list)


@dataclass
class QueryAnalysis:
    """Structured reading of one question. job_parameters is set iff intent is JOB_SEARCH."""
    intent: Intent
    confidence: float
    rewritten_query: str
    job_parameters: JobParameters | None = None
    reasoning: str = ""


@dataclass
class RetrievedChunk:
    """A scored, sourced unit of retrieved text."""
    id: str
    score: float
    content: str
    document_id: str
    chunk_index: int
    source: ChunkSource

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "score": self.score,
            "content": self.content,
            "document_id": self.document_id,
            "chunk_index": self.chunk_index,
            "source": self.source.value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RetrievedChunk":
        return cls(
            id=str(data.get("id", "")),
            score=float(data.get("score", 0.0)),
            content=data.get("content", ""),
            document_id=data.get("document_id", ""),
            chunk_index=int(data.get("chunk_index", 0)),
            source=ChunkSource(data.get("source", ChunkSource.RAG.value)),
        )


@dataclass
class ConversationTurn:
    id: str
    role: str  # "user" | "assistant" | "system"
    text: str
    source: str | None
    cited_chunks: list[RetrievedChunk] | None
    created_at: str


@dataclass
class AnswerBundle:
    """What the engine returns for every question, and what the semantic cache stores."""
    conversation_id: str
    answer: str
    cited_chunks: list[RetrievedChunk] = field(default_factory=list)
    source: AnswerSource = AnswerSource.ERROR

    def to_dict(self) -> dict[str, Any]:
        return {
            "conversation_id": self.conversation_id,
            "answer": self.answer,
            "cited_chunks": [c.to_dict() for c in self.cited_chunks],
            "source": self.source.value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AnswerBundle":
        return cls(
            conversation_id=data.get("conversation_id", ""),
            answer=data.get("answer", ""),
            cited_chunks=[RetrievedChunk.from_dict(c) for c in data.get("cited_chunks") or []],
            source=AnswerSource(data.get("source", AnswerSource.ERROR.value)),
        )
