"""
In-memory fakes for every collaborator the engine talks to, plus an engine factory.

Nothing here touches the network: embeddings are hashed bag-of-words vectors,
the vector index is a dict with cosine search, and the model replies from a script.
"""

import json
import math
import re
import time
import zlib
from typing import Any, Callable

import pytest

from career_assistant.agent.graph import AnswerEngine
from career_assistant.agent.llm import Completion
from career_assistant.agent.synthesizer import Synthesizer
from career_assistant.core.blob_store import InMemoryBlobStore
from career_assistant.core.config import Settings
from career_assistant.core.conversation_store import SQLiteConversationStore
from career_assistant.core.types import ChunkSource, RetrievedChunk
from career_assistant.services.classifier import QueryClassifier
from career_assistant.services.history import HistoryManager
from career_assistant.services.semantic_cache import SemanticCache

DIM = 64


class FakeEmbeddings:
    """Deterministic: same words (case and punctuation ignored) give the same unit vector."""

    def __init__(self) -> None:
        self.calls: list[str] = []

    def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        vec = [0.0] * DIM
        for word in re.findall(r"[a-z0-9]+", text.lower()):
            vec[zlib.crc32(word.encode()) % DIM] += 1.0
        norm = math.sqrt(sum(v * v for v in vec)) or 1.0
        return [v / norm for v in vec]

    def embed_batch(self, texts: list[str]) -> list[list[float]]:
        return [self.embed(t) for t in texts]


class FakeVectorIndex:
    """namespace -> id -> (vector, metadata); query ranks by cosine similarity."""

    def __init__(self) -> None:
        self.rows: dict[str, dict[str, tuple[list[float], dict[str, Any]]]] = {}
        self.queries: list[tuple[str, dict | None]] = []

    def upsert(self, namespace: str, id: str, vector: list[float], metadata: dict[str, Any]) -> None:
        self.rows.setdefault(namespace, {})[id] = (vector, dict(metadata))

    def upsert_many(self, namespace: str, rows: list[tuple[str, list[float], dict[str, Any]]]) -> None:
        for id, vector, metadata in rows:
            self.upsert(namespace, id, vector, metadata)

    def delete(self, namespace: str, filter: dict[str, Any]) -> None:
        assert filter, "delete requires a non-empty filter"
        rows = self.rows.get(namespace, {})
        for id in [id for id, (_, metadata) in rows.items() if all(metadata.get(k) == v for k, v in filter.items())]:
            del rows[id]

    def query(self, namespace: str, vector: list[float], top_k: int, filter: dict | None = None) -> list[dict]:
        self.queries.append((namespace, filter))
        matches = []
        for id, (stored, metadata) in self.rows.get(namespace, {}).items():
            if filter and any(metadata.get(k) != v for k, v in filter.items()):
                continue
            score = sum(a * b for a, b in zip(vector, stored))
            matches.append({"id": id, "score": score, "metadata": metadata})
        matches.sort(key=lambda m: m["score"], reverse=True)
        return matches[:top_k]


class FakeLLM:
    """
    Scripted completion provider.

    Classifier prompts (human turn ends with "JSON:") get `classification`;
    every other prompt pops the next entry of `answers`. A callable answer is
    called with the messages.
    """

    def __init__(self, classification: dict | str | None = None, answers: list | None = None) -> None:
        self.classification = classification
        self.answers = list(answers or [])
        self.calls: list[list[dict[str, str]]] = []

    @property
    def synthesis_calls(self) -> list[list[dict[str, str]]]:
        return [m for m in self.calls if not m[-1]["content"].endswith("JSON:")]

    def complete(self, messages: list[dict[str, str]], max_tokens: int = 512) -> Completion:
        self.calls.append(messages)
        if messages[-1]["content"].endswith("JSON:"):
            reply = self.classification
            if isinstance(reply, Exception):
                raise reply
            if isinstance(reply, dict):
                reply = json.dumps(reply)
            return Completion(text=reply or "", provider="fake")
        if not self.answers:
            raise AssertionError("FakeLLM ran out of scripted answers")
        answer = self.answers.pop(0)
        if isinstance(answer, Exception):
            raise answer
        if callable(answer):
            answer = answer(messages)
        return Completion(text=answer, provider="fake")


class FakeResumeRetriever:
    def __init__(
        self,
        chunks: list[RetrievedChunk] | None = None,
        error: Exception | None = None,
        delay: float = 0.0,
    ) -> None:
        self.chunks = chunks or []
        self.error = error
        self.delay = delay
        self.calls: list[str] = []

    def retrieve(self, query: str, user_id: str, resume_id: str | None, top_k: int) -> list[RetrievedChunk]:
        self.calls.append(query)
        if self.delay:
            time.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return list(self.chunks[:top_k])


class FakeWebSearch:
    def __init__(self, results: list[dict] | None = None, error: Exception | None = None, delay: float = 0.0) -> None:
        self.results = results or []
        self.error = error
        self.delay = delay
        self.calls: list[str] = []

    def search(self, query: str) -> list[dict]:
        self.calls.append(query)
        if self.delay:
            time.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return list(self.results)


class FakeJobSearch:
    def __init__(self, postings: list[dict] | None = None, error: Exception | None = None) -> None:
        self.postings = postings or []
        self.error = error
        self.calls: list[tuple[str, dict]] = []

    def search(self, query: str, filters: dict | None = None) -> list[dict]:
        self.calls.append((query, filters or {}))
        if self.error is not None:
            raise self.error
        return list(self.postings)


def rag_chunks(scores: list[float], prefix: str = "Resume line") -> list[RetrievedChunk]:
    return [
        RetrievedChunk(
            id=f"r1-{i}",
            score=score,
            content=f"{prefix} {i}",
            document_id="r1",
            chunk_index=i,
            source=ChunkSource.RAG,
        )
        for i, score in enumerate(scores)
    ]


def web_results(n: int) -> list[dict]:
    return [{"title": f"Result {i}", "snippet": f"Snippet {i}", "link": f"https://example.com/{i}"} for i in range(n)]


def classification(intent: str = "resume_query", confidence: float = 0.95, rewritten: str = "", **extra) -> dict:
    data = {"intent": intent, "confidence": confidence, "rewritten_query": rewritten, "reasoning": "test"}
    data.update(extra)
    return data


@pytest.fixture
def settings() -> Settings:
    return Settings(source_timeout_seconds=1.0, web_search_enabled=True)


@pytest.fixture
def store(tmp_path) -> SQLiteConversationStore:
    return SQLiteConversationStore(tmp_path / "conversations.db")


@pytest.fixture
def embeddings() -> FakeEmbeddings:
    return FakeEmbeddings()


@pytest.fixture
def index() -> FakeVectorIndex:
    return FakeVectorIndex()


@pytest.fixture
def blobs() -> InMemoryBlobStore:
    return InMemoryBlobStore()


@pytest.fixture
def make_engine(settings, store, embeddings, index, blobs) -> Callable[..., AnswerEngine]:
    """Build an AnswerEngine around fakes; keyword arguments replace individual pieces."""

    def _make(
        llm: FakeLLM,
        resume: FakeResumeRetriever | None = None,
        web: FakeWebSearch | None = None,
        jobs: FakeJobSearch | None = None,
        settings_override: Settings | None = None,
        with_cache: bool = True,
    ) -> AnswerEngine:
        s = settings_override or settings
        return AnswerEngine(
            settings=s,
            classifier=QueryClassifier(llm),
            synthesizer=Synthesizer(llm, s.llm_max_tokens, s.min_answer_length),
            history=HistoryManager(store, s.max_history_messages, s.max_history_tokens),
            store=store,
            resume_retriever=resume or FakeResumeRetriever(),
            cache=SemanticCache(embeddings, index, blobs, s) if with_cache else None,
            web_search=web,
            job_search=jobs,
        )

    return _make
