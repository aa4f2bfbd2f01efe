"""
Tests for resume indexing into the resume namespace.
"""

import asyncio
from unittest.mock import MagicMock

import pytest
from conftest import FakeEmbeddings, FakeVectorIndex

from career_assistant.core.config import Settings
from career_assistant.services.indexing_service import EmptyResumeError, ResumeIndexer
from career_assistant.services.retrieval_service import ResumeRetriever

RESUME = """Jane Doe, backend engineer based in Berlin, Germany.

Experience
Acme Corp, Senior Python Engineer from 2019 to 2023, building data pipelines.
Globex, Software Engineer from 2016 to 2019, working on billing services.

Skills
Python, Django, PostgreSQL, Kafka, Kubernetes and Terraform in production.

Education
BSc Computer Science
"""


@pytest.fixture
def indexer(embeddings, index) -> ResumeIndexer:
    return ResumeIndexer(embeddings, index, Settings())


def test_index_writes_chunks_with_metadata(indexer, index) -> None:
    result = indexer.index("u1", "r1", RESUME)

    rows = index.rows["resume_chunks"]
    assert result.chunks_indexed == len(rows) == 3
    assert result.sections == ["other", "experience", "skills"]
    assert sorted(rows) == ["u1:r1-0", "u1:r1-1", "u1:r1-2"]
    _, metadata = rows["u1:r1-1"]
    assert metadata["userId"] == "u1"
    assert metadata["resumeId"] == "r1"
    assert metadata["chunkIndex"] == 1
    assert metadata["section"] == "experience"
    assert metadata["chunkContent"].startswith("Acme Corp")
    assert metadata["createdAt"]


def test_short_chunks_are_dropped(indexer) -> None:
    # "BSc Computer Science" is under the minimum chunk length
    pieces = indexer.split(RESUME)
    assert all(len(chunk) > 50 for _, chunk in pieces)
    assert "education" not in [section for section, _ in pieces]


def test_reindexing_overwrites(indexer, index) -> None:
    indexer.index("u1", "r1", RESUME)
    indexer.index("u1", "r1", RESUME)
    assert len(index.rows["resume_chunks"]) == 3


def test_reindexing_shorter_resume_drops_old_chunks(indexer, index, embeddings) -> None:
    long_resume = "\n\n".join(
        f"{header}\n{body}"
        for header, body in [
            ("Summary", "Backend engineer who worked on backend systems for payments and search."),
            ("Experience", "Acme Corp, Senior Python Engineer from 2019 to 2023, building data pipelines."),
            ("Skills", "Python, Django, PostgreSQL, Kafka, Kubernetes and Terraform in production."),
            ("Projects", "Open source contributor to a distributed task queue written in Python."),
        ]
    )
    assert indexer.index("u1", "r1", long_resume).chunks_indexed == 4

    short_resume = "Skills\nGo, Rust and gRPC microservices running on bare metal clusters."
    assert indexer.index("u1", "r1", short_resume).chunks_indexed == 1

    rows = index.rows["resume_chunks"]
    assert list(rows) == ["u1:r1-0"]
    assert rows["u1:r1-0"][1]["chunkContent"].startswith("Go, Rust")
    hits = ResumeRetriever(embeddings, index, "resume_chunks").retrieve("backend systems payments", "u1", "r1", 10)
    assert [c.content for c in hits] == [rows["u1:r1-0"][1]["chunkContent"]]


def test_same_resume_id_for_two_users_is_kept_apart(indexer, index, embeddings) -> None:
    indexer.index("u1", "r1", RESUME)
    indexer.index("u2", "r1", "Skills\nGo, Rust and gRPC microservices running on bare metal clusters.")

    retriever = ResumeRetriever(embeddings, index, "resume_chunks")
    mine = retriever.retrieve("Python Django PostgreSQL Kafka", "u1", "r1", 10)
    theirs = retriever.retrieve("Python Django PostgreSQL Kafka", "u2", "r1", 10)

    assert len(mine) == 3
    assert mine[0].content.startswith("Python, Django")
    assert [c.content for c in theirs] == ["Go, Rust and gRPC microservices running on bare metal clusters."]
    assert len(index.rows["resume_chunks"]) == 4


def test_reindexing_invalidates_cached_answers(embeddings, index) -> None:
    cache = MagicMock()
    indexer = ResumeIndexer(embeddings, index, Settings(), cache=cache)
    indexer.index("u1", "r1", RESUME)
    cache.invalidate.assert_called_once_with("u1", "r1")


@pytest.mark.parametrize("text", ["", "   \n ", "Skills\nPython"])
def test_nothing_indexable_raises(indexer, index, text: str) -> None:
    with pytest.raises(EmptyResumeError):
        indexer.index("u1", "r1", text)
    assert "resume_chunks" not in index.rows


def test_indexed_resume_is_retrievable() -> None:
    embeddings, index = FakeEmbeddings(), FakeVectorIndex()
    asyncio.run(ResumeIndexer(embeddings, index, Settings()).index_async("u1", "r1", RESUME))

    chunks = ResumeRetriever(embeddings, index, "resume_chunks").retrieve("Python Django PostgreSQL Kafka", "u1", "r1", 5)

    assert chunks[0].content.startswith("Python, Django")
    assert chunks[0].document_id == "r1"
