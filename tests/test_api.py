"""
HTTP tests for the FastAPI routes.

The engine, indexer and store are replaced through dependency overrides, so the
app lifespan (and with it Milvus, Redis and the model providers) never runs.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from conftest import FakeEmbeddings, FakeVectorIndex, rag_chunks
from fastapi.testclient import TestClient

from career_assistant.api.routes import get_engine, get_indexer, get_store
from career_assistant.core.config import Settings
from career_assistant.core.errors import ServiceUnavailableError
from career_assistant.core.types import AnswerBundle, AnswerSource
from career_assistant.main import app
from career_assistant.services.indexing_service import ResumeIndexer


@pytest.fixture
def engine() -> MagicMock:
    engine = MagicMock()
    engine.answer = AsyncMock(return_value=AnswerBundle(
        conversation_id="c1",
        answer="Your name is Jane Doe.",
        cited_chunks=rag_chunks([0.9, 0.8]),
        source=AnswerSource.RAG,
    ))
    return engine


@pytest.fixture
def client(engine, store, index) -> TestClient:
    app.dependency_overrides[get_engine] = lambda: engine
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_indexer] = lambda: ResumeIndexer(FakeEmbeddings(), index, Settings())
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health(client: TestClient) -> None:
    assert client.get("/health").json() == {"ok": True}
    assert client.get("/").status_code == 200


class TestAsk:
    def test_returns_answer_bundle(self, client: TestClient, engine: MagicMock) -> None:
        response = client.post("/ask", json={"question": "What is my name?", "user_id": "u1", "resume_id": "r1"})

        assert response.status_code == 200
        data = response.json()
        assert data["conversation_id"] == "c1"
        assert data["source"] == "rag"
        assert [c["id"] for c in data["cited_chunks"]] == ["r1-0", "r1-1"]
        assert data["cited_chunks"][0]["source"] == "rag"
        engine.answer.assert_awaited_once_with("What is my name?", "u1", None, "r1")

    def test_error_bundle_is_still_200(self, client: TestClient, engine: MagicMock) -> None:
        engine.answer.return_value = AnswerBundle(conversation_id="", answer="Please provide a valid question.")
        response = client.post("/ask", json={"question": "  ", "user_id": "u1"})
        assert response.status_code == 200
        assert response.json()["source"] == "error"
        assert response.json()["cited_chunks"] == []

    def test_missing_user_id_returns_422(self, client: TestClient) -> None:
        assert client.post("/ask", json={"question": "What is my name?"}).status_code == 422


class TestConversations:
    def test_list_and_get(self, client: TestClient, store) -> None:
        cid = store.create_conversation("u1")
        store.append_message(cid, "user", "What is my name?", None)
        store.append_message(cid, "assistant", "Jane Doe.", "rag", rag_chunks([0.9]))

        listing = client.get("/conversations", params={"user_id": "u1"}).json()
        assert [c["id"] for c in listing["conversations"]] == [cid]
        assert listing["conversations"][0]["last_message"]["text"] == "Jane Doe."

        detail = client.get(f"/conversations/{cid}", params={"user_id": "u1"}).json()
        assert detail["message_count"] == 2
        assert [m["role"] for m in detail["messages"]] == ["user", "assistant"]
        assert detail["messages"][1]["cited_chunks"][0]["id"] == "r1-0"

    def test_foreign_conversation_is_404(self, client: TestClient, store) -> None:
        cid = store.create_conversation("u1")
        assert client.get(f"/conversations/{cid}", params={"user_id": "u2"}).status_code == 404
        assert client.get("/conversations/missing", params={"user_id": "u1"}).status_code == 404

    def test_user_id_is_required(self, client: TestClient) -> None:
        assert client.get("/conversations").status_code == 422


class TestIndexResume:
    def test_indexes_text(self, client: TestClient, index: FakeVectorIndex) -> None:
        text = "Skills\nPython, Django, PostgreSQL, Kafka, Kubernetes and Terraform in production."
        response = client.post("/resumes/r1/index", json={"user_id": "u1", "text": text})

        assert response.status_code == 200
        assert response.json() == {"resume_id": "r1", "chunks_indexed": 1, "sections": ["skills"]}
        assert list(index.rows["resume_chunks"]) == ["u1:r1-0"]

    @pytest.mark.parametrize("text", ["", "   ", "Skills\nPython"])
    def test_empty_text_is_400(self, client: TestClient, text: str) -> None:
        assert client.post("/resumes/r1/index", json={"user_id": "u1", "text": text}).status_code == 400

    def test_unavailable_backend_is_503(self, client: TestClient) -> None:
        indexer = MagicMock()
        indexer.index_async = AsyncMock(side_effect=ServiceUnavailableError("HF_API_KEY must be set"))
        app.dependency_overrides[get_indexer] = lambda: indexer

        response = client.post("/resumes/r1/index", json={"user_id": "u1", "text": "Python developer"})

        assert response.status_code == 503
        assert response.json()["detail"] == "HF_API_KEY must be set"
