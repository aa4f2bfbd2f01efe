"""
Vector store clients: embeddings (HF Inference API or OpenAI) and the Milvus index.

Responsibility: Turn text into normalized vectors and keep one Milvus collection per
namespace (resume chunks, query cache) with upsert + filtered similarity search.
"""

import json
import logging
from typing import Any

import httpx

from career_assistant.core.config import (
    EMBED_API_TIMEOUT,
    EMBED_BATCH_SIZE,
    HF_API_KEY,
    HF_EMBED_MODEL,
    MILVUS_TOKEN,
    MILVUS_URI,
    OPENAI_API_KEY,
    OPENAI_EMBED_MODEL,
    VECTOR_DIM,
)
from career_assistant.core.errors import ServiceUnavailableError

logger = logging.getLogger(__name__)

HF_API_URL_ROUTER = (
    "https://router.huggingface.co/hf-inference/models/"
    f"{HF_EMBED_MODEL}/pipeline/feature-extraction"
)
HF_API_URL_STANDARD = f"https://api-inference.huggingface.co/models/{HF_EMBED_MODEL}"


def _normalize(vec: list[float]) -> list[float]:
    # Milvus COSINE expects comparable magnitudes
    norm = sum(x * x for x in vec) ** 0.5
    if norm == 0:
        norm = 1.0
    return [x / norm for x in vec]


class HuggingFaceEmbeddings:
    """Batch embeddings via Hugging Face Inference API (all-MiniLM-L6-v2, 384 dims)."""

    def __init__(self, api_key: str = HF_API_KEY, batch_size: int = EMBED_BATCH_SIZE) -> None:
        self._api_key = api_key
        self._batch_size = batch_size

    def embed(self, text: str) -> list[float]:
        vectors = self.embed_batch([text])
        if not vectors:
            raise RuntimeError("HF API returned no embedding")
        return vectors[0]

    def embed_batch(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []
        if not self._api_key:
            raise ServiceUnavailableError(
                "HF_API_KEY must be set in .env. Get a token from https://huggingface.co/settings/tokens"
            )

        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }
        all_embeddings: list[list[float]] = []

        with httpx.Client(timeout=EMBED_API_TIMEOUT) as client:
            for i in range(0, len(texts), self._batch_size):
                batch = texts[i : i + self._batch_size]
                payload = {"inputs": batch, "options": {"wait_for_model": True}}
                response = None
                last_error: str | None = None

                for api_url in (HF_API_URL_ROUTER, HF_API_URL_STANDARD):
                    try:
                        response = client.post(api_url, json=payload, headers=headers)
                    except httpx.HTTPError as e:
                        last_error = str(e)
                        if api_url == HF_API_URL_STANDARD:
                            raise
                        continue
                    if response.status_code == 403 and api_url == HF_API_URL_ROUTER:
                        last_error = response.text
                        continue
                    break

                if response is None or response.status_code != 200:
                    msg = response.text if response is not None else last_error
                    if response is not None and response.status_code == 503:
                        raise RuntimeError(f"HF model is loading. Retry later. {msg}")
                    if response is not None and response.status_code in (401, 403):
                        raise ServiceUnavailableError(
                            f"HF token rejected for Inference API ({response.status_code}). {msg}"
                        )
                    raise RuntimeError(f"HF API error: {msg}")

                result = response.json()
                if isinstance(result, list) and result and isinstance(result[0], list):
                    batch_emb = result
                else:
                    batch_emb = [
                        item if isinstance(item, list) else [item]
                        for item in (result if isinstance(result, list) else [result])
                    ]
                all_embeddings.extend(_normalize(vec) for vec in batch_emb)

        return all_embeddings


class OpenAIEmbeddings:
    """Embeddings via OpenAI (text-embedding-3-small, 1536 dims)."""

    def __init__(self, api_key: str = OPENAI_API_KEY, model: str = OPENAI_EMBED_MODEL) -> None:
        if not api_key:
            raise ServiceUnavailableError("OPENAI_API_KEY must be set in .env for OpenAI embeddings")
        from openai import OpenAI

        self._client = OpenAI(api_key=api_key)
        self._model = model

    def embed(self, text: str) -> list[float]:
        return self.embed_batch([text])[0]

    def embed_batch(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []
        response = self._client.embeddings.create(model=self._model, input=texts)
        return [_normalize(list(item.embedding)) for item in response.data]


def _build_filter(filter: dict[str, Any] | None) -> str:
    """{"userId": "u1", "resumeId": "r1"} -> 'userId == "u1" and resumeId == "r1"'."""
    if not filter:
        return ""
    clauses = []
    for key, value in filter.items():
        if isinstance(value, bool):
            clauses.append(f"{key} == {str(value).lower()}")
        elif isinstance(value, (int, float)):
            clauses.append(f"{key} == {value}")
        else:
            clauses.append(f"{key} == {json.dumps(str(value))}")
    return " and ".join(clauses)


class MilvusVectorIndex:
    """
    VectorIndex over Milvus Cloud. Each namespace is its own collection (COSINE,
    string primary key, dynamic fields for metadata), created on first use.
    """

    def __init__(self, uri: str = MILVUS_URI, token: str = MILVUS_TOKEN, dimension: int = VECTOR_DIM) -> None:
        self._uri = uri
        self._token = token
        self._dimension = dimension
        self._client: Any = None
        self._ready: set[str] = set()

    def _get_client(self) -> Any:
        if not self._uri or not self._token:
            raise ServiceUnavailableError("MILVUS_URI and MILVUS_TOKEN must be set in .env")
        if self._client is None:
            from pymilvus import MilvusClient

            self._client = MilvusClient(uri=self._uri, token=self._token)
            logger.info("Milvus connection established")
        return self._client

    def _ensure_collection(self, namespace: str) -> Any:
        client = self._get_client()
        if namespace in self._ready:
            return client
        if not client.has_collection(namespace):
            client.create_collection(
                collection_name=namespace,
                dimension=self._dimension,
                primary_field_name="id",
                id_type="string",
                max_length=128,
                vector_field_name="vector",
                metric_type="COSINE",
                auto_id=False,
                enable_dynamic_field=True,
            )
            logger.info("Collection %s created (dim=%s)", namespace, self._dimension)
        self._ready.add(namespace)
        return client

    def upsert(self, namespace: str, id: str, vector: list[float], metadata: dict[str, Any]) -> None:
        self.upsert_many(namespace, [(id, vector, metadata)])

    def upsert_many(self, namespace: str, rows: list[tuple[str, list[float], dict[str, Any]]]) -> None:
        if not rows:
            return
        client = self._ensure_collection(namespace)
        data = [{**metadata, "id": id, "vector": vector} for id, vector, metadata in rows]
        client.upsert(collection_name=namespace, data=data)
        logger.info("[vector_store:upsert] namespace=%s rows=%d", namespace, len(data))

    def delete(self, namespace: str, filter: dict[str, Any]) -> None:
        """Remove every row whose metadata matches filter. An empty filter is refused."""
        expr = _build_filter(filter)
        if not expr:
            raise ValueError("delete requires a non-empty filter")
        client = self._ensure_collection(namespace)
        client.delete(collection_name=namespace, filter=expr)
        logger.info("[vector_store:delete] namespace=%s filter=%s", namespace, expr)

    def query(
        self,
        namespace: str,
        vector: list[float],
        top_k: int,
        filter: dict[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        """Ranked matches as [{"id", "score", "metadata"}], best first."""
        client = self._ensure_collection(namespace)
        results = client.search(
            collection_name=namespace,
            data=[vector],
            limit=top_k,
            filter=_build_filter(filter),
            output_fields=["*"],
        )
        # results: list of list of hits (one list per query vector)
        hits = results[0] if results else []
        matches = []
        for h in hits:
            entity = dict(h.get("entity") or {})
            entity.pop("vector", None)
            match_id = entity.pop("id", h.get("id"))
            matches.append({
                "id": str(match_id),
                "score": float(h.get("distance", h.get("score", 0.0))),
                "metadata": entity,
            })
        logger.info(
            "[vector_store:query] namespace=%s top_k=%d matches=%d first_scores=%s",
            namespace, top_k, len(matches), [round(m["score"], 4) for m in matches[:5]],
        )
        return matches
