"""
Resume indexing: clean → detect sections → chunk → embed → upsert.

Responsibility: turn already-extracted resume text into vectors in the resume
namespace. Called by the API layer; no HTTP or FastAPI here. Vector ids are
"<user_id>:<resume_id>-<chunk_index>". Indexing a resume again first deletes the
user's previous chunks for it, then drops the cached answers scoped to it.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone

from career_assistant.core.config import Settings
from career_assistant.services.text_processing import chunk_text, clean_text, detect_sections

logger = logging.getLogger(__name__)


class EmptyResumeError(Exception):
    """Raised when the resume text has nothing left to index after cleaning."""


@dataclass
class IndexResult:
    resume_id: str
    chunks_indexed: int
    sections: list[str] = field(default_factory=list)


class ResumeIndexer:
    def __init__(self, embeddings, index, settings: Settings, cache=None) -> None:
        self._embeddings = embeddings
        self._index = index
        self._settings = settings
        self._cache = cache

    def split(self, text: str) -> list[tuple[str, str]]:
        """(section, chunk) pairs in document order, short chunks dropped."""
        pieces: list[tuple[str, str]] = []
        for section, body in detect_sections(clean_text(text)):
            for chunk in chunk_text(body, self._settings.chunk_size, self._settings.chunk_overlap):
                if len(chunk) > self._settings.min_chunk_length:
                    pieces.append((section, chunk))
        return pieces

    def index(self, user_id: str, resume_id: str, text: str) -> IndexResult:
        """
        Index one resume for one user.

        Raises:
            EmptyResumeError: No chunk survives cleaning and the length filter.
            ServiceUnavailableError: Embeddings or vector index not configured.
        """
        logger.info("[indexing:index] IN  user_id=%s resume_id=%s text_len=%d", user_id, resume_id, len(text or ""))
        pieces = self.split(text)
        if not pieces:
            raise EmptyResumeError(f"Resume {resume_id} has no indexable text")

        vectors = self._embeddings.embed_batch([chunk for _, chunk in pieces])
        created_at = datetime.now(timezone.utc).isoformat()
        rows = [
            (
                f"{user_id}:{resume_id}-{i}",
                vector,
                {
                    "userId": user_id,
                    "resumeId": resume_id,
                    "chunkIndex": i,
                    "chunkContent": chunk,
                    "section": section,
                    "createdAt": created_at,
                },
            )
            for i, ((section, chunk), vector) in enumerate(zip(pieces, vectors))
        ]
        namespace = self._settings.resume_namespace
        self._index.delete(namespace, {"userId": user_id, "resumeId": resume_id})
        self._index.upsert_many(namespace, rows)
        if self._cache is not None:
            self._cache.invalidate(user_id, resume_id)

        sections = list(dict.fromkeys(section for section, _ in pieces))
        logger.info("[indexing:index] OUT chunks=%d sections=%s", len(rows), sections)
        return IndexResult(resume_id=resume_id, chunks_indexed=len(rows), sections=sections)

    async def index_async(self, user_id: str, resume_id: str, text: str) -> IndexResult:
        """index() in a worker thread so the event loop is not blocked by embedding calls."""
        return await asyncio.to_thread(self.index, user_id, resume_id, text)
