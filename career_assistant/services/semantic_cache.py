"""
Semantic response cache: answers keyed by question-embedding similarity.

Two hops. The vector index (cache namespace) holds the question vector plus a small
metadata record pointing at a blob key; the blob store holds the serialized answer
bundle. Entries are write-once under fresh uuid keys, so concurrent writers can at
worst produce duplicates.

Entries are scoped to (user, resume): a lookup for resume B never sees an answer
cached against resume A. Re-indexing a resume calls invalidate(), so a new revision
never sees answers cached against the old one. Blobs expire after the configured
TTL; an index hit whose blob is gone is a miss.

Both operations are best-effort: failures are logged and treated as a miss / no-op.
"""

import json
import logging
import uuid
from datetime import datetime, timezone

from career_assistant.core.config import Settings
from career_assistant.core.types import AnswerBundle

logger = logging.getLogger(__name__)

BLOB_KEY_PREFIX = "query-cache:"


class SemanticCache:
    def __init__(self, embeddings, index, blobs, settings: Settings) -> None:
        self._embeddings = embeddings
        self._index = index
        self._blobs = blobs
        self._namespace = settings.cache_namespace
        self._threshold = settings.cache_similarity_threshold
        self._ttl = settings.cache_ttl_seconds or None

    @staticmethod
    def _scope(user_id: str | None, resume_id: str | None) -> dict[str, str]:
        if not user_id:
            return {}
        return {"userId": user_id, "resumeId": resume_id or ""}

    def lookup(self, query: str, user_id: str | None = None, resume_id: str | None = None) -> AnswerBundle | None:
        logger.info("[semantic_cache:lookup] IN  query=%r user_id=%s", query[:50], user_id)
        try:
            vector = self._embeddings.embed(query)
            matches = self._index.query(self._namespace, vector, 1, self._scope(user_id, resume_id) or None)
            if not matches:
                logger.info("[semantic_cache:lookup] OUT miss (empty cache)")
                return None
            match = matches[0]
            if match["score"] < self._threshold:
                logger.info(
                    "[semantic_cache:lookup] OUT miss similarity too low: %.3f < %.3f",
                    match["score"], self._threshold,
                )
                return None
            pointer = (match.get("metadata") or {}).get("pointerKey")
            if not pointer:
                logger.warning("[semantic_cache:lookup] match %s has no pointerKey", match.get("id"))
                return None
            payload = self._blobs.get(pointer)
            if not payload:
                logger.info("[semantic_cache:lookup] OUT pointer found but blob missing: %s", pointer)
                return None
            bundle = AnswerBundle.from_dict(json.loads(payload))
        except Exception as e:
            logger.warning("[semantic_cache:lookup] failed, treating as miss: %s", e)
            return None
        logger.info("[semantic_cache:lookup] OUT hit similarity=%.3f source=%s", match["score"], bundle.source.value)
        return bundle

    def store(
        self,
        query: str,
        bundle: AnswerBundle,
        user_id: str | None = None,
        resume_id: str | None = None,
    ) -> None:
        try:
            vector = self._embeddings.embed(query)
            pointer = f"{BLOB_KEY_PREFIX}{uuid.uuid4()}"
            self._blobs.set(pointer, json.dumps(bundle.to_dict()), self._ttl)
            metadata = {
                "query": query,
                "pointerKey": pointer,
                "createdAt": datetime.now(timezone.utc).isoformat(),
                **self._scope(user_id, resume_id),
            }
            self._index.upsert(self._namespace, f"query-{uuid.uuid4()}", vector, metadata)
        except Exception as e:
            logger.warning("[semantic_cache:store] failed to cache query: %s", e)
            return
        logger.info("[semantic_cache:store] cached query=%r key=%s", query[:50], pointer)

    def invalidate(self, user_id: str, resume_id: str) -> None:
        """
        Drop the user's cached answers that a new revision of resume_id could change:
        those scoped to that resume and those scoped to no resume (which searched
        across all of the user's resumes). Orphaned blobs expire with their TTL.
        """
        for scope in (self._scope(user_id, resume_id), self._scope(user_id, None)):
            try:
                self._index.delete(self._namespace, scope)
            except Exception as e:
                logger.warning("[semantic_cache:invalidate] failed for scope %s: %s", scope, e)
        logger.info("[semantic_cache:invalidate] user_id=%s resume_id=%s", user_id, resume_id)
