"""
API handlers: call services, map results/errors to HTTP.

Responsibility: Bridge HTTP types and services. Marshalling and exception-to-HTTP mapping.
Lives in the API layer so services stay free of FastAPI/HTTP types.
"""

import asyncio
import logging

from fastapi import HTTPException

from career_assistant.core.errors import ConversationNotFoundError, ServiceUnavailableError
from career_assistant.schemas.conversation import ConversationDetail, ConversationList, ConversationSummary
from career_assistant.schemas.resume import IndexResumeRequest, IndexResumeResponse
from career_assistant.services.indexing_service import EmptyResumeError, ResumeIndexer

logger = logging.getLogger(__name__)


async def handle_index_resume(indexer: ResumeIndexer, resume_id: str, body: IndexResumeRequest) -> IndexResumeResponse:
    """Index resume text; 400 when nothing is indexable, 503 when embeddings/index are unavailable."""
    if not body.text or not body.text.strip():
        raise HTTPException(status_code=400, detail="Resume text is required.")
    try:
        result = await indexer.index_async(body.user_id, resume_id, body.text)
    except EmptyResumeError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except ServiceUnavailableError as e:
        logger.warning("[api:index_resume] unavailable: %s", e.message)
        raise HTTPException(status_code=503, detail=e.message) from e
    return IndexResumeResponse(
        resume_id=result.resume_id,
        chunks_indexed=result.chunks_indexed,
        sections=result.sections,
    )


async def handle_list_conversations(store, user_id: str) -> ConversationList:
    records = await asyncio.to_thread(store.list_conversations, user_id)
    return ConversationList(conversations=[ConversationSummary(**r) for r in records])


async def handle_get_conversation(store, conversation_id: str, user_id: str) -> ConversationDetail:
    try:
        record = await asyncio.to_thread(store.get_conversation, conversation_id, user_id)
    except ConversationNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    return ConversationDetail.from_record(record)
