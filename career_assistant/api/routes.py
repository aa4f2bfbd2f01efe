"""
API route aggregator: register endpoints; no logic, only delegate to the engine and handlers.
"""

import logging

from fastapi import APIRouter, Depends, Query, Request

from career_assistant.agent.graph import AnswerEngine
from career_assistant.api.handlers import (
    handle_get_conversation,
    handle_index_resume,
    handle_list_conversations,
)
from career_assistant.schemas.ask import AskRequest, AskResponse
from career_assistant.schemas.conversation import ConversationDetail, ConversationList
from career_assistant.schemas.resume import IndexResumeRequest, IndexResumeResponse
from career_assistant.services.indexing_service import ResumeIndexer

logger = logging.getLogger(__name__)
router = APIRouter()


# --- Dependencies (built once in the app lifespan) ---

def get_engine(request: Request) -> AnswerEngine:
    return request.app.state.engine


def get_indexer(request: Request) -> ResumeIndexer:
    return request.app.state.indexer


def get_store(request: Request):
    return request.app.state.store


# --- System ---

@router.get("/", tags=["system"])
def root():
    return {"status": "Career assistant backend running"}


@router.get("/health", tags=["system"])
def health():
    return {"ok": True}


# --- Ask ---

@router.post(
    "/ask",
    response_model=AskResponse,
    tags=["ask"],
    summary="Ask a career question",
    description="Answer from the user's resume, web results and job postings. Always 200: refusals, "
    "insufficient information and internal failures come back with source='error'.",
)
async def post_ask(body: AskRequest, engine: AnswerEngine = Depends(get_engine)) -> AskResponse:
    logger.info("[api:post_ask] IN  user_id=%s conversation_id=%s", body.user_id, body.conversation_id)
    bundle = await engine.answer(body.question, body.user_id, body.conversation_id, body.resume_id)
    logger.info("[api:post_ask] OUT source=%s conversation_id=%s", bundle.source.value, bundle.conversation_id)
    return AskResponse.from_bundle(bundle)


# --- Conversations ---

@router.get("/conversations", response_model=ConversationList, tags=["conversations"])
async def list_conversations(user_id: str = Query(..., min_length=1), store=Depends(get_store)) -> ConversationList:
    return await handle_list_conversations(store, user_id)


@router.get(
    "/conversations/{conversation_id}",
    response_model=ConversationDetail,
    tags=["conversations"],
    description="Messages in chronological order. 404 when missing or owned by another user.",
)
async def get_conversation(
    conversation_id: str,
    user_id: str = Query(..., min_length=1),
    store=Depends(get_store),
) -> ConversationDetail:
    return await handle_get_conversation(store, conversation_id, user_id)


# --- Resumes ---

@router.post(
    "/resumes/{resume_id}/index",
    response_model=IndexResumeResponse,
    tags=["resumes"],
    summary="Index resume text",
    description="Detect sections, chunk, embed and store resume text. Re-indexing a resume overwrites its chunks. "
    "400 on empty text, 503 when embeddings or the vector index are unavailable.",
)
async def index_resume(
    resume_id: str,
    body: IndexResumeRequest,
    indexer: ResumeIndexer = Depends(get_indexer),
) -> IndexResumeResponse:
    return await handle_index_resume(indexer, resume_id, body)
