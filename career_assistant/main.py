# Run from project root: uvicorn career_assistant.main:app --reload

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from career_assistant.agent.graph import AnswerEngine
from career_assistant.agent.llm import ChatCompletionProvider
from career_assistant.agent.synthesizer import Synthesizer
from career_assistant.api.routes import router
from career_assistant.core.blob_store import InMemoryBlobStore, RedisBlobStore
from career_assistant.core.config import (
    CONVERSATION_DB_PATH,
    EMBEDDING_PROVIDER,
    JSEARCH_API_KEY,
    LOG_LEVEL,
    REDIS_URL,
    SERPER_API_KEY,
    Settings,
    load_settings,
)
from career_assistant.core.conversation_store import SQLiteConversationStore
from career_assistant.services.classifier import QueryClassifier
from career_assistant.services.history import HistoryManager
from career_assistant.services.indexing_service import ResumeIndexer
from career_assistant.services.retrieval_service import (
    DuckDuckGoWebSearch,
    JSearchJobSearch,
    ResumeRetriever,
    SerperWebSearch,
)
from career_assistant.services.semantic_cache import SemanticCache
from career_assistant.services.vector_store import HuggingFaceEmbeddings, MilvusVectorIndex, OpenAIEmbeddings

logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger(__name__)


def build_services(settings: Settings) -> tuple[AnswerEngine, ResumeIndexer, SQLiteConversationStore]:
    """Wire the production backends chosen by configuration."""
    embeddings = OpenAIEmbeddings() if EMBEDDING_PROVIDER == "openai" else HuggingFaceEmbeddings()
    index = MilvusVectorIndex()
    blobs = RedisBlobStore(REDIS_URL) if REDIS_URL else InMemoryBlobStore()
    store = SQLiteConversationStore(CONVERSATION_DB_PATH)
    llm = ChatCompletionProvider()

    web_search = None
    if settings.web_search_enabled:
        if SERPER_API_KEY:
            web_search = SerperWebSearch(SERPER_API_KEY, settings.web_search_top_n)
        else:
            web_search = DuckDuckGoWebSearch(settings.web_search_top_n)
    job_search = JSearchJobSearch(JSEARCH_API_KEY, settings.job_search_top_n) if JSEARCH_API_KEY else None

    logger.info(
        "[main:build_services] embeddings=%s blobs=%s web=%s jobs=%s",
        EMBEDDING_PROVIDER, "redis" if REDIS_URL else "memory",
        type(web_search).__name__ if web_search else None, bool(job_search),
    )
    cache = SemanticCache(embeddings, index, blobs, settings)
    engine = AnswerEngine(
        settings=settings,
        classifier=QueryClassifier(llm),
        synthesizer=Synthesizer(llm, settings.llm_max_tokens, settings.min_answer_length),
        history=HistoryManager(store, settings.max_history_messages, settings.max_history_tokens),
        store=store,
        resume_retriever=ResumeRetriever(embeddings, index, settings.resume_namespace),
        cache=cache,
        web_search=web_search,
        job_search=job_search,
    )
    indexer = ResumeIndexer(embeddings, index, settings, cache=cache)
    return engine, indexer, store


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.engine, app.state.indexer, app.state.store = build_services(load_settings())
    logger.info("Career assistant booted")
    yield


app = FastAPI(title="Career Assistant Backend", lifespan=lifespan)
app.include_router(router)
