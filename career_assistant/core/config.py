"""
Application configuration (env, settings, constants).

Responsibility: Centralize config loading, environment variables, and app-wide
constants. Keeps the rest of the app decoupled from how config is sourced.
Components never read these constants directly: main.py builds one Settings
at startup and hands it to everything it constructs.
"""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    return float(raw) if raw else default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    return int(raw) if raw else default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name, "").strip().lower()
    if not raw:
        return default
    return raw in ("1", "true", "yes", "on")


LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO"

# Milvus Cloud (from env)
MILVUS_URI: str = os.getenv("MILVUS_URI", "").strip()
MILVUS_TOKEN: str = os.getenv("MILVUS_TOKEN", "").strip()

# Vector namespaces (one Milvus collection each)
RESUME_NAMESPACE: str = "resume_chunks"
CACHE_NAMESPACE: str = "query_cache"

# Embeddings: "hf" (Hugging Face Inference API) or "openai"
EMBEDDING_PROVIDER: str = os.getenv("EMBEDDING_PROVIDER", "hf").strip().lower() or "hf"
HF_API_KEY: str = os.getenv("HF_API_KEY", "").strip()
HF_EMBED_MODEL: str = "sentence-transformers/all-MiniLM-L6-v2"
OPENAI_EMBED_MODEL: str = "text-embedding-3-small"
EMBED_BATCH_SIZE: int = 32

# all-MiniLM-L6-v2 = 384, text-embedding-3-small = 1536
VECTOR_DIM: int = _env_int("VECTOR_DIM", 1536 if EMBEDDING_PROVIDER == "openai" else 384)

# OpenAI (chat LLM). When set, the engine uses OpenAI instead of Hugging Face.
OPENAI_API_KEY: str = os.getenv("OPENAI_API_KEY", "").strip()
OPENAI_LLM_MODEL: str = (
    os.getenv("OPENAI_LLM_MODEL", "gpt-4o-mini").strip() or "gpt-4o-mini"
)
LLM_TEMPERATURE: float = _env_float("LLM_TEMPERATURE", 0.1)
LLM_MAX_TOKENS: int = _env_int("LLM_MAX_TOKENS", 700)

# HF chat (fallback when OPENAI_API_KEY is not set). Router chat completions require a chat model.
HF_CHAT_URL: str = "https://router.huggingface.co/v1/chat/completions"
HF_LLM_MODEL: str = (
    os.getenv("HF_LLM_MODEL", "meta-llama/Llama-3.2-3B-Instruct").strip()
    or "meta-llama/Llama-3.2-3B-Instruct"
)

# Web search: Serper when a key is present, DuckDuckGo (ddgs) otherwise
WEB_SEARCH_ENABLED: bool = _env_bool("WEB_SEARCH_ENABLED", True)
SERPER_API_KEY: str = os.getenv("SERPER_API_KEY", "").strip()
SERPER_URL: str = "https://google.serper.dev/search"

# Job search (JSearch on RapidAPI)
JSEARCH_API_KEY: str = os.getenv("JSEARCH_API_KEY", "").strip()
JSEARCH_HOST: str = "jsearch.p.rapidapi.com"
JSEARCH_URL: str = f"https://{JSEARCH_HOST}/search"

# Blob store for cached answer payloads. Empty = in-process store.
REDIS_URL: str = os.getenv("REDIS_URL", "").strip()

# Conversation persistence
CONVERSATION_DB_PATH: str = os.getenv("CONVERSATION_DB_PATH", "data/conversations.db").strip()

# API timeouts (seconds)
EMBED_API_TIMEOUT: float = 30.0
LLM_API_TIMEOUT: float = 60.0
TOOLS_HTTP_TIMEOUT: float = 15.0
SOURCE_TIMEOUT_SECONDS: float = _env_float("SOURCE_TIMEOUT_SECONDS", 10.0)

# Retrieval and gating (tuning these affects answer quality)
RESUME_TOP_K: int = _env_int("RESUME_TOP_K", 10)
WEB_SEARCH_TOP_N: int = _env_int("WEB_SEARCH_TOP_N", 10)
JOB_SEARCH_TOP_N: int = _env_int("JOB_SEARCH_TOP_N", 10)
WEB_CITATIONS_IN_COMBINED: int = 3
RELEVANCE_MIN_SCORE: float = _env_float("RELEVANCE_MIN_SCORE", 0.5)
GUARDRAIL_MIN_CONFIDENCE: float = _env_float("GUARDRAIL_MIN_CONFIDENCE", 0.6)
MIN_ANSWER_LENGTH: int = 10

# Semantic cache
CACHE_SIMILARITY_THRESHOLD: float = _env_float("CACHE_SIMILARITY_THRESHOLD", 0.85)
CACHE_TTL_SECONDS: int = _env_int("CACHE_TTL_SECONDS", 7 * 24 * 3600)

# Conversation history window
MAX_HISTORY_MESSAGES: int = _env_int("MAX_HISTORY_MESSAGES", 6)
MAX_HISTORY_TOKENS: int = _env_int("MAX_HISTORY_TOKENS", 2000)

# Resume chunking
CHUNK_SIZE: int = 500
CHUNK_OVERLAP: int = 50
MIN_CHUNK_LENGTH: int = 50


@dataclass(frozen=True)
class Settings:
    """Tunables handed to every component. Build once with load_settings()."""

    resume_namespace: str = RESUME_NAMESPACE
    cache_namespace: str = CACHE_NAMESPACE
    resume_top_k: int = RESUME_TOP_K
    web_search_enabled: bool = WEB_SEARCH_ENABLED
    web_search_top_n: int = WEB_SEARCH_TOP_N
    job_search_top_n: int = JOB_SEARCH_TOP_N
    web_citations_in_combined: int = WEB_CITATIONS_IN_COMBINED
    relevance_min_score: float = RELEVANCE_MIN_SCORE
    guardrail_min_confidence: float = GUARDRAIL_MIN_CONFIDENCE
    min_answer_length: int = MIN_ANSWER_LENGTH
    cache_similarity_threshold: float = CACHE_SIMILARITY_THRESHOLD
    cache_ttl_seconds: int = CACHE_TTL_SECONDS
    max_history_messages: int = MAX_HISTORY_MESSAGES
    max_history_tokens: int = MAX_HISTORY_TOKENS
    source_timeout_seconds: float = SOURCE_TIMEOUT_SECONDS
    llm_max_tokens: int = LLM_MAX_TOKENS
    chunk_size: int = CHUNK_SIZE
    chunk_overlap: int = CHUNK_OVERLAP
    min_chunk_length: int = MIN_CHUNK_LENGTH


def load_settings() -> Settings:
    """Snapshot the env-derived constants into an immutable Settings."""
    return Settings()
