"""
Retrieval sources: resume knowledge base (Milvus), web search, job search.

Responsibility: Query each source and return RetrievedChunk lists, plus the relevance
gate used by the cascade. Web and job providers rank but do not score, so their
results get descending synthetic scores (1 - i * 0.05).
"""

import logging
from typing import Any

import httpx

from career_assistant.core.config import (
    JSEARCH_API_KEY,
    JSEARCH_HOST,
    JSEARCH_URL,
    SERPER_API_KEY,
    SERPER_URL,
    TOOLS_HTTP_TIMEOUT,
)
from career_assistant.core.errors import ServiceUnavailableError
from career_assistant.core.types import ChunkSource, JobParameters, RetrievedChunk

logger = logging.getLogger(__name__)

JOB_DESCRIPTION_PREVIEW = 500


def synthetic_score(rank: int) -> float:
    return round(1 - rank * 0.05, 4)


def is_context_relevant(chunks: list[RetrievedChunk], min_score: float) -> bool:
    """Relevant iff at least two chunks score >= min_score."""
    return sum(1 for c in chunks if c.score >= min_score) >= 2


def relevant_chunks(chunks: list[RetrievedChunk], min_score: float, limit: int | None = None) -> list[RetrievedChunk]:
    good = [c for c in chunks if c.score >= min_score]
    return good[:limit] if limit is not None else good


def format_context(chunks: list[RetrievedChunk]) -> str:
    """Numbered context block: "[1] ...\\n\\n[2] ..."."""
    return "\n\n".join(f"[{i}] {c.content.strip()}" for i, c in enumerate(chunks, 1))


class ResumeRetriever:
    """Semantic search over the user's resume chunks."""

    def __init__(self, embeddings, index, namespace: str) -> None:
        self._embeddings = embeddings
        self._index = index
        self._namespace = namespace

    def retrieve(self, query: str, user_id: str, resume_id: str | None, top_k: int) -> list[RetrievedChunk]:
        logger.info("[retrieval:resume] IN  query=%r top_k=%d resume_id=%s", query, top_k, resume_id)
        if not query or not query.strip():
            return []
        vector = self._embeddings.embed(query.strip())
        filter: dict[str, Any] = {"userId": user_id}
        if resume_id:
            filter["resumeId"] = resume_id
        matches = self._index.query(self._namespace, vector, top_k, filter)
        chunks = []
        for m in matches:
            meta = m.get("metadata") or {}
            chunks.append(RetrievedChunk(
                id=m["id"],
                score=float(m.get("score", 0.0)),
                content=meta.get("chunkContent") or "[No content]",
                document_id=meta.get("resumeId") or meta.get("documentId") or "",
                chunk_index=int(meta.get("chunkIndex", 0)),
                source=ChunkSource.RAG,
            ))
        logger.info(
            "[retrieval:resume] OUT chunks=%d first_scores=%s",
            len(chunks), [round(c.score, 4) for c in chunks[:5]],
        )
        return chunks


def web_chunks(results: list[dict[str, Any]]) -> list[RetrievedChunk]:
    """Ranked {title, snippet} results -> web chunks with synthetic scores."""
    chunks = []
    for i, r in enumerate(results):
        title = (r.get("title") or "").strip()
        snippet = (r.get("snippet") or "").strip()
        link = (r.get("link") or "").strip()
        content = f"{title}\n{snippet}"
        if link:
            content += f"\nURL: {link}"
        chunks.append(RetrievedChunk(
            id=f"web_result_{i}",
            score=synthetic_score(i),
            content=content,
            document_id="web",
            chunk_index=i,
            source=ChunkSource.WEB,
        ))
    return chunks


class SerperWebSearch:
    """Google results through the Serper API."""

    def __init__(self, api_key: str = SERPER_API_KEY, top_n: int = 10) -> None:
        if not api_key:
            raise ServiceUnavailableError("SERPER_API_KEY must be set in .env for Serper web search")
        self._api_key = api_key
        self._top_n = top_n

    def search(self, query: str) -> list[dict[str, Any]]:
        headers = {"X-API-KEY": self._api_key, "Content-Type": "application/json"}
        with httpx.Client(timeout=TOOLS_HTTP_TIMEOUT) as client:
            response = client.post(SERPER_URL, json={"q": query, "num": self._top_n}, headers=headers)
        response.raise_for_status()
        organic = response.json().get("organic") or []
        return [
            {"title": r.get("title", ""), "snippet": r.get("snippet", ""), "link": r.get("link", "")}
            for r in organic[: self._top_n]
        ]


class DuckDuckGoWebSearch:
    """Keyless web search using ddgs."""

    def __init__(self, top_n: int = 10) -> None:
        self._top_n = top_n

    def search(self, query: str) -> list[dict[str, Any]]:
        from ddgs import DDGS

        with DDGS() as ddgs:
            results = list(ddgs.text(query, max_results=self._top_n))
        return [
            {"title": r.get("title", ""), "snippet": r.get("body", ""), "link": r.get("href", "")}
            for r in results[: self._top_n]
        ]


def build_job_query(params: JobParameters | None, fallback: str) -> str:
    """"python developer in Berlin" style query for JSearch."""
    if params is None or not params.title:
        base = fallback
    else:
        base = params.title
    if params is not None and params.location and params.location.lower() not in base.lower():
        base = f"{base} in {params.location}"
    return base


def format_job_posting(job: dict[str, Any]) -> str:
    """One multi-field text block per posting (title, employer, location, type, remote, salary, date, description, link)."""
    location = ", ".join(p for p in (job.get("job_city"), job.get("job_state"), job.get("job_country")) if p)
    lines = [
        f"Title: {job.get('job_title') or 'Unknown'}",
        f"Company: {job.get('employer_name') or 'Unknown'}",
        f"Location: {location or 'Not specified'}",
        f"Employment Type: {job.get('job_employment_type') or 'Not specified'}",
        f"Remote: {'Yes' if job.get('job_is_remote') else 'No'}",
    ]
    min_salary, max_salary = job.get("job_min_salary"), job.get("job_max_salary")
    if min_salary or max_salary:
        salary = "Salary: " + " - ".join(str(s) for s in (min_salary, max_salary) if s)
        if job.get("job_salary_currency"):
            salary += f" {job['job_salary_currency']}"
        if job.get("job_salary_period"):
            salary += f"/{job['job_salary_period'].lower()}"
        lines.append(salary)
    lines.append(f"Posted: {job.get('job_posted_at_datetime_utc') or 'Unknown'}")
    description = (job.get("job_description") or "").strip()
    if len(description) > JOB_DESCRIPTION_PREVIEW:
        description = description[:JOB_DESCRIPTION_PREVIEW].rstrip() + "..."
    if description:
        lines.append(f"Description: {description}")
    lines.append(f"Apply: {job.get('job_apply_link') or 'N/A'}")
    return "\n".join(lines)


def job_chunks(postings: list[dict[str, Any]]) -> list[RetrievedChunk]:
    return [
        RetrievedChunk(
            id=str(job.get("job_id") or f"job_result_{i}"),
            score=synthetic_score(i),
            content=format_job_posting(job),
            document_id="job",
            chunk_index=i,
            source=ChunkSource.JOB,
        )
        for i, job in enumerate(postings)
    ]


class JSearchJobSearch:
    """Job postings from JSearch (RapidAPI)."""

    def __init__(self, api_key: str = JSEARCH_API_KEY, top_n: int = 10) -> None:
        if not api_key:
            raise ServiceUnavailableError("JSEARCH_API_KEY must be set in .env for job search")
        self._api_key = api_key
        self._top_n = top_n

    def search(self, query: str, filters: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        filters = filters or {}
        params: dict[str, Any] = {"query": query, "page": 1, "num_pages": 1, "date_posted": filters.get("date_posted", "all")}
        if filters.get("remote_jobs_only"):
            params["remote_jobs_only"] = "true"
        if filters.get("employment_types"):
            params["employment_types"] = ",".join(filters["employment_types"])
        headers = {"X-RapidAPI-Key": self._api_key, "X-RapidAPI-Host": JSEARCH_HOST}
        with httpx.Client(timeout=TOOLS_HTTP_TIMEOUT) as client:
            response = client.get(JSEARCH_URL, params=params, headers=headers)
        response.raise_for_status()
        data = response.json().get("data") or []
        logger.info("[retrieval:jobs] query=%r postings=%d", query, len(data))
        return data[: self._top_n]
