"""
Retrieval fusion and the fallback cascade.

RetrievalSession fans out to the sources lazily and at most once per phase:
the job phase (job postings + resume chunks matched on the extracted skills) and
the general phase (resume chunks + web results for the rewritten query). Each
source call runs in a worker thread under a timeout; a timed-out or failing
optional source (web, jobs) counts as "no results".

The cascade is an ordered list of strategies, each with attempt(ctx) returning an
outcome or None. The first outcome wins:

    job (job_search intent only) -> combined -> resume only -> web only

None of them accepting is the caller's insufficient-information case.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Callable

from career_assistant.agent.prompts import (
    COMBINED_PROMPT,
    JOB_MATCH_PROMPT,
    RESUME_ONLY_PROMPT,
    WEB_ONLY_PROMPT,
)
from career_assistant.agent.synthesizer import Synthesizer
from career_assistant.core.config import Settings
from career_assistant.core.types import AnswerSource, Intent, QueryAnalysis, RetrievedChunk
from career_assistant.services.retrieval_service import (
    ResumeRetriever,
    build_job_query,
    format_context,
    is_context_relevant,
    job_chunks,
    relevant_chunks,
    web_chunks,
)

logger = logging.getLogger(__name__)


class RetrievalSession:
    """Per-question retrieval state. Not shared between questions."""

    def __init__(
        self,
        analysis: QueryAnalysis,
        user_id: str,
        resume_id: str | None,
        resume: ResumeRetriever,
        web_search: Any,
        job_search: Any,
        settings: Settings,
    ) -> None:
        self.analysis = analysis
        self._user_id = user_id
        self._resume_id = resume_id
        self._resume = resume
        self._web = web_search if settings.web_search_enabled else None
        self._jobs = job_search
        self._settings = settings
        self._general: tuple[list[RetrievedChunk], list[RetrievedChunk]] | None = None
        self._job_phase: tuple[list[RetrievedChunk], list[RetrievedChunk]] | None = None

    async def _fetch(self, name: str, fn: Callable[..., Any], *args: Any, optional: bool = True) -> Any:
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(fn, *args), timeout=self._settings.source_timeout_seconds
            )
        except asyncio.TimeoutError:
            logger.warning("[cascade:fetch] %s timed out after %.1fs, using no results", name, self._settings.source_timeout_seconds)
            return []
        except Exception as e:
            if not optional:
                raise
            logger.warning("[cascade:fetch] %s failed, using no results: %s", name, e)
            return []

    async def _no_results(self) -> list:
        return []

    def _resume_call(self, query: str):
        return self._fetch(
            "resume", self._resume.retrieve, query, self._user_id, self._resume_id,
            self._settings.resume_top_k * 2, optional=False,
        )

    async def general(self) -> tuple[list[RetrievedChunk], list[RetrievedChunk]]:
        """(resume chunks, web chunks) for the rewritten query, fetched concurrently."""
        if self._general is None:
            query = self.analysis.rewritten_query
            web_call = self._fetch("web", self._web.search, query) if self._web is not None else self._no_results()
            rag, web_results = await asyncio.gather(self._resume_call(query), web_call)
            self._general = (rag, web_chunks(web_results))
            logger.info("[cascade:general] rag=%d web=%d", len(self._general[0]), len(self._general[1]))
        return self._general

    async def job_phase(self) -> tuple[list[RetrievedChunk], list[RetrievedChunk]]:
        """(job chunks, resume chunks matched on skills), fetched concurrently."""
        if self._job_phase is None:
            params = self.analysis.job_parameters
            skills_query = ", ".join(params.skills) if params and params.skills else self.analysis.rewritten_query
            job_query = build_job_query(params, self.analysis.rewritten_query)
            job_call = (
                self._fetch("jobs", self._jobs.search, job_query, {})
                if self._jobs is not None else self._no_results()
            )
            postings, rag = await asyncio.gather(job_call, self._resume_call(skills_query))
            self._job_phase = (job_chunks(postings), rag)
            logger.info("[cascade:job_phase] jobs=%d rag=%d", len(self._job_phase[0]), len(rag))
        return self._job_phase


@dataclass
class CascadeContext:
    question: str
    history: list[dict[str, str]]
    session: RetrievalSession
    synthesizer: Synthesizer
    settings: Settings


@dataclass
class StrategyOutcome:
    answer: str
    source: AnswerSource
    cited_chunks: list[RetrievedChunk] = field(default_factory=list)


async def _synthesize(ctx: CascadeContext, template, **context: str) -> str | None:
    answer = await asyncio.to_thread(ctx.synthesizer.invoke, template, ctx.history, ctx.question, **context)
    if not ctx.synthesizer.is_acceptable(answer):
        logger.info("[cascade:%s] answer rejected: %r", template.name, answer[:120])
        return None
    return answer


class JobSearchStrategy:
    name = "job"

    async def attempt(self, ctx: CascadeContext) -> StrategyOutcome | None:
        jobs, rag = await ctx.session.job_phase()
        if not jobs:
            logger.info("[cascade:job] no postings, falling through")
            return None
        resume_ctx = relevant_chunks(rag, ctx.settings.relevance_min_score, ctx.settings.resume_top_k)
        answer = await _synthesize(
            ctx,
            JOB_MATCH_PROMPT,
            job_context=format_context(jobs),
            resume_context=format_context(resume_ctx) or "No resume context available.",
        )
        if answer is None:
            return None
        return StrategyOutcome(answer=answer, source=AnswerSource.JOB, cited_chunks=jobs + resume_ctx)


class CombinedStrategy:
    name = "combined"

    async def attempt(self, ctx: CascadeContext) -> StrategyOutcome | None:
        rag, web = await ctx.session.general()
        min_score = ctx.settings.relevance_min_score
        if not (is_context_relevant(rag, min_score) and is_context_relevant(web, min_score)):
            return None
        good_rag = relevant_chunks(rag, min_score, ctx.settings.resume_top_k)
        answer = await _synthesize(
            ctx,
            COMBINED_PROMPT,
            rag_context=format_context(good_rag),
            web_context=format_context(web),
        )
        if answer is None:
            return None
        cited = good_rag + web[: ctx.settings.web_citations_in_combined]
        return StrategyOutcome(answer=answer, source=AnswerSource.COMBINED, cited_chunks=cited)


class ResumeOnlyStrategy:
    name = "rag"

    async def attempt(self, ctx: CascadeContext) -> StrategyOutcome | None:
        rag, _ = await ctx.session.general()
        min_score = ctx.settings.relevance_min_score
        if not is_context_relevant(rag, min_score):
            return None
        good_rag = relevant_chunks(rag, min_score, ctx.settings.resume_top_k)
        answer = await _synthesize(ctx, RESUME_ONLY_PROMPT, context=format_context(good_rag))
        if answer is None:
            return None
        return StrategyOutcome(answer=answer, source=AnswerSource.RAG, cited_chunks=good_rag)


class WebOnlyStrategy:
    name = "web"

    async def attempt(self, ctx: CascadeContext) -> StrategyOutcome | None:
        _, web = await ctx.session.general()
        if not is_context_relevant(web, ctx.settings.relevance_min_score):
            return None
        answer = await _synthesize(ctx, WEB_ONLY_PROMPT, context=format_context(web))
        if answer is None:
            return None
        return StrategyOutcome(answer=answer, source=AnswerSource.WEB, cited_chunks=list(web))


def build_cascade(intent: Intent) -> list:
    strategies: list = [CombinedStrategy(), ResumeOnlyStrategy(), WebOnlyStrategy()]
    if intent == Intent.JOB_SEARCH:
        strategies.insert(0, JobSearchStrategy())
    return strategies


async def run_cascade(strategies: list, ctx: CascadeContext) -> StrategyOutcome | None:
    for strategy in strategies:
        outcome = await strategy.attempt(ctx)
        if outcome is not None:
            logger.info("[cascade:run] accepted strategy=%s cited=%d", strategy.name, len(outcome.cited_chunks))
            return outcome
        logger.info("[cascade:run] strategy=%s declined", strategy.name)
    logger.info("[cascade:run] exhausted")
    return None
