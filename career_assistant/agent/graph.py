"""
LangGraph answer engine: cache check → classify → guardrail → history → cascade → finalize.

Orchestration only. The model, the stores and the retrieval sources are injected;
blocking calls run in worker threads so concurrent questions do not serialize on
the event loop. answer() never raises: every outcome is an AnswerBundle.
"""

import asyncio
import logging
from typing import Literal, TypedDict

from langgraph.graph import END, StateGraph

from career_assistant.agent.cascade import CascadeContext, RetrievalSession, build_cascade, run_cascade
from career_assistant.agent.synthesizer import Synthesizer
from career_assistant.core.config import Settings
from career_assistant.core.conversation_store import DEFAULT_TITLE
from career_assistant.core.types import AnswerBundle, AnswerSource, Intent, QueryAnalysis, RetrievedChunk
from career_assistant.services.classifier import QueryClassifier
from career_assistant.services.history import HistoryManager
from career_assistant.services.retrieval_service import ResumeRetriever

logger = logging.getLogger(__name__)

GUARDRAIL_MESSAGE = (
    "I can only help with questions about your resume, career guidance, or job search. "
    "Please ask something related to your career."
)
INSUFFICIENT_INFO_MESSAGE = (
    "I don't have enough information to answer this question. "
    "Please try a different question or provide more context."
)
FATAL_ERROR_MESSAGE = "Sorry, something went wrong. Please try again later."
INVALID_QUESTION_MESSAGE = "Please provide a valid question."

TITLE_MAX_LENGTH = 60


class AnswerState(TypedDict, total=False):
    question: str
    user_id: str
    resume_id: str | None
    conversation_id: str
    user_turn_id: str
    analysis: QueryAnalysis
    history: list  # list of {"role": "user"|"assistant", "content": str}
    answer: str
    source: AnswerSource
    cited_chunks: list[RetrievedChunk]
    cache_hit: bool
    cacheable: bool


def conversation_title(question: str) -> str:
    title = " ".join(question.split())
    if len(title) > TITLE_MAX_LENGTH:
        title = title[: TITLE_MAX_LENGTH - 3].rstrip() + "..."
    return title


class AnswerEngine:
    """Answers one question at a time; holds no per-question state between calls."""

    def __init__(
        self,
        settings: Settings,
        classifier: QueryClassifier,
        synthesizer: Synthesizer,
        history: HistoryManager,
        store,
        resume_retriever: ResumeRetriever,
        cache=None,
        web_search=None,
        job_search=None,
    ) -> None:
        self._settings = settings
        self._classifier = classifier
        self._synthesizer = synthesizer
        self._history = history
        self._store = store
        self._resume = resume_retriever
        self._cache = cache
        self._web = web_search
        self._jobs = job_search
        self._graph = self._build_graph()

    # --- graph nodes ---

    async def _check_cache(self, state: AnswerState) -> dict:
        if self._cache is None:
            return {"cache_hit": False}
        cached = await asyncio.to_thread(
            self._cache.lookup, state["question"], state["user_id"], state.get("resume_id")
        )
        if cached is None:
            return {"cache_hit": False}
        logger.info("[graph:check_cache] hit source=%s", cached.source.value)
        return {
            "cache_hit": True,
            "answer": cached.answer,
            "source": cached.source,
            "cited_chunks": cached.cited_chunks,
        }

    def _route_after_cache(self, state: AnswerState) -> Literal["finalize", "classify"]:
        return "finalize" if state.get("cache_hit") else "classify"

    async def _classify(self, state: AnswerState) -> dict:
        analysis = await asyncio.to_thread(self._classifier.classify, state["question"])
        return {"analysis": analysis}

    def _route_after_classify(self, state: AnswerState) -> Literal["refuse", "load_history"]:
        analysis = state["analysis"]
        if analysis.intent == Intent.IRRELEVANT or analysis.confidence < self._settings.guardrail_min_confidence:
            logger.info(
                "[graph:guardrail] blocked intent=%s confidence=%.2f",
                analysis.intent.value, analysis.confidence,
            )
            return "refuse"
        return "load_history"

    def _refuse(self, state: AnswerState) -> dict:
        return {"answer": GUARDRAIL_MESSAGE, "source": AnswerSource.ERROR, "cited_chunks": []}

    async def _load_history(self, state: AnswerState) -> dict:
        history = await asyncio.to_thread(
            self._history.load, state["conversation_id"], state.get("user_turn_id")
        )
        return {"history": history}

    async def _run_cascade(self, state: AnswerState) -> dict:
        analysis = state["analysis"]
        session = RetrievalSession(
            analysis=analysis,
            user_id=state["user_id"],
            resume_id=state.get("resume_id"),
            resume=self._resume,
            web_search=self._web,
            job_search=self._jobs,
            settings=self._settings,
        )
        ctx = CascadeContext(
            question=state["question"],
            history=state.get("history") or [],
            session=session,
            synthesizer=self._synthesizer,
            settings=self._settings,
        )
        outcome = await run_cascade(build_cascade(analysis.intent), ctx)
        if outcome is None:
            return {"answer": INSUFFICIENT_INFO_MESSAGE, "source": AnswerSource.ERROR, "cited_chunks": []}
        return {
            "answer": outcome.answer,
            "source": outcome.source,
            "cited_chunks": outcome.cited_chunks,
            "cacheable": True,
        }

    async def _finalize(self, state: AnswerState) -> dict:
        cited = state.get("cited_chunks") or []
        await asyncio.to_thread(
            self._store.append_message,
            state["conversation_id"], "assistant", state["answer"], state["source"].value, cited,
        )
        if state.get("cacheable") and self._cache is not None:
            bundle = AnswerBundle(
                conversation_id=state["conversation_id"],
                answer=state["answer"],
                cited_chunks=cited,
                source=state["source"],
            )
            await asyncio.to_thread(
                self._cache.store, state["question"], bundle, state["user_id"], state.get("resume_id")
            )
        return {}

    def _build_graph(self):
        graph = StateGraph(AnswerState)

        graph.add_node("check_cache", self._check_cache)
        graph.add_node("classify", self._classify)
        graph.add_node("refuse", self._refuse)
        graph.add_node("load_history", self._load_history)
        graph.add_node("run_cascade", self._run_cascade)
        graph.add_node("finalize", self._finalize)

        graph.set_entry_point("check_cache")
        graph.add_conditional_edges("check_cache", self._route_after_cache)
        graph.add_conditional_edges("classify", self._route_after_classify)
        graph.add_edge("refuse", "finalize")
        graph.add_edge("load_history", "run_cascade")
        graph.add_edge("run_cascade", "finalize")
        graph.add_edge("finalize", END)

        return graph.compile()

    # --- conversation bookkeeping ---

    def _resolve_conversation(self, user_id: str, conversation_id: str | None, resume_id: str | None) -> str:
        """Existing conversation if it belongs to the user, else a new one."""
        if conversation_id:
            conversation = self._store.find_conversation(conversation_id)
            if conversation is not None and conversation.get("user_id") == user_id:
                return conversation_id
            logger.info("[graph:resolve_conversation] %s not found for user, creating new", conversation_id)
        return self._store.create_conversation(user_id, resume_id)

    def _maybe_set_title(self, conversation_id: str, question: str) -> None:
        conversation = self._store.find_conversation(conversation_id)
        if conversation is not None and conversation.get("title") == DEFAULT_TITLE:
            self._store.update_title(conversation_id, conversation_title(question))

    # --- public boundary ---

    async def answer(
        self,
        question: str,
        user_id: str,
        conversation_id: str | None = None,
        resume_id: str | None = None,
    ) -> AnswerBundle:
        if not isinstance(question, str) or not question.strip() or not user_id:
            return AnswerBundle(conversation_id="", answer=INVALID_QUESTION_MESSAGE)

        question = question.strip()
        logger.info("[graph:answer] IN  user_id=%s conversation_id=%s question=%r", user_id, conversation_id, question)
        try:
            conversation_id = await asyncio.to_thread(
                self._resolve_conversation, user_id, conversation_id, resume_id
            )
            user_turn_id = await asyncio.to_thread(
                self._store.append_message, conversation_id, "user", question, None
            )
            await asyncio.to_thread(self._maybe_set_title, conversation_id, question)

            final = await self._graph.ainvoke({
                "question": question,
                "user_id": user_id,
                "resume_id": resume_id,
                "conversation_id": conversation_id,
                "user_turn_id": user_turn_id,
                "cache_hit": False,
                "cacheable": False,
            })
        except Exception:
            logger.exception("[graph:answer] pipeline failed")
            return AnswerBundle(conversation_id="", answer=FATAL_ERROR_MESSAGE)

        bundle = AnswerBundle(
            conversation_id=conversation_id,
            answer=final["answer"],
            cited_chunks=final.get("cited_chunks") or [],
            source=final["source"],
        )
        logger.info(
            "[graph:answer] OUT source=%s cited=%d cache_hit=%s",
            bundle.source.value, len(bundle.cited_chunks), final.get("cache_hit"),
        )
        return bundle
