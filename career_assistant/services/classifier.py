"""
Query classification: one model round trip turning a raw question into intent,
confidence, a rewritten search query and (for job searches) job parameters.

The model is asked for strict JSON but replies are treated as untrusted: fences are
stripped, fields are validated one by one, and any failure yields the safe
irrelevant/zero-confidence reading. classify() never raises.
"""

import json
import logging
from typing import Any

from career_assistant.agent.llm import ChatCompletionProvider
from career_assistant.agent.prompts import CLASSIFIER_PROMPT
from career_assistant.core.types import Intent, JobParameters, QueryAnalysis

logger = logging.getLogger(__name__)

DEFAULT_CONFIDENCE = 0.8


def parse_llm_json(raw: str) -> dict[str, Any]:
    """Parse a JSON object from a model reply, tolerating code fences and preamble text."""
    if not raw:
        return {}

    text = raw.strip()
    if text.startswith("```"):
        lines = [line for line in text.split("\n") if not line.strip().startswith("```")]
        text = "\n".join(lines)

    try:
        data = json.loads(text)
        return data if isinstance(data, dict) else {}
    except json.JSONDecodeError:
        pass

    start = text.find("{")
    end = text.rfind("}") + 1
    if start >= 0 and end > start:
        try:
            data = json.loads(text[start:end])
            return data if isinstance(data, dict) else {}
        except json.JSONDecodeError:
            pass
    return {}


def _coerce_confidence(value: Any, intent: Intent) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        return 0.0 if intent == Intent.IRRELEVANT else DEFAULT_CONFIDENCE
    try:
        confidence = float(value)
    except ValueError:
        return 0.0 if intent == Intent.IRRELEVANT else DEFAULT_CONFIDENCE
    if confidence != confidence:  # NaN
        return 0.0 if intent == Intent.IRRELEVANT else DEFAULT_CONFIDENCE
    return min(1.0, max(0.0, confidence))


def _coerce_job_parameters(value: Any) -> JobParameters:
    if not isinstance(value, dict):
        return JobParameters()
    skills = value.get("skills")
    if not isinstance(skills, list):
        skills = []
    return JobParameters(
        title=(str(value["title"]).strip() or None) if value.get("title") else None,
        location=(str(value["location"]).strip() or None) if value.get("location") else None,
        skills=[str(s).strip() for s in skills if str(s).strip()],
    )


def normalize_analysis(data: dict[str, Any], question: str) -> QueryAnalysis:
    """Validate a parsed classifier reply against the QueryAnalysis invariants."""
    try:
        intent = Intent(str(data.get("intent") or "").strip().lower())
        confidence = _coerce_confidence(data.get("confidence"), intent)
    except ValueError:
        intent = Intent.IRRELEVANT
        confidence = 0.0

    rewritten = data.get("rewritten_query") or data.get("rewrittenQuery")
    rewritten = rewritten.strip() if isinstance(rewritten, str) else ""

    job_parameters = None
    if intent == Intent.JOB_SEARCH:
        job_parameters = _coerce_job_parameters(data.get("job_parameters") or data.get("jobParameters"))

    reasoning = data.get("reasoning")
    return QueryAnalysis(
        intent=intent,
        confidence=confidence,
        rewritten_query=rewritten or question,
        job_parameters=job_parameters,
        reasoning=reasoning if isinstance(reasoning, str) else "",
    )


class QueryClassifier:
    def __init__(self, llm: ChatCompletionProvider, max_tokens: int = 300) -> None:
        self._llm = llm
        self._max_tokens = max_tokens

    def classify(self, question: str) -> QueryAnalysis:
        logger.info("[classifier:classify] IN  question=%r", question)
        try:
            messages = CLASSIFIER_PROMPT.render(question=question)
            raw = self._llm.complete(messages, max_tokens=self._max_tokens).text
            logger.debug("[classifier:classify] llm_raw=%r", raw)
            data = parse_llm_json(raw)
            if not data:
                raise ValueError("classifier reply was not a JSON object")
            analysis = normalize_analysis(data, question)
        except Exception as e:
            logger.warning("[classifier:classify] failed, using safe default: %s", e)
            return QueryAnalysis(intent=Intent.IRRELEVANT, confidence=0.0, rewritten_query=question)
        logger.info(
            "[classifier:classify] OUT intent=%s confidence=%.2f rewritten_query=%r",
            analysis.intent.value, analysis.confidence, analysis.rewritten_query,
        )
        return analysis
