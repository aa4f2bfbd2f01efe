"""
Answer synthesis: render a template with history and context, call the model,
and judge whether the answer is usable.
"""

import logging

from career_assistant.agent.llm import ChatCompletionProvider
from career_assistant.agent.prompts import PromptTemplate

logger = logging.getLogger(__name__)

# Answers that contain one of these are the model declining, not answering
REFUSAL_PHRASES = (
    "don't have enough",
    "do not have enough",
    "no matching jobs",
    "no job openings found",
)


class Synthesizer:
    def __init__(self, llm: ChatCompletionProvider, max_tokens: int = 700, min_answer_length: int = 10) -> None:
        self._llm = llm
        self._max_tokens = max_tokens
        self._min_answer_length = min_answer_length

    def invoke(
        self,
        template: PromptTemplate,
        history: list[dict[str, str]],
        question: str,
        **context: str,
    ) -> str:
        messages = template.render(history, question=question, **context)
        logger.info(
            "[synthesizer:invoke] IN  template=%s history=%d prompt_len=%d",
            template.name, len(history), sum(len(m["content"]) for m in messages),
        )
        answer = self._llm.complete(messages, max_tokens=self._max_tokens).text.strip()
        logger.info("[synthesizer:invoke] OUT template=%s answer_len=%d", template.name, len(answer))
        return answer

    def is_acceptable(self, answer: str) -> bool:
        if not answer or len(answer.strip()) <= self._min_answer_length:
            return False
        lowered = answer.lower().replace("’", "'")
        return not any(phrase in lowered for phrase in REFUSAL_PHRASES)
