"""
Conversation history for prompts: bounded by message count, then by an
estimated token budget. Both caps only ever shrink the result; output is
always chronological.
"""

import logging
import math

from career_assistant.core.types import ConversationTurn

logger = logging.getLogger(__name__)


def estimate_tokens(text: str) -> int:
    """Cheap token estimate: characters / 4, rounded up."""
    return math.ceil(len(text or "") / 4)


def window_by_token_budget(turns: list[ConversationTurn], max_tokens: int) -> list[ConversationTurn]:
    """Keep the newest turns whose summed estimate fits max_tokens; oldest are dropped first."""
    total = 0
    kept: list[ConversationTurn] = []
    for turn in reversed(turns):
        cost = estimate_tokens(turn.text)
        if total + cost > max_tokens:
            break
        kept.append(turn)
        total += cost
    kept.reverse()
    return kept


def to_messages(turns: list[ConversationTurn]) -> list[dict[str, str]]:
    """Turns -> chat messages. Assistant stays assistant; user and system turns are sent as user."""
    return [
        {"role": "assistant" if t.role == "assistant" else "user", "content": t.text}
        for t in turns
        if t.text and t.text.strip()
    ]


class HistoryManager:
    def __init__(self, store, message_limit: int, max_tokens: int) -> None:
        self._store = store
        self._message_limit = message_limit
        self._max_tokens = max_tokens

    def get_history(self, conversation_id: str, message_limit: int) -> list[ConversationTurn]:
        """Most recent message_limit turns, oldest first."""
        turns = self._store.list_recent_messages(conversation_id, message_limit)
        return list(reversed(turns))

    def load(self, conversation_id: str, exclude_turn_id: str | None = None) -> list[dict[str, str]]:
        """Windowed history as chat messages, without the turn carrying the current question."""
        turns = self.get_history(conversation_id, self._message_limit + (1 if exclude_turn_id else 0))
        if exclude_turn_id:
            turns = [t for t in turns if t.id != exclude_turn_id]
            turns = turns[max(0, len(turns) - self._message_limit):]
        windowed = window_by_token_budget(turns, self._max_tokens)
        logger.info(
            "[history:load] conversation_id=%s fetched=%d windowed=%d",
            conversation_id, len(turns), len(windowed),
        )
        return to_messages(windowed)
