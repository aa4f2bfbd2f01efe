"""
Completion provider: OpenAI (primary) or Hugging Face router (fallback).

When OPENAI_API_KEY is set, uses OpenAI chat completions; otherwise uses the HF router.
Provider payloads are collapsed to plain text once, here, by extract_answer; callers
only ever see Completion.text.
"""

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from career_assistant.core.config import (
    HF_API_KEY,
    HF_CHAT_URL,
    HF_LLM_MODEL,
    LLM_API_TIMEOUT,
    LLM_TEMPERATURE,
    OPENAI_API_KEY,
    OPENAI_LLM_MODEL,
)
from career_assistant.core.errors import ServiceUnavailableError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Completion:
    text: str
    provider: str


def extract_answer(content: Any) -> str:
    """
    Collapse a model payload to text.

    Accepts a plain string, or a list of typed content blocks (dicts or objects
    with a "text" field) whose texts are concatenated. Anything else yields "".
    """
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for block in content:
            if isinstance(block, str):
                parts.append(block)
            elif isinstance(block, dict):
                parts.append(block.get("text") or "")
            else:
                parts.append(getattr(block, "text", None) or "")
        return "".join(parts)
    return ""


class ChatCompletionProvider:
    """Chat completions over OpenAI, falling back to Hugging Face when OpenAI is unset or empty."""

    def __init__(
        self,
        openai_api_key: str = OPENAI_API_KEY,
        openai_model: str = OPENAI_LLM_MODEL,
        hf_api_key: str = HF_API_KEY,
        hf_model: str = HF_LLM_MODEL,
        temperature: float = LLM_TEMPERATURE,
    ) -> None:
        self._openai_model = openai_model
        self._hf_api_key = hf_api_key
        self._hf_model = hf_model
        self._temperature = temperature
        self._openai = None
        if openai_api_key:
            from openai import OpenAI

            self._openai = OpenAI(api_key=openai_api_key, timeout=LLM_API_TIMEOUT)

    def complete(self, messages: list[dict[str, str]], max_tokens: int = 512) -> Completion:
        """Run one chat completion. Raises when no provider is configured or the call fails."""
        logger.info("[llm] IN  messages=%d max_tokens=%d", len(messages), max_tokens)
        if self._openai is not None:
            text = self._call_openai(messages, max_tokens)
            if text:
                return Completion(text=text, provider="openai")
            if not self._hf_api_key:
                return Completion(text="", provider="openai")
            logger.info("[llm] OpenAI returned empty; falling back to Hugging Face")
        if not self._hf_api_key:
            raise ServiceUnavailableError("Set OPENAI_API_KEY or HF_API_KEY in .env to enable the LLM")
        return Completion(text=self._call_hf(messages, max_tokens), provider="hf")

    def _call_openai(self, messages: list[dict[str, str]], max_tokens: int) -> str:
        response = self._openai.chat.completions.create(
            model=self._openai_model,
            messages=messages,
            max_tokens=max_tokens,
            temperature=self._temperature,
        )
        msg = response.choices[0].message if response.choices else None
        out = extract_answer(getattr(msg, "content", None)).strip()
        logger.info("[llm:openai] OUT response_len=%d", len(out))
        return out

    def _call_hf(self, messages: list[dict[str, str]], max_tokens: int) -> str:
        headers = {"Authorization": f"Bearer {self._hf_api_key}", "Content-Type": "application/json"}
        payload = {
            "model": self._hf_model,
            "messages": messages,
            "max_tokens": max_tokens,
            "temperature": self._temperature,
        }
        with httpx.Client(timeout=LLM_API_TIMEOUT) as client:
            response = client.post(HF_CHAT_URL, json=payload, headers=headers)
        if response.status_code != 200:
            raise RuntimeError(f"HF LLM error {response.status_code}: {response.text[:200]}")
        data = response.json()
        choices = data.get("choices") or []
        if not choices or not isinstance(choices[0], dict):
            return ""
        msg = choices[0].get("message") or {}
        out = extract_answer(msg.get("content")).strip()
        logger.info("[llm:hf] OUT response_len=%d", len(out))
        return out
