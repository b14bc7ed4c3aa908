"""Interviewer chat relay: forwards the conversation plus editor context to the LLM."""

import logging
from collections.abc import AsyncIterator
from typing import Literal

from pydantic import BaseModel

from errors import ConfigurationError
from llm import LLM

logger = logging.getLogger(__name__)

INTERVIEWER_PERSONA = "You are an experienced technical interviewer."
NO_RESPONSE = "No response"


class ChatMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: str


def build_system_prompt(code: str | None, output: str | None, language: str | None = None) -> str:
    persona = INTERVIEWER_PERSONA
    if language:
        persona += f" The candidate is writing {language}."
    return f"{persona} Current code:\n{code or ''}\nOutput:\n{output or ''}"


class ChatRelay:
    def __init__(self, llm: LLM) -> None:
        self.llm = llm

    def _messages(
        self,
        conversation: list[ChatMessage],
        code: str | None,
        output: str | None,
        language: str | None,
    ) -> list[dict]:
        if not self.llm.configured:
            raise ConfigurationError("Groq API key not configured")
        messages = [{"role": "system", "content": build_system_prompt(code, output, language)}]
        messages.extend(m.model_dump() for m in conversation)
        return messages

    async def complete(
        self,
        conversation: list[ChatMessage],
        code: str | None = None,
        output: str | None = None,
        language: str | None = None,
    ) -> str:
        messages = self._messages(conversation, code, output, language)
        text = await self.llm.complete(messages)
        return text or NO_RESPONSE

    def complete_streaming(
        self,
        conversation: list[ChatMessage],
        code: str | None = None,
        output: str | None = None,
        language: str | None = None,
    ) -> AsyncIterator[str]:
        """Return the lazy fragment stream. Configuration is checked now, not on first read."""
        messages = self._messages(conversation, code, output, language)
        logger.info("Opening chat stream with %d messages", len(messages))
        return self.llm.stream(messages)
