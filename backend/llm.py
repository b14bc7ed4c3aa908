import logging
from collections.abc import AsyncGenerator

import httpx
import openai
from openai import AsyncOpenAI

from config import Settings
from errors import ConfigurationError, UpstreamError

_log = logging.getLogger(__name__)


class LLM:
    """
    Chat-completion client for any OpenAI-compatible API.

    Swap the base_url to point at different providers:
      - Groq:        https://api.groq.com/openai/v1
      - OpenAI:      https://api.openai.com/v1
      - OpenRouter:  https://openrouter.ai/api/v1
    """

    def __init__(
        self,
        api_key: str = "",
        base_url: str = "https://api.groq.com/openai/v1",
        model: str = "llama-3.3-70b-versatile",
        max_tokens: int = 1024,
        temperature: float = 0.7,
        timeout: float = 60.0,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.timeout = timeout
        self._client: AsyncOpenAI | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "LLM":
        return cls(
            api_key=settings.groq_api_key,
            base_url=settings.llm_base_url,
            model=settings.chat_model,
            max_tokens=settings.chat_max_tokens,
            temperature=settings.chat_temperature,
        )

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    @property
    def client(self) -> AsyncOpenAI:
        if not self.configured:
            raise ConfigurationError("Groq API key not configured")
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=self.api_key,
                base_url=self.base_url,
                timeout=self.timeout,
            )
        return self._client

    async def complete(
        self,
        messages: list[dict],
        *,
        max_tokens: int | None = None,
        temperature: float | None = None,
    ) -> str:
        """Non-streaming completion. Returns the message text, or "" when the model sent none."""
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                max_tokens=max_tokens or self.max_tokens,
                temperature=temperature if temperature is not None else self.temperature,
            )
        except openai.APIError as e:
            _log.error("LLM completion failed: %s", e)
            raise UpstreamError(f"LLM request failed: {e}", upstream_status=getattr(e, "status_code", None))

        if not response.choices:
            return ""
        return response.choices[0].message.content or ""

    async def stream(
        self,
        messages: list[dict],
        *,
        max_tokens: int | None = None,
        temperature: float | None = None,
    ) -> AsyncGenerator[str, None]:
        """
        Streaming completion. Yields content fragments as they arrive.
        The upstream connection is closed as soon as the consumer stops iterating.
        """
        try:
            stream = await self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                max_tokens=max_tokens or self.max_tokens,
                temperature=temperature if temperature is not None else self.temperature,
                stream=True,
            )
        except openai.APIError as e:
            _log.error("LLM stream failed to open: %s", e)
            raise UpstreamError(f"LLM request failed: {e}", upstream_status=getattr(e, "status_code", None))

        try:
            async for chunk in stream:
                if chunk.choices and chunk.choices[0].delta.content:
                    yield chunk.choices[0].delta.content
        except (openai.APIError, httpx.HTTPError) as e:
            _log.error("LLM stream broke mid-response: %s", e)
            raise UpstreamError(f"LLM stream interrupted: {e}")
        finally:
            await stream.close()
