"""OpenAI Chat Completions provider."""

from typing import Optional

import openai
import structlog

from chathub.completion.base import FALLBACK_REPLY, CompletionProvider, Turn
from chathub.config import settings
from chathub.errors import GenerationError

logger = structlog.get_logger()


class OpenAIChatProvider(CompletionProvider):
    """Replies via the OpenAI API, prefixed with the configured system prompt.

    The SDK client is built on first use so the app starts without an
    API key; a missing key surfaces as GenerationError on the first call.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        system_prompt: Optional[str] = None,
    ):
        self.api_key = api_key or settings.openai_api_key or None
        self.model = model or settings.completion_model
        self.temperature = (
            settings.completion_temperature if temperature is None else temperature
        )
        self.max_tokens = max_tokens or settings.completion_max_tokens
        self.system_prompt = system_prompt or settings.system_prompt
        self._client: Optional[openai.AsyncOpenAI] = None

    @property
    def name(self) -> str:
        return "openai"

    def _get_client(self) -> openai.AsyncOpenAI:
        if self._client is None:
            self._client = openai.AsyncOpenAI(api_key=self.api_key)
        return self._client

    async def complete(self, turns: list[Turn]) -> str:
        messages = [{"role": "system", "content": self.system_prompt}, *turns]
        try:
            response = await self._get_client().chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except openai.OpenAIError as e:
            logger.warning(
                "completion.failed",
                provider=self.name,
                model=self.model,
                error=str(e),
            )
            raise GenerationError("Failed to generate response") from e

        content = response.choices[0].message.content if response.choices else None
        return content if content and content.strip() else FALLBACK_REPLY
