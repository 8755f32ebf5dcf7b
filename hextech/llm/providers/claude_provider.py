from loguru import logger

from core.config import GenerationConfig
from core.constants import FALLBACK_RESPONSE
from core.state import GameContext
from llm.base import BaseLLM


class ClaudeProvider(BaseLLM):
    """Anthropic Claude provider."""

    def __init__(self, api_key: str, model: str = "claude-haiku-4-5-20251001",
                 generation: GenerationConfig | None = None):
        self.api_key = api_key
        self.model = model
        self.generation = generation or GenerationConfig()
        self._client = None

    def _ensure_client(self):
        if self._client is None:
            from anthropic import AsyncAnthropic
            self._client = AsyncAnthropic(api_key=self.api_key)

    async def generate(self, system_prompt: str, query: str, context: GameContext) -> str:
        if not self.api_key:
            logger.error("Claude API key not configured.")
            return FALLBACK_RESPONSE

        self._ensure_client()

        try:
            message = await self._client.messages.create(
                model=self.model,
                max_tokens=self.generation.max_tokens,
                temperature=self.generation.temperature,
                system=system_prompt,
                messages=[{"role": "user", "content": query}],
            )
            return "".join(
                block.text for block in message.content if getattr(block, "type", "") == "text"
            )
        except Exception as e:
            logger.error("Claude API error: {}", e)
            return FALLBACK_RESPONSE
