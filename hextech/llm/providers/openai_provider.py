from loguru import logger

from core.config import GenerationConfig
from core.constants import FALLBACK_RESPONSE
from core.state import GameContext
from llm.base import BaseLLM


class OpenAIProvider(BaseLLM):
    """OpenAI ChatGPT provider."""

    def __init__(self, api_key: str, model: str = "gpt-4o-mini",
                 generation: GenerationConfig | None = None):
        self.api_key = api_key
        self.model = model
        self.generation = generation or GenerationConfig()
        self._client = None

    def _ensure_client(self):
        if self._client is None:
            from openai import AsyncOpenAI
            self._client = AsyncOpenAI(api_key=self.api_key)

    async def generate(self, system_prompt: str, query: str, context: GameContext) -> str:
        if not self.api_key:
            logger.error("OpenAI API key not configured.")
            return FALLBACK_RESPONSE

        self._ensure_client()

        try:
            response = await self._client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": query},
                ],
                max_tokens=self.generation.max_tokens,
                temperature=self.generation.temperature,
                top_p=self.generation.top_p,
            )
            return response.choices[0].message.content or ""
        except Exception as e:
            logger.error("OpenAI API error: {}", e)
            return FALLBACK_RESPONSE
