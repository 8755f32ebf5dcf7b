from loguru import logger

from core.config import GenerationConfig
from core.constants import FALLBACK_RESPONSE
from core.state import GameContext
from llm.base import BaseLLM


class GeminiProvider(BaseLLM):
    """Google Gemini provider."""

    def __init__(self, api_key: str, model: str = "gemini-1.5-flash",
                 generation: GenerationConfig | None = None):
        self.api_key = api_key
        self.model = model
        self.generation = generation or GenerationConfig()
        self._genai = None

    def _ensure_client(self):
        if self._genai is None:
            import google.generativeai as genai
            genai.configure(api_key=self.api_key)
            self._genai = genai

    async def generate(self, system_prompt: str, query: str, context: GameContext) -> str:
        if not self.api_key:
            logger.error("Gemini API key not configured.")
            return FALLBACK_RESPONSE

        self._ensure_client()

        try:
            # The system prompt depends on the game context, so the model
            # object is built per request.
            model = self._genai.GenerativeModel(self.model, system_instruction=system_prompt)
            response = await model.generate_content_async(
                query,
                generation_config={
                    "temperature": self.generation.temperature,
                    "top_p": self.generation.top_p,
                    "max_output_tokens": self.generation.max_tokens,
                },
            )
            return response.text or ""
        except Exception as e:
            logger.error("Gemini API error: {}", e)
            return FALLBACK_RESPONSE
