from abc import ABC, abstractmethod
from typing import Awaitable, Callable

from loguru import logger

from core.config import ConfigManager
from core.constants import DEFAULT_QUERY, EMPTY_RESPONSE, FALLBACK_RESPONSE
from core.state import GameContext
from llm.prompts import build_system_prompt

# generate_response(query, context) -> reply text
ResponseFn = Callable[[str, GameContext], Awaitable[str]]


async def safe_generate(generate: ResponseFn, query: str, context: GameContext) -> str:
    """Call a response provider without ever raising.

    A failing provider yields FALLBACK_RESPONSE, an empty reply yields
    EMPTY_RESPONSE.
    """
    try:
        reply = await generate(query, context)
    except Exception as e:
        logger.error("[LLM] Provider failed: {}. Using fallback.", e)
        return FALLBACK_RESPONSE
    if not reply or not str(reply).strip():
        logger.warning("[LLM] Provider returned an empty reply.")
        return EMPTY_RESPONSE
    return str(reply)


class BaseLLM(ABC):
    """Abstract base class for all response providers (scripted and cloud)."""

    @abstractmethod
    async def generate(self, system_prompt: str, query: str, context: GameContext) -> str:
        """Produce one complete reply.

        Args:
            system_prompt: Coach persona and game-state instructions.
            query: The player's question (never empty).
            context: Current game context.

        Returns:
            The reply text.
        """
        ...


class LLMRouter:
    """Routes requests to the provider selected in the config."""

    def __init__(self, config_manager: ConfigManager):
        self.config_manager = config_manager
        self._offline_llm = None
        self._providers: dict[str, BaseLLM] = {}

    def _get_online_provider(self, name: str) -> BaseLLM:
        """Get or create a cloud provider.

        Re-reads the API key from config each time so that key updates
        via the settings endpoint take effect without restart.
        """
        config = self.config_manager.config
        current_key = getattr(config.api_keys, name, "")

        # Recreate the provider if the key changed or first time
        cached = self._providers.get(name)
        if cached is not None and getattr(cached, "api_key", None) == current_key:
            return cached

        model = getattr(config.models, name)
        generation = config.generation
        if name == "gemini":
            from llm.providers.gemini_provider import GeminiProvider
            self._providers[name] = GeminiProvider(current_key, model, generation)
        elif name == "openai":
            from llm.providers.openai_provider import OpenAIProvider
            self._providers[name] = OpenAIProvider(current_key, model, generation)
        elif name == "claude":
            from llm.providers.claude_provider import ClaudeProvider
            self._providers[name] = ClaudeProvider(current_key, model, generation)
        else:
            raise ValueError(f"Unknown provider: {name}")

        logger.info("Online provider '{}' initialized.", name)
        return self._providers[name]

    def get_provider(self) -> BaseLLM:
        """Get the active provider based on current mode and settings."""
        if self.config_manager.is_online:
            name = self.config_manager.config.provider
            logger.info("[LLM] Using ONLINE provider: {}", name)
            return self._get_online_provider(name)

        if self._offline_llm is None:
            from llm.offline import ScriptedCoach
            self._offline_llm = ScriptedCoach()
        logger.info("[LLM] Using OFFLINE scripted coach")
        return self._offline_llm

    async def generate_response(self, query: str, context: GameContext) -> str:
        """ResponseFn entry point used by the orchestrator."""
        provider = self.get_provider()
        return await provider.generate(
            build_system_prompt(context), query.strip() or DEFAULT_QUERY, context
        )
