from loguru import logger

from core.constants import AI_RESPONSES
from core.state import GameContext
from llm.base import BaseLLM

# Keyword → canned line, checked in order
KEYWORD_LINES = (
    (("打野", "jungle", "gank"), "JUNGLE_TRACKING"),
    (("出什么", "装备", "金币", "小件", "三件套"), "SHOP_ADVICE"),
    (("死亡", "伤害", "复盘"), "DEATH_ANALYSIS"),
    (("大龙", "小龙", "刷新"), "PROACTIVE_Q"),
    (("越塔", "打断"), "INTERRUPTED"),
)

CONTEXT_LINES = {
    GameContext.NORMAL: "ENCOURAGEMENT",
    GameContext.DEAD: "DEATH_ANALYSIS",
    GameContext.SHOPPING: "SHOP_ADVICE",
    GameContext.OBJECTIVE_SPAWN: "PROACTIVE_Q",
}


class ScriptedCoach(BaseLLM):
    """Offline provider: picks a canned coach line, no network needed."""

    model_name = "scripted"

    async def generate(self, system_prompt: str, query: str, context: GameContext) -> str:
        lower = query.lower()
        for keywords, key in KEYWORD_LINES:
            if any(word in lower for word in keywords):
                logger.debug("[LLM] Scripted line '{}' (keyword match)", key)
                return AI_RESPONSES[key]
        key = CONTEXT_LINES.get(context, "DEFAULT")
        logger.debug("[LLM] Scripted line '{}' (context {})", key, context.value)
        return AI_RESPONSES[key]
