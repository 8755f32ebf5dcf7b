from typing import Any, Callable, Optional

from loguru import logger

from core.config import TimingConfig
from core.scheduler import Scheduler
from core.state import GameContext, LogRole, SessionRun
from llm.base import ResponseFn, safe_generate

LogEmitter = Callable[[LogRole, str], Any]
Liveness = Callable[[SessionRun], bool]


class SessionInvalidated(Exception):
    """Raised at a resume point when the owning session has been superseded."""

    def __init__(self, session: SessionRun):
        super().__init__(f"session generation {session.generation} is stale")
        self.session = session


class PipelineSession:
    """Simulated voice pipeline: ASR → VAD → NLP → LLM → TTS.

    Each stage writes one console line, separated by fixed latencies. The
    LLM stage is the only one that reaches the response provider, exactly
    once per run, and its visible latency has a floor so the "thinking"
    phase never looks instantaneous.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        emit: LogEmitter,
        responder: ResponseFn,
        timing: Optional[TimingConfig] = None,
        is_live: Optional[Liveness] = None,
    ):
        self.scheduler = scheduler
        self.emit = emit
        self.responder = responder
        self.timing = timing or TimingConfig()
        self.is_live = is_live or (lambda session: True)

    def _checkpoint(self, session: Optional[SessionRun]) -> None:
        if session is not None and not self.is_live(session):
            raise SessionInvalidated(session)

    async def _stage(self, session, role: LogRole, content: str, delay_ms: float = 0):
        self._checkpoint(session)
        self.emit(role, content)
        if delay_ms:
            await self.scheduler.sleep(delay_ms)

    async def run(self, query: str, game_context: GameContext,
                  session: Optional[SessionRun] = None) -> str:
        """Run the whole pipeline for one query and return the reply.

        Raises:
            SessionInvalidated: `session` went stale at a resume point.
        """
        t = self.timing
        logger.info("[PIPELINE] Run started: '{}'", query)

        await self._stage(session, LogRole.ASR, f'识别结果 [QUERY]: "{query}"', t.asr_ms)
        await self._stage(session, LogRole.VAD, "VAD状态: 语音结束，音频流已切断", t.vad_ms)
        await self._stage(session, LogRole.NLP, "意图识别: 正在提取战术核心参数...", t.nlp_ms)
        await self._stage(session, LogRole.LLM, "正在向云端模型发起战术分析请求...")

        started = self.scheduler.now()
        result = await safe_generate(self.responder, query, game_context)
        elapsed = self.scheduler.now() - started
        logger.info("[TIMING] Provider: {:.0f}ms", elapsed)
        if elapsed < t.llm_floor_ms:
            await self.scheduler.sleep(t.llm_floor_ms - elapsed)

        await self._stage(session, LogRole.LLM, f'决策完成 [AI_RESPONSE]: "{result}"', t.llm_result_ms)
        await self._stage(session, LogRole.TTS, "海克斯合成引擎合成中 (SampleRate: 24kHz)...", t.tts_ms)
        await self._stage(session, LogRole.TTS, "语音包就绪，通过小队频道下发播放")

        logger.info("[PIPELINE] Run complete")
        return result
