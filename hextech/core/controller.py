import asyncio
import re
from typing import Any, Callable, Optional

from loguru import logger

from core.config import AppConfig
from core.constants import (
    AI_MENTION,
    CHAT_GREETING_QUERY,
    FOLLOW_UP_QUERY,
    GUIDED_QUERIES,
    PUSH_TO_TALK_QUERY,
    WELCOME_MESSAGE,
)
from core.scheduler import AsyncioScheduler, Scheduler, TimerToken
from core.state import AIState, GameContext, LogRole, Mode, Sender, SessionRun, Snapshot
from core.stores import ChatStore, PipelineLog
from llm.base import ResponseFn, safe_generate
from session.duplex import DuplexLoopDriver
from session.interrupt import InterruptHandler
from session.listening import ListeningWindowController
from session.pipeline import PipelineSession, SessionInvalidated

_MENTION_RE = re.compile(re.escape(AI_MENTION), re.IGNORECASE)


class ModeController:
    """Owns the assistant state and routes overlay commands.

    All mutation happens on the event-loop thread through this object.
    Observers registered with subscribe() receive a Snapshot after every
    change. Each orchestrated flow carries a SessionRun; bumping the
    generation makes every older run stale, so late callbacks from a
    superseded flow discard their effect instead of touching current state.
    """

    def __init__(
        self,
        responder: ResponseFn,
        scheduler: Optional[Scheduler] = None,
        config: Optional[AppConfig] = None,
        mode: Mode = Mode.GUIDED_QUERY,
        game_context: GameContext = GameContext.NORMAL,
    ):
        self.config = config or AppConfig()
        self.scheduler = scheduler or AsyncioScheduler()
        self.responder = responder
        timing = self.config.timing

        self._mode = Mode(mode)
        self._game_context = GameContext(game_context)
        self._ai_state = AIState()
        self._duplex_active = False
        self._generation = 0
        self._speech_token: Optional[TimerToken] = None
        self._subscribers: list[Callable[[Snapshot], Any]] = []

        self.log = PipelineLog(self.config.store.log_capacity)
        self.chat = ChatStore(seed=[(Sender.SYSTEM, WELCOME_MESSAGE)])

        self.pipeline = PipelineSession(
            self.scheduler, self.add_log, responder, timing, is_live=self.is_live
        )
        self.listening = ListeningWindowController(self.scheduler, self, timing)
        self.duplex = DuplexLoopDriver(self.scheduler, self, timing=timing)
        self.barge_in = InterruptHandler(self.scheduler, self, self.duplex, timing)

    # --- Observation ---

    @property
    def mode(self) -> Mode:
        return self._mode

    @property
    def game_context(self) -> GameContext:
        return self._game_context

    @property
    def ai_state(self) -> AIState:
        return self._ai_state.copy()

    @property
    def duplex_active(self) -> bool:
        return self._duplex_active

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def is_engaged(self) -> bool:
        return self._ai_state.is_thinking or self._ai_state.is_speaking

    @property
    def suggestions(self) -> tuple[str, ...]:
        return GUIDED_QUERIES[self._game_context]

    def snapshot(self) -> Snapshot:
        return Snapshot(
            mode=self._mode,
            game_context=self._game_context,
            ai_state=self._ai_state.copy(),
            duplex_active=self._duplex_active,
            logs=self.log.entries,
            messages=self.chat.messages,
            suggestions=self.suggestions,
        )

    def subscribe(self, callback: Callable[[Snapshot], Any]) -> Callable[[], None]:
        """Register an observer. Returns a function that unregisters it."""
        self._subscribers.append(callback)

        def unsubscribe():
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _notify(self) -> None:
        if not self._subscribers:
            return
        snapshot = self.snapshot()
        for callback in list(self._subscribers):
            try:
                callback(snapshot)
            except Exception:
                logger.exception("Observer {} failed", callback)

    # --- Mutation helpers used by the session components ---

    def update_ai_state(self, **changes) -> None:
        for key, value in changes.items():
            if not hasattr(self._ai_state, key):
                raise AttributeError(f"AIState has no field '{key}'")
            setattr(self._ai_state, key, value)
        self._notify()

    def add_log(self, role: LogRole, content: str):
        entry = self.log.append(role, content)
        self._notify()
        return entry

    def add_chat(self, sender: Sender, text: str):
        message = self.chat.add(sender, text)
        self._notify()
        return message

    def new_session_run(self) -> SessionRun:
        return SessionRun(generation=self._generation, mode=self._mode)

    def invalidate_sessions(self) -> None:
        self._generation += 1
        logger.debug("[SESSION] Generation → {}", self._generation)

    def is_live(self, run: SessionRun) -> bool:
        return (
            not run.cancelled
            and run.generation == self._generation
            and run.mode == self._mode
        )

    def cancel_speech_timeout(self) -> None:
        self.scheduler.cancel(self._speech_token)
        self._speech_token = None

    def _supersede(self) -> None:
        """Abandon whatever flow is in progress. Does not notify."""
        self.invalidate_sessions()
        self.cancel_speech_timeout()
        self._ai_state.is_speaking = False
        self._ai_state.is_thinking = False
        self._ai_state.response = None

    # --- Commands ---

    def set_mode(self, mode: Mode) -> None:
        """Switch interaction mode. Always a full reset."""
        mode = Mode(mode)
        logger.info("[MODE] {} → {}", self._mode.value, mode.value)
        self.scheduler.cancel_all()
        self._speech_token = None
        self.listening.close()
        self.duplex.stop()
        self.barge_in.cancel()
        self.invalidate_sessions()
        self._mode = mode
        self._duplex_active = False
        self._ai_state.reset()
        self.log.clear()
        self.chat.reset()
        self._notify()

    def set_game_context(self, context: GameContext) -> None:
        self._game_context = GameContext(context)
        logger.info("[CONTEXT] Game context: {}", self._game_context.value)
        self._notify()

    def send_message(self, text: str) -> Optional[asyncio.Task]:
        text = text.strip()
        if not text:
            return None
        if self._mode != Mode.TEXT_CHAT:
            return self.start_interaction(text)

        self.add_chat(Sender.PLAYER, text)
        if AI_MENTION not in text.lower():
            return None
        query = _MENTION_RE.sub("", text).strip() or CHAT_GREETING_QUERY
        return self.start_interaction(query)

    def trigger_voice(self, active: bool) -> Optional[asyncio.Task]:
        if self._mode == Mode.SINGLE_TURN_VOICE:
            return self._push_to_talk(active)
        if self._mode == Mode.MULTI_TURN_VOICE:
            return self._listening_toggle(active)
        logger.debug("[VOICE] Ignored voice trigger in {} mode", self._mode.value)
        return None

    def _push_to_talk(self, pressed: bool) -> Optional[asyncio.Task]:
        if pressed:
            if self._ai_state.is_listening:
                return None
            # Every press is a brand-new turn
            self._supersede()
            self.log.clear()
            self._ai_state.is_listening = True
            self.add_log(LogRole.ASR, "采集语音特征中 [Capture Start]")
            return None

        if not self._ai_state.is_listening:
            return None
        self._ai_state.is_listening = False
        self.add_log(LogRole.SYSTEM, "音频流采样结束 [Capture Stop]")
        return self.start_interaction(PUSH_TO_TALK_QUERY)

    def _listening_toggle(self, pressed: bool) -> Optional[asyncio.Task]:
        # Releases carry no meaning in the listening window
        if not pressed:
            return None
        if not self._ai_state.is_listening:
            self._supersede()
            self.log.clear()
            self.listening.open()
            self.add_log(LogRole.SYSTEM, f"已激活 {self.config.timing.listening_window_s}s 持续监听窗口")
            return None

        self.add_log(LogRole.USER_ACTION, "多轮窗口内捕捉到后续追问指令")
        return self.start_interaction(FOLLOW_UP_QUERY)

    def toggle_duplex(self) -> bool:
        """Turn the proactive companion on or off. Returns the new flag."""
        if self._mode != Mode.FULL_DUPLEX:
            logger.debug("[DUPLEX] Toggle ignored in {} mode", self._mode.value)
            return self._duplex_active

        if not self._duplex_active:
            self._supersede()
            self._duplex_active = True
            self.log.clear()
            self.add_log(LogRole.SYSTEM, "全双工 (Full-Duplex) 实时交互协议已握手成功")
            self.add_log(LogRole.ASR, "环境噪声自适应特征提取中 [READY]")
            self.duplex.start()
            logger.info("[DUPLEX] Activated")
        else:
            self._duplex_active = False
            self.duplex.stop()
            self.barge_in.cancel()
            self._supersede()
            self.add_log(LogRole.SYSTEM, "全双工连接正常关闭")
            logger.info("[DUPLEX] Deactivated")
        return self._duplex_active

    def interrupt(self) -> bool:
        return self.barge_in.interrupt()

    # --- Interaction flow ---

    def start_interaction(self, query: str) -> asyncio.Task:
        """Answer `query` in the current mode.

        Spoken flows supersede whatever is running. Chat replies do not:
        each @ai message gets its own answer, and only a mode switch
        discards a pending one.
        """
        if self._mode != Mode.TEXT_CHAT:
            self._supersede()
            self._ai_state.is_thinking = True
        run = self.new_session_run()
        self._notify()
        return self.scheduler.spawn(self._interact(query, run), name=f"interaction-{run.generation}")

    def _checkpoint(self, run: SessionRun) -> None:
        if not self.is_live(run):
            raise SessionInvalidated(run)

    async def _interact(self, query: str, run: SessionRun) -> None:
        context = self._game_context
        try:
            if run.mode == Mode.TEXT_CHAT:
                reply = await safe_generate(self.responder, query, context)
                self._checkpoint(run)
                self.add_chat(Sender.AI, reply)
                return

            if run.mode.is_voice:
                reply = await self.pipeline.run(query, context, run)
            else:
                reply = await safe_generate(self.responder, query, context)
            self._checkpoint(run)

            self.update_ai_state(is_thinking=False, is_speaking=True, response=reply)
            self._speech_token = self.scheduler.after(
                self.config.timing.speaking_ms, lambda: self._end_speech(run)
            )
        except SessionInvalidated:
            logger.info("[SESSION] Discarded stale session #{}", run.generation)

    def _end_speech(self, run: SessionRun) -> None:
        self._speech_token = None
        if not self.is_live(run):
            return
        if run.mode.is_voice:
            self.add_log(LogRole.SYSTEM, "当前会话链路已正常关闭，系统重置为待命状态")
        self.update_ai_state(is_speaking=False, response=None)

    async def shutdown(self) -> None:
        self.listening.close()
        self.duplex.stop()
        self.barge_in.cancel()
        await self.scheduler.shutdown()
        logger.info("Controller shut down.")
