import asyncio
from typing import Optional, Sequence

from loguru import logger

from core.config import TimingConfig
from core.constants import DUPLEX_SCENARIOS
from core.scheduler import Scheduler, TimerToken
from core.state import DuplexScenario, LogRole, SessionRun
from session.pipeline import SessionInvalidated


class DuplexLoopDriver:
    """Proactive companion loop for full-duplex mode.

    One cycle plays a scripted exchange: the assistant speaks up about
    something it noticed, the player follows up, the assistant replies.
    A busy flag keeps at most one cycle in flight; a trigger that arrives
    while a cycle runs is dropped, not queued. Every resume point checks
    that duplex is still active and the cycle has not been superseded.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        host,
        scenarios: Sequence[DuplexScenario] = DUPLEX_SCENARIOS,
        timing: Optional[TimingConfig] = None,
    ):
        if not scenarios:
            raise ValueError("at least one duplex scenario is required")
        self.scheduler = scheduler
        self.host = host
        self.scenarios = tuple(scenarios)
        self.timing = timing or TimingConfig()
        self._index = 0
        self._busy = False
        self._current: Optional[SessionRun] = None
        self._next_token: Optional[TimerToken] = None

    @property
    def busy(self) -> bool:
        return self._busy

    @property
    def cycles_started(self) -> int:
        return self._index

    @property
    def next_cycle_pending(self) -> bool:
        return self._next_token is not None and self._next_token.active

    def start(self) -> None:
        self._schedule_next(self.timing.duplex_first_cycle_ms)

    def stop(self) -> None:
        self.scheduler.cancel(self._next_token)
        self._next_token = None
        self._release()

    def preempt(self) -> None:
        """Abandon the in-flight cycle (barge-in) and wait a full interval."""
        if self._current is not None:
            self._current.cancelled = True
            logger.info("[DUPLEX] Cycle preempted")
        self._release()
        self._schedule_next(self.timing.duplex_cycle_interval_ms)

    def _release(self) -> None:
        self._current = None
        self._busy = False

    def _schedule_next(self, delay_ms: float) -> None:
        self.scheduler.cancel(self._next_token)
        self._next_token = self.scheduler.after(delay_ms, self._on_timer)

    def _on_timer(self) -> None:
        self._next_token = None
        if not self.host.duplex_active:
            return
        if self.host.is_engaged:
            logger.debug("[DUPLEX] Assistant busy, deferring cycle")
            self._schedule_next(self.timing.duplex_cycle_interval_ms)
            return
        self.trigger()

    def trigger(self) -> Optional[asyncio.Task]:
        """Start a cycle now. Returns None if duplex is off or a cycle is in flight."""
        if not self.host.duplex_active:
            return None
        if self._busy:
            logger.debug("[DUPLEX] Cycle already in flight, trigger ignored")
            return None
        self._busy = True
        run = self.host.new_session_run()
        self._current = run
        scenario = self.scenarios[self._index % len(self.scenarios)]
        self._index += 1
        return self.scheduler.spawn(self._run_cycle(run, scenario), name=f"duplex-{self._index}")

    def _checkpoint(self, run: SessionRun) -> None:
        if not (self.host.duplex_active and self.host.is_live(run)):
            raise SessionInvalidated(run)

    async def _run_cycle(self, run: SessionRun, scenario: DuplexScenario) -> None:
        t = self.timing
        host = self.host
        logger.info("[DUPLEX] Cycle started: {}", scenario.trigger)
        try:
            self._checkpoint(run)
            host.add_log(LogRole.SYSTEM, f"[主动播报] 实时监测场景: {scenario.trigger}")
            await self.scheduler.sleep(t.duplex_detect_ms)

            self._checkpoint(run)
            host.add_log(LogRole.LLM, f'主动发起对话 [AI_RESPONSE]: "{scenario.ai}"')
            host.update_ai_state(is_speaking=True, response=scenario.ai)
            await self.scheduler.sleep(t.duplex_speaking_ms)

            self._checkpoint(run)
            host.update_ai_state(is_speaking=False, response=None)
            await self.scheduler.sleep(t.duplex_user_pause_ms)

            self._checkpoint(run)
            host.add_log(LogRole.ASR, f'实时转义用户追问 [QUERY]: "{scenario.user}"')
            await self.scheduler.sleep(t.duplex_reply_delay_ms)

            self._checkpoint(run)
            host.add_log(LogRole.LLM, f'多轮毫秒级反馈 [AI_RESPONSE]: "{scenario.reply}"')
            host.update_ai_state(is_speaking=True, response=scenario.reply)
            await self.scheduler.sleep(t.duplex_speaking_ms)

            self._checkpoint(run)
            host.update_ai_state(is_speaking=False, response=None)
            logger.info("[DUPLEX] Cycle complete")
        except SessionInvalidated:
            logger.info("[DUPLEX] Cycle '{}' abandoned", scenario.trigger)
        finally:
            owned = self._current is run
            if owned:
                self._release()

        # Preempt/stop already handled scheduling for cycles they took over
        if owned and host.duplex_active:
            self._schedule_next(t.duplex_cycle_interval_ms)
