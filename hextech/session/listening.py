from typing import Optional

from loguru import logger

from core.config import TimingConfig
from core.scheduler import Scheduler, TimerToken
from core.state import LogRole


class ListeningWindowController:
    """Countdown for the multi-turn listening window (Idle → Listening → Idle).

    Follow-up questions inside the window do not stop the countdown; only
    expiry or close() does.
    """

    def __init__(self, scheduler: Scheduler, host, timing: Optional[TimingConfig] = None):
        self.scheduler = scheduler
        self.host = host
        self.timing = timing or TimingConfig()
        self._tick_token: Optional[TimerToken] = None

    @property
    def is_open(self) -> bool:
        return self._tick_token is not None and self._tick_token.active

    def open(self) -> None:
        if self.is_open:
            return
        window = self.timing.listening_window_s
        self.host.update_ai_state(is_listening=True, timer=window)
        self._tick_token = self.scheduler.every(self.timing.listening_tick_ms, self._tick)
        logger.info("[LISTEN] Window opened ({}s)", window)

    def _tick(self) -> None:
        remaining = self.host.ai_state.timer - 1
        if remaining > 0:
            self.host.update_ai_state(timer=remaining)
            return
        self.scheduler.cancel(self._tick_token)
        self._tick_token = None
        self.host.update_ai_state(is_listening=False, timer=0)
        self.host.add_log(LogRole.SYSTEM, f"{self.timing.listening_window_s}s 多轮交互窗口已超时关闭")
        logger.info("[LISTEN] Window timed out")

    def close(self) -> None:
        """Stop the countdown without logging. State reset is up to the caller."""
        if self.is_open:
            logger.debug("[LISTEN] Window closed")
        self.scheduler.cancel(self._tick_token)
        self._tick_token = None
