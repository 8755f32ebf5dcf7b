from typing import Optional

from loguru import logger

from core.config import TimingConfig
from core.constants import BARGE_IN_QUERY, BARGE_IN_UTTERANCE
from core.scheduler import Scheduler, TimerToken
from core.state import LogRole, SessionRun


class InterruptHandler:
    """Barge-in: the player talks over the assistant in full-duplex mode.

    The current utterance is abandoned, not drained, and a fresh session
    is started for what the player said.
    """

    def __init__(self, scheduler: Scheduler, host, duplex, timing: Optional[TimingConfig] = None):
        self.scheduler = scheduler
        self.host = host
        self.duplex = duplex
        self.timing = timing or TimingConfig()
        self._follow_up_token: Optional[TimerToken] = None

    def interrupt(self) -> bool:
        """Returns True if the barge-in was accepted."""
        host = self.host
        if not (host.duplex_active and host.ai_state.is_speaking):
            logger.debug("[BARGE-IN] Ignored: assistant is not speaking in duplex mode")
            return False

        host.cancel_speech_timeout()
        host.add_log(LogRole.USER_ACTION, "!!! 系统监测到用户语音抢断 (Barge-in Activated) !!!")
        host.add_log(LogRole.SYSTEM, "立即执行中断协议：停止当前 TTS 播报")
        host.invalidate_sessions()
        self.duplex.preempt()
        host.update_ai_state(is_speaking=False, response=None, is_thinking=False)
        logger.info("[BARGE-IN] Utterance abandoned")

        run = host.new_session_run()
        self.scheduler.cancel(self._follow_up_token)
        self._follow_up_token = self.scheduler.after(
            self.timing.barge_in_delay_ms, lambda: self._follow_up(run)
        )
        return True

    def _follow_up(self, run: SessionRun) -> None:
        self._follow_up_token = None
        if not (self.host.duplex_active and self.host.is_live(run)):
            logger.debug("[BARGE-IN] Follow-up dropped, session superseded")
            return
        self.host.add_log(LogRole.ASR, f'打断内容识别 [QUERY]: "{BARGE_IN_UTTERANCE}"')
        self.host.start_interaction(BARGE_IN_QUERY)

    def cancel(self) -> None:
        self.scheduler.cancel(self._follow_up_token)
        self._follow_up_token = None
