"""Tests for the simulated voice pipeline."""
import asyncio

import pytest

from core.constants import EMPTY_RESPONSE, FALLBACK_RESPONSE
from core.scheduler import VirtualScheduler
from core.state import GameContext, LogRole, Mode, SessionRun
from core.stores import PipelineLog
from session.pipeline import PipelineSession, SessionInvalidated
from fakes import FakeProvider

STAGE_ORDER = [
    LogRole.ASR, LogRole.VAD, LogRole.NLP,
    LogRole.LLM, LogRole.LLM,
    LogRole.TTS, LogRole.TTS,
]


def make_session(provider, scheduler=None, is_live=None):
    scheduler = scheduler or VirtualScheduler()
    log = PipelineLog()
    session = PipelineSession(scheduler, log.append, provider, is_live=is_live)
    return session, scheduler, log


class TestPipelineSession:
    @pytest.mark.asyncio
    async def test_stage_order_and_reply(self):
        provider = FakeProvider("稳住发育")
        session, scheduler, log = make_session(provider)

        task = asyncio.ensure_future(session.run("中单很强", GameContext.NORMAL))
        await scheduler.advance(10_000)

        assert task.result() == "稳住发育"
        assert [e.role for e in log.entries] == STAGE_ORDER
        assert "中单很强" in log.entries[0].content
        assert "稳住发育" in log.entries[4].content

    @pytest.mark.asyncio
    async def test_stage_latencies(self):
        session, scheduler, log = make_session(FakeProvider())
        task = asyncio.ensure_future(session.run("Q", GameContext.NORMAL))

        await scheduler.advance(0)
        assert len(log) == 1  # ASR
        await scheduler.advance(600)
        assert len(log) == 2  # VAD
        await scheduler.advance(400)
        assert len(log) == 3  # NLP
        await scheduler.advance(800)
        assert len(log) == 4  # LLM request
        await scheduler.advance(1199)
        assert len(log) == 4  # thinking floor
        await scheduler.advance(1)
        assert len(log) == 5  # LLM result
        await scheduler.advance(600)
        assert len(log) == 6  # TTS start
        assert not task.done()
        await scheduler.advance(1000)
        assert len(log) == 7  # TTS ready
        assert task.done()

    @pytest.mark.asyncio
    async def test_slow_provider_skips_thinking_floor(self):
        scheduler = VirtualScheduler()
        provider = FakeProvider("ok", scheduler=scheduler, latency_ms=2000)
        session, _, log = make_session(provider, scheduler)
        asyncio.ensure_future(session.run("Q", GameContext.NORMAL))

        await scheduler.advance(1800)  # request sent
        assert len(log) == 4
        await scheduler.advance(1999)
        assert len(log) == 4
        await scheduler.advance(1)
        assert len(log) == 5

    @pytest.mark.asyncio
    async def test_provider_called_exactly_once(self):
        provider = FakeProvider()
        session, scheduler, _ = make_session(provider)
        asyncio.ensure_future(session.run("推荐核心三件套", GameContext.SHOPPING))
        await scheduler.advance(10_000)
        assert provider.calls == [("推荐核心三件套", GameContext.SHOPPING)]

    @pytest.mark.asyncio
    async def test_failing_provider_resolves_to_fallback(self):
        provider = FakeProvider(error=RuntimeError("network down"))
        session, scheduler, log = make_session(provider)

        task = asyncio.ensure_future(session.run("Q", GameContext.NORMAL))
        await scheduler.advance(10_000)

        assert task.result() == FALLBACK_RESPONSE
        assert FALLBACK_RESPONSE in log.entries[4].content
        assert [e.role for e in log.entries] == STAGE_ORDER

    @pytest.mark.asyncio
    async def test_empty_reply_uses_sync_lost_line(self):
        session, scheduler, _ = make_session(FakeProvider(reply="   "))
        task = asyncio.ensure_future(session.run("Q", GameContext.NORMAL))
        await scheduler.advance(10_000)
        assert task.result() == EMPTY_RESPONSE

    @pytest.mark.asyncio
    async def test_stale_session_stops_at_next_resume(self):
        live = {"ok": True}
        provider = FakeProvider()
        session, scheduler, log = make_session(provider, is_live=lambda run: live["ok"])
        run = SessionRun(generation=0, mode=Mode.SINGLE_TURN_VOICE)

        task = asyncio.ensure_future(session.run("Q", GameContext.NORMAL, run))
        await scheduler.advance(0)
        live["ok"] = False
        await scheduler.advance(10_000)

        assert isinstance(task.exception(), SessionInvalidated)
        assert [e.role for e in log.entries] == [LogRole.ASR]
        assert provider.calls == []
