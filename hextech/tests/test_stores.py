"""Tests for the pipeline log and chat stores."""
import dataclasses

import pytest

from core.state import LogRole, Sender
from core.stores import ChatStore, PipelineLog


class TestPipelineLog:
    def test_capacity_evicts_oldest_first(self):
        log = PipelineLog(capacity=40)
        for i in range(45):
            log.append(LogRole.SYSTEM, f"line {i}")
        assert len(log) == 40
        assert log.entries[0].content == "line 5"
        assert log.entries[-1].content == "line 44"

    def test_never_exceeds_capacity(self):
        log = PipelineLog(capacity=3)
        for i in range(10):
            log.append(LogRole.ASR, str(i))
            assert len(log) <= 3

    def test_ids_are_unique_and_monotonic(self):
        log = PipelineLog()
        ids = [log.append(LogRole.NLP, "x").id for _ in range(5)]
        assert len(set(ids)) == 5
        assert ids == sorted(ids, key=lambda i: int(i.split("-")[1]))

    def test_entries_are_immutable(self):
        log = PipelineLog()
        entry = log.append(LogRole.LLM, "reply")
        with pytest.raises(dataclasses.FrozenInstanceError):
            entry.content = "changed"

    def test_role_is_coerced(self):
        log = PipelineLog()
        entry = log.append("TTS", "ready")
        assert entry.role == LogRole.TTS

    def test_clear(self):
        log = PipelineLog()
        log.append(LogRole.SYSTEM, "x")
        log.clear()
        assert len(log) == 0

    def test_rejects_zero_capacity(self):
        with pytest.raises(ValueError):
            PipelineLog(capacity=0)


class TestChatStore:
    def test_seeded_messages(self):
        chat = ChatStore(seed=[(Sender.SYSTEM, "welcome")])
        assert [m.text for m in chat.messages] == ["welcome"]

    def test_unbounded_append(self):
        chat = ChatStore()
        for i in range(100):
            chat.add(Sender.PLAYER, str(i))
        assert len(chat) == 100

    def test_reset_restores_seed_only(self):
        chat = ChatStore(seed=[(Sender.SYSTEM, "welcome")])
        chat.add(Sender.PLAYER, "hi")
        chat.add(Sender.AI, "hello")
        chat.reset()
        assert [(m.sender, m.text) for m in chat.messages] == [(Sender.SYSTEM, "welcome")]

    def test_ids_do_not_repeat_after_reset(self):
        chat = ChatStore(seed=[(Sender.SYSTEM, "welcome")])
        first = chat.messages[0].id
        chat.reset()
        assert chat.messages[0].id != first
