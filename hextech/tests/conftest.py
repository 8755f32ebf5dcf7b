"""Shared fixtures: a virtual clock and a scripted response provider."""
import pytest

from core.controller import ModeController
from core.scheduler import VirtualScheduler
from fakes import FakeProvider


@pytest.fixture
def scheduler():
    return VirtualScheduler()


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def controller(scheduler, provider):
    return ModeController(provider, scheduler=scheduler)
