"""ControllerRegistry tests — open/get/close and idle eviction.

A mutable fake clock drives eviction so no test sleeps.
"""

import pytest

from helpers.drafts import VALID_BASELINE, fill
from trial_server.registry import ControllerRegistry
from trial_survey.models.session import DashboardStep

PID = "MB2W_1718000000000_regtest01"


class _Clock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return _Clock()


@pytest.fixture
def registry(schema, repo, clock):
    return ControllerRegistry(schema, repo, idle_timeout=60, clock=clock)


class TestLifecycle:

    @pytest.mark.asyncio
    async def test_open_get_close(self, registry):
        await registry.open(PID)
        assert registry.get(PID).participant_id == PID
        registry.close(PID)
        assert len(registry) == 0
        with pytest.raises(ValueError, match="not found"):
            registry.get(PID)

    @pytest.mark.asyncio
    async def test_open_twice_rejected(self, registry):
        await registry.open(PID)
        with pytest.raises(ValueError, match="already open"):
            await registry.open(PID)


class TestIdleEviction:

    @pytest.mark.asyncio
    async def test_idle_controller_evicted_on_open(self, registry, clock):
        await registry.open(PID)
        clock.now += 61
        await registry.open("MB2W_1718000000000_regtest02")
        assert len(registry) == 1
        with pytest.raises(ValueError, match="not found"):
            registry.get(PID)

    @pytest.mark.asyncio
    async def test_recent_use_keeps_controller(self, registry, clock):
        await registry.open(PID)
        clock.now += 50
        registry.get(PID)
        clock.now += 50
        assert registry.evict_idle() == []
        assert len(registry) == 1

    @pytest.mark.asyncio
    async def test_evicted_participant_resumes_from_store(self, registry, clock):
        await registry.open(PID)
        controller = registry.get(PID)
        fill(controller, VALID_BASELINE)
        await controller.submit_baseline()

        clock.now += 120
        assert registry.evict_idle() == [PID]
        step = await registry.open(PID)
        assert isinstance(step, DashboardStep)

    @pytest.mark.asyncio
    async def test_no_timeout_keeps_everything(self, schema, repo, clock):
        registry = ControllerRegistry(schema, repo, clock=clock)
        await registry.open(PID)
        clock.now += 10**6
        assert registry.evict_idle() == []
        assert len(registry) == 1
