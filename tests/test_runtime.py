import asyncio

import pytest

from outreach.application import OutreachRuntime

from .conftest import FakeGateway


class BrokenGateway(FakeGateway):

    async def start(self) -> None:
        raise RuntimeError("chrome not found")


@pytest.mark.asyncio
async def test_start_and_stop(settings):
    gateway = FakeGateway()
    runtime = OutreachRuntime(settings, gateway=gateway)

    await runtime.start()
    tasks = list(runtime._tasks)

    assert gateway.started
    assert runtime.scheduler.is_running
    assert len(tasks) == 2

    await runtime.stop()

    assert gateway.closed
    assert not runtime.scheduler.is_running
    assert all(task.done() for task in tasks)


@pytest.mark.asyncio
async def test_failed_gateway_start_cancels_background_tasks(settings):
    runtime = OutreachRuntime(settings, gateway=BrokenGateway())

    with pytest.raises(RuntimeError, match="chrome not found"):
        await runtime.start()

    assert runtime._tasks == []
    assert not runtime.scheduler.is_running
    pending = [t for t in asyncio.all_tasks() if t is not asyncio.current_task()]
    assert not [t for t in pending if t.get_name() in ("event-dispatcher", "allowlist-watcher")]
