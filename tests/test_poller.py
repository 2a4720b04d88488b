"""Tests for the execution tracker's polling and deadline behavior."""

import asyncio

import pytest
from google.api_core.exceptions import ServiceUnavailable

from hcpops import CancelledOrTimedOut, ExecutionState, HcpOpsConfig, RemoteCallFailed, WorkflowGateway
from hcpops.poller import ExecutionTracker
from hcpops.transports import InMemoryExecutionsTransport

CONFIG = HcpOpsConfig(project="proj", region="us-central1")


class _Recorder:
    def __init__(self, on_sleep=None):
        self.delays = []
        self._on_sleep = on_sleep

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        if self._on_sleep:
            self._on_sleep(len(self.delays))


def _setup():
    transport = InMemoryExecutionsTransport()
    gateway = WorkflowGateway(CONFIG, transport=transport)
    handle = gateway.handle("get", "exec-1")
    return gateway, transport, handle


@pytest.mark.asyncio
async def test_terminal_on_first_read_does_not_sleep():
    gateway, transport, handle = _setup()
    transport.add_execution(handle.name, "SUCCEEDED", result='{"items": []}')
    sleep = _Recorder()

    record = await ExecutionTracker(gateway, CONFIG, sleep=sleep).wait_for_completion(handle)

    assert record.state is ExecutionState.SUCCEEDED
    assert record.result == {"items": []}
    assert sleep.delays == []
    assert transport.get_calls == 1


@pytest.mark.asyncio
async def test_backoff_doubles_and_caps():
    gateway, transport, handle = _setup()
    transport.add_execution(handle.name, "QUEUED")
    transport.enqueue(
        handle.name,
        {"state": "ACTIVE"},
        {},
        {},
        {},
        {"state": "FAILED", "error_context": "step failed"},
    )
    sleep = _Recorder()

    record = await ExecutionTracker(gateway, CONFIG, sleep=sleep).wait_for_completion(handle)

    assert record.state is ExecutionState.FAILED
    assert record.error == "step failed"
    assert sleep.delays == [0.5, 1.0, 2.0, 2.0, 2.0]
    assert transport.get_calls == 6


@pytest.mark.asyncio
async def test_cancelled_execution_is_terminal():
    gateway, transport, handle = _setup()
    transport.add_execution(handle.name, "ACTIVE")
    transport.enqueue(handle.name, {"state": "CANCELLED"})

    record = await ExecutionTracker(gateway, CONFIG, sleep=_Recorder()).wait_for_completion(handle)
    assert record.state is ExecutionState.CANCELLED
    assert record.end_time is not None


@pytest.mark.asyncio
async def test_transport_error_aborts_without_retry():
    gateway, transport, handle = _setup()
    transport.add_execution(handle.name, "ACTIVE")
    sleep = _Recorder(on_sleep=lambda n: transport.fail_next(ServiceUnavailable("backend down")))

    with pytest.raises(RemoteCallFailed) as excinfo:
        await ExecutionTracker(gateway, CONFIG, sleep=sleep).wait_for_completion(handle)

    assert "backend down" in str(excinfo.value)
    assert sleep.delays == [0.5]
    assert transport.get_calls == 2


@pytest.mark.asyncio
async def test_deadline_expiry_raises_timeout():
    gateway, transport, handle = _setup()
    transport.add_execution(handle.name, "ACTIVE")
    loop = asyncio.get_running_loop()
    started = loop.time()

    with pytest.raises(CancelledOrTimedOut) as excinfo:
        await gateway.tracker().wait_for_completion(handle, timeout=0.1)

    assert isinstance(excinfo.value, TimeoutError)
    assert loop.time() - started < 0.5
    assert (await gateway.get_execution(handle)).state is ExecutionState.ACTIVE


@pytest.mark.asyncio
async def test_task_cancellation_detaches():
    gateway, transport, handle = _setup()
    transport.add_execution(handle.name, "ACTIVE")

    task = asyncio.create_task(gateway.tracker().wait_for_completion(handle))
    await asyncio.sleep(0.05)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert (await gateway.get_execution(handle)).state is ExecutionState.ACTIVE


@pytest.mark.asyncio
async def test_run_creates_and_waits():
    class FinishingTransport(InMemoryExecutionsTransport):
        async def create_execution(self, workflow_path, argument):
            raw = await super().create_execution(workflow_path, argument)
            self.finish(raw.name, result='{"ok": true}')
            return raw

    transport = FinishingTransport()
    gateway = WorkflowGateway(CONFIG, transport=transport)

    handle, record = await gateway.run("get", {"resource_type": "pods"}, timeout=5)

    assert record.handle == handle
    assert record.state is ExecutionState.SUCCEEDED
    assert record.result == {"ok": True}
    assert transport.get_calls == 1
