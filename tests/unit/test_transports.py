"""Transport tests."""

import asyncio

import pytest
from google.api_core.exceptions import NotFound
from google.auth.exceptions import DefaultCredentialsError

from hcpops import ErrorKind, HcpOpsConfig, RemoteCallFailed, WorkflowGateway
from hcpops.transports import InMemoryExecutionsTransport, RawWorkflow, get_transport
from hcpops.transports import google as google_transport

WORKFLOW = "projects/p/locations/r/workflows/get"


def test_get_transport_inmemory():
    assert isinstance(get_transport("inmemory"), InMemoryExecutionsTransport)
    with pytest.raises(ValueError):
        get_transport("carrier-pigeon")


@pytest.mark.asyncio
async def test_inmemory_create_and_scripted_reads():
    transport = InMemoryExecutionsTransport()
    created = await transport.create_execution(WORKFLOW, '{"a": 1}')
    assert created.name.startswith(f"{WORKFLOW}/executions/")
    assert created.state == "ACTIVE"
    assert created.argument == '{"a": 1}'

    transport.enqueue(created.name, {"state": "SUCCEEDED", "result": '{"ok": true}'})

    first = await transport.get_execution(created.name)
    assert first.state == "ACTIVE"
    assert first.end_time is None

    second = await transport.get_execution(created.name)
    assert second.state == "SUCCEEDED"
    assert second.result == '{"ok": true}'
    assert second.end_time is not None
    assert transport.get_calls == 2


@pytest.mark.asyncio
async def test_inmemory_unknown_execution_and_injected_errors():
    transport = InMemoryExecutionsTransport()
    with pytest.raises(NotFound):
        await transport.get_execution(f"{WORKFLOW}/executions/missing")

    transport.fail_next(RuntimeError("boom"))
    with pytest.raises(RuntimeError):
        await transport.list_workflows("projects/p/locations/r")
    assert await transport.list_workflows("projects/p/locations/r") == []


@pytest.mark.asyncio
async def test_inmemory_lists_newest_first():
    transport = InMemoryExecutionsTransport()
    names = [(await transport.create_execution(WORKFLOW, "{}")).name for _ in range(3)]
    transport.workflows.append(RawWorkflow(name=WORKFLOW, state="ACTIVE"))

    listed = await transport.list_executions(WORKFLOW, 2)
    assert [e.name for e in listed] == [names[2], names[1]]
    assert [w.name for w in await transport.list_workflows("projects/p/locations/r")] == [WORKFLOW]

    await transport.close()
    assert transport.closed


class _FakeChannelTransport:
    def __init__(self) -> None:
        self.closed = False

    async def close(self) -> None:
        self.closed = True


class _FakeExecutionsClient:
    instances = []

    def __init__(self) -> None:
        self.transport = _FakeChannelTransport()
        _FakeExecutionsClient.instances.append(self)


def _no_credentials():
    raise DefaultCredentialsError("Your default credentials were not found.")


@pytest.mark.asyncio
async def test_google_transport_releases_first_client_when_second_fails(monkeypatch):
    _FakeExecutionsClient.instances = []
    monkeypatch.setattr(google_transport.executions_v1, "ExecutionsAsyncClient", _FakeExecutionsClient)
    monkeypatch.setattr(google_transport.workflows_v1, "WorkflowsAsyncClient", _no_credentials)

    with pytest.raises(DefaultCredentialsError):
        google_transport.GoogleExecutionsTransport()
    await asyncio.sleep(0)

    assert len(_FakeExecutionsClient.instances) == 1
    assert _FakeExecutionsClient.instances[0].transport.closed


@pytest.mark.asyncio
async def test_gateway_classifies_client_construction_failure(monkeypatch):
    _FakeExecutionsClient.instances = []
    monkeypatch.setattr(google_transport.executions_v1, "ExecutionsAsyncClient", _FakeExecutionsClient)
    monkeypatch.setattr(google_transport.workflows_v1, "WorkflowsAsyncClient", _no_credentials)

    with pytest.raises(RemoteCallFailed) as excinfo:
        WorkflowGateway(HcpOpsConfig(project="p", region="r"))
    await asyncio.sleep(0)

    assert excinfo.value.kind is ErrorKind.MISSING_CREDENTIALS
    assert str(excinfo.value).startswith("creating workflows client: no GCP credentials found")
    assert _FakeExecutionsClient.instances[0].transport.closed
