"""Remote workflow gateway: executions, workflow definitions and callbacks."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Awaitable, List, Optional, Tuple, TypeVar

from .callbacks import CallbackClient
from .config import HcpOpsConfig
from .errors import (
    ArgumentEncodingFailed,
    CancelledOrTimedOut,
    NoCompatibleCallback,
    RemoteCallFailed,
    UnexpectedCallbackState,
    WorkflowsError,
    classify_exception,
)
from .models import (
    CallbackDescriptor,
    ExecutionHandle,
    ExecutionRecord,
    ExecutionState,
    WorkflowDescriptor,
    WorkflowState,
)
from .poller import ExecutionTracker
from .transports import BaseExecutionsTransport, RawExecution, get_transport

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _decode_payload(text: str) -> Any:
    """Decode a JSON payload string, keeping undecodable text under ``raw``."""
    try:
        return json.loads(text)
    except ValueError:
        return {"raw": text}


def _to_record(raw: RawExecution) -> ExecutionRecord:
    state = ExecutionState.parse(raw.state)
    return ExecutionRecord(
        handle=ExecutionHandle.parse(raw.name),
        state=state,
        argument=_decode_payload(raw.argument) if raw.argument else None,
        result=_decode_payload(raw.result) if state is ExecutionState.SUCCEEDED else None,
        error=raw.error_context if state is ExecutionState.FAILED else None,
        start_time=raw.start_time,
        end_time=raw.end_time if state.is_terminal else None,
    )


class WorkflowGateway:
    """Stateless wrapper around the execution and callback surfaces.

    One gateway owns one executions transport and one callback client for
    its whole lifetime. Release both with :meth:`aclose`, or use the gateway
    as an async context manager.
    """

    def __init__(
        self,
        config: HcpOpsConfig,
        transport: Optional[BaseExecutionsTransport] = None,
        callbacks: Optional[CallbackClient] = None,
    ) -> None:
        config.require_location()
        self._config = config
        if transport is None:
            try:
                transport = get_transport()
            except Exception as exc:
                raise RemoteCallFailed(
                    classify_exception("creating workflows client", exc)
                ) from exc
        self._transport = transport
        self._callbacks = callbacks or CallbackClient(config.callbacks_base_url)
        self._closed = False

    @property
    def config(self) -> HcpOpsConfig:
        return self._config

    @property
    def parent(self) -> str:
        return f"projects/{self._config.project}/locations/{self._config.region}"

    def workflow_path(self, workflow: str) -> str:
        return f"{self.parent}/workflows/{workflow}"

    def handle(self, workflow: str, execution_id: str) -> ExecutionHandle:
        """Build the handle of execution ``execution_id`` of ``workflow``."""
        return ExecutionHandle(
            project=self._config.project,
            region=self._config.region,
            workflow=workflow,
            execution_id=execution_id,
        )

    def tracker(self) -> ExecutionTracker:
        return ExecutionTracker(self, self._config)

    # ------------------------------------------------------------------
    async def __aenter__(self) -> "WorkflowGateway":
        return self

    async def __aexit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        if exc is None:
            await self.aclose()
            return
        # keep the body's exception; a close failure is only logged
        try:
            await self.aclose()
        except Exception as close_exc:
            logger.warning(f"Failed to release gateway resources: {close_exc}")

    async def aclose(self) -> None:
        """Release both transports. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        try:
            await self._transport.close()
        finally:
            await self._callbacks.aclose()

    # ------------------------------------------------------------------
    async def _call(self, action: str, awaitable: Awaitable[T], timeout: Optional[float]) -> T:
        async def classified() -> T:
            # transport failures, including a transport's own TimeoutError,
            # are classified before the deadline is considered
            try:
                return await awaitable
            except WorkflowsError:
                raise
            except Exception as exc:
                logger.debug(f"{action} failed: {exc!r}")
                raise RemoteCallFailed(classify_exception(action, exc)) from exc

        try:
            return await asyncio.wait_for(classified(), timeout)
        except CancelledOrTimedOut:
            raise
        except asyncio.TimeoutError as exc:
            raise CancelledOrTimedOut(f"{action}: deadline of {timeout}s exceeded") from exc

    async def create_execution(
        self, workflow: str, argument: Any = None, timeout: Optional[float] = None
    ) -> ExecutionHandle:
        """Start ``workflow`` with ``argument`` serialized as JSON.

        This is the only gateway operation with an external side effect.
        """
        try:
            argument_json = json.dumps({} if argument is None else argument, allow_nan=False)
        except (TypeError, ValueError) as exc:
            raise ArgumentEncodingFailed(f"marshaling arguments: {exc}") from exc

        raw = await self._call(
            f"executing workflow '{workflow}'",
            self._transport.create_execution(self.workflow_path(workflow), argument_json),
            timeout,
        )
        logger.info(f"Created execution {raw.name}")
        return ExecutionHandle.parse(raw.name)

    async def get_execution(
        self, handle: ExecutionHandle, timeout: Optional[float] = None
    ) -> ExecutionRecord:
        raw = await self._call(
            "getting execution status", self._transport.get_execution(handle.name), timeout
        )
        return _to_record(raw)

    async def list_executions(
        self, workflow: str, limit: int = 10, timeout: Optional[float] = None
    ) -> List[ExecutionRecord]:
        """Return up to ``limit`` recent executions of ``workflow``, newest first."""
        raws = await self._call(
            f"listing executions for '{workflow}'",
            self._transport.list_executions(self.workflow_path(workflow), limit),
            timeout,
        )
        return [_to_record(raw) for raw in raws[:limit]]

    async def list_workflows(self, timeout: Optional[float] = None) -> List[WorkflowDescriptor]:
        raws = await self._call(
            "listing workflows", self._transport.list_workflows(self.parent), timeout
        )
        prefix = f"{self.parent}/workflows/"
        return [
            WorkflowDescriptor(
                name=raw.name[len(prefix):] if raw.name.startswith(prefix) else raw.name,
                state=WorkflowState.parse(raw.state),
                revision_id=raw.revision_id,
                update_time=raw.update_time,
            )
            for raw in raws
        ]

    async def list_callbacks(
        self, handle: ExecutionHandle, timeout: Optional[float] = None
    ) -> List[CallbackDescriptor]:
        return await self._call(
            "listing callbacks", self._callbacks.list_callbacks(handle.name), timeout
        )

    async def trigger_callback(
        self,
        url: str,
        method: Optional[str] = None,
        payload: Optional[dict] = None,
        timeout: Optional[float] = None,
    ) -> None:
        await self._call(
            "triggering callback",
            self._callbacks.trigger_callback(url, method, payload),
            timeout,
        )

    # ------------------------------------------------------------------
    async def resume(
        self,
        handle: ExecutionHandle,
        payload: Optional[dict] = None,
        timeout: Optional[float] = None,
    ) -> CallbackDescriptor:
        """Trigger the first pending callback of an ACTIVE execution.

        Only the first callback in list order is considered, even when more
        than one is pending.

        Raises:
            UnexpectedCallbackState: The execution is not ACTIVE.
            NoCompatibleCallback: The execution is ACTIVE with no callbacks.
        """
        try:
            return await asyncio.wait_for(self._resume(handle, payload), timeout)
        except CancelledOrTimedOut:
            raise
        except asyncio.TimeoutError as exc:
            raise CancelledOrTimedOut(
                f"resuming execution {handle.execution_id}: deadline of {timeout}s exceeded"
            ) from exc

    async def _resume(
        self, handle: ExecutionHandle, payload: Optional[dict]
    ) -> CallbackDescriptor:
        record = await self.get_execution(handle)
        if record.state is not ExecutionState.ACTIVE:
            raise UnexpectedCallbackState(record.state.value)

        callbacks = await self.list_callbacks(record.handle)
        if not callbacks:
            raise NoCompatibleCallback("execution is ACTIVE but has no pending callbacks")
        if len(callbacks) > 1:
            logger.warning(
                f"Execution {handle.execution_id} has {len(callbacks)} pending callbacks; "
                f"triggering the first ({callbacks[0].name})"
            )

        callback = callbacks[0]
        await self.trigger_callback(callback.url, callback.method, payload)
        logger.info(f"Resumed execution {handle.execution_id} via {callback.name}")
        return callback

    async def run(
        self, workflow: str, argument: Any = None, timeout: Optional[float] = None
    ) -> Tuple[ExecutionHandle, ExecutionRecord]:
        """Create an execution of ``workflow`` and wait for it to finish."""
        loop = asyncio.get_running_loop()
        deadline = None if timeout is None else loop.time() + timeout
        handle = await self.create_execution(workflow, argument, timeout=timeout)
        remaining = None if deadline is None else max(0.0, deadline - loop.time())
        record = await self.tracker().wait_for_completion(handle, remaining)
        return handle, record
