"""Google Cloud Workflows transport backed by the official async clients."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, List, Optional, Set

from google.cloud import workflows_v1
from google.cloud.workflows import executions_v1

from .base import BaseExecutionsTransport, RawExecution, RawWorkflow

logger = logging.getLogger(__name__)


def _raw_execution(execution: Any) -> RawExecution:
    error_context: Optional[str] = None
    if execution.error is not None and execution.error.context:
        error_context = execution.error.context
    return RawExecution(
        name=execution.name,
        state=execution.state.name,
        argument=execution.argument,
        result=execution.result,
        error_context=error_context,
        start_time=execution.start_time or None,
        end_time=execution.end_time or None,
    )


_closing: Set["asyncio.Task[Any]"] = set()


def _discard(client: Any) -> None:
    """Close the channel of a client built by a constructor that then failed."""
    closing = client.transport.close()
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        asyncio.run(closing)
        return
    task = loop.create_task(closing)
    _closing.add(task)
    task.add_done_callback(_closing.discard)


class GoogleExecutionsTransport(BaseExecutionsTransport):
    """Execution management over the Workflows and Executions APIs.

    Both clients pick up Application Default Credentials when constructed,
    so construction fails fast when no credentials are available.
    """

    def __init__(
        self,
        executions_client: Optional[executions_v1.ExecutionsAsyncClient] = None,
        workflows_client: Optional[workflows_v1.WorkflowsAsyncClient] = None,
    ) -> None:
        self._executions = executions_client or executions_v1.ExecutionsAsyncClient()
        try:
            self._workflows = workflows_client or workflows_v1.WorkflowsAsyncClient()
        except Exception:
            if executions_client is None:
                _discard(self._executions)
            raise

    async def close(self) -> None:
        errors = []
        for client in (self._executions, self._workflows):
            try:
                await client.transport.close()
            except Exception as exc:
                logger.warning(f"Failed to close {type(client).__name__}: {exc}")
                errors.append(exc)
        if errors:
            raise RuntimeError(f"closing clients: {errors}")

    async def create_execution(self, workflow_path: str, argument: str) -> RawExecution:
        execution = await self._executions.create_execution(
            parent=workflow_path,
            execution=executions_v1.Execution(argument=argument),
        )
        return _raw_execution(execution)

    async def get_execution(self, name: str) -> RawExecution:
        execution = await self._executions.get_execution(name=name)
        return _raw_execution(execution)

    async def list_executions(self, workflow_path: str, limit: int) -> List[RawExecution]:
        request = executions_v1.ListExecutionsRequest(parent=workflow_path, page_size=limit)
        pager = await self._executions.list_executions(request=request)
        result: List[RawExecution] = []
        async for execution in pager:
            result.append(_raw_execution(execution))
            if len(result) >= limit:
                break
        return result

    async def list_workflows(self, parent: str) -> List[RawWorkflow]:
        pager = await self._workflows.list_workflows(parent=parent)
        result: List[RawWorkflow] = []
        async for workflow in pager:
            result.append(
                RawWorkflow(
                    name=workflow.name,
                    state=workflow.state.name,
                    revision_id=workflow.revision_id,
                    update_time=workflow.update_time or None,
                )
            )
        return result
