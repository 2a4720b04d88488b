"""Base transport interface for the execution management surface."""

from __future__ import annotations

import abc
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel


class RawExecution(BaseModel):
    """Execution as reported by the backend, before decoding."""

    name: str
    state: str
    argument: str = ""
    result: str = ""
    error_context: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None


class RawWorkflow(BaseModel):
    """Workflow definition as reported by the backend."""

    name: str
    state: str
    revision_id: str = ""
    update_time: Optional[datetime] = None


class BaseExecutionsTransport(metaclass=abc.ABCMeta):
    """Abstract client for creating and reading workflow executions.

    Implementations raise their native exceptions; classification happens in
    the gateway.
    """

    async def close(self) -> None:
        """Release underlying connections (no-op by default)."""
        pass

    @abc.abstractmethod
    async def create_execution(self, workflow_path: str, argument: str) -> RawExecution:
        """Start an execution of ``workflow_path`` with a JSON ``argument``."""
        raise NotImplementedError

    @abc.abstractmethod
    async def get_execution(self, name: str) -> RawExecution:
        """Read one execution by its full resource name."""
        raise NotImplementedError

    @abc.abstractmethod
    async def list_executions(self, workflow_path: str, limit: int) -> List[RawExecution]:
        """Return at most ``limit`` executions, newest first."""
        raise NotImplementedError

    @abc.abstractmethod
    async def list_workflows(self, parent: str) -> List[RawWorkflow]:
        """Return workflow definitions under ``parent`` in backend order."""
        raise NotImplementedError
