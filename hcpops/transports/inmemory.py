"""In-memory execution backend for testing."""

from __future__ import annotations

import uuid
from collections import defaultdict, deque
from datetime import datetime, timezone
from typing import Any, Deque, Dict, List

from google.api_core.exceptions import NotFound

from .base import BaseExecutionsTransport, RawExecution, RawWorkflow


def _now() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryExecutionsTransport(BaseExecutionsTransport):
    """Simple in-process execution store for unit tests.

    New executions start ``ACTIVE``. Updates queued with :meth:`enqueue` are
    applied one per read, after the read returns, so a test can script the
    sequence of states the poller observes.
    """

    def __init__(self) -> None:
        self._executions: Dict[str, RawExecution] = {}
        self._updates: Dict[str, Deque[Dict[str, Any]]] = defaultdict(deque)
        self._errors: Deque[BaseException] = deque()
        self.workflows: List[RawWorkflow] = []
        self.get_calls = 0
        self.closed = False

    # ------------------------------------------------------------------
    def add_execution(self, name: str, state: str = "ACTIVE", **fields: Any) -> RawExecution:
        execution = RawExecution(name=name, state=state, start_time=_now(), **fields)
        if execution.end_time is None and state not in ("ACTIVE", "QUEUED"):
            execution.end_time = _now()
        self._executions[name] = execution
        return execution

    def enqueue(self, name: str, *updates: Dict[str, Any]) -> None:
        """Queue field updates applied after each subsequent read of ``name``."""
        self._updates[name].extend(updates)

    def finish(self, name: str, state: str = "SUCCEEDED", **fields: Any) -> None:
        """Move ``name`` to a terminal state right away."""
        execution = self._executions[name]
        execution.state = state
        execution.end_time = _now()
        for key, value in fields.items():
            setattr(execution, key, value)

    def fail_next(self, exc: BaseException) -> None:
        """Raise ``exc`` from the next transport call."""
        self._errors.append(exc)

    def _raise_pending_error(self) -> None:
        if self._errors:
            raise self._errors.popleft()

    def _lookup(self, name: str) -> RawExecution:
        execution = self._executions.get(name)
        if execution is None:
            raise NotFound(f"Resource '{name}' was not found")
        return execution

    # ------------------------------------------------------------------
    async def close(self) -> None:
        self.closed = True

    async def create_execution(self, workflow_path: str, argument: str) -> RawExecution:
        self._raise_pending_error()
        name = f"{workflow_path}/executions/{uuid.uuid4()}"
        return self.add_execution(name, argument=argument).model_copy()

    async def get_execution(self, name: str) -> RawExecution:
        self.get_calls += 1
        self._raise_pending_error()
        execution = self._lookup(name)
        snapshot = execution.model_copy()
        if self._updates[name]:
            update = self._updates[name].popleft()
            for key, value in update.items():
                setattr(execution, key, value)
            if execution.state not in ("ACTIVE", "QUEUED") and execution.end_time is None:
                execution.end_time = _now()
        return snapshot

    async def list_executions(self, workflow_path: str, limit: int) -> List[RawExecution]:
        self._raise_pending_error()
        prefix = f"{workflow_path}/executions/"
        matches = [e for e in self._executions.values() if e.name.startswith(prefix)]
        matches.reverse()
        return [e.model_copy() for e in matches[:limit]]

    async def list_workflows(self, parent: str) -> List[RawWorkflow]:
        self._raise_pending_error()
        return [wf.model_copy() for wf in self.workflows if wf.name.startswith(parent + "/")]
