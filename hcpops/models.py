"""Data models for workflows, executions and callbacks."""

from __future__ import annotations

from datetime import datetime, timedelta
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, Field, computed_field


class ExecutionState(str, Enum):
    """Lifecycle state of a single execution."""

    QUEUED = "QUEUED"
    ACTIVE = "ACTIVE"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def parse(cls, value: str) -> "ExecutionState":
        try:
            return cls(value.upper())
        except ValueError:
            return cls.UNKNOWN

    @property
    def is_terminal(self) -> bool:
        return self not in (ExecutionState.QUEUED, ExecutionState.ACTIVE)


class WorkflowState(str, Enum):
    """Lifecycle state of a deployed workflow definition."""

    ACTIVE = "ACTIVE"
    DEPRECATED = "DEPRECATED"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def parse(cls, value: str) -> "WorkflowState":
        value = value.upper()
        if value == "ACTIVE":
            return cls.ACTIVE
        if value in ("DEPRECATED", "UNAVAILABLE"):
            return cls.DEPRECATED
        return cls.UNKNOWN


class WorkflowDescriptor(BaseModel, frozen=True):
    """Snapshot of a deployed workflow definition."""

    name: str
    state: WorkflowState = WorkflowState.UNKNOWN
    revision_id: str = ""
    update_time: Optional[datetime] = None


class ExecutionHandle(BaseModel, frozen=True):
    """Fully-qualified identifier of one execution."""

    project: str
    region: str
    workflow: str
    execution_id: str

    @property
    def workflow_path(self) -> str:
        return f"projects/{self.project}/locations/{self.region}/workflows/{self.workflow}"

    @property
    def name(self) -> str:
        return f"{self.workflow_path}/executions/{self.execution_id}"

    @classmethod
    def parse(cls, name: str) -> "ExecutionHandle":
        """Build a handle from a ``projects/.../executions/<id>`` resource name."""
        parts = name.strip("/").split("/")
        if (
            len(parts) != 8
            or parts[0] != "projects"
            or parts[2] != "locations"
            or parts[4] != "workflows"
            or parts[6] != "executions"
        ):
            raise ValueError(f"not an execution resource name: {name!r}")
        return cls(
            project=parts[1],
            region=parts[3],
            workflow=parts[5],
            execution_id=parts[7],
        )

    def __str__(self) -> str:  # pragma: no cover - simple formatting
        return self.name


class CallbackDescriptor(BaseModel, frozen=True):
    """A pending callback on an active execution."""

    name: str
    method: str = "POST"
    url: str


class ExecutionRecord(BaseModel):
    """Point-in-time view of an execution."""

    handle: ExecutionHandle
    state: ExecutionState
    argument: Any = None
    result: Any = None
    error: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    callbacks: List[CallbackDescriptor] = Field(default_factory=list)

    @computed_field  # type: ignore[misc]
    @property
    def duration(self) -> Optional[timedelta]:
        if self.end_time is None or self.start_time is None:
            return None
        return self.end_time - self.start_time

    @property
    def is_terminal(self) -> bool:
        return self.state.is_terminal

    @property
    def waiting_on_callback(self) -> bool:
        return self.state is ExecutionState.ACTIVE and bool(self.callbacks)
