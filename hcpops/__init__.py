"""hcpops: run, track and resume Cloud Workflows executions."""

from .callbacks import CallbackClient
from .config import HcpOpsConfig, load_config
from .errors import (
    ArgumentEncodingFailed,
    CallbackRequestFailed,
    CancelledOrTimedOut,
    ClassifiedError,
    ConfigError,
    ErrorKind,
    NoCompatibleCallback,
    RemoteCallFailed,
    UnexpectedCallbackState,
    WorkflowsError,
    classify_exception,
    classify_message,
)
from .gateway import WorkflowGateway
from .models import (
    CallbackDescriptor,
    ExecutionHandle,
    ExecutionRecord,
    ExecutionState,
    WorkflowDescriptor,
    WorkflowState,
)
from .poller import ExecutionTracker
from .transports import get_transport

__version__ = "0.1.0"
__all__ = [
    "ArgumentEncodingFailed",
    "CallbackClient",
    "CallbackDescriptor",
    "CallbackRequestFailed",
    "CancelledOrTimedOut",
    "ClassifiedError",
    "ConfigError",
    "ErrorKind",
    "ExecutionHandle",
    "ExecutionRecord",
    "ExecutionState",
    "ExecutionTracker",
    "HcpOpsConfig",
    "NoCompatibleCallback",
    "RemoteCallFailed",
    "UnexpectedCallbackState",
    "WorkflowDescriptor",
    "WorkflowGateway",
    "WorkflowState",
    "WorkflowsError",
    "classify_exception",
    "classify_message",
    "get_transport",
    "load_config",
]
