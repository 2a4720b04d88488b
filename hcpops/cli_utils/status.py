"""Rendering of execution records and workflow listings."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from ..models import ExecutionRecord, ExecutionState, WorkflowDescriptor
from ..output import age, format_elapsed, new_table, render_table

_TIME_FORMAT = "%Y-%m-%d %H:%M:%S UTC"


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def status_document(record: ExecutionRecord) -> Dict[str, Any]:
    """Structured view of ``record`` used for JSON and YAML output."""
    data: Dict[str, Any] = {
        "name": record.handle.name,
        "state": record.state.value,
        "start_time": _iso(record.start_time),
        "end_time": _iso(record.end_time),
        "duration": format_elapsed(record.duration) if record.duration is not None else None,
        "error": record.error,
        "result": record.result,
    }
    if record.callbacks:
        data["callbacks"] = [cb.model_dump() for cb in record.callbacks]
    return data


def args_summary(data: Any) -> str:
    """One-line summary of a succeeded execution's result."""
    if not isinstance(data, dict):
        return "ok"
    parts: List[str] = []
    if isinstance(data.get("resource_type"), str):
        parts.append(data["resource_type"])
    for key in ("pod", "name"):
        if isinstance(data.get(key), str) and data[key]:
            parts.append(data[key])
    if isinstance(data.get("namespace"), str) and data["namespace"]:
        parts.append(f"-n {data['namespace']}")
    if "count" in data:
        parts.append(f"({data['count']} items)")
    if isinstance(data.get("logs"), str):
        parts.append(f"({data['logs'].count(chr(10))} lines)")
    return " ".join(parts) if parts else "ok"


def render_status(record: ExecutionRecord, workflow: str) -> str:
    """Human-readable status block for one execution."""
    state = record.state.value
    if record.waiting_on_callback:
        state = "ACTIVE (waiting on callback)"

    lines = [f"{'Workflow:':<12}{workflow}", f"{'State:':<12}{state}"]
    if record.start_time:
        lines.append(
            f"{'Started:':<12}{record.start_time.strftime(_TIME_FORMAT)} "
            f"({age(record.start_time)} ago)"
        )
    if record.end_time and record.duration is not None:
        lines.append(f"{'Ended:':<12}{record.end_time.strftime(_TIME_FORMAT)}")
        lines.append(f"{'Duration:':<12}{format_elapsed(record.duration)}")
    if record.error:
        lines.append(f"{'Error:':<12}{record.error}")
    if record.state is ExecutionState.SUCCEEDED and record.result is not None:
        lines.append(f"{'Args:':<12}{args_summary(record.result)}")

    if record.callbacks:
        lines += ["", "Callbacks:"]
        lines += [f"  {cb.method} {cb.url}" for cb in record.callbacks]
        lines += [
            "",
            "Resume with:",
            f"  hcpops wf resume {workflow} {record.handle.execution_id} "
            "--data '{\"approved\": true}'",
        ]

    if record.state in (ExecutionState.SUCCEEDED, ExecutionState.FAILED):
        lines += ["", "Use -o json for full result."]
    return "\n".join(lines)


def render_workflows(workflows: List[WorkflowDescriptor]) -> str:
    if not workflows:
        return "No workflows found."
    table = new_table("NAME", "STATE", "REVISION", "UPDATED")
    for wf in workflows:
        updated = wf.update_time.isoformat() if wf.update_time else ""
        table.add_row(wf.name, wf.state.value, wf.revision_id, updated)
    return render_table(table)


def render_executions(records: List[ExecutionRecord], workflow: str) -> str:
    if not records:
        return f"No executions found for workflow '{workflow}'."
    table = new_table("ID", "STATE", "STARTED", "DURATION")
    for record in records:
        duration = format_elapsed(record.duration) if record.duration is not None else "running"
        table.add_row(
            record.handle.execution_id,
            record.state.value,
            f"{age(record.start_time)} ago",
            duration,
        )
    return render_table(table)
