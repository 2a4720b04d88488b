"""Command line interface for running, tracking and resuming Cloud Workflows."""

from __future__ import annotations

import asyncio
import json
import logging
import platform
from pathlib import Path
from typing import Any, Coroutine, Dict, Optional

import typer

from hcpops import __version__
from hcpops.cli_utils.resources import expand_resource_type, render_describe, render_resource_table
from hcpops.cli_utils.status import (
    render_executions,
    render_status,
    render_workflows,
    status_document,
)
from hcpops.config import HcpOpsConfig, load_config
from hcpops.errors import WorkflowsError
from hcpops.gateway import WorkflowGateway
from hcpops.models import ExecutionHandle, ExecutionRecord, ExecutionState
from hcpops.output import OutputFormat, format_elapsed, parse_format, render_result, to_json, to_yaml

logger = logging.getLogger(__name__)

app = typer.Typer(help="CLI for operating hosted control planes through Cloud Workflows")

# Command groups
wf_app = typer.Typer(help="Manage Cloud Workflows directly")

app.add_typer(wf_app, name="wf")


def build_gateway(config: HcpOpsConfig) -> WorkflowGateway:
    """Create the gateway used by every command."""
    return WorkflowGateway(config)


def _fail(message: str) -> None:
    typer.secho(message, fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1)


def _execute(coro: Coroutine[Any, Any, Any], detach_hint: Optional[Dict[str, str]] = None) -> Any:
    """Run ``coro`` to completion and turn hcpops errors into exit codes."""
    try:
        return asyncio.run(coro)
    except WorkflowsError as exc:
        _fail(str(exc))
    except KeyboardInterrupt:
        typer.echo("\nDetached. The execution keeps running remotely.", err=True)
        if detach_hint and detach_hint.get("command"):
            typer.echo(f"Check status with:\n  {detach_hint['command']}", err=True)
        raise typer.Exit(code=130)


def _parse_data(data: Optional[str], empty: Optional[dict] = None) -> Optional[dict]:
    if not data:
        return empty
    try:
        parsed = json.loads(data)
    except ValueError as exc:
        _fail(f"invalid --data JSON: {exc}")
    if not isinstance(parsed, dict):
        _fail("invalid --data JSON: expected an object")
    return parsed


def _status_hint(workflow: str, execution_id: str) -> str:
    return f"hcpops wf status {workflow} {execution_id}"


def _print_document(fmt: OutputFormat, data: Any) -> None:
    typer.echo(to_yaml(data) if fmt is OutputFormat.YAML else to_json(data))


@app.callback()
def main(
    ctx: typer.Context,
    project: Optional[str] = typer.Option(None, "--project", help="GCP project ID (env: HCPOPS_PROJECT)"),
    region: Optional[str] = typer.Option(None, "--region", help="GCP region (env: HCPOPS_REGION)"),
    output: Optional[str] = typer.Option(None, "--output", "-o", help="Output format: text, json, yaml"),
    config_path: Optional[Path] = typer.Option(
        None, "--config", help="Config file path (default: ~/.hcpops/config.yaml)"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """
    hcpops CLI entry point.

    Configuration priority: CLI flags > environment variables > config file.
    """
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING)
    try:
        config = load_config(str(config_path) if config_path else None)
    except WorkflowsError as exc:
        _fail(str(exc))
    if project:
        config.project = project
    if region:
        config.region = region
    if output:
        config.output = parse_format(output).value
    ctx.obj = config


def _config(ctx: typer.Context) -> HcpOpsConfig:
    config: HcpOpsConfig = ctx.obj
    try:
        config.require_location()
    except WorkflowsError as exc:
        _fail(str(exc))
    return config


# ----------------------------------------------------------------------
# wf


@wf_app.command("run")
def wf_run(
    ctx: typer.Context,
    workflow: str,
    data: Optional[str] = typer.Option(None, "--data", help="JSON data to pass as workflow arguments"),
    run_async: bool = typer.Option(
        False, "--async", help="Start workflow and return immediately without waiting"
    ),
    timeout: float = typer.Option(300.0, "--timeout", help="Seconds to wait for completion"),
) -> None:
    """
    Execute a Cloud Workflow by name.

    By default, waits for the workflow to complete and prints the result.
    Use --async to start the workflow and return immediately.

    Example:
        hcpops wf run get --data '{"resource_type": "pods", "namespace": "hypershift"}'
        hcpops wf run describe --data '{"resource_type": "pods", "name": "etcd-0"}' --async
    """
    config = _config(ctx)
    argument = _parse_data(data, empty={})
    fmt = parse_format(config.output)
    hint: Dict[str, str] = {}

    async def body() -> Optional[ExecutionRecord]:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        async with build_gateway(config) as gateway:
            typer.echo(f"Executing workflow: {workflow}", err=True)
            handle = await gateway.create_execution(workflow, argument, timeout=timeout)
            hint["command"] = _status_hint(workflow, handle.execution_id)
            typer.echo(f"Execution: {handle.execution_id}", err=True)

            if run_async:
                typer.echo(f"Workflow started. Check status with:\n  {hint['command']}", err=True)
                return None

            typer.echo("Waiting for completion... (Ctrl+C to detach)", err=True)
            try:
                return await gateway.tracker().wait_for_completion(
                    handle, max(0.0, deadline - loop.time())
                )
            except WorkflowsError:
                typer.echo(f"Check status with: {hint['command']}", err=True)
                raise

    record = _execute(body(), detach_hint=hint)
    if record is None:
        return

    duration = format_elapsed(record.duration) if record.duration is not None else "-"
    typer.echo(f"State: {record.state.value}  Duration: {duration}", err=True)
    if record.state is ExecutionState.FAILED:
        _fail(f"Error: {record.error}")
    typer.echo(render_result(fmt, record.result))


@wf_app.command("list")
def wf_list(
    ctx: typer.Context,
    workflow: Optional[str] = typer.Argument(None),
    limit: int = typer.Option(10, "--limit", help="Maximum number of executions to show"),
    timeout: float = typer.Option(30.0, "--timeout", help="Seconds to wait"),
) -> None:
    """
    List workflows or execution history.

    Without arguments, lists all deployed workflows. With a workflow name,
    lists recent executions of that workflow, newest first.

    Example:
        hcpops wf list
        hcpops wf list get --limit 5 -o json
    """
    config = _config(ctx)
    fmt = parse_format(config.output)

    async def body() -> Any:
        async with build_gateway(config) as gateway:
            if workflow:
                return await gateway.list_executions(workflow, limit, timeout=timeout)
            return await gateway.list_workflows(timeout=timeout)

    items = _execute(body())
    if workflow:
        if fmt is OutputFormat.TEXT:
            typer.echo(render_executions(items, workflow))
        else:
            _print_document(fmt, [{"id": r.handle.execution_id, **status_document(r)} for r in items])
    elif fmt is OutputFormat.TEXT:
        typer.echo(render_workflows(items))
    else:
        _print_document(fmt, items)


@wf_app.command("status")
def wf_status(
    ctx: typer.Context,
    workflow: str,
    execution_id: str,
    wait: bool = typer.Option(False, "--wait", help="Wait for the execution to complete"),
    timeout: float = typer.Option(300.0, "--timeout", help="Seconds to wait"),
) -> None:
    """
    Check the status of a workflow execution.

    Active executions are checked for pending callbacks; use 'hcpops wf
    resume' to trigger one.

    Example:
        hcpops wf status get abc123-def456
        hcpops wf status get abc123-def456 --wait
    """
    config = _config(ctx)
    fmt = parse_format(config.output)
    hint = {"command": _status_hint(workflow, execution_id)}

    async def body() -> ExecutionRecord:
        async with build_gateway(config) as gateway:
            handle = gateway.handle(workflow, execution_id)
            if wait:
                typer.echo(f"Waiting for execution {execution_id} to complete...", err=True)
                return await gateway.tracker().wait_for_completion(handle, timeout)

            record = await gateway.get_execution(handle, timeout=timeout)
            if record.state is ExecutionState.ACTIVE:
                try:
                    callbacks = await gateway.list_callbacks(record.handle, timeout=timeout)
                except WorkflowsError as exc:
                    logger.warning(f"Could not list callbacks for {execution_id}: {exc}")
                else:
                    record = record.model_copy(update={"callbacks": callbacks})
            return record

    record = _execute(body(), detach_hint=hint)
    _print_status(fmt, record, workflow)


def _print_status(fmt: OutputFormat, record: ExecutionRecord, workflow: str) -> None:
    if fmt is OutputFormat.TEXT:
        typer.echo(render_status(record, workflow))
    else:
        _print_document(fmt, status_document(record))


@wf_app.command("resume")
def wf_resume(
    ctx: typer.Context,
    workflow: str,
    execution_id: str,
    data: Optional[str] = typer.Option(None, "--data", help="JSON data to send with the callback"),
    wait: bool = typer.Option(False, "--wait", help="Wait for the execution to complete after resuming"),
    timeout: float = typer.Option(300.0, "--timeout", help="Seconds to wait"),
) -> None:
    """
    Resume a paused workflow by triggering its callback.

    Fetches the pending callback of the execution and triggers it with the
    provided data. Only the first pending callback is used.

    Example:
        hcpops wf resume approval-flow abc123-def456 --data '{"approved": true}'
        hcpops wf resume approval-flow abc123-def456 --data '{"approved": true}' --wait
    """
    config = _config(ctx)
    payload = _parse_data(data)
    fmt = parse_format(config.output)
    hint = {"command": _status_hint(workflow, execution_id)}

    async def body() -> Optional[ExecutionRecord]:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        async with build_gateway(config) as gateway:
            handle = gateway.handle(workflow, execution_id)
            callback = await gateway.resume(handle, payload, timeout=timeout)
            typer.echo(f"Triggered callback: {callback.method} {callback.url}", err=True)
            typer.echo("Callback triggered. Workflow resuming.", err=True)

            if not wait:
                typer.echo(f"\nCheck progress with:\n  {hint['command']}", err=True)
                return None

            typer.echo("Waiting for execution to complete...", err=True)
            return await gateway.tracker().wait_for_completion(
                handle, max(0.0, deadline - loop.time())
            )

    record = _execute(body(), detach_hint=hint)
    if record is not None:
        _print_status(fmt, record, workflow)


# ----------------------------------------------------------------------
# Convenience commands backed by the get / describe / logs workflows


def _run_workflow(config: HcpOpsConfig, workflow: str, argument: dict, timeout: float) -> Any:
    hint: Dict[str, str] = {}

    async def body() -> ExecutionRecord:
        async with build_gateway(config) as gateway:
            handle: ExecutionHandle = await gateway.create_execution(workflow, argument, timeout=timeout)
            hint["command"] = _status_hint(workflow, handle.execution_id)
            return await gateway.tracker().wait_for_completion(handle, timeout)

    record = _execute(body(), detach_hint=hint)
    if record.state is not ExecutionState.SUCCEEDED:
        _fail(f"workflow {record.state.value.lower()}: {record.error or 'no result'}")
    return record.result if record.result is not None else {}


@app.command("get")
def get_resources(
    ctx: typer.Context,
    resource_type: str,
    name: Optional[str] = typer.Argument(None),
    namespace: Optional[str] = typer.Option(None, "--namespace", "-n", help="Kubernetes namespace"),
    selector: Optional[str] = typer.Option(None, "--selector", "-l", help="Label selector (e.g. app=nginx)"),
    timeout: float = typer.Option(120.0, "--timeout", help="Seconds to wait for workflow completion"),
) -> None:
    """
    Get Kubernetes resources via the get workflow.

    Example:
        hcpops get pods -n hypershift
        hcpops get hc -n clusters
        hcpops get pods -n hypershift -l app=nginx
    """
    config = _config(ctx)
    resource_type = expand_resource_type(resource_type)
    argument: Dict[str, Any] = {"resource_type": resource_type}
    if namespace:
        argument["namespace"] = namespace
    if name:
        argument["name"] = name
    if selector:
        argument["label_selector"] = selector

    progress = f"Getting {resource_type}"
    if name:
        progress += f" {name}"
    if namespace:
        progress += f" (ns: {namespace})"
    if selector:
        progress += f" (selector: {selector})"
    typer.echo(progress, err=True)

    result = _run_workflow(config, "get", argument, timeout)
    fmt = parse_format(config.output)
    if fmt is not OutputFormat.TEXT:
        typer.echo(render_result(fmt, result))
    elif isinstance(result, dict):
        typer.echo(render_resource_table(result, resource_type))
    else:
        typer.echo(to_json(result))


@app.command("describe")
def describe_resource(
    ctx: typer.Context,
    resource_type: str,
    name: str,
    namespace: Optional[str] = typer.Option(None, "--namespace", "-n", help="Kubernetes namespace"),
    timeout: float = typer.Option(120.0, "--timeout", help="Seconds to wait for workflow completion"),
) -> None:
    """
    Describe a Kubernetes resource with related events.

    Example:
        hcpops describe pods my-pod -n hypershift
        hcpops describe nodes gke-node-abc123
    """
    config = _config(ctx)
    resource_type = expand_resource_type(resource_type)
    argument: Dict[str, Any] = {"resource_type": resource_type, "name": name}
    if namespace:
        argument["namespace"] = namespace

    typer.echo(
        f"Describing {resource_type} {name}" + (f" (ns: {namespace})" if namespace else ""),
        err=True,
    )
    result = _run_workflow(config, "describe", argument, timeout)
    fmt = parse_format(config.output)
    if fmt is not OutputFormat.TEXT:
        typer.echo(render_result(fmt, result))
    elif isinstance(result, dict):
        typer.echo(render_describe(result))
    else:
        typer.echo(to_json(result))


@app.command("logs")
def pod_logs(
    ctx: typer.Context,
    pod: str,
    namespace: Optional[str] = typer.Option(None, "--namespace", "-n", help="Kubernetes namespace (required)"),
    container: Optional[str] = typer.Option(None, "--container", "-c", help="Container name"),
    tail: int = typer.Option(100, "--tail", help="Number of log lines to retrieve"),
    previous: bool = typer.Option(False, "--previous", help="Get logs from previous container instance"),
    timeout: float = typer.Option(120.0, "--timeout", help="Seconds to wait for workflow completion"),
) -> None:
    """
    Get pod logs via the logs workflow.

    Example:
        hcpops logs kube-apiserver-abc123 -n clusters-test
        hcpops logs my-pod -n default -c my-container --tail 50 --previous
    """
    config = _config(ctx)
    if not namespace:
        _fail("--namespace is required for logs")

    argument: Dict[str, Any] = {"namespace": namespace, "pod": pod, "tail_lines": tail}
    if container:
        argument["container"] = container
    if previous:
        argument["previous"] = True

    typer.echo(
        f"Getting logs for {pod}" + (f" (container: {container})" if container else "") + f" in {namespace}",
        err=True,
    )
    if previous:
        typer.echo("Previous container instance", err=True)
    result = _run_workflow(config, "logs", argument, timeout)
    fmt = parse_format(config.output)
    if fmt is not OutputFormat.TEXT:
        typer.echo(render_result(fmt, result))
        return

    if isinstance(result, dict) and result.get("status") == "container_required":
        typer.echo(f"Error: pod {pod!r} has multiple containers; you must specify one:", err=True)
        for name in result.get("available_containers") or []:
            typer.echo(f"  - {name}", err=True)
        typer.echo(f"\nUse: hcpops logs {pod} -n {namespace} -c <container>", err=True)
        _fail("container name required")

    if isinstance(result, dict) and "logs" in result:
        typer.echo(result["logs"])
    else:
        typer.echo(to_json(result))


@app.command("version")
def version() -> None:
    """Print version information."""
    typer.echo(f"hcpops {__version__}")
    typer.echo(f"  python:  {platform.python_version()}")
    typer.echo(f"  os/arch: {platform.system().lower()}/{platform.machine()}")


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    app()
