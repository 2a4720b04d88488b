"""Tests for CLI formatting helpers."""

from datetime import datetime, timedelta, timezone

import yaml
from rich.table import Table

from hcpops.cli_utils.status import args_summary, render_executions, render_status, status_document
from hcpops.models import (
    CallbackDescriptor,
    ExecutionHandle,
    ExecutionRecord,
    ExecutionState,
)
from hcpops.output import (
    OutputFormat,
    age,
    format_duration,
    format_elapsed,
    new_table,
    parse_format,
    render_result,
    render_table,
)

NAME = "projects/p/locations/r/workflows/approval/executions/abc"
START = datetime(2024, 1, 1, 10, 0, 0, tzinfo=timezone.utc)


def test_table_aligns_columns():
    table = new_table("NAME", "AGE")
    table.add_row("api-server", "5m")
    table.add_row("etcd", "12d")
    assert isinstance(table, Table)
    assert render_table(table).splitlines() == [
        "NAME        AGE",
        "api-server  5m",
        "etcd        12d",
    ]


def test_table_cells_are_plain_text():
    table = new_table("REASON", "MESSAGE")
    table.add_row("[bold]Failed[/bold]", "pulling image :warning: " + "x" * 300)
    lines = render_table(table).splitlines()
    assert lines[1].startswith("[bold]Failed[/bold]  pulling image :warning: ")
    assert lines[1].endswith("x" * 300)
    assert "\x1b[" not in lines[0]


def test_format_duration_buckets():
    assert format_duration(timedelta(seconds=42)) == "42s"
    assert format_duration(timedelta(minutes=5, seconds=59)) == "5m"
    assert format_duration(timedelta(hours=3)) == "3h"
    assert format_duration(timedelta(days=2, hours=1)) == "2d"


def test_format_elapsed():
    assert format_elapsed(timedelta(seconds=1.5)) == "1.5s"
    assert format_elapsed(timedelta(seconds=123)) == "2m3s"
    assert format_elapsed(timedelta(seconds=20)) == "20s"
    assert format_elapsed(timedelta(0)) == "0s"


def test_age_handles_strings_and_missing_values():
    now = START + timedelta(minutes=7)
    assert age("2024-01-01T10:00:00Z", now=now) == "7m"
    assert age(START, now=now) == "7m"
    assert age(None) == "<unknown>"
    assert age("yesterday") == "yesterday"


def test_render_result_formats():
    data = {"items": [], "when": START}
    assert parse_format("YAML") is OutputFormat.YAML
    assert parse_format("xml") is OutputFormat.TEXT
    assert yaml.safe_load(render_result(OutputFormat.YAML, data)) == {
        "items": [],
        "when": "2024-01-01T10:00:00+00:00",
    }
    assert render_result(OutputFormat.TEXT, {"a": 1}) == '{\n  "a": 1\n}'


def test_args_summary():
    assert args_summary({"resource_type": "pods", "namespace": "hypershift", "count": 3}) == (
        "pods -n hypershift (3 items)"
    )
    assert args_summary({"pod": "web-0", "logs": "a\nb\n"}) == "web-0 (2 lines)"
    assert args_summary(["not", "a", "map"]) == "ok"


def test_status_shows_callbacks_and_resume_hint():
    handle = ExecutionHandle.parse(NAME)
    record = ExecutionRecord(
        handle=handle,
        state=ExecutionState.ACTIVE,
        start_time=START,
        callbacks=[CallbackDescriptor(name=f"{NAME}/callbacks/cb1", url="https://x/cb1")],
    )

    text = render_status(record, "approval")
    assert "ACTIVE (waiting on callback)" in text
    assert "  POST https://x/cb1" in text
    assert "hcpops wf resume approval abc" in text
    assert "Use -o json" not in text
    assert status_document(record)["callbacks"][0]["url"] == "https://x/cb1"


def test_status_document_for_finished_execution():
    record = ExecutionRecord(
        handle=ExecutionHandle.parse(NAME),
        state=ExecutionState.SUCCEEDED,
        start_time=START,
        end_time=START + timedelta(seconds=2),
        result={"items": []},
    )
    document = status_document(record)
    assert document["state"] == "SUCCEEDED"
    assert document["duration"] == "2s"
    assert "callbacks" not in document
    assert "Use -o json for full result." in render_status(record, "approval")


def test_render_executions_marks_running():
    handle = ExecutionHandle.parse(NAME)
    running = ExecutionRecord(handle=handle, state=ExecutionState.ACTIVE, start_time=START)
    text = render_executions([running], "approval")
    assert text.splitlines()[0].split() == ["ID", "STATE", "STARTED", "DURATION"]
    assert "running" in text
    assert render_executions([], "approval") == "No executions found for workflow 'approval'."
