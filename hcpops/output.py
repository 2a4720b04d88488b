"""Formatting utilities for CLI output."""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, Optional, Union

import yaml
from pydantic import BaseModel
from rich.console import Console
from rich.table import Table

# wide enough that rows are never wrapped or cropped
_TABLE_WIDTH = 4096


class OutputFormat(str, Enum):
    TEXT = "text"
    JSON = "json"
    YAML = "yaml"


def parse_format(value: Optional[str]) -> OutputFormat:
    """Parse ``value`` into an :class:`OutputFormat`, defaulting to text."""
    try:
        return OutputFormat((value or "").lower())
    except ValueError:
        return OutputFormat.TEXT


def _jsonable(data: Any) -> Any:
    if isinstance(data, BaseModel):
        return data.model_dump(mode="json")
    if isinstance(data, (list, tuple)):
        return [_jsonable(item) for item in data]
    if isinstance(data, dict):
        return {key: _jsonable(value) for key, value in data.items()}
    if isinstance(data, datetime):
        return data.isoformat()
    if isinstance(data, timedelta):
        return format_elapsed(data)
    if isinstance(data, Enum):
        return data.value
    return data


def to_json(data: Any) -> str:
    return json.dumps(_jsonable(data), indent=2)


def to_yaml(data: Any) -> str:
    return yaml.safe_dump(_jsonable(data), sort_keys=False).rstrip("\n")


def render_result(fmt: OutputFormat, data: Any) -> str:
    """Render an execution result; text output falls back to JSON."""
    if fmt is OutputFormat.YAML:
        return to_yaml(data)
    return to_json(data)


def new_table(*headers: str) -> Table:
    """Borderless, kubectl-style table: two spaces between columns."""
    table = Table(box=None, show_header=True, pad_edge=False, header_style="")
    for header in headers:
        table.add_column(header, no_wrap=True)
    return table


def render_table(table: Table) -> str:
    """Render ``table`` to plain text without markup, colour or wrapping."""
    console = Console(
        width=_TABLE_WIDTH,
        color_system=None,
        markup=False,
        emoji=False,
        highlight=False,
    )
    with console.capture() as capture:
        console.print(table)
    return "\n".join(line.rstrip() for line in capture.get().splitlines())


def format_duration(delta: timedelta) -> str:
    """Coarse human-readable age: ``42s``, ``5m``, ``3h`` or ``2d``."""
    seconds = int(delta.total_seconds())
    if seconds < 60:
        return f"{seconds}s"
    if seconds < 3600:
        return f"{seconds // 60}m"
    if seconds < 86400:
        return f"{seconds // 3600}h"
    return f"{seconds // 86400}d"


def format_elapsed(delta: timedelta) -> str:
    """Execution duration rounded to the millisecond, e.g. ``1m2.5s``."""
    millis = round(delta.total_seconds() * 1000)
    minutes, millis = divmod(millis, 60000)
    seconds = f"{millis / 1000:.3f}".rstrip("0").rstrip(".") or "0"
    if minutes:
        return f"{minutes}m{seconds}s"
    return f"{seconds}s"


def age(timestamp: Union[str, datetime, None], now: Optional[datetime] = None) -> str:
    """Format a timestamp as time elapsed since then."""
    if not timestamp:
        return "<unknown>"
    if isinstance(timestamp, str):
        try:
            parsed = datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
        except ValueError:
            return timestamp
    else:
        parsed = timestamp
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return format_duration((now or datetime.now(timezone.utc)) - parsed)


def as_map(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def get_string(data: Dict[str, Any], key: str) -> str:
    value = data.get(key)
    return "" if value is None else str(value)


def get_int(data: Dict[str, Any], key: str) -> int:
    value = data.get(key)
    if isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return int(value)
    return 0
