"""
Terminal renderers for AWS CLI JSON.

- table: list responses as aligned columns (nested objects flattened)
- kv: a single object as coloured ``key: value`` lines
- tree: pretty-printed JSON
"""

from __future__ import annotations

import json
from typing import Any

import click

# List wrappers unwrapped automatically, in priority order
WRAPPER_KEYS = (
    "repositories",
    "Functions",
    "StackSummaries",
    "pipelines",
    "pipelineExecutionSummaries",
    "pullRequestIds",
)

MISSING = "-"
NO_DATA = "No data or invalid format"


def _cell(value: Any) -> str:
    if value is None:
        return MISSING
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, dict)):
        return json.dumps(value, separators=(",", ":"), default=str)
    return str(value)


def flatten_object(obj: dict[str, Any], prefix: str = "") -> dict[str, str]:
    """Flatten nested objects into dotted keys; lists become compact JSON."""
    flat: dict[str, str] = {}
    for key, value in obj.items():
        name = f"{prefix}.{key}" if prefix else str(key)
        if isinstance(value, dict) and value:
            flat.update(flatten_object(value, name))
        else:
            flat[name] = _cell(value)
    return flat


def extract_records(data: Any) -> list[dict[str, Any]]:
    """Pull the row list out of an AWS response."""
    if isinstance(data, dict):
        for key in WRAPPER_KEYS:
            if isinstance(data.get(key), list):
                data = data[key]
                break
        else:
            lists = [v for v in data.values() if isinstance(v, list)]
            if len(data) == 1 and len(lists) == 1:
                data = lists[0]
            else:
                return [data]

    if isinstance(data, list):
        return [item if isinstance(item, dict) else {"value": item} for item in data]
    return [{"value": data}]


def render_table(data: Any) -> str:
    rows = [flatten_object(record) for record in extract_records(data)]
    if not rows:
        return NO_DATA

    headers: list[str] = []
    for row in rows:
        for key in row:
            if key not in headers:
                headers.append(key)
    if not headers:
        return NO_DATA

    table = [headers, ["*" * len(h) for h in headers]]
    table += [[row.get(h, MISSING) for h in headers] for row in rows]
    widths = [max(len(line[i]) for line in table) for i in range(len(headers))]

    lines = []
    for line in table:
        cells = [cell.ljust(width) for cell, width in zip(line, widths)]
        lines.append("  ".join(cells).rstrip())
    return "\n".join(lines)


def render_kv(data: Any, color: bool = True) -> str:
    """Render an object as ``key: value`` lines; nested values as JSON."""
    if not isinstance(data, dict):
        raise ValueError("Not an object")
    lines = []
    for key, value in data.items():
        label = click.style(str(key), fg="green") if color else str(key)
        lines.append(f"{label}: {_cell(value) if value is not None else 'null'}")
    return "\n".join(lines)


def render_tree(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False, default=str)
