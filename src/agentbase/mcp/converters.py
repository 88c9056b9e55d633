"""Converters from unified MCP descriptors to downstream formats.

* ``to_codex_format``: structured record handed to the Codex engine.
* ``to_codex_wire_format``: camelCase JSON sent to the remote execution service.
* ``to_tool_client_params``: parameters for a tool-calling MCP client
  (conversational agents).
* ``render_codex_config``: TOML ``[mcp_servers.*]`` blocks for engines that
  read a static config document.
"""

from __future__ import annotations

import json
import re
from typing import Any, Iterable, Optional, Sequence

from agentbase.mcp.config import HttpMcpServerConfig, StdioMcpServerConfig

McpServer = StdioMcpServerConfig | HttpMcpServerConfig

DEFAULT_SERVER_LABEL = "codex_server"
INJECTED_MARKER = "# Injected by agentbase"

_LABEL_INVALID_RE = re.compile(r"[^a-z0-9_-]")


def _unsupported(server: object) -> TypeError:
    return TypeError(f"Unsupported MCP server descriptor: {type(server).__name__}")


def _drop_none(record: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in record.items() if value is not None}


def to_codex_format(server: McpServer) -> dict[str, Any]:
    """Convert a descriptor into the Codex engine's MCP server record."""
    record: dict[str, Any] = {
        "name": server.name,
        "startup_timeout_sec": server.startup_timeout_sec,
        "tool_timeout_sec": server.tool_timeout_sec,
        "allowed_tools": list(server.allowed_tools) if server.allowed_tools is not None else None,
    }

    if isinstance(server, StdioMcpServerConfig):
        record.update(
            command=server.command,
            args=list(server.args),
            env=dict(server.env),
            cwd=server.cwd,
        )
    elif isinstance(server, HttpMcpServerConfig):
        record.update(
            url=server.url,
            bearer_token=server.bearer_token,
            headers=dict(server.headers),
        )
    else:
        raise _unsupported(server)

    return _drop_none(record)


def to_codex_wire_format(server: McpServer) -> dict[str, Any]:
    """Serialize a descriptor for the remote ``/execute`` request body."""
    if not isinstance(server, (StdioMcpServerConfig, HttpMcpServerConfig)):
        raise _unsupported(server)
    return server.model_dump(mode="json", by_alias=True, exclude_none=True)


def to_tool_client_params(server: McpServer) -> dict[str, Any]:
    """Build connection parameters for a tool-calling MCP client.

    Stdio servers map to process parameters; HTTP servers map to SSE parameters
    with the bearer token folded into an ``Authorization`` header.
    """
    if isinstance(server, StdioMcpServerConfig):
        return _drop_none(
            {
                "transport": "stdio",
                "name": server.name,
                "command": server.command,
                "args": list(server.args),
                "env": dict(server.env) or None,
                "cwd": server.cwd,
                "cache_tools_list": server.cache_tools_list,
                "timeout": server.tool_timeout_sec,
                "client_session_timeout_seconds": server.startup_timeout_sec,
                "allowed_tools": server.allowed_tools,
            }
        )

    if isinstance(server, HttpMcpServerConfig):
        headers = dict(server.headers)
        if server.bearer_token:
            headers["Authorization"] = f"Bearer {server.bearer_token}"
        return _drop_none(
            {
                "transport": "sse",
                "name": server.name,
                "url": server.url,
                "headers": headers or None,
                "cache_tools_list": server.cache_tools_list,
                "timeout": server.tool_timeout_sec,
                "client_session_timeout_seconds": (
                    server.client_session_timeout_sec or server.startup_timeout_sec
                ),
                "allowed_tools": server.allowed_tools,
            }
        )

    raise _unsupported(server)


def sanitize_server_label(name: str) -> str:
    """Lowercase a server name and replace characters outside ``[a-z0-9_-]``."""
    return _LABEL_INVALID_RE.sub("_", name.lower())


def unique_server_labels(names: Iterable[str]) -> list[str]:
    """Sanitize names and suffix collisions with ``_1``, ``_2``, … in order."""
    used: set[str] = set()
    labels: list[str] = []
    for name in names:
        base = sanitize_server_label(name) or DEFAULT_SERVER_LABEL
        candidate = base
        counter = 1
        while candidate in used:
            candidate = f"{base}_{counter}"
            counter += 1
        used.add(candidate)
        labels.append(candidate)
    return labels


def _toml_string(value: str) -> str:
    # JSON string escaping is a valid TOML basic string.
    return json.dumps(value, ensure_ascii=False)


def _toml_key(key: str) -> str:
    if re.fullmatch(r"[A-Za-z0-9_-]+", key):
        return key
    return _toml_string(key)


def _toml_number(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else repr(float(value))


def toml_value(value: Any) -> str:
    """Render a scalar, list or mapping as an inline TOML value."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return _toml_number(value)
    if isinstance(value, str):
        return _toml_string(value)
    if isinstance(value, dict):
        pairs = ", ".join(f"{_toml_key(str(k))} = {toml_value(v)}" for k, v in value.items())
        return "{" + pairs + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(toml_value(item) for item in value) + "]"
    raise TypeError(f"Cannot render {type(value).__name__} as TOML")


def _render_server_block(label: str, server: McpServer) -> str:
    lines: list[str] = [f"[mcp_servers.{label}]"]
    tables: list[tuple[str, dict[str, str]]] = []

    if isinstance(server, StdioMcpServerConfig):
        lines.append(f"command = {_toml_string(server.command)}")
        if server.args:
            lines.append(f"args = [{', '.join(_toml_string(arg) for arg in server.args)}]")
        if server.cwd:
            lines.append(f"cwd = {_toml_string(server.cwd)}")
        if server.env:
            tables.append(("env", server.env))
    elif isinstance(server, HttpMcpServerConfig):
        lines.append(f"url = {_toml_string(server.url)}")
        if server.bearer_token:
            lines.append(f"bearer_token = {_toml_string(server.bearer_token)}")
        if server.headers:
            tables.append(("headers", server.headers))
    else:
        raise _unsupported(server)

    if server.startup_timeout_sec is not None:
        lines.append(f"startup_timeout_sec = {_toml_number(server.startup_timeout_sec)}")
    if server.tool_timeout_sec is not None:
        lines.append(f"tool_timeout_sec = {_toml_number(server.tool_timeout_sec)}")
    if server.allowed_tools is not None:
        tools = ", ".join(_toml_string(tool) for tool in server.allowed_tools)
        lines.append(f"enabled_tools = [{tools}]")

    for table_name, mapping in tables:
        lines.extend(["", f"[mcp_servers.{label}.{table_name}]"])
        for key, value in mapping.items():
            lines.append(f"{_toml_key(key)} = {_toml_string(value)}")

    return "\n".join(lines) + "\n"


def render_codex_config(servers: Sequence[McpServer]) -> str:
    """Render descriptors as Codex ``config.toml`` blocks, one per server."""
    labels = unique_server_labels(server.name for server in servers)
    return "\n".join(
        _render_server_block(label, server) for label, server in zip(labels, servers)
    )


def build_codex_config(
    base: str = "",
    *,
    model: Optional[str] = None,
    reasoning_effort: Optional[str] = None,
    servers: Sequence[McpServer] = (),
) -> str:
    """Merge injected model and MCP settings into a base Codex config document.

    Top-level keys must precede the first table in TOML, so injected keys are
    written first and any base definitions of the same keys are dropped. MCP
    server tables are appended after the base document.
    """
    if not model and not reasoning_effort and not servers:
        return base

    overrides: dict[str, str] = {}
    if model:
        overrides["model"] = model
    if reasoning_effort:
        overrides["model_reasoning_effort"] = reasoning_effort

    header = [INJECTED_MARKER]
    header.extend(f"{key} = {_toml_string(value)}" for key, value in overrides.items())

    kept: list[str] = []
    in_tables = False
    for line in base.splitlines():
        stripped = line.strip()
        if stripped.startswith("["):
            in_tables = True
        if not in_tables and "=" in stripped and not stripped.startswith("#"):
            key = stripped.split("=", 1)[0].strip()
            if key in overrides:
                continue
        kept.append(line)

    parts = ["\n".join(header) + "\n"]
    body = "\n".join(kept).strip("\n")
    if body:
        parts.append(body + "\n")
    if servers:
        parts.append(render_codex_config(servers))
    return "\n".join(parts)


__all__ = [
    "DEFAULT_SERVER_LABEL",
    "build_codex_config",
    "render_codex_config",
    "sanitize_server_label",
    "to_codex_format",
    "to_codex_wire_format",
    "to_tool_client_params",
    "toml_value",
    "unique_server_labels",
]
