"""Unified MCP server descriptors.

A single descriptor type serves both agent kinds: the converters in
:mod:`agentbase.mcp.converters` translate it into whatever the downstream
consumer expects. The variant is always chosen by the explicit ``type`` tag.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Annotated, Any, Dict, Literal, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel


class BaseMcpServerConfig(BaseModel):
    """Fields shared by every MCP server descriptor."""

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
        extra="forbid",
    )

    name: str = Field(description="Unique name for this MCP server")
    cache_tools_list: bool = Field(
        default=False,
        description="Cache the list of tools provided by this server",
    )
    allowed_tools: Optional[list[str]] = Field(
        default=None,
        description="Restrict the tools exposed to the agent",
    )
    startup_timeout_sec: Optional[float] = Field(
        default=None,
        description="Timeout for server startup in seconds",
        gt=0,
    )
    tool_timeout_sec: Optional[float] = Field(
        default=None,
        description="Timeout for individual tool calls in seconds",
        gt=0,
    )


class StdioMcpServerConfig(BaseMcpServerConfig):
    """Locally spawned MCP server speaking over stdin/stdout."""

    type: Literal["stdio"] = "stdio"
    command: str = Field(description="Executable to spawn (e.g. npx, uvx, python)")
    args: list[str] = Field(default_factory=list, description="Command arguments")
    env: Dict[str, str] = Field(default_factory=dict, description="Environment for the process")
    cwd: Optional[str] = Field(default=None, description="Working directory for the process")


class HttpMcpServerConfig(BaseMcpServerConfig):
    """Remote MCP server reached over HTTP."""

    type: Literal["http"] = "http"
    url: str = Field(description="MCP endpoint URL")
    bearer_token: Optional[str] = Field(default=None, description="Bearer token, if required")
    headers: Dict[str, str] = Field(default_factory=dict, description="Extra HTTP headers")
    client_session_timeout_sec: Optional[float] = Field(
        default=None,
        description="Client session timeout in seconds",
        gt=0,
    )


McpServerConfig = Annotated[
    Union[StdioMcpServerConfig, HttpMcpServerConfig],
    Field(discriminator="type"),
]

_SERVER_ADAPTER: TypeAdapter[McpServerConfig] = TypeAdapter(McpServerConfig)
_SERVER_LIST_ADAPTER: TypeAdapter[list[McpServerConfig]] = TypeAdapter(list[McpServerConfig])


def parse_mcp_server(data: Any) -> StdioMcpServerConfig | HttpMcpServerConfig:
    """Validate one descriptor payload; ``type`` must be present."""
    return _SERVER_ADAPTER.validate_python(data)


def parse_mcp_servers(data: Any) -> list[StdioMcpServerConfig | HttpMcpServerConfig]:
    """Validate a list of descriptor payloads."""
    return _SERVER_LIST_ADAPTER.validate_python(data)


def load_mcp_servers(path: Path) -> list[StdioMcpServerConfig | HttpMcpServerConfig]:
    """Load descriptors from a JSON or YAML file.

    The document may be a bare list or a mapping with an ``mcpServers`` /
    ``mcp_servers`` key.
    """
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".json":
        payload = json.loads(text)
    else:
        payload = yaml.safe_load(text)

    if payload is None:
        return []
    if isinstance(payload, dict):
        payload = payload.get("mcpServers", payload.get("mcp_servers", []))
    if not isinstance(payload, list):
        raise ValueError(f"{path} must contain a list of MCP server descriptors")
    return parse_mcp_servers(payload)


__all__ = [
    "BaseMcpServerConfig",
    "HttpMcpServerConfig",
    "McpServerConfig",
    "StdioMcpServerConfig",
    "load_mcp_servers",
    "parse_mcp_server",
    "parse_mcp_servers",
]
