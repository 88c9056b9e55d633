"""MCP server descriptors and converters.

Usage:
    servers = load_mcp_servers(Path("mcp.yaml"))

    # Codex engine (structured)
    records = [to_codex_format(server) for server in servers]

    # Codex engine (static config document)
    toml_text = render_codex_config(servers)
"""

from agentbase.mcp.config import (
    BaseMcpServerConfig,
    HttpMcpServerConfig,
    McpServerConfig,
    StdioMcpServerConfig,
    load_mcp_servers,
    parse_mcp_server,
    parse_mcp_servers,
)
from agentbase.mcp.converters import (
    build_codex_config,
    render_codex_config,
    sanitize_server_label,
    to_codex_format,
    to_codex_wire_format,
    to_tool_client_params,
    toml_value,
    unique_server_labels,
)

__all__ = [
    # Descriptors
    "BaseMcpServerConfig",
    "HttpMcpServerConfig",
    "McpServerConfig",
    "StdioMcpServerConfig",
    "load_mcp_servers",
    "parse_mcp_server",
    "parse_mcp_servers",
    # Converters
    "build_codex_config",
    "render_codex_config",
    "sanitize_server_label",
    "to_codex_format",
    "to_codex_wire_format",
    "to_tool_client_params",
    "toml_value",
    "unique_server_labels",
]
