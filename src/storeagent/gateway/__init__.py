"""Tool invocation gateways."""

from storeagent.gateway.base import ToolGateway
from storeagent.gateway.mcp import MCPToolGateway
from storeagent.gateway.normalize import coerce_to_schema, normalize_query_args, normalize_tool_args

__all__ = [
    "MCPToolGateway",
    "ToolGateway",
    "coerce_to_schema",
    "normalize_query_args",
    "normalize_tool_args",
]
