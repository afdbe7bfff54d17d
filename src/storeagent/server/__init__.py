"""MCP server for the storeagent assistant.

Exposes the assistant and its metrics summary via Model Context Protocol
for integration with AI clients and dashboards.
"""

from storeagent.server.server import create_server, run_server

__all__ = ["create_server", "run_server"]
