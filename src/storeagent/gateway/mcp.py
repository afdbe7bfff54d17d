"""MCP tool gateway.

Keeps one MCP client session open to the tool server, over stdio (command)
or SSE (url), for the gateway's lifetime.
"""

from __future__ import annotations

import asyncio
import logging
import shlex
from contextlib import AsyncExitStack
from typing import TYPE_CHECKING, Any

from mcp import ClientSession
from mcp.client.sse import sse_client
from mcp.client.stdio import StdioServerParameters, stdio_client

from storeagent.exceptions import GatewayError, ToolInvocationError
from storeagent.gateway.base import ToolGateway
from storeagent.models.assistant import ToolDescriptor

if TYPE_CHECKING:
    from storeagent.config.loader import MCPServerConfig

logger = logging.getLogger(__name__)


def _error_text(result: dict[str, Any]) -> str:
    texts = [
        item.get("text", "")
        for item in result.get("content") or []
        if isinstance(item, dict) and item.get("type") == "text"
    ]
    return " ".join(t for t in texts if t) or "Tool reported an error"


class MCPToolGateway(ToolGateway):
    """Tool gateway speaking the Model Context Protocol."""

    def __init__(self, config: MCPServerConfig) -> None:
        """Initialize the gateway (no connection is made yet).

        Args:
            config: MCP server configuration with either command or url set.

        Raises:
            GatewayError: If neither command nor url is configured.
        """
        if not (config.command and config.command.strip()) and not (
            config.url and config.url.strip()
        ):
            msg = "MCP server config needs either 'command' or 'url'"
            raise GatewayError(msg)
        self._config = config
        self._stack: AsyncExitStack | None = None
        self._session: ClientSession | None = None
        self._connect_lock = asyncio.Lock()

    @property
    def connected(self) -> bool:
        """Whether a session is open."""
        return self._session is not None

    async def connect(self) -> None:
        """Open the transport and initialize the MCP session (idempotent).

        Raises:
            GatewayError: If the server cannot be started or reached.
        """
        async with self._connect_lock:
            if self._session is not None:
                return
            stack = AsyncExitStack()
            try:
                if self._config.command:
                    parts = shlex.split(self._config.command)
                    params = StdioServerParameters(
                        command=parts[0],
                        args=parts[1:],
                        env=self._config.env,
                        cwd=self._config.cwd,
                    )
                    read_stream, write_stream = await stack.enter_async_context(
                        stdio_client(params)
                    )
                else:
                    read_stream, write_stream = await stack.enter_async_context(
                        sse_client(self._config.url, headers=self._config.headers)
                    )
                session = await stack.enter_async_context(
                    ClientSession(read_stream, write_stream)
                )
                await session.initialize()
            except Exception as e:
                await stack.aclose()
                msg = f"Failed to connect to MCP server: {e}"
                raise GatewayError(msg) from e

            self._stack = stack
            self._session = session
            logger.info("Connected to MCP server")

    async def _require_session(self) -> ClientSession:
        if self._session is None:
            await self.connect()
        if self._session is None:
            msg = "MCP session is not available after connecting"
            raise GatewayError(msg)
        return self._session

    async def list_tools(self) -> list[ToolDescriptor]:
        """Fetch the tool catalog from the server."""
        session = await self._require_session()
        try:
            result = await session.list_tools()
        except Exception as e:
            msg = f"Failed to list MCP tools: {e}"
            raise GatewayError(msg) from e

        return [
            ToolDescriptor(
                name=tool.name,
                description=tool.description,
                input_schema=tool.inputSchema or {},
            )
            for tool in result.tools
        ]

    async def call_tool(self, name: str, arguments: dict[str, Any]) -> dict[str, Any]:
        """Call a tool and return the MCP result as a plain dict."""
        session = await self._require_session()
        try:
            result = await session.call_tool(name, arguments)
        except Exception as e:
            msg = f"Tool '{name}' failed: {e}"
            raise ToolInvocationError(msg) from e

        payload = result.model_dump(mode="json", by_alias=True, exclude_none=True)
        if result.isError:
            msg = f"Tool '{name}' returned an error: {_error_text(payload)}"
            raise ToolInvocationError(msg, result=payload)
        return payload

    async def close(self) -> None:
        """Close the session and stop the server process."""
        if self._stack is not None:
            stack, self._stack, self._session = self._stack, None, None
            await stack.aclose()
