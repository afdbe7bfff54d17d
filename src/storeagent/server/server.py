"""MCP server implementation using FastMCP.

Exposes the assistant and its metrics document as Model Context Protocol
tools. One metrics store and one tool gateway are shared by every call.
"""

import json
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from mcp.server.fastmcp import FastMCP

from storeagent.agent.factory import (
    create_assistant,
    create_gateway,
    create_metrics_store,
    resolve_assistant_config,
)
from storeagent.config import CLIOverrides, ConfigLoader
from storeagent.exceptions import StoreAgentError
from storeagent.gateway.base import ToolGateway
from storeagent.metrics.store import MetricsStore

# Configure logging (CRITICAL: never use print() in stdio server)
logger = logging.getLogger(__name__)


def create_server(
    config_file: Path | None = None,
    *,
    metrics: MetricsStore | None = None,
    gateway: ToolGateway | None = None,
) -> FastMCP:
    """Create and configure the MCP server.

    Args:
        config_file: Optional path to storeagent.yaml configuration file.
        metrics: Store to report on; created from the config when omitted.
        gateway: Tool gateway; created from ``mcp_server`` when omitted.

    Returns:
        Configured FastMCP server instance.

    Raises:
        ConfigurationError: If the configuration file is invalid.
    """
    file_config = ConfigLoader.load_config(config_file)
    store = metrics if metrics is not None else create_metrics_store(file_config)
    shared: dict[str, ToolGateway] = {}
    if gateway is not None:
        shared["gateway"] = gateway

    def _gateway() -> ToolGateway:
        if "gateway" not in shared:
            shared["gateway"] = create_gateway(file_config)
        return shared["gateway"]

    @asynccontextmanager
    async def lifespan(_server: FastMCP) -> AsyncIterator[None]:
        try:
            yield
        finally:
            if "gateway" in shared:
                await shared["gateway"].close()

    mcp = FastMCP("storeagent", lifespan=lifespan)

    @mcp.tool()
    async def ask_assistant(
        prompt: str,
        wants_chart: bool = False,
        chart_type: str = "bar",
        chart_title: str | None = None,
        category: str | None = None,
    ) -> str:
        """Ask the commerce assistant a question.

        The assistant calls the store's data tools as needed and checks the
        numbers in its answer against what the tools returned.

        Args:
            prompt: The question to answer
            wants_chart: Also build a bar/line chart from the data (default: false)
            chart_type: "bar" or "line" (default: "bar")
            chart_title: Optional chart title
            category: Assistant specialisation: products, customers, orders or promotions

        Returns:
            JSON with answer, chart, data, history and turn_id.
        """
        try:
            llm_config, settings = resolve_assistant_config(
                file_config, CLIOverrides(category=category)
            )
            agent = create_assistant(_gateway(), store, llm_config, settings)
            result = await agent.ask(
                prompt,
                wants_chart=wants_chart,
                chart_type=chart_type,
                chart_title=chart_title,
            )
        except StoreAgentError as e:
            logger.warning("ask_assistant failed: %s", e)
            return f"Error: {e}"

        return json.dumps(result.model_dump(mode="json", by_alias=True), indent=2)

    @mcp.tool()
    async def get_metrics_summary(recent_limit: int | None = None) -> str:
        """Get the assistant's tool-call metrics and validation summary.

        Args:
            recent_limit: Number of recent events and anomalies to include (default: 50)

        Returns:
            JSON document with totals, byTool, rates, recentEvents, anomalies and assistant.
        """
        if recent_limit is not None and recent_limit < 0:
            return "Error: recent_limit must not be negative"
        summary = store.get_summary(recent_limit)
        return json.dumps(summary.to_document(), indent=2)

    return mcp


def run_server(config_file: Path | None = None) -> None:
    """Run the MCP server with stdio transport.

    Args:
        config_file: Optional path to storeagent.yaml configuration file.
    """
    mcp = create_server(config_file)
    mcp.run(transport="stdio")
