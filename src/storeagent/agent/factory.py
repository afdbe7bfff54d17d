"""Wiring of the assistant from resolved configuration.

Shared by the CLI and the MCP server so both build the agent the same way.
"""

import logging

from storeagent.agent.assistant import AssistantAgent
from storeagent.config.loader import CLIOverrides, ConfigLoader, FileConfig
from storeagent.gateway.base import ToolGateway
from storeagent.gateway.mcp import MCPToolGateway
from storeagent.metrics.store import MetricsStore
from storeagent.models.config import AgentSettings, LLMConfig
from storeagent.planning.planner import LLMPlanGenerator
from storeagent.providers.factory import create_provider

logger = logging.getLogger(__name__)


def create_gateway(file_config: FileConfig | None) -> MCPToolGateway:
    """Create the MCP gateway described by the ``mcp_server`` section.

    Raises:
        ConfigurationError: If no MCP server is configured.
    """
    return MCPToolGateway(ConfigLoader.resolve_mcp_server(file_config))


def create_metrics_store(file_config: FileConfig | None) -> MetricsStore:
    """Create the process metrics store with the configured bounds."""
    return MetricsStore(file_config.metrics if file_config else None)


def create_assistant(
    gateway: ToolGateway,
    metrics: MetricsStore,
    llm_config: LLMConfig,
    settings: AgentSettings,
) -> AssistantAgent:
    """Create an assistant on top of an existing gateway and store.

    Args:
        gateway: Gateway to the tool server.
        metrics: Shared metrics store.
        llm_config: Planner model configuration.
        settings: Loop settings; ``settings.category`` selects the role prompt.

    Returns:
        Configured AssistantAgent.

    Raises:
        ProviderError: If the provider cannot be created.
    """
    provider = create_provider(llm_config)
    planner = LLMPlanGenerator(provider, category=settings.category)
    logger.info(
        "Assistant using %s/%s (max %d steps)",
        llm_config.provider,
        llm_config.model,
        settings.max_steps,
    )
    return AssistantAgent(gateway, planner, metrics, settings)


def resolve_assistant_config(
    file_config: FileConfig | None, cli_overrides: CLIOverrides | None = None
) -> tuple[LLMConfig, AgentSettings]:
    """Resolve planner model and loop settings (CLI > file > defaults)."""
    return (
        ConfigLoader.resolve_llm_config(file_config, cli_overrides),
        ConfigLoader.resolve_agent_settings(file_config, cli_overrides),
    )
