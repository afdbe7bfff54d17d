"""Configuration file loader.

Handles discovery, parsing, environment interpolation and merging of the
YAML configuration file with CLI overrides.
"""

import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, SecretStr, ValidationError, model_validator

from storeagent.exceptions import ConfigurationError
from storeagent.models.config import AgentSettings, LLMConfig, MetricsConfig
from storeagent.providers.factory import ProviderRegistry

# Pattern matches ${VAR} or ${VAR:-default}
ENV_VAR_PATTERN = re.compile(r"\$\{([^}:-]+)(?::-([^}]*))?\}")

# Default config file names in priority order
CONFIG_FILE_NAMES = ["storeagent.yaml", ".storeagent.yaml", "storeagent.yml", ".storeagent.yml"]

DEFAULT_PROVIDER = "gemini"
DEFAULT_MODEL = "gemini-2.5-flash"


class MCPServerConfig(BaseModel):
    """Connection settings for the MCP tool server.

    Supports two connection methods:
    - stdio: Command-based connection (e.g., "node ../medusa-mcp/dist/index.js")
    - SSE: URL-based connection (e.g., "http://localhost:8080/sse")
    """

    # Stdio connection (command-based)
    command: str | None = None
    cwd: str | None = None
    env: dict[str, str] | None = None

    # SSE connection (URL-based)
    url: str | None = None
    headers: dict[str, str] | None = None

    @model_validator(mode="after")
    def _one_transport(self) -> "MCPServerConfig":
        if not self.command and not self.url:
            msg = "mcp_server needs either 'command' or 'url'"
            raise ValueError(msg)
        if self.command and self.url:
            msg = "mcp_server accepts only one of 'command' or 'url'"
            raise ValueError(msg)
        return self


class CLIOverrides(BaseModel):
    """CLI argument overrides for configuration.

    All fields are optional - only set values will override config file settings.
    """

    provider: str | None = None
    model: str | None = None
    base_url: str | None = None
    api_key: str | None = None
    temperature: float | None = None
    max_tokens: int | None = None
    max_steps: int | None = None
    category: str | None = None


class FileConfig(BaseModel):
    """Schema for storeagent.yaml configuration file."""

    llm: LLMConfig | None = None
    agent: AgentSettings = Field(default_factory=AgentSettings)
    mcp_server: MCPServerConfig | None = None
    metrics: MetricsConfig = Field(default_factory=MetricsConfig)


class ConfigLoader:
    """Load and merge configuration from files and CLI arguments."""

    @staticmethod
    def discover_config_file(explicit_path: Path | None = None) -> Path | None:
        """Find configuration file in priority order.

        Args:
            explicit_path: Explicitly provided config file path.

        Returns:
            Path to config file, or None if not found.

        Raises:
            ConfigurationError: If explicit path doesn't exist.
        """
        if explicit_path is not None:
            if not explicit_path.exists():
                msg = f"Configuration file not found: {explicit_path}"
                raise ConfigurationError(msg)
            return explicit_path

        cwd = Path.cwd()
        for filename in CONFIG_FILE_NAMES:
            config_path = cwd / filename
            if config_path.exists():
                return config_path
        return None

    @staticmethod
    def load_yaml(path: Path) -> dict[str, Any]:
        """Load and parse YAML configuration file.

        Raises:
            ConfigurationError: If file cannot be read, parsed, or is not a mapping.
        """
        try:
            with path.open() as f:
                content = yaml.safe_load(f)
        except yaml.YAMLError as e:
            msg = f"Failed to parse configuration file {path}: {e}"
            raise ConfigurationError(msg) from e
        except OSError as e:
            msg = f"Failed to read configuration file {path}: {e}"
            raise ConfigurationError(msg) from e

        if content is None:
            return {}
        if not isinstance(content, dict):
            msg = f"Configuration file {path} must contain a mapping"
            raise ConfigurationError(msg)
        return content

    @staticmethod
    def interpolate_env_vars(value: Any) -> Any:
        """Recursively interpolate environment variables in configuration.

        Supports two syntaxes:
        - ${VAR} - Required variable, raises error if not set
        - ${VAR:-default} - Optional variable with default value

        Raises:
            ConfigurationError: If required environment variable is not set.
        """
        if isinstance(value, str):

            def replace(match: re.Match[str]) -> str:
                var_name = match.group(1)
                default_value = match.group(2)
                env_value = os.environ.get(var_name)
                if env_value is not None:
                    return env_value
                if default_value is not None:
                    return default_value
                msg = f"Environment variable {var_name} is not set"
                raise ConfigurationError(msg)

            return ENV_VAR_PATTERN.sub(replace, value)
        if isinstance(value, dict):
            return {k: ConfigLoader.interpolate_env_vars(v) for k, v in value.items()}
        if isinstance(value, list):
            return [ConfigLoader.interpolate_env_vars(item) for item in value]
        return value

    @staticmethod
    def load_config(explicit_path: Path | None = None) -> FileConfig | None:
        """Discover, load, and parse configuration file.

        Returns:
            Parsed FileConfig, or None if no config file found.

        Raises:
            ConfigurationError: If config file exists but is invalid.
        """
        config_path = ConfigLoader.discover_config_file(explicit_path)
        if config_path is None:
            return None

        raw_config = ConfigLoader.load_yaml(config_path)
        interpolated = ConfigLoader.interpolate_env_vars(raw_config)

        try:
            return FileConfig.model_validate(interpolated)
        except ValidationError as e:
            msg = f"Invalid configuration in {config_path}: {e}"
            raise ConfigurationError(msg) from e

    @staticmethod
    def resolve_llm_config(
        file_config: FileConfig | None,
        cli_overrides: CLIOverrides | None = None,
        default_provider: str = DEFAULT_PROVIDER,
        default_model: str = DEFAULT_MODEL,
    ) -> LLMConfig:
        """Resolve the planner's LLM configuration.

        Priority order (highest to lowest): CLI arguments, the ``llm:``
        section of the config file, defaults. Switching provider on the CLI
        without naming a model selects that provider's default model.

        Args:
            file_config: Parsed configuration file, or None.
            cli_overrides: CLI argument overrides, or None.
            default_provider: Provider used when nothing else is set.
            default_model: Model used when nothing else is set.

        Returns:
            Resolved LLMConfig.

        Raises:
            ConfigurationError: If the merged values are invalid.
        """
        values: dict[str, Any] = {"provider": default_provider, "model": default_model}
        if file_config and file_config.llm:
            values.update(file_config.llm.model_dump(exclude_none=True))

        if cli_overrides:
            if (
                cli_overrides.provider is not None
                and cli_overrides.provider != values["provider"]
                and cli_overrides.model is None
            ):
                switched_model = ProviderRegistry.default_model(cli_overrides.provider)
                if switched_model is None:
                    msg = f"--provider {cli_overrides.provider} requires --model"
                    raise ConfigurationError(msg)
                values["model"] = switched_model
            overrides = cli_overrides.model_dump(
                include={"provider", "model", "base_url", "temperature", "max_tokens"},
                exclude_none=True,
            )
            values.update(overrides)
            if cli_overrides.api_key is not None:
                values["api_key"] = SecretStr(cli_overrides.api_key)

        try:
            return LLMConfig.model_validate(values)
        except ValidationError as e:
            msg = f"Invalid LLM configuration: {e}"
            raise ConfigurationError(msg) from e

    @staticmethod
    def resolve_agent_settings(
        file_config: FileConfig | None,
        cli_overrides: CLIOverrides | None = None,
    ) -> AgentSettings:
        """Resolve the agent loop settings (CLI > file > defaults).

        Raises:
            ConfigurationError: If the merged values are invalid.
        """
        values = file_config.agent.model_dump() if file_config else {}
        if cli_overrides:
            values.update(
                cli_overrides.model_dump(include={"max_steps", "category"}, exclude_none=True)
            )
        try:
            return AgentSettings.model_validate(values)
        except ValidationError as e:
            msg = f"Invalid agent configuration: {e}"
            raise ConfigurationError(msg) from e

    @staticmethod
    def resolve_mcp_server(file_config: FileConfig | None) -> MCPServerConfig:
        """Return the configured MCP server.

        Raises:
            ConfigurationError: If no ``mcp_server`` section is configured.
        """
        if file_config is None or file_config.mcp_server is None:
            msg = "No mcp_server configured (add an 'mcp_server' section to storeagent.yaml)"
            raise ConfigurationError(msg)
        return file_config.mcp_server


def load_config(explicit_path: Path | None = None) -> FileConfig | None:
    """Convenience function to load configuration."""
    return ConfigLoader.load_config(explicit_path)
