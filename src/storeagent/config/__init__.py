"""Configuration file support for storeagent."""

from storeagent.config.loader import (
    CLIOverrides,
    ConfigLoader,
    FileConfig,
    MCPServerConfig,
    load_config,
)

__all__ = [
    "CLIOverrides",
    "ConfigLoader",
    "FileConfig",
    "MCPServerConfig",
    "load_config",
]
