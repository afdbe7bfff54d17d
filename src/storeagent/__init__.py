"""storeagent - tool-calling commerce assistant with numeric answer validation."""

__version__ = "0.1.0"
