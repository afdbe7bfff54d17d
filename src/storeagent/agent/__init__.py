"""Assistant agent loop."""

from storeagent.agent.assistant import MAX_STEPS_SENTINEL, AssistantAgent
from storeagent.agent.factory import (
    create_assistant,
    create_gateway,
    create_metrics_store,
    resolve_assistant_config,
)

__all__ = [
    "MAX_STEPS_SENTINEL",
    "AssistantAgent",
    "create_assistant",
    "create_gateway",
    "create_metrics_store",
    "resolve_assistant_config",
]
