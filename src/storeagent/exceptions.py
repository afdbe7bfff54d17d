"""Custom exception hierarchy for storeagent.

All exceptions inherit from StoreAgentError for easy catching at the top level.
Follows fail-fast principles - errors propagate immediately without fallbacks.
"""


class StoreAgentError(Exception):
    """Base exception for all storeagent errors."""


class ConfigurationError(StoreAgentError):
    """Configuration-related errors."""


class ProviderError(StoreAgentError):
    """LLM provider errors."""


class ProviderNotFoundError(ProviderError):
    """Requested provider is not registered."""


class ProviderConfigError(ProviderError):
    """Provider configuration is invalid."""


class LLMProviderError(ProviderError):
    """Error during LLM API call."""


class AssistantError(StoreAgentError):
    """Agent loop errors."""


class InvalidInputError(AssistantError):
    """The request was rejected before any work began (e.g. blank prompt)."""


class InvalidPlanError(AssistantError):
    """The plan generator returned neither a tool call nor a final answer."""


class PlanGeneratorError(AssistantError):
    """The underlying model call failed or its output could not be parsed."""


class StepBudgetExceededError(AssistantError):
    """The loop ran out of steps without reaching a final answer."""


class GatewayError(StoreAgentError):
    """Tool gateway errors (connection, discovery)."""


class ToolInvocationError(GatewayError):
    """A single tool call failed.

    The raw tool result, when the server produced one, is kept on ``result``
    so it can be recorded alongside the failed event.
    """

    def __init__(self, message: str, result: object = None) -> None:
        super().__init__(message)
        self.result = result
