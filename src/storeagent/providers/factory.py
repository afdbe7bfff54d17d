"""Provider registry and factory.

Each provider module registers its class under a name, together with the
model used when a caller picks the provider without naming a model.
``create_provider`` builds the provider named by ``LLMConfig.provider``.
"""

from collections.abc import Callable
from dataclasses import dataclass
from typing import ClassVar

from storeagent.exceptions import ProviderConfigError, ProviderNotFoundError
from storeagent.models.config import LLMConfig
from storeagent.providers.base import LLMProvider


@dataclass(frozen=True)
class ProviderEntry:
    """A registered provider class and its default model."""

    provider_class: type[LLMProvider]
    default_model: str | None = None


class ProviderRegistry:
    """Registry of available LLM providers."""

    _entries: ClassVar[dict[str, ProviderEntry]] = {}

    @classmethod
    def register(
        cls, name: str, *, default_model: str | None = None
    ) -> Callable[[type[LLMProvider]], type[LLMProvider]]:
        """Decorator registering a provider class under ``name``.

        Args:
            name: Provider name used in configuration (case-insensitive).
            default_model: Model selected when only the provider is given.

        Example:
            @ProviderRegistry.register("gemini", default_model="gemini-2.5-flash")
            class GeminiProvider(LLMProvider):
                ...
        """

        def decorator(provider_class: type[LLMProvider]) -> type[LLMProvider]:
            cls._entries[name.lower()] = ProviderEntry(provider_class, default_model)
            return provider_class

        return decorator

    @classmethod
    def _entry(cls, name: str) -> ProviderEntry:
        entry = cls._entries.get(name.lower())
        if entry is None:
            available = ", ".join(cls.list_providers())
            msg = f"Provider '{name}' not found. Available: {available or 'none'}"
            raise ProviderNotFoundError(msg)
        return entry

    @classmethod
    def get(cls, name: str) -> type[LLMProvider]:
        """Look up a provider class by name.

        Raises:
            ProviderNotFoundError: If the provider is not registered.
        """
        return cls._entry(name).provider_class

    @classmethod
    def default_model(cls, name: str) -> str | None:
        """Default model of a provider, or None if unknown or unset."""
        entry = cls._entries.get(name.lower())
        return entry.default_model if entry else None

    @classmethod
    def list_providers(cls) -> list[str]:
        """Sorted names of all registered providers."""
        return sorted(cls._entries)

    @classmethod
    def is_registered(cls, name: str) -> bool:
        return name.lower() in cls._entries


def create_provider(config: LLMConfig) -> LLMProvider:
    """Build the provider named in ``config``.

    Args:
        config: Planner model configuration.

    Returns:
        Ready-to-use LLMProvider.

    Raises:
        ProviderNotFoundError: If the provider is not registered.
        ProviderConfigError: If the provider rejects the configuration.
    """
    provider_class = ProviderRegistry.get(config.provider)
    try:
        return provider_class(config)
    except ProviderConfigError:
        raise
    except Exception as e:
        msg = f"Failed to create provider '{config.provider}': {e}"
        raise ProviderConfigError(msg) from e
