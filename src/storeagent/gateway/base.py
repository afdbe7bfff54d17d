"""Abstract base class for tool gateways.

A gateway is the boundary between the assistant and the process serving its
tools. It advertises a catalog and executes named calls; it implements no
tool business logic itself.
"""

from abc import ABC, abstractmethod
from types import TracebackType
from typing import Any, Self

from storeagent.models.assistant import ToolDescriptor


class ToolGateway(ABC):
    """Abstract base class for tool gateways."""

    @abstractmethod
    async def list_tools(self) -> list[ToolDescriptor]:
        """Return the tools currently offered by the server.

        Raises:
            GatewayError: If the catalog cannot be fetched.
        """
        ...

    @abstractmethod
    async def call_tool(self, name: str, arguments: dict[str, Any]) -> dict[str, Any]:
        """Invoke a tool and return its JSON-shaped result.

        Args:
            name: Tool name from the catalog.
            arguments: Already-normalized arguments.

        Returns:
            The tool result.

        Raises:
            ToolInvocationError: If the call fails or the tool reports an error.
        """
        ...

    async def close(self) -> None:  # noqa: B027 - Default impl is intentionally empty
        """Release the connection to the tool server, if any."""

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()
