"""
Command Gateway abstraction.

Protocol for sending one signed command to CloudStack.
"""

from abc import ABC, abstractmethod
from typing import Any, Mapping, Optional, Protocol


class CommandGateway(Protocol):
    """
    Protocol for CloudStack command transport.

    Implementations handle signing, HTTP, envelope unwrapping and error
    normalization.
    """

    async def send(self, command: str, params: Optional[Mapping[str, Any]] = None) -> Any:
        """
        Send one command and return its unwrapped payload.

        Args:
            command: CloudStack command name, e.g. "deployVirtualMachine"
            params: Wire parameters (None values are dropped)

        Returns:
            Node found under ``<command>response``, or the raw body if absent

        Raises:
            ValidationError: Request could not be built
            TransportError: No response received
            ProtocolError: Response body malformed
            RemoteError: Service returned an error payload
        """
        ...


class BaseCommandGateway(ABC):
    """Abstract base class for gateway implementations."""

    @abstractmethod
    async def send(self, command: str, params: Optional[Mapping[str, Any]] = None) -> Any:
        """Send one command."""
        pass

    async def close(self) -> None:
        """
        Close any resources (HTTP connections, etc.).

        Optional - override if needed.
        """
        pass

    async def __aenter__(self) -> "BaseCommandGateway":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # type: ignore
        """Async context manager exit."""
        await self.close()
