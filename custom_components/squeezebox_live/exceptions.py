"""Exceptions for the Squeezebox Live integration."""

from __future__ import annotations


class SqueezeboxError(Exception):
    """Base exception for the Squeezebox Live integration.

    Supports Home Assistant translation framework for user-friendly error messages.

    Attributes:
        translation_key: Key for looking up translated message.
        translation_placeholders: Values to substitute in translated message.
    """

    def __init__(
        self,
        message: str,
        translation_key: str | None = None,
        translation_placeholders: dict[str, str] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: The error message (English, for logs).
            translation_key: Optional translation key for HA UI.
            translation_placeholders: Optional placeholders for translation.
        """
        super().__init__(message)
        self.translation_key = translation_key
        self.translation_placeholders = translation_placeholders or {}


class SqueezeboxProtocolError(SqueezeboxError):
    """Exception raised when the hub sends something that cannot be parsed.

    Covers malformed JSON on the RPC endpoint and on the streaming socket,
    and RPC responses carrying an error member.

    Attributes:
        payload: The offending payload, truncated for logging.
    """

    def __init__(self, message: str, payload: str = "") -> None:
        """Initialize protocol error.

        Args:
            message: The error message.
            payload: The raw payload that failed to parse.
        """
        super().__init__(message, translation_key="protocol_error")
        self.payload = payload[:200]


class SqueezeboxNetworkError(SqueezeboxError):
    """Exception raised when an RPC request to the hub fails.

    This includes connection refused, DNS failures and HTTP error statuses.
    """

    def __init__(
        self,
        message: str,
        host: str = "",
        port: int = 0,
    ) -> None:
        """Initialize with connection details.

        Args:
            message: The error message.
            host: The hub host (for translation placeholder).
            port: The hub port (for translation placeholder).
        """
        super().__init__(
            message,
            translation_key="network_error",
            translation_placeholders={"host": host, "port": str(port)},
        )


class SqueezeboxTimeoutError(SqueezeboxNetworkError):
    """Exception raised when an RPC request times out."""

    def __init__(self, message: str, host: str = "", port: int = 0) -> None:
        """Initialize timeout error.

        Args:
            message: The error message.
            host: The hub host.
            port: The hub port.
        """
        super().__init__(message, host=host, port=port)
        self.translation_key = "timeout"


class SqueezeboxTransportError(SqueezeboxError):
    """Exception raised when the streaming socket fails or is closed by the hub."""

    def __init__(self, message: str, host: str = "", port: int = 0) -> None:
        """Initialize transport error.

        Args:
            message: The error message.
            host: The hub host.
            port: The hub port.
        """
        super().__init__(
            message,
            translation_key="transport_error",
            translation_placeholders={"host": host, "port": str(port)},
        )


class SqueezeboxConnectionTimeout(SqueezeboxError):
    """Exception describing a session that never reached the connected state.

    Attributes:
        attempts: Number of consecutive attempts that timed out.
    """

    def __init__(self, message: str, attempts: int = 0) -> None:
        """Initialize connection timeout.

        Args:
            message: The error message.
            attempts: Number of consecutive failed attempts.
        """
        super().__init__(
            message,
            translation_key="connection_timeout",
            translation_placeholders={"attempts": str(attempts)},
        )
        self.attempts = attempts


class SqueezeboxUnsupportedEntityError(SqueezeboxError):
    """Exception raised when a command targets an entity type the hub cannot serve."""

    def __init__(self, entity_type: str) -> None:
        """Initialize unsupported entity error.

        Args:
            entity_type: The entity type the command was addressed to.
        """
        super().__init__(
            f"Commands for entity type {entity_type!r} are not supported",
            translation_key="unsupported_entity",
            translation_placeholders={"entity_type": entity_type},
        )
        self.entity_type = entity_type
