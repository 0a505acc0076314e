"""Custom exceptions for CineHub Bot.

This module defines a hierarchy of exceptions for proper error handling
across the application. All exceptions inherit from CatalogBotError.
"""

from __future__ import annotations


class CatalogBotError(Exception):
    """Base exception for all CineHub Bot errors.

    All custom exceptions in this application should inherit from this class.
    This allows for catch-all exception handling when needed.
    """

    def __init__(self, message: str = "An error occurred") -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error message.
        """
        self.message = message
        super().__init__(self.message)


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(CatalogBotError):
    """Raised when configuration is invalid or missing.

    Attributes:
        config_key: The configuration key that is invalid.
    """

    def __init__(
        self,
        config_key: str | None = None,
        message: str | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            config_key: The configuration key that is invalid.
            message: Optional custom message.
        """
        self.config_key = config_key
        msg = message or "Configuration error"
        if config_key and message is None:
            msg = f"Invalid configuration for '{config_key}'"
        super().__init__(msg)


# =============================================================================
# Routing Errors
# =============================================================================


class InvalidCallbackDataError(CatalogBotError):
    """Raised when callback data has a known prefix but a broken shape.

    Attributes:
        data: The raw callback data.
    """

    def __init__(self, data: str, message: str | None = None) -> None:
        self.data = data
        msg = message or f"Malformed callback data: {data!r}"
        super().__init__(msg)


class InvalidInputError(CatalogBotError):
    """Raised when text typed into a conversation flow fails validation.

    Attributes:
        text: The rejected input.
        reason: Why the input was rejected.
    """

    def __init__(
        self,
        text: str,
        reason: str = "not a numeric id",
        message: str | None = None,
    ) -> None:
        self.text = text
        self.reason = reason
        msg = message or f"Invalid input {text!r}: {reason}"
        super().__init__(msg)


class UnauthorizedUserError(CatalogBotError):
    """Raised when a non-admin user invokes an admin action.

    Attributes:
        user_id: The unauthorized user ID.
    """

    def __init__(
        self,
        user_id: int,
        message: str | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            user_id: The unauthorized user ID.
            message: Optional custom message.
        """
        self.user_id = user_id
        msg = message or f"Unauthorized user: {user_id}"
        super().__init__(msg)


# =============================================================================
# Catalog Errors
# =============================================================================


class ContentNotFoundError(CatalogBotError):
    """Raised when a content record does not exist.

    Attributes:
        content_id: The requested content ID.
    """

    def __init__(self, content_id: int, message: str | None = None) -> None:
        self.content_id = content_id
        msg = message or f"Content {content_id} not found"
        super().__init__(msg)


class PartNotFoundError(CatalogBotError):
    """Raised when a part record does not exist.

    Attributes:
        part_id: The requested part ID, if the lookup was by ID.
    """

    def __init__(self, part_id: int | None = None, message: str | None = None) -> None:
        self.part_id = part_id
        msg = message or (f"Part {part_id} not found" if part_id is not None else "Part not found")
        super().__init__(msg)


class DeliveryError(CatalogBotError):
    """Raised when no content channel yields a copy of the requested media.

    Attributes:
        chat_id: The chat the media was meant for.
        channel_message_id: The media message ID in the content channels.
    """

    def __init__(
        self,
        chat_id: int,
        channel_message_id: int,
        message: str | None = None,
    ) -> None:
        self.chat_id = chat_id
        self.channel_message_id = channel_message_id
        msg = message or (
            f"Failed to copy message {channel_message_id} from any content channel "
            f"into chat {chat_id}"
        )
        super().__init__(msg)
