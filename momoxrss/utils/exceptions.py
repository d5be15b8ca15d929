"""
MomoXRSS Custom Exceptions
==========================

Exception hierarchy for MomoXRSS with error codes, context information,
and user-facing messages.
"""

from typing import Optional, Dict, Any
from enum import Enum


class ErrorCode(str, Enum):
    """Error codes for categorizing exceptions."""

    # Configuration errors (C001-C099)
    CONFIG_INVALID = "C001"
    CONFIG_MISSING = "C002"

    # Database errors (D001-D099)
    DATABASE_CONNECTION = "D001"
    DATABASE_CONSTRAINT = "D003"
    DATABASE_ERROR = "D006"

    # Feed retrieval errors (F001-F099)
    FEED_INVALID_URL = "F001"
    FEED_FETCH_TIMEOUT = "F002"
    FEED_PARSE_ERROR = "F003"
    FEED_NETWORK_ERROR = "F004"
    FEED_HTTP_ERROR = "F005"
    FEED_EMPTY = "F006"

    # Discord delivery errors (L001-L099)
    DELIVERY_FAILED = "L001"
    DELIVERY_RATE_LIMITED = "L002"
    DELIVERY_UNSUPPORTED_CHANNEL = "L003"
    DELIVERY_NETWORK_ERROR = "L004"

    # Validation errors (V001-V099)
    VALIDATION_REQUIRED_FIELD = "V001"
    VALIDATION_INVALID_FORMAT = "V002"
    VALIDATION_OUT_OF_RANGE = "V003"

    # Resource management errors (R001-R099)
    DUPLICATE_RESOURCE = "R001"
    RESOURCE_NOT_FOUND = "R002"

    # Access errors (A001-A099)
    AUTH_INVALID_API_KEY = "A001"


class MomoXRSSError(Exception):
    """Base exception for all MomoXRSS errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[ErrorCode] = None,
        context: Optional[Dict[str, Any]] = None,
        user_message: Optional[str] = None,
        recoverable: bool = False,
    ):
        """Initialize MomoXRSS error.

        Args:
            message: Technical error message for logging
            error_code: Categorized error code
            context: Additional context information
            user_message: Message safe to return to API callers
            recoverable: Whether retrying later may succeed
        """
        super().__init__(message)
        self.error_code = error_code
        self.context = context or {}
        self.user_message = user_message or message
        self.recoverable = recoverable

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code.value if self.error_code else None,
            "error_message": str(self),
            "user_message": self.user_message,
            "context": self.context,
            "recoverable": self.recoverable,
        }

    def __str__(self) -> str:
        """String representation with error code."""
        if self.error_code:
            return f"[{self.error_code.value}] {super().__str__()}"
        return super().__str__()


def _passthrough(kwargs: Dict[str, Any], *consumed: str) -> Dict[str, Any]:
    return {k: v for k, v in kwargs.items() if k not in consumed}


class ConfigurationError(MomoXRSSError):
    """Configuration-related errors."""

    def __init__(self, message: str, config_key: Optional[str] = None, **kwargs):
        context = kwargs.get("context", {})
        if config_key:
            context["config_key"] = config_key

        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", ErrorCode.CONFIG_INVALID),
            context=context,
            user_message=kwargs.get("user_message", f"Configuration error: {message}"),
            **_passthrough(kwargs, "context", "error_code", "user_message"),
        )


class DatabaseError(MomoXRSSError):
    """Database-related errors."""

    def __init__(self, message: str, query: Optional[str] = None, **kwargs):
        context = kwargs.get("context", {})
        if query:
            context["query"] = query

        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", ErrorCode.DATABASE_CONNECTION),
            context=context,
            user_message=kwargs.get("user_message", "Database operation failed"),
            recoverable=kwargs.get("recoverable", True),
            **_passthrough(kwargs, "context", "error_code", "user_message", "recoverable"),
        )


class ValidationError(MomoXRSSError):
    """Invalid URL, Discord id, interval or other input."""

    def __init__(self, message: str, field_name: Optional[str] = None, **kwargs):
        """Initialize validation error.

        Args:
            message: Error message
            field_name: Field name that failed validation
            **kwargs: Additional arguments for MomoXRSSError
        """
        context = kwargs.get("context", {})
        if field_name:
            context["field_name"] = field_name

        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", ErrorCode.VALIDATION_INVALID_FORMAT),
            context=context,
            user_message=kwargs.get(
                "user_message", f"Invalid {field_name or 'input'}: {message}"
            ),
            recoverable=kwargs.get("recoverable", False),
            **_passthrough(kwargs, "context", "error_code", "user_message", "recoverable"),
        )
        self.field_name = field_name


class NotFoundError(MomoXRSSError):
    """Unknown subscription or empty feed."""

    def __init__(self, message: str, feed_url: Optional[str] = None, **kwargs):
        context = kwargs.get("context", {})
        if feed_url:
            context["feed_url"] = feed_url

        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", ErrorCode.RESOURCE_NOT_FOUND),
            context=context,
            user_message=kwargs.get("user_message", message),
            **_passthrough(kwargs, "context", "error_code", "user_message"),
        )


class DuplicateSubscriptionError(MomoXRSSError):
    """A subscription with the same (url, target) pair already exists."""

    def __init__(self, feed_url: str, target: str, **kwargs):
        super().__init__(
            message=f"Subscription already exists for {feed_url} -> {target}",
            error_code=ErrorCode.DUPLICATE_RESOURCE,
            context={"feed_url": feed_url, "target": target},
            user_message=kwargs.get(
                "user_message", "This feed is already tracked for that channel"
            ),
        )


class AuthenticationError(MomoXRSSError):
    """Missing or wrong management API key."""

    def __init__(self, message: str = "Invalid API key", **kwargs):
        super().__init__(
            message=message,
            error_code=ErrorCode.AUTH_INVALID_API_KEY,
            user_message=kwargs.get("user_message", message),
        )


class FeedFetchError(MomoXRSSError):
    """Feed retrieval or parsing errors."""

    def __init__(self, message: str, feed_url: Optional[str] = None, **kwargs):
        """Initialize feed fetch error.

        Args:
            message: Error message
            feed_url: Feed URL that caused the error
            **kwargs: Additional arguments for MomoXRSSError
        """
        context = kwargs.get("context", {})
        if feed_url:
            context["feed_url"] = feed_url

        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", ErrorCode.FEED_NETWORK_ERROR),
            context=context,
            user_message=kwargs.get(
                "user_message", f"Feed retrieval failed: {message}"
            ),
            recoverable=kwargs.get("recoverable", True),
            **_passthrough(kwargs, "context", "error_code", "user_message", "recoverable"),
        )
        self.feed_url = feed_url


class FeedTimeoutError(FeedFetchError):
    """Feed fetch exceeded the hard upper bound."""

    def __init__(self, feed_url: str, timeout: float, **kwargs):
        super().__init__(
            f"Feed fetch timed out after {timeout:g}s",
            feed_url=feed_url,
            error_code=ErrorCode.FEED_FETCH_TIMEOUT,
            **kwargs,
        )
        self.timeout = timeout


class DeliveryError(MomoXRSSError):
    """Discord call failed after retries."""

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        body: str = "",
        channel_id: Optional[str] = None,
        **kwargs,
    ):
        """Initialize delivery error.

        Args:
            message: Error message
            status: HTTP status returned by Discord, None for network failures
            body: Raw response body
            channel_id: Channel where delivery failed
            **kwargs: Additional arguments for MomoXRSSError
        """
        context = kwargs.get("context", {})
        if status is not None:
            context["status"] = status
        if channel_id:
            context["channel_id"] = channel_id

        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", ErrorCode.DELIVERY_FAILED),
            context=context,
            user_message=kwargs.get("user_message", message),
            recoverable=kwargs.get("recoverable", True),
            **_passthrough(kwargs, "context", "error_code", "user_message", "recoverable"),
        )
        self.status = status
        self.body = body
        self.channel_id = channel_id


class UnsupportedChannelTypeError(DeliveryError):
    """Target channel is neither a text channel nor a forum."""

    def __init__(self, channel_id: str, channel_type: Any):
        super().__init__(
            f"Unsupported channel type: {channel_type}",
            channel_id=channel_id,
            error_code=ErrorCode.DELIVERY_UNSUPPORTED_CHANNEL,
            context={"channel_type": channel_type},
            recoverable=False,
        )
        self.channel_type = channel_type


def get_user_friendly_message(exception: Exception) -> str:
    """Get a message for any exception that is safe to show an API caller."""
    if isinstance(exception, MomoXRSSError):
        return exception.user_message

    return "An unexpected error occurred. Please try again later."
