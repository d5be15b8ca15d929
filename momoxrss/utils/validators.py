"""
MomoXRSS Input Validators
=========================

Validation for feed URLs, article links, Discord ids, polling intervals,
and message text.
"""

import math
import re
from typing import Any, Optional
from urllib.parse import urlparse

from .exceptions import ValidationError, ErrorCode


MIN_INTERVAL_MS = 60_000


class URLValidator:
    """URL syntax validation and link sanitization."""

    # Feed documents are fetched over HTTP(S)
    FEED_SCHEMES = {"http", "https"}

    @classmethod
    def is_valid(cls, url: Any) -> bool:
        """Return True when ``url`` parses with a non-empty scheme and host."""
        if not url or not isinstance(url, str):
            return False

        try:
            parsed = urlparse(url.strip())
        except ValueError:
            return False

        return bool(parsed.scheme) and bool(parsed.hostname)

    @classmethod
    def validate_feed_url(cls, url: Any, field_name: str = "rssUrl") -> str:
        """Validate a feed URL and return it stripped.

        Raises:
            ValidationError: If URL is missing, malformed or not HTTP(S)
        """
        if not url or not isinstance(url, str) or not url.strip():
            raise ValidationError(
                "URL is required",
                error_code=ErrorCode.VALIDATION_REQUIRED_FIELD,
                field_name=field_name,
            )

        url = url.strip()

        if not cls.is_valid(url):
            raise ValidationError(
                f"'{url}' is not a valid URL",
                error_code=ErrorCode.VALIDATION_INVALID_FORMAT,
                field_name=field_name,
            )

        if urlparse(url).scheme.lower() not in cls.FEED_SCHEMES:
            raise ValidationError(
                "URL scheme must be http or https",
                error_code=ErrorCode.VALIDATION_INVALID_FORMAT,
                field_name=field_name,
            )

        return url

    @classmethod
    def sanitize_link(cls, link: Any) -> str:
        """Return the stripped link, or an empty string when it is not a valid URL."""
        if link is None:
            return ""
        link = str(link).strip()
        return link if cls.is_valid(link) else ""


class DiscordIdValidator:
    """Discord snowflake id syntax (16-21 digit numeric string)."""

    PATTERN = re.compile(r"^[0-9]{16,21}$")

    @classmethod
    def is_valid(cls, value: Any) -> bool:
        if value is None:
            return False
        return bool(cls.PATTERN.match(str(value).strip()))

    @classmethod
    def validate(cls, value: Any, field_name: str = "discordTarget") -> str:
        """Validate a Discord channel id and return it normalized to a string.

        Raises:
            ValidationError: If the id is missing or not 16-21 digits
        """
        if value is None or not str(value).strip():
            raise ValidationError(
                "Discord channel id is required",
                error_code=ErrorCode.VALIDATION_REQUIRED_FIELD,
                field_name=field_name,
            )

        value = str(value).strip()
        if not cls.is_valid(value):
            raise ValidationError(
                f"{value} is not a valid Discord id (expected 16-21 digits)",
                error_code=ErrorCode.VALIDATION_INVALID_FORMAT,
                field_name=field_name,
            )
        return value


class IntervalValidator:
    """Polling interval rules."""

    @classmethod
    def validate(cls, interval_ms: Any, field_name: str = "interval") -> int:
        """Validate a polling interval in milliseconds.

        Raises:
            ValidationError: If not an integer or below one minute
        """
        if isinstance(interval_ms, bool):
            interval_ms = None
        try:
            value = int(interval_ms)
        except (TypeError, ValueError):
            raise ValidationError(
                "Interval must be an integer number of milliseconds",
                error_code=ErrorCode.VALIDATION_INVALID_FORMAT,
                field_name=field_name,
            )

        if value < MIN_INTERVAL_MS:
            raise ValidationError(
                f"Interval too low (minimum {MIN_INTERVAL_MS} ms)",
                error_code=ErrorCode.VALIDATION_OUT_OF_RANGE,
                field_name=field_name,
            )
        return value

    @classmethod
    def effective(cls, interval_ms: Any, default_ms: int = MIN_INTERVAL_MS) -> float:
        """Interval used for scheduling; stored values are trusted with a fallback."""
        if isinstance(interval_ms, bool) or not isinstance(interval_ms, (int, float)):
            return default_ms
        if not math.isfinite(interval_ms) or interval_ms <= 0:
            return default_ms
        return interval_ms


class ContentValidator:
    """Message text limits."""

    MAX_TITLE_LENGTH = 100
    MAX_THREAD_NAME_LENGTH = 90
    DEFAULT_TITLE = "Article"

    @classmethod
    def clamp_title(cls, title: Optional[Any], max_length: int = MAX_TITLE_LENGTH) -> str:
        """Strip and truncate a title; empty titles become ``DEFAULT_TITLE``."""
        text = str(title).strip() if title is not None else ""
        if not text:
            text = cls.DEFAULT_TITLE
        return text[:max_length]
