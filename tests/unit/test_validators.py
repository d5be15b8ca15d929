"""
Tests for Input Validators
==========================

URL, Discord id, interval and title rules.
"""

import math

import pytest

from momoxrss.utils.exceptions import ErrorCode, ValidationError
from momoxrss.utils.validators import (
    ContentValidator,
    DiscordIdValidator,
    IntervalValidator,
    URLValidator,
)


class TestURLValidator:
    @pytest.mark.parametrize(
        "url",
        [
            "https://example.com/feed.xml",
            "http://localhost:8080/rss",
            "ftp://files.example.com/feed",
        ],
    )
    def test_is_valid_accepts_scheme_and_host(self, url):
        assert URLValidator.is_valid(url)

    @pytest.mark.parametrize("url", ["", None, "not a url", "example.com/feed", "https://", 42])
    def test_is_valid_rejects_garbage(self, url):
        assert not URLValidator.is_valid(url)

    def test_validate_feed_url_strips_whitespace(self):
        assert URLValidator.validate_feed_url("  https://example.com/rss  ") == "https://example.com/rss"

    def test_validate_feed_url_missing(self):
        with pytest.raises(ValidationError) as exc_info:
            URLValidator.validate_feed_url(None)

        assert exc_info.value.error_code == ErrorCode.VALIDATION_REQUIRED_FIELD
        assert exc_info.value.field_name == "rssUrl"

    def test_validate_feed_url_rejects_non_http_scheme(self):
        with pytest.raises(ValidationError):
            URLValidator.validate_feed_url("ftp://example.com/feed")

    def test_validate_feed_url_custom_field_name(self):
        with pytest.raises(ValidationError) as exc_info:
            URLValidator.validate_feed_url("nope", field_name="newRssUrl")

        assert exc_info.value.field_name == "newRssUrl"

    def test_sanitize_link(self):
        assert URLValidator.sanitize_link(" https://example.com/a ") == "https://example.com/a"
        assert URLValidator.sanitize_link("urn:uuid:1234") == ""
        assert URLValidator.sanitize_link(None) == ""
        assert URLValidator.sanitize_link("") == ""


class TestDiscordIdValidator:
    @pytest.mark.parametrize("value", ["1234567890123456", "123456789012345678901", 123456789012345678])
    def test_valid_ids(self, value):
        assert DiscordIdValidator.is_valid(value)

    @pytest.mark.parametrize("value", ["123456789012345", "1234567890123456789012", "12345678901234567a", "", None])
    def test_invalid_ids(self, value):
        assert not DiscordIdValidator.is_valid(value)

    def test_validate_normalizes_to_string(self):
        assert DiscordIdValidator.validate(" 123456789012345678 ") == "123456789012345678"
        assert DiscordIdValidator.validate(123456789012345678) == "123456789012345678"

    def test_validate_missing(self):
        with pytest.raises(ValidationError) as exc_info:
            DiscordIdValidator.validate(None)

        assert exc_info.value.error_code == ErrorCode.VALIDATION_REQUIRED_FIELD

    def test_validate_bad_format(self):
        with pytest.raises(ValidationError) as exc_info:
            DiscordIdValidator.validate("general", field_name="currentTarget")

        assert exc_info.value.field_name == "currentTarget"


class TestIntervalValidator:
    def test_minimum_is_one_minute(self):
        assert IntervalValidator.validate(60000) == 60000
        assert IntervalValidator.validate("120000") == 120000

    @pytest.mark.parametrize("value", [59999, 0, -1])
    def test_below_minimum(self, value):
        with pytest.raises(ValidationError) as exc_info:
            IntervalValidator.validate(value)

        assert exc_info.value.error_code == ErrorCode.VALIDATION_OUT_OF_RANGE

    @pytest.mark.parametrize("value", [None, "soon", True])
    def test_not_a_number(self, value):
        with pytest.raises(ValidationError) as exc_info:
            IntervalValidator.validate(value)

        assert exc_info.value.error_code == ErrorCode.VALIDATION_INVALID_FORMAT

    @pytest.mark.parametrize("value", [None, 0, -5, math.nan, math.inf, "300000", True])
    def test_effective_falls_back_to_default(self, value):
        assert IntervalValidator.effective(value, 60000) == 60000

    def test_effective_keeps_positive_numbers(self):
        assert IntervalValidator.effective(300000, 60000) == 300000
        assert IntervalValidator.effective(1500.5, 60000) == 1500.5


class TestContentValidator:
    def test_clamp_title_default(self):
        assert ContentValidator.clamp_title(None) == "Article"
        assert ContentValidator.clamp_title("   ") == "Article"

    def test_clamp_title_limits(self):
        long_title = "x" * 250

        assert len(ContentValidator.clamp_title(long_title)) == 100
        assert len(ContentValidator.clamp_title(long_title, ContentValidator.MAX_THREAD_NAME_LENGTH)) == 90

    def test_clamp_title_keeps_short_titles(self):
        assert ContentValidator.clamp_title("Hello") == "Hello"
