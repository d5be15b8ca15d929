"""
RSS Feed Fetcher
================

Downloads and parses a remote RSS/Atom document. The aiohttp client timeout
is only a first line; the whole fetch + parse is raced against an
independent timer so a stuck download or parse cannot hold a check forever.
"""

import asyncio
import calendar
import ssl
from contextlib import asynccontextmanager
from typing import Any, Optional

import aiohttp
import certifi
import feedparser

from ..config.settings import get_settings
from ..database.models import FeedItem, ParsedFeed
from ..utils.logging import get_logger_for_component
from ..utils.exceptions import FeedFetchError, FeedTimeoutError, ErrorCode
from ..utils.validators import URLValidator


class FeedFetcher:
    """Feed fetcher with a hard upper-bound timeout."""

    DATE_FIELDS = ("published_parsed", "updated_parsed", "created_parsed")

    def __init__(
        self,
        timeout: Optional[float] = None,
        request_timeout: Optional[float] = None,
        user_agent: Optional[str] = None,
    ):
        """Initialize feed fetcher.

        Args:
            timeout: Upper bound in seconds for fetch + parse (default from config)
            request_timeout: aiohttp client timeout in seconds (default from config)
            user_agent: User-Agent header for feed requests
        """
        settings = get_settings()
        self.timeout = timeout or settings.fetcher.timeout_seconds
        self.request_timeout = request_timeout or settings.fetcher.request_timeout_seconds
        self.user_agent = user_agent or f"{settings.app_name}/{settings.version}"
        self.logger = get_logger_for_component("feed_fetcher")

        self.ssl_context = ssl.create_default_context(cafile=certifi.where())

    @asynccontextmanager
    async def get_session(self):
        """Get configured aiohttp session."""
        connector = aiohttp.TCPConnector(ssl=self.ssl_context, limit_per_host=5)
        timeout = aiohttp.ClientTimeout(total=self.request_timeout)
        headers = {
            "User-Agent": self.user_agent,
            "Accept": "application/rss+xml, application/atom+xml, application/xml, text/xml, */*",
        }

        async with aiohttp.ClientSession(
            connector=connector, timeout=timeout, headers=headers
        ) as session:
            yield session

    async def fetch(self, feed_url: str) -> ParsedFeed:
        """Fetch and parse a feed.

        Raises:
            ValidationError: If the URL is not a valid HTTP(S) URL
            FeedTimeoutError: If fetch + parse exceeds ``self.timeout``
            FeedFetchError: On network, HTTP or parse failure
        """
        validated_url = URLValidator.validate_feed_url(feed_url)

        self.logger.debug(f"Fetching feed: {validated_url}")
        try:
            parsed = await asyncio.wait_for(
                self._fetch_and_parse(validated_url), timeout=self.timeout
            )
        except asyncio.TimeoutError:
            self.logger.warning(
                f"Feed fetch timeout for {validated_url} after {self.timeout:g}s"
            )
            raise FeedTimeoutError(validated_url, self.timeout)

        self.logger.info(f"Fetched {len(parsed.items)} items from {validated_url}")
        return parsed

    async def _fetch_and_parse(self, feed_url: str) -> ParsedFeed:
        content = await self._download(feed_url)
        return self.parse_document(content, feed_url)

    async def _download(self, feed_url: str) -> bytes:
        try:
            async with self.get_session() as session:
                async with session.get(feed_url) as response:
                    if response.status != 200:
                        raise FeedFetchError(
                            f"HTTP {response.status}: {response.reason}",
                            feed_url=feed_url,
                            error_code=ErrorCode.FEED_HTTP_ERROR,
                        )
                    return await response.read()
        except aiohttp.ClientError as e:
            raise FeedFetchError(
                f"Network error: {e}",
                feed_url=feed_url,
                error_code=ErrorCode.FEED_NETWORK_ERROR,
            )

    def parse_document(self, content: Any, feed_url: str = "") -> ParsedFeed:
        """Parse raw feed bytes/text into a ParsedFeed.

        A malformed document is accepted as long as feedparser recovered
        entries from it.

        Raises:
            FeedFetchError: If the document is malformed and has no entries
        """
        feed_data = feedparser.parse(content)
        entries = getattr(feed_data, "entries", None) or []

        if getattr(feed_data, "bozo", False):
            reason = getattr(feed_data, "bozo_exception", None) or "Invalid XML structure"
            if not entries:
                raise FeedFetchError(
                    f"Feed parse error: {reason}",
                    feed_url=feed_url,
                    error_code=ErrorCode.FEED_PARSE_ERROR,
                )
            self.logger.info(f"Feed has parse warnings but contains entries: {feed_url}")

        feed_meta = getattr(feed_data, "feed", None) or {}
        title = feed_meta.get("title", "") if hasattr(feed_meta, "get") else ""

        items = [self._parse_entry(entry) for entry in entries]
        return ParsedFeed(title=(title or "").strip(), items=items)

    def _parse_entry(self, entry: Any) -> FeedItem:
        return FeedItem(
            title=self._text(entry.get("title")),
            link=self._text(entry.get("link")),
            guid=self._text(entry.get("id")),
            published_at=self._parse_date(entry),
        )

    @staticmethod
    def _text(value: Any) -> str:
        if value is None:
            return ""
        return str(value).strip()

    def _parse_date(self, entry: Any) -> int:
        """Best-effort publish date in epoch milliseconds, 0 when unknown."""
        for field in self.DATE_FIELDS:
            date_tuple = entry.get(field)
            if date_tuple:
                try:
                    # feedparser normalizes *_parsed to UTC
                    return calendar.timegm(date_tuple) * 1000
                except (TypeError, ValueError, OverflowError):
                    continue
        return 0
