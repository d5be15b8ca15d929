"""
Discord Delivery Gateway
========================

Posts articles to Discord over the REST API.

Features:
- Channel type resolution with a process-lifetime cache
- Forum channels get one thread per article, text channels a plain message
- One retrying transport for every call, honouring 429 retry delays
"""

import asyncio
import json
import math
from typing import Any, Dict, Optional, Tuple

import aiohttp

from ..config.settings import DiscordSettings, get_settings
from ..database.models import ChannelInfo, ChannelType
from ..utils.logging import get_logger_for_component
from ..utils.exceptions import (
    ConfigurationError,
    DeliveryError,
    ErrorCode,
    UnsupportedChannelTypeError,
)
from ..utils.validators import ContentValidator, URLValidator
from .channel_cache import ChannelCache


FORUM_AUTO_ARCHIVE_MINUTES = 1440


class DiscordTransport:
    """HTTP transport for the Discord REST API with rate-limit retries."""

    def __init__(
        self,
        settings: Optional[DiscordSettings] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        """Initialize transport.

        Args:
            settings: Discord settings (default from config)
            session: Existing aiohttp session; one is created lazily otherwise
        """
        self.settings = settings or get_settings().discord
        self._session = session
        self._owns_session = session is None
        self.logger = get_logger_for_component("discord_transport")

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bot {self.settings.bot_token}",
            "Content-Type": "application/json",
            "User-Agent": self.settings.user_agent,
        }

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.settings.request_timeout)
            )
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()

    async def request(
        self, method: str, path: str, payload: Optional[Dict[str, Any]] = None
    ) -> Any:
        """Send one API call and return the decoded JSON body.

        On HTTP 429 waits for the server-given delay and retries, at most
        ``settings.max_retries`` more times.

        Raises:
            ConfigurationError: If no bot token is configured
            DeliveryError: On non-2xx after retries or on network failure
        """
        if not self.settings.bot_token:
            raise ConfigurationError(
                "Discord bot token is not configured", config_key="discord.bot_token"
            )

        url = f"{self.settings.api_base.rstrip('/')}{path}"
        retries_left = self.settings.max_retries

        while True:
            status, body, headers = await self._send(method, url, payload)

            if status == 429 and retries_left > 0:
                delay_ms = self._retry_after_ms(body, headers)
                retries_left -= 1
                self.logger.warning(
                    f"Discord rate limit on {method} {path}, retrying in {delay_ms} ms "
                    f"({retries_left} retries left)"
                )
                await asyncio.sleep(delay_ms / 1000)
                continue

            if 200 <= status < 300:
                return self._decode(method, path, body)

            raise DeliveryError(
                f"Discord {method} {path} -> {status}: {body}",
                status=status,
                body=body,
                error_code=(
                    ErrorCode.DELIVERY_RATE_LIMITED if status == 429 else ErrorCode.DELIVERY_FAILED
                ),
            )

    def _decode(self, method: str, path: str, body: str) -> Any:
        """JSON payload of an accepted request; None when the body is not JSON."""
        if not body:
            return None
        try:
            return json.loads(body)
        except ValueError:
            self.logger.warning(f"Discord {method} {path} returned a non-JSON body")
            return None

    async def _send(
        self, method: str, url: str, payload: Optional[Dict[str, Any]]
    ) -> Tuple[int, str, Any]:
        session = await self._get_session()
        try:
            async with session.request(
                method, url, json=payload, headers=self._headers()
            ) as response:
                body = await response.text()
                return response.status, body, response.headers
        except aiohttp.ClientError as e:
            raise DeliveryError(
                f"Discord {method} {url} failed: {e}",
                error_code=ErrorCode.DELIVERY_NETWORK_ERROR,
            )

    def _retry_after_ms(self, body: str, headers: Any) -> int:
        """Delay requested by Discord, in ms; the default when absent or unparsable."""
        candidates = []
        try:
            data = json.loads(body) if body else {}
            if isinstance(data, dict):
                candidates.append(data.get("retry_after"))
        except ValueError:
            pass
        if headers is not None:
            candidates.append(headers.get("Retry-After"))

        for value in candidates:
            try:
                seconds = float(value)
            except (TypeError, ValueError):
                continue
            if math.isfinite(seconds) and seconds > 0:
                return math.ceil(seconds * 1000)

        return self.settings.default_retry_after_ms


class DiscordGateway:
    """Delivers articles to forum or text channels."""

    def __init__(self, transport: DiscordTransport, cache: Optional[ChannelCache] = None):
        """Initialize gateway.

        Args:
            transport: Retrying Discord transport
            cache: Channel info cache shared with whoever invalidates it
        """
        self.transport = transport
        self.cache = cache if cache is not None else ChannelCache()
        self.logger = get_logger_for_component("discord_gateway")

    @classmethod
    def from_settings(
        cls, settings: Optional[DiscordSettings] = None, cache: Optional[ChannelCache] = None
    ) -> "DiscordGateway":
        return cls(DiscordTransport(settings), cache)

    async def close(self) -> None:
        await self.transport.close()

    async def resolve_channel(self, channel_id: str) -> ChannelInfo:
        """Channel info from cache, or ``GET /channels/{id}`` on a miss."""
        cached = self.cache.get(channel_id)
        if cached is not None:
            return cached

        payload = await self.transport.request("GET", f"/channels/{channel_id}")
        if not isinstance(payload, dict):
            raise DeliveryError(
                f"Discord returned no channel data for {channel_id}",
                channel_id=channel_id,
                error_code=ErrorCode.DELIVERY_FAILED,
            )
        info = ChannelInfo.from_api(payload)
        self.cache.set(info, channel_id=channel_id)
        self.logger.debug(f"Resolved channel {channel_id} as type {info.type}")
        return info

    def invalidate_channel(self, *channel_ids: Optional[str]) -> None:
        self.cache.invalidate(*channel_ids)

    async def create_forum_thread(self, channel_id: str, title: str, content: str) -> Any:
        payload = {
            "name": ContentValidator.clamp_title(
                title, ContentValidator.MAX_THREAD_NAME_LENGTH
            ),
            "auto_archive_duration": FORUM_AUTO_ARCHIVE_MINUTES,
            "message": {"content": (content or title or ContentValidator.DEFAULT_TITLE).strip()},
        }
        return await self.transport.request("POST", f"/channels/{channel_id}/threads", payload)

    async def post_message(self, channel_id: str, content: str) -> Any:
        payload = {"content": (content or "").strip()}
        return await self.transport.request("POST", f"/channels/{channel_id}/messages", payload)

    @staticmethod
    def build_content(title: Optional[str], link: Optional[str]) -> Tuple[str, str]:
        """Return (clamped title, message body)."""
        safe_title = ContentValidator.clamp_title(title)
        safe_link = URLValidator.sanitize_link(link)
        content = f"{safe_title}\n{safe_link}" if safe_link else safe_title
        return safe_title, content

    async def send(self, channel_id: str, title: Optional[str], link: Optional[str]) -> Any:
        """Post an article to a channel, choosing the call by channel type.

        Raises:
            UnsupportedChannelTypeError: If the channel is neither text nor forum
            DeliveryError: If Discord rejects the call after retries
            ConfigurationError: If no bot token is configured
        """
        channel = await self.resolve_channel(channel_id)
        safe_title, content = self.build_content(title, link)

        if channel.type == ChannelType.GUILD_FORUM:
            result = await self.create_forum_thread(channel_id, safe_title, content)
        elif channel.type == ChannelType.GUILD_TEXT:
            result = await self.post_message(channel_id, content)
        else:
            raise UnsupportedChannelTypeError(channel_id, channel.type)

        self.logger.info(f"Delivered '{safe_title}' to channel {channel_id}")
        return result
