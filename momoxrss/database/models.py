"""
MomoXRSS Data Models
====================

Pydantic and dataclass models shared by the store, the fetcher,
the novelty detector and the Discord gateway.
"""

from datetime import datetime, timezone
from enum import IntEnum
from typing import List, Optional, Dict, Any
from dataclasses import dataclass, field
from pydantic import BaseModel, Field


DEFAULT_INTERVAL_MS = 3_600_000


class ChannelType(IntEnum):
    """Discord channel type codes handled by the gateway."""
    GUILD_TEXT = 0
    GUILD_FORUM = 15


class FeedSubscription(BaseModel):
    """A tracked (feed URL, Discord channel) pair.

    Interval bounds are enforced by the repository on write, not here, so
    rows with unexpected values still load and the scheduler can fall back.
    """
    id: Optional[int] = Field(default=None, description="Database primary key")
    url: str = Field(..., min_length=1, description="Feed URL")
    target: str = Field(..., min_length=1, description="Discord channel id")
    interval_ms: int = Field(default=DEFAULT_INTERVAL_MS, description="Polling interval in milliseconds")
    last_seen_link: str = Field(default="", description="Link of the last delivered item")
    last_seen_timestamp: Optional[int] = Field(default=None, description="Publish date (epoch ms) of the last delivered item")
    active: bool = Field(default=True, description="Whether the scheduler polls this feed")
    created_at: Optional[datetime] = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: Optional[datetime] = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def key(self) -> tuple:
        return (self.url, self.target)

    @classmethod
    def from_db_row(cls, row: Any) -> "FeedSubscription":
        data = dict(row)
        data["active"] = bool(data.get("active"))
        data["last_seen_link"] = data.get("last_seen_link") or ""
        return cls(**data)

    def __str__(self) -> str:
        return f"FeedSubscription({self.url} -> {self.target})"


@dataclass
class FeedItem:
    """One entry of a fetched feed. Every field is untrusted."""

    title: str = ""
    link: str = ""
    guid: str = ""
    published_at: int = 0  # epoch ms, 0 when unknown

    @property
    def link_or_guid(self) -> str:
        return self.link or self.guid or ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "link": self.link,
            "guid": self.guid,
            "publishedAt": self.published_at,
        }


@dataclass
class ParsedFeed:
    """Feed-level title plus items in document order."""

    title: str = ""
    items: List[FeedItem] = field(default_factory=list)


@dataclass
class ChannelInfo:
    """Cached subset of a Discord channel object."""

    id: str
    type: int
    name: Optional[str] = None

    @classmethod
    def from_api(cls, payload: Dict[str, Any]) -> "ChannelInfo":
        return cls(
            id=str(payload.get("id", "")),
            type=payload.get("type"),
            name=payload.get("name"),
        )
