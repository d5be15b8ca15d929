"""
Management API Models
=====================

Request and response bodies for the management API. Field names travel as
camelCase on the wire (``rssUrl``, ``discordTarget``...).
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..database.models import FeedSubscription


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        coerce_numbers_to_str=True,
    )


class AddSubscriptionRequest(CamelModel):
    rss_url: Optional[str] = None
    discord_target: Optional[str] = None
    interval: Optional[int] = Field(default=None, description="Polling interval in ms")


class UpdateSubscriptionRequest(CamelModel):
    """Fields left out are not changed.

    ``current_target`` picks one subscription when the URL is tracked for
    several channels; ``discord_target`` is the new channel.
    """

    rss_url: Optional[str] = None
    current_target: Optional[str] = None
    interval: Optional[int] = None
    discord_target: Optional[str] = None
    new_rss_url: Optional[str] = None


class SubscriptionLookupRequest(CamelModel):
    rss_url: Optional[str] = None
    discord_target: Optional[str] = None


class FeedPreviewRequest(CamelModel):
    rss_url: Optional[str] = None


class SendLatestRequest(CamelModel):
    rss_url: Optional[str] = None
    discord_target: Optional[str] = None


class ManualPostRequest(CamelModel):
    discord_target: Optional[str] = None
    title: Optional[str] = None
    link: Optional[str] = None


class SubscriptionPublic(CamelModel):
    id: Optional[int] = None
    rss_url: str
    discord_target: str
    interval: int
    last_item: str = ""
    last_pub_date: Optional[int] = None
    active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_subscription(cls, subscription: FeedSubscription) -> "SubscriptionPublic":
        return cls(
            id=subscription.id,
            rss_url=subscription.url,
            discord_target=subscription.target,
            interval=subscription.interval_ms,
            last_item=subscription.last_seen_link,
            last_pub_date=subscription.last_seen_timestamp,
            active=subscription.active,
            created_at=subscription.created_at,
            updated_at=subscription.updated_at,
        )


class HealthResponse(BaseModel):
    status: str = "ok"
    service: str


class ToggleResponse(BaseModel):
    active: bool


class MessageResponse(BaseModel):
    message: str


class DeliveryResponse(BaseModel):
    message: str
    title: str
    link: str


class FeedPreviewResponse(BaseModel):
    title: str = ""
    items: List[Dict[str, Any]] = []


class ErrorResponse(BaseModel):
    detail: str
    error_code: Optional[str] = None
