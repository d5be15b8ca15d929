"""
Feed Checker
============

One check of one subscription: fetch the feed, detect a new item, deliver
it to Discord and advance the subscription's last-seen marker.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from ..config.settings import get_settings
from ..database.models import FeedSubscription
from ..delivery.discord_gateway import DiscordGateway
from ..storage.subscription_repository import SubscriptionRepository
from ..utils.logging import get_logger_for_component
from ..utils.exceptions import MomoXRSSError, NotFoundError, ValidationError, ErrorCode
from ..utils.validators import URLValidator
from .feed_fetcher import FeedFetcher
from .novelty import NoveltyCandidate, build_candidate, detect_new_item, select_latest


@dataclass
class CheckResult:
    """Outcome of checking one subscription."""

    feed_url: str
    target: str
    delivered: bool = False
    link: Optional[str] = None
    title: Optional[str] = None
    recorded: bool = False
    error: Optional[str] = None
    checked_at: Optional[datetime] = None

    def __post_init__(self):
        if not self.checked_at:
            self.checked_at = datetime.now(timezone.utc)

    @property
    def success(self) -> bool:
        return self.error is None


class FeedChecker:
    """Runs fetch -> detect -> deliver -> record for subscriptions."""

    def __init__(
        self,
        repository: SubscriptionRepository,
        fetcher: FeedFetcher,
        gateway: DiscordGateway,
        preview_items: Optional[int] = None,
    ):
        self.repository = repository
        self.fetcher = fetcher
        self.gateway = gateway
        self.preview_items = preview_items or get_settings().fetcher.preview_items

    async def check(self, subscription: FeedSubscription) -> CheckResult:
        """Check one subscription for a new item and deliver it.

        Feed, validation and delivery errors are logged and reported in the
        result; the subscription's state is left untouched in that case.
        """
        result = CheckResult(feed_url=subscription.url, target=subscription.target)
        logger = self._logger_for(subscription)

        if not URLValidator.is_valid(subscription.url):
            logger.warning(f"Skipping subscription with invalid URL: {subscription.url}")
            result.error = "invalid feed URL"
            return result

        try:
            parsed = await self.fetcher.fetch(subscription.url)

            candidate = detect_new_item(parsed.items, subscription)
            if candidate is None:
                logger.debug(f"No new item for {subscription.url}")
                return result

            await self._deliver(subscription, candidate, result)

        except MomoXRSSError as e:
            logger.error(
                f"Check failed for {subscription.url} -> {subscription.target}: {e}",
                extra=e.to_dict(),
            )
            result.error = str(e)

        return result

    async def send_latest(self, subscription: FeedSubscription) -> CheckResult:
        """Deliver the feed's latest item now, bypassing the novelty gates.

        Raises:
            NotFoundError: If the feed has no items
            ValidationError: If the latest item has no valid link
            FeedFetchError, DeliveryError: Propagated to the caller
        """
        parsed = await self.fetcher.fetch(subscription.url)

        latest = select_latest(parsed.items)
        if latest is None:
            raise NotFoundError(
                "No articles found in feed",
                feed_url=subscription.url,
                error_code=ErrorCode.FEED_EMPTY,
            )

        candidate = build_candidate(latest)
        if candidate is None:
            raise ValidationError("Latest article has no valid link", field_name="link")

        result = CheckResult(feed_url=subscription.url, target=subscription.target)
        await self._deliver(subscription, candidate, result)
        return result

    async def preview(self, feed_url: str) -> Dict[str, Any]:
        """Fetch and parse a feed without touching the store."""
        parsed = await self.fetcher.fetch(feed_url)
        return {
            "title": parsed.title,
            "items": [item.to_dict() for item in parsed.items[: self.preview_items]],
        }

    def _logger_for(self, subscription: FeedSubscription):
        return get_logger_for_component(
            "feed_checker", target=subscription.target, feed_url=subscription.url
        )

    async def _deliver(
        self,
        subscription: FeedSubscription,
        candidate: NoveltyCandidate,
        result: CheckResult,
    ) -> None:
        await self.gateway.send(subscription.target, candidate.title, candidate.link)

        result.delivered = True
        result.link = candidate.link
        result.title = candidate.title

        result.recorded = self.repository.record_delivery(
            subscription.url,
            subscription.target,
            expected_link=subscription.last_seen_link,
            expected_timestamp=subscription.last_seen_timestamp,
            link=candidate.link,
            timestamp=candidate.published_at or None,
        )
        self._logger_for(subscription).info(
            f"Delivered {candidate.link} from {subscription.url} to {subscription.target}"
        )
