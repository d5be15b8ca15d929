"""
Novelty Detection
=================

Decides whether a fetched feed holds an item that has not been delivered
yet for a subscription.

Two gates combine:
- link gate: the candidate link equals the stored ``last_seen_link``
- date gate: the subscription has a ``last_seen_timestamp``, the candidate
  is dated, and it is not strictly newer

Either gate suppresses delivery.
"""

from dataclasses import dataclass
from typing import List, Optional

from ..database.models import FeedItem, FeedSubscription
from ..utils.validators import URLValidator


@dataclass
class NoveltyCandidate:
    """Latest item selected for delivery, with its sanitized link."""

    item: FeedItem
    link: str
    published_at: int

    @property
    def title(self) -> str:
        return self.item.title


def select_latest(items: List[FeedItem]) -> Optional[FeedItem]:
    """Pick the newest item.

    Items are sorted by publish date, newest first. If no item carries a
    date the feed is assumed to be ordered newest-first already.
    """
    if not items:
        return None

    # sorted() is stable, ties keep feed order
    by_date = sorted(items, key=lambda item: item.published_at or 0, reverse=True)
    if by_date[0].published_at:
        return by_date[0]
    return items[0]


def build_candidate(item: FeedItem) -> Optional[NoveltyCandidate]:
    """Wrap an item with its sanitized link, or None when it has no valid link."""
    link = URLValidator.sanitize_link(item.link_or_guid)
    if not link:
        return None
    return NoveltyCandidate(item=item, link=link, published_at=item.published_at or 0)


def is_already_seen(candidate: NoveltyCandidate, subscription: FeedSubscription) -> bool:
    if candidate.link == subscription.last_seen_link:
        return True

    last_ts = subscription.last_seen_timestamp
    if last_ts and candidate.published_at and candidate.published_at <= last_ts:
        return True

    return False


def detect_new_item(
    items: List[FeedItem], subscription: FeedSubscription
) -> Optional[NoveltyCandidate]:
    """Return the item to deliver for ``subscription``, or None.

    None means one of: the feed is empty, the latest item has no valid link,
    or the latest item was already delivered.
    """
    latest = select_latest(items)
    if latest is None:
        return None

    candidate = build_candidate(latest)
    if candidate is None:
        return None

    if is_already_seen(candidate, subscription):
        return None

    return candidate
