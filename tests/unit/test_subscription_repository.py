"""
Tests for SubscriptionRepository
================================

CRUD operations, lookups by URL/target and the compare-and-update
delivery marker.
"""

import pytest

from momoxrss.database.models import FeedSubscription
from momoxrss.utils.exceptions import (
    DuplicateSubscriptionError,
    NotFoundError,
    ValidationError,
)

TEXT_CHANNEL_ID = "123456789012345678"
FORUM_CHANNEL_ID = "234567890123456789"
NEW_CHANNEL_ID = "345678901234567890"


class TestSubscriptionCrud:
    def test_create_and_get(self, repository, sample_subscriptions):
        created = repository.create(sample_subscriptions[0])

        assert created.id is not None
        assert created.url == "https://example.com/feed.xml"
        assert created.target == TEXT_CHANNEL_ID
        assert created.interval_ms == 300000
        assert created.last_seen_link == ""
        assert created.last_seen_timestamp is None
        assert created.active is True

        fetched = repository.get(created.url, created.target)
        assert fetched.id == created.id

    def test_create_duplicate_pair(self, repository, sample_subscriptions):
        repository.create(sample_subscriptions[0])

        with pytest.raises(DuplicateSubscriptionError):
            repository.create(sample_subscriptions[0])

    def test_same_url_different_targets(self, repository, sample_subscriptions):
        repository.create(sample_subscriptions[0])
        repository.create(sample_subscriptions[1])

        assert len(repository.list_all()) == 2

    def test_create_rejects_short_interval(self, repository):
        with pytest.raises(ValidationError):
            repository.create(
                FeedSubscription(
                    url="https://example.com/feed.xml",
                    target=TEXT_CHANNEL_ID,
                    interval_ms=59999,
                )
            )

    def test_find_one_by_url_without_target_returns_first(self, repository, sample_subscriptions):
        first = repository.create(sample_subscriptions[0])
        repository.create(sample_subscriptions[1])

        assert repository.find_one_by_url("https://example.com/feed.xml").id == first.id
        assert repository.find_one_by_url("https://unknown.example.com/rss") is None

    def test_find_by_target(self, repository, sample_subscriptions):
        for subscription in sample_subscriptions:
            repository.create(subscription)

        urls = [s.url for s in repository.find_by_target(TEXT_CHANNEL_ID)]

        assert urls == ["https://example.com/feed.xml", "https://blog.example.org/atom.xml"]

    def test_get_missing(self, repository):
        with pytest.raises(NotFoundError):
            repository.get("https://example.com/none.xml")

    def test_toggle_active(self, repository, sample_subscriptions):
        created = repository.create(sample_subscriptions[0])

        assert repository.toggle_active(created.url).active is False
        assert repository.find_all_active() == []
        assert repository.toggle_active(created.url, created.target).active is True
        assert len(repository.find_all_active()) == 1

    def test_delete(self, repository, sample_subscriptions):
        repository.create(sample_subscriptions[0])
        repository.create(sample_subscriptions[1])

        removed = repository.delete("https://example.com/feed.xml", FORUM_CHANNEL_ID)

        assert removed.target == FORUM_CHANNEL_ID
        remaining = repository.list_all()
        assert [s.target for s in remaining] == [TEXT_CHANNEL_ID]

    def test_delete_missing(self, repository):
        with pytest.raises(NotFoundError):
            repository.delete("https://example.com/none.xml")


class TestSubscriptionUpdate:
    def test_update_interval(self, repository, sample_subscriptions):
        created = repository.create(sample_subscriptions[0])

        updated = repository.update_interval(created.url, 600000)

        assert updated.interval_ms == 600000

    def test_update_interval_too_low(self, repository, sample_subscriptions):
        created = repository.create(sample_subscriptions[0])

        with pytest.raises(ValidationError):
            repository.update_interval(created.url, 1000)

        assert repository.get(created.url).interval_ms == 300000

    def test_update_target_and_url(self, repository, sample_subscriptions):
        created = repository.create(sample_subscriptions[0])

        updated = repository.update(
            created.url,
            new_target=NEW_CHANNEL_ID,
            new_url="https://example.com/moved.xml",
        )

        assert updated.id == created.id
        assert updated.target == NEW_CHANNEL_ID
        assert updated.url == "https://example.com/moved.xml"
        assert repository.find_one_by_url(created.url) is None

    def test_update_qualified_by_target(self, repository, sample_subscriptions):
        repository.create(sample_subscriptions[0])
        forum = repository.create(sample_subscriptions[1])

        updated = repository.update(forum.url, target=FORUM_CHANNEL_ID, interval_ms=120000)

        assert updated.id == forum.id
        assert repository.get(forum.url, TEXT_CHANNEL_ID).interval_ms == 300000

    def test_update_into_existing_pair(self, repository, sample_subscriptions):
        repository.create(sample_subscriptions[0])
        repository.create(sample_subscriptions[1])

        with pytest.raises(DuplicateSubscriptionError):
            repository.update(
                "https://example.com/feed.xml",
                target=TEXT_CHANNEL_ID,
                new_target=FORUM_CHANNEL_ID,
            )

    def test_update_missing(self, repository):
        with pytest.raises(NotFoundError):
            repository.update("https://example.com/none.xml", interval_ms=120000)


class TestRecordDelivery:
    def test_first_delivery(self, repository, sample_subscriptions):
        created = repository.create(sample_subscriptions[0])

        won = repository.record_delivery(
            created.url,
            created.target,
            expected_link="",
            expected_timestamp=None,
            link="https://example.com/a",
            timestamp=1000,
        )

        assert won is True
        stored = repository.get(created.url, created.target)
        assert stored.last_seen_link == "https://example.com/a"
        assert stored.last_seen_timestamp == 1000

    def test_undated_delivery_keeps_timestamp(self, repository, sample_subscriptions):
        created = repository.create(sample_subscriptions[0])
        repository.record_delivery(created.url, created.target, "", None, "https://example.com/a", 1000)

        won = repository.record_delivery(
            created.url, created.target, "https://example.com/a", 1000, "https://example.com/b", 0
        )

        assert won is True
        stored = repository.get(created.url, created.target)
        assert stored.last_seen_link == "https://example.com/b"
        assert stored.last_seen_timestamp == 1000

    def test_stale_expectation_loses(self, repository, sample_subscriptions):
        created = repository.create(sample_subscriptions[0])
        assert repository.record_delivery(
            created.url, created.target, "", None, "https://example.com/winner", 2000
        )

        won = repository.record_delivery(
            created.url, created.target, "", None, "https://example.com/loser", 1500
        )

        assert won is False
        stored = repository.get(created.url, created.target)
        assert stored.last_seen_link == "https://example.com/winner"
        assert stored.last_seen_timestamp == 2000

    def test_only_matching_target_is_updated(self, repository, sample_subscriptions):
        repository.create(sample_subscriptions[0])
        repository.create(sample_subscriptions[1])

        repository.record_delivery(
            "https://example.com/feed.xml", FORUM_CHANNEL_ID, "", None, "https://example.com/a", 10
        )

        assert repository.get("https://example.com/feed.xml", TEXT_CHANNEL_ID).last_seen_link == ""
        assert (
            repository.get("https://example.com/feed.xml", FORUM_CHANNEL_ID).last_seen_link
            == "https://example.com/a"
        )
