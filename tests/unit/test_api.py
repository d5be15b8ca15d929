"""
Tests for the Management API
============================

Routes exercised through FastAPI's TestClient against a temporary SQLite
store, with the feed fetcher and Discord gateway mocked.
"""

import pytest
from fastapi.testclient import TestClient

from momoxrss.api.app import create_app
from momoxrss.api.dependencies import AppServices
from momoxrss.config.settings import ApiSettings, MomoXRSSSettings, SchedulerSettings
from momoxrss.processing.feed_checker import FeedChecker
from momoxrss.scheduler.poll_scheduler import PollScheduler
from momoxrss.utils.exceptions import (
    ConfigurationError,
    DeliveryError,
    FeedFetchError,
    UnsupportedChannelTypeError,
)


FEED_URL = "https://example.com/feed.xml"
TARGET = "123456789012345678"
OTHER_TARGET = "234567890123456789"


def _build_client(db_connection, repository, mock_fetcher, mock_gateway, api_key=None):
    settings = MomoXRSSSettings(
        api=ApiSettings(api_key=api_key),
        scheduler=SchedulerSettings(enabled=False),
    )
    checker = FeedChecker(repository, mock_fetcher, mock_gateway, preview_items=5)
    services = AppServices(
        settings=settings,
        db=db_connection,
        repository=repository,
        gateway=mock_gateway,
        fetcher=mock_fetcher,
        checker=checker,
        scheduler=PollScheduler(repository, checker, settings=settings.scheduler),
    )
    return TestClient(create_app(settings, services, start_scheduler=False))


@pytest.fixture
def client(db_connection, repository, mock_fetcher, mock_gateway):
    return _build_client(db_connection, repository, mock_fetcher, mock_gateway)


@pytest.fixture
def secured_client(db_connection, repository, mock_fetcher, mock_gateway):
    return _build_client(db_connection, repository, mock_fetcher, mock_gateway, api_key="s3cret")


def _add(client, url=FEED_URL, target=TARGET, **extra):
    return client.post("/add", json={"rssUrl": url, "discordTarget": target, **extra})


class TestHealth:
    def test_health(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert response.json() == {"status": "ok", "service": "MomoXRSS"}


class TestAddAndList:
    def test_add_uses_default_interval(self, client):
        response = _add(client)

        assert response.status_code == 201
        data = response.json()
        assert data["rssUrl"] == FEED_URL
        assert data["discordTarget"] == TARGET
        assert data["interval"] == 300000
        assert data["active"] is True
        assert data["lastItem"] == ""
        assert data["lastPubDate"] is None

    def test_add_accepts_numeric_target(self, client):
        response = client.post("/add", json={"rssUrl": FEED_URL, "discordTarget": int(TARGET)})

        assert response.status_code == 201
        assert response.json()["discordTarget"] == TARGET

    @pytest.mark.parametrize(
        "body",
        [
            {"discordTarget": TARGET},
            {"rssUrl": "not-a-url", "discordTarget": TARGET},
            {"rssUrl": FEED_URL},
            {"rssUrl": FEED_URL, "discordTarget": "general"},
            {"rssUrl": FEED_URL, "discordTarget": TARGET, "interval": 59999},
            {"rssUrl": FEED_URL, "discordTarget": TARGET, "interval": "soon"},
        ],
    )
    def test_add_rejects_invalid_input(self, client, repository, body):
        response = client.post("/add", json=body)

        assert response.status_code == 400
        assert response.json()["detail"]
        assert repository.list_all() == []

    def test_add_rejects_malformed_json(self, client):
        response = client.post(
            "/add", content="{not json", headers={"Content-Type": "application/json"}
        )

        assert response.status_code == 400

    def test_add_duplicate(self, client):
        _add(client)
        response = _add(client)

        assert response.status_code == 409
        assert response.json()["error_code"] == "R001"

    def test_list(self, client):
        _add(client)
        _add(client, target=OTHER_TARGET, interval=60000)

        response = client.get("/list")

        assert response.status_code == 200
        assert [(s["discordTarget"], s["interval"]) for s in response.json()] == [
            (TARGET, 300000),
            (OTHER_TARGET, 60000),
        ]


class TestUpdate:
    def test_update_interval(self, client):
        _add(client)

        response = client.post("/update", json={"rssUrl": FEED_URL, "interval": 120000})

        assert response.status_code == 200
        assert response.json()["interval"] == 120000

    def test_update_interval_too_low(self, client):
        _add(client)

        response = client.post("/update", json={"rssUrl": FEED_URL, "interval": 1000})

        assert response.status_code == 400

    def test_update_target_invalidates_cache(self, client, mock_gateway):
        _add(client)

        response = client.post("/update", json={"rssUrl": FEED_URL, "discordTarget": OTHER_TARGET})

        assert response.status_code == 200
        assert response.json()["discordTarget"] == OTHER_TARGET
        mock_gateway.invalidate_channel.assert_called_once_with(TARGET, OTHER_TARGET)

    def test_update_url_only_keeps_cache(self, client, mock_gateway):
        _add(client)

        response = client.post(
            "/update",
            json={"rssUrl": FEED_URL, "newRssUrl": "https://example.com/moved.xml"},
        )

        assert response.status_code == 200
        assert response.json()["rssUrl"] == "https://example.com/moved.xml"
        mock_gateway.invalidate_channel.assert_not_called()

    def test_update_with_current_target(self, client):
        _add(client)
        _add(client, target=OTHER_TARGET)

        response = client.post(
            "/update",
            json={"rssUrl": FEED_URL, "currentTarget": OTHER_TARGET, "interval": 900000},
        )

        assert response.status_code == 200
        assert response.json()["discordTarget"] == OTHER_TARGET
        assert response.json()["interval"] == 900000

    def test_update_bad_new_url(self, client):
        _add(client)

        response = client.post("/update", json={"rssUrl": FEED_URL, "newRssUrl": "nope"})

        assert response.status_code == 400

    def test_update_unknown_feed(self, client):
        response = client.post("/update", json={"rssUrl": FEED_URL, "interval": 120000})

        assert response.status_code == 404


class TestToggleAndDelete:
    def test_toggle(self, client):
        _add(client)

        first = client.post("/toggle", json={"rssUrl": FEED_URL})
        second = client.post("/toggle", json={"rssUrl": FEED_URL, "discordTarget": TARGET})

        assert first.json() == {"active": False}
        assert second.json() == {"active": True}

    def test_toggle_unknown(self, client):
        assert client.post("/toggle", json={"rssUrl": FEED_URL}).status_code == 404

    def test_delete(self, client):
        _add(client)

        response = client.post("/delete", json={"rssUrl": FEED_URL})

        assert response.status_code == 200
        assert "message" in response.json()
        assert client.get("/list").json() == []
        assert client.post("/delete", json={"rssUrl": FEED_URL}).status_code == 404


class TestFeedPreview:
    def test_preview(self, client, repository):
        response = client.post("/test", json={"rssUrl": FEED_URL})

        assert response.status_code == 200
        data = response.json()
        assert data["title"] == "Example Feed"
        assert len(data["items"]) == 3
        assert set(data["items"][0]) == {"title", "link", "guid", "publishedAt"}
        assert repository.list_all() == []

    def test_preview_fetch_failure(self, client, mock_fetcher):
        mock_fetcher.fetch.side_effect = FeedFetchError("HTTP 500", feed_url=FEED_URL)

        response = client.post("/test", json={"rssUrl": FEED_URL})

        assert response.status_code == 502

    def test_preview_bad_url(self, client, mock_fetcher):
        response = client.post("/test", json={"rssUrl": "ftp://example.com/feed"})

        assert response.status_code == 400
        mock_fetcher.fetch.assert_not_awaited()


class TestDeliveryRoutes:
    def test_send_latest(self, client, repository, mock_gateway):
        _add(client)

        response = client.post("/send-latest", json={"rssUrl": FEED_URL, "discordTarget": TARGET})

        assert response.status_code == 200
        assert response.json()["title"] == "Newest Article"
        assert response.json()["link"] == "https://example.com/newest"
        mock_gateway.send.assert_awaited_once_with(TARGET, "Newest Article", "https://example.com/newest")
        assert repository.get(FEED_URL, TARGET).last_seen_link == "https://example.com/newest"

    def test_send_latest_requires_subscription(self, client, mock_gateway):
        response = client.post("/send-latest", json={"rssUrl": FEED_URL, "discordTarget": TARGET})

        assert response.status_code == 404
        mock_gateway.send.assert_not_awaited()

    def test_send_latest_empty_feed(self, client, mock_fetcher):
        _add(client)
        mock_fetcher.fetch.return_value.items.clear()

        response = client.post("/send-latest", json={"rssUrl": FEED_URL, "discordTarget": TARGET})

        assert response.status_code == 404
        assert response.json()["error_code"] == "F006"

    def test_send_latest_unsupported_channel(self, client, mock_gateway):
        _add(client)
        mock_gateway.send.side_effect = UnsupportedChannelTypeError(TARGET, 2)

        response = client.post("/send-latest", json={"rssUrl": FEED_URL, "discordTarget": TARGET})

        assert response.status_code == 422

    def test_send_latest_discord_failure(self, client, mock_gateway):
        _add(client)
        mock_gateway.send.side_effect = DeliveryError("Discord 403", status=403, body="Missing Access")

        response = client.post("/send-latest", json={"rssUrl": FEED_URL, "discordTarget": TARGET})

        assert response.status_code == 502

    def test_manual(self, client, mock_gateway):
        response = client.post(
            "/manual",
            json={"discordTarget": TARGET, "title": "Hello", "link": "https://example.com/x"},
        )

        assert response.status_code == 200
        mock_gateway.send.assert_awaited_once_with(TARGET, "Hello", "https://example.com/x")

    def test_manual_bad_target(self, client, mock_gateway):
        response = client.post("/manual", json={"discordTarget": "123"})

        assert response.status_code == 400
        mock_gateway.send.assert_not_awaited()

    def test_manual_without_bot_token(self, client, mock_gateway):
        mock_gateway.send.side_effect = ConfigurationError("Discord bot token is not configured")

        response = client.post("/manual", json={"discordTarget": TARGET})

        assert response.status_code == 503


class TestApiKey:
    def test_missing_key(self, secured_client):
        response = secured_client.get("/list")

        assert response.status_code == 401
        assert response.json()["error_code"] == "A001"

    def test_wrong_key(self, secured_client):
        response = secured_client.get("/list", headers={"X-API-Key": "nope"})

        assert response.status_code == 401

    def test_right_key(self, secured_client):
        response = secured_client.get("/list", headers={"X-API-Key": "s3cret"})

        assert response.status_code == 200

    def test_health_is_open(self, secured_client):
        assert secured_client.get("/").status_code == 200

    def test_cors_preflight(self, client):
        response = client.options(
            "/add",
            headers={
                "Origin": "https://dashboard.example.com",
                "Access-Control-Request-Method": "POST",
                "Access-Control-Request-Headers": "X-API-Key",
            },
        )

        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "*"
