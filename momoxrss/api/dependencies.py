"""
API Dependencies
================

Wiring of the long-lived services shared by the API routes and the poll
scheduler, plus the API key gate.
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Request, Security
from fastapi.security import APIKeyHeader

from ..config.settings import MomoXRSSSettings, get_settings
from ..database.connection import DatabaseConnection
from ..database.schema import DatabaseSchema
from ..delivery.discord_gateway import DiscordGateway
from ..processing.feed_checker import FeedChecker
from ..processing.feed_fetcher import FeedFetcher
from ..scheduler.poll_scheduler import PollScheduler
from ..storage.subscription_repository import SubscriptionRepository
from ..utils.exceptions import AuthenticationError


API_KEY_SCHEME = APIKeyHeader(name="X-API-Key", auto_error=False)


@dataclass
class AppServices:
    """Everything a request handler or the scheduler needs."""

    settings: MomoXRSSSettings
    db: DatabaseConnection
    repository: SubscriptionRepository
    gateway: DiscordGateway
    fetcher: FeedFetcher
    checker: FeedChecker
    scheduler: PollScheduler

    async def close(self) -> None:
        await self.scheduler.stop()
        await self.gateway.close()
        self.db.close_all_connections()


def build_services(settings: Optional[MomoXRSSSettings] = None) -> AppServices:
    """Create the schema if needed and wire all services from settings."""
    settings = settings or get_settings()

    DatabaseSchema(settings.database.path).create_tables()
    db = DatabaseConnection(settings.database.path, settings.database.pool_size)
    repository = SubscriptionRepository(db)

    gateway = DiscordGateway.from_settings(settings.discord)
    fetcher = FeedFetcher(
        timeout=settings.fetcher.timeout_seconds,
        request_timeout=settings.fetcher.request_timeout_seconds,
    )
    checker = FeedChecker(
        repository, fetcher, gateway, preview_items=settings.fetcher.preview_items
    )
    scheduler = PollScheduler(repository, checker, settings=settings.scheduler)

    return AppServices(
        settings=settings,
        db=db,
        repository=repository,
        gateway=gateway,
        fetcher=fetcher,
        checker=checker,
        scheduler=scheduler,
    )


def get_services(request: Request) -> AppServices:
    return request.app.state.services


def require_api_key(
    request: Request,
    api_key_header: Optional[str] = Security(API_KEY_SCHEME),
) -> None:
    """Reject the request unless it carries the configured X-API-Key.

    No key configured means the management routes are open.
    """
    expected = get_services(request).settings.api.api_key
    if not expected:
        return

    if not api_key_header or api_key_header != expected:
        raise AuthenticationError()
