"""
MomoXRSS Management API
=======================

FastAPI application exposing subscription CRUD, feed preview and manual
delivery. The poll scheduler runs inside the application's lifespan.
"""

from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ..config.settings import MomoXRSSSettings, get_settings
from ..database.models import FeedSubscription
from ..utils.logging import get_logger_for_component
from ..utils.validators import DiscordIdValidator, IntervalValidator, URLValidator
from .dependencies import AppServices, build_services, get_services, require_api_key
from .exception_handlers import add_exception_handlers
from .models import (
    AddSubscriptionRequest,
    DeliveryResponse,
    FeedPreviewRequest,
    FeedPreviewResponse,
    HealthResponse,
    ManualPostRequest,
    MessageResponse,
    SendLatestRequest,
    SubscriptionLookupRequest,
    SubscriptionPublic,
    ToggleResponse,
    UpdateSubscriptionRequest,
)

logger = get_logger_for_component("api")


def _optional_target(value: Optional[str], field_name: str) -> Optional[str]:
    if value is None:
        return None
    return DiscordIdValidator.validate(value, field_name=field_name)


def create_app(
    settings: Optional[MomoXRSSSettings] = None,
    services: Optional[AppServices] = None,
    start_scheduler: bool = True,
) -> FastAPI:
    """Build the management API.

    Args:
        settings: Application settings (default from config)
        services: Pre-wired services, built from settings when omitted
        start_scheduler: Run the poll scheduler during the app lifespan
    """
    settings = settings or (services.settings if services else get_settings())
    services = services or build_services(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if start_scheduler and settings.scheduler.enabled:
            services.scheduler.start()
        logger.info(f"{settings.app_name} API ready on {settings.api.host}:{settings.api.port}")
        try:
            yield
        finally:
            await services.close()
            logger.info(f"{settings.app_name} API stopped")

    app = FastAPI(title=settings.app_name, version=settings.version, lifespan=lifespan)
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.api.allowed_origin],
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-API-Key"],
    )

    add_exception_handlers(app)

    @app.get("/", response_model=HealthResponse)
    async def health():
        return HealthResponse(status="ok", service=settings.app_name)

    @app.post(
        "/add",
        response_model=SubscriptionPublic,
        status_code=201,
        dependencies=[Depends(require_api_key)],
    )
    async def add_subscription(
        body: AddSubscriptionRequest, services: AppServices = Depends(get_services)
    ):
        url = URLValidator.validate_feed_url(body.rss_url)
        target = DiscordIdValidator.validate(body.discord_target)
        interval_ms = IntervalValidator.validate(
            body.interval
            if body.interval is not None
            else settings.api.default_add_interval_ms
        )

        subscription = services.repository.create(
            FeedSubscription(url=url, target=target, interval_ms=interval_ms)
        )
        return SubscriptionPublic.from_subscription(subscription)

    @app.get(
        "/list",
        response_model=List[SubscriptionPublic],
        dependencies=[Depends(require_api_key)],
    )
    async def list_subscriptions(services: AppServices = Depends(get_services)):
        return [
            SubscriptionPublic.from_subscription(subscription)
            for subscription in services.repository.list_all()
        ]

    @app.post(
        "/update",
        response_model=SubscriptionPublic,
        dependencies=[Depends(require_api_key)],
    )
    async def update_subscription(
        body: UpdateSubscriptionRequest, services: AppServices = Depends(get_services)
    ):
        url = URLValidator.validate_feed_url(body.rss_url)
        current_target = _optional_target(body.current_target, "currentTarget")
        interval_ms = (
            IntervalValidator.validate(body.interval) if body.interval is not None else None
        )
        new_target = _optional_target(body.discord_target, "discordTarget")
        new_url = (
            URLValidator.validate_feed_url(body.new_rss_url, field_name="newRssUrl")
            if body.new_rss_url is not None
            else None
        )

        existing = services.repository.get(url, current_target)
        updated = services.repository.update(
            url,
            target=existing.target,
            interval_ms=interval_ms,
            new_target=new_target,
            new_url=new_url,
        )

        if new_target is not None and new_target != existing.target:
            services.gateway.invalidate_channel(existing.target, new_target)
            logger.info(f"Target of {url} moved {existing.target} -> {new_target}")

        return SubscriptionPublic.from_subscription(updated)

    @app.post(
        "/toggle",
        response_model=ToggleResponse,
        dependencies=[Depends(require_api_key)],
    )
    async def toggle_subscription(
        body: SubscriptionLookupRequest, services: AppServices = Depends(get_services)
    ):
        url = URLValidator.validate_feed_url(body.rss_url)
        target = _optional_target(body.discord_target, "discordTarget")

        subscription = services.repository.toggle_active(url, target)
        return ToggleResponse(active=subscription.active)

    @app.post(
        "/delete",
        response_model=MessageResponse,
        dependencies=[Depends(require_api_key)],
    )
    async def delete_subscription(
        body: SubscriptionLookupRequest, services: AppServices = Depends(get_services)
    ):
        url = URLValidator.validate_feed_url(body.rss_url)
        target = _optional_target(body.discord_target, "discordTarget")

        removed = services.repository.delete(url, target)
        return MessageResponse(message=f"Subscription deleted: {removed.url} -> {removed.target}")

    @app.post(
        "/test",
        response_model=FeedPreviewResponse,
        dependencies=[Depends(require_api_key)],
    )
    async def preview_feed(
        body: FeedPreviewRequest, services: AppServices = Depends(get_services)
    ):
        url = URLValidator.validate_feed_url(body.rss_url)
        return FeedPreviewResponse(**await services.checker.preview(url))

    @app.post(
        "/send-latest",
        response_model=DeliveryResponse,
        dependencies=[Depends(require_api_key)],
    )
    async def send_latest(
        body: SendLatestRequest, services: AppServices = Depends(get_services)
    ):
        url = URLValidator.validate_feed_url(body.rss_url)
        target = DiscordIdValidator.validate(body.discord_target)

        subscription = services.repository.get(url, target)
        result = await services.checker.send_latest(subscription)
        return DeliveryResponse(
            message=f"Article sent: {result.title or ''}",
            title=result.title or "",
            link=result.link or "",
        )

    @app.post(
        "/manual",
        response_model=MessageResponse,
        dependencies=[Depends(require_api_key)],
    )
    async def manual_post(
        body: ManualPostRequest, services: AppServices = Depends(get_services)
    ):
        target = DiscordIdValidator.validate(body.discord_target)

        await services.gateway.send(target, body.title, body.link)
        return MessageResponse(message="Custom article sent")

    return app
