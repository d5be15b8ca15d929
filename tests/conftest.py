"""
PyTest Configuration and Fixtures
=================================

Shared fixtures and configuration for MomoXRSS tests.
"""

import pytest
import tempfile
import os
import sys
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent.parent))

# Set test environment variables before any imports
_TEST_DIR = Path(tempfile.mkdtemp(prefix="momoxrss_tests_"))
os.environ["MOMOXRSS_DISCORD__BOT_TOKEN"] = "test-bot-token"
os.environ["MOMOXRSS_DATABASE__PATH"] = str(_TEST_DIR / "momoxrss_test.db")
os.environ["MOMOXRSS_LOGGING__FILE_PATH"] = str(_TEST_DIR / "momoxrss_test.log")
os.environ["MOMOXRSS_SCHEDULER__ENABLED"] = "false"
os.environ["MOMOXRSS_DEBUG"] = "true"


TEXT_CHANNEL_ID = "123456789012345678"
FORUM_CHANNEL_ID = "234567890123456789"


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture
def temp_db():
    """Create a temporary database with schema for testing."""
    from momoxrss.database.schema import DatabaseSchema

    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = f.name

    DatabaseSchema(db_path).create_tables()

    yield db_path

    for suffix in ("", "-wal", "-shm"):
        try:
            os.unlink(db_path + suffix)
        except FileNotFoundError:
            pass


@pytest.fixture
def db_connection(temp_db):
    """Create a database connection manager for testing."""
    from momoxrss.database.connection import DatabaseConnection

    connection = DatabaseConnection(temp_db, pool_size=2)
    yield connection

    connection.close_all_connections()


@pytest.fixture
def repository(db_connection):
    """SubscriptionRepository bound to the temporary database."""
    from momoxrss.storage.subscription_repository import SubscriptionRepository

    return SubscriptionRepository(db_connection)


@pytest.fixture
def sample_subscriptions():
    """Generate sample subscriptions for testing."""
    from momoxrss.database.models import FeedSubscription

    return [
        FeedSubscription(
            url="https://example.com/feed.xml",
            target=TEXT_CHANNEL_ID,
            interval_ms=300000,
        ),
        FeedSubscription(
            url="https://example.com/feed.xml",
            target=FORUM_CHANNEL_ID,
            interval_ms=60000,
        ),
        FeedSubscription(
            url="https://blog.example.org/atom.xml",
            target=TEXT_CHANNEL_ID,
        ),
    ]


# ============================================================================
# Feed Fixtures
# ============================================================================


@pytest.fixture
def sample_items():
    """Feed items in document order; the second one is the newest."""
    from momoxrss.database.models import FeedItem

    return [
        FeedItem(
            title="Older Article",
            link="https://example.com/older",
            guid="older-guid",
            published_at=1725451800000,
        ),
        FeedItem(
            title="Newest Article",
            link="https://example.com/newest",
            guid="newest-guid",
            published_at=1725537600000,
        ),
        FeedItem(
            title="Oldest Article",
            link="https://example.com/oldest",
            guid="oldest-guid",
            published_at=1725300000000,
        ),
    ]


@pytest.fixture
def mock_fetcher(sample_items):
    """FeedFetcher double returning the sample items."""
    from momoxrss.database.models import ParsedFeed

    fetcher = MagicMock()
    fetcher.fetch = AsyncMock(
        return_value=ParsedFeed(title="Example Feed", items=list(sample_items))
    )
    return fetcher


@pytest.fixture
def mock_gateway():
    """DiscordGateway double recording every send."""
    gateway = MagicMock()
    gateway.send = AsyncMock(return_value={"id": "999"})
    gateway.close = AsyncMock()
    gateway.invalidate_channel = MagicMock()
    return gateway
