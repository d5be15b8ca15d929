"""
MomoXRSS - RSS to Discord Relay
===============================

Polls RSS/Atom feeds and posts each new article to a Discord channel.

Main Components:
- Database: SQLite subscription store with compare-and-update delivery state
- Configuration: environment variables with Pydantic validation
- Processing: feed fetching, new-item detection, per-subscription checks
- Delivery: Discord REST gateway (forum threads or text messages)
- Scheduler: in-process polling loop
- API: FastAPI management endpoints
"""

__version__ = "1.0.0"
__author__ = "MomoXRSS Development Team"
__description__ = "RSS to Discord relay with a management API"

# Core imports for easy access
from .config.settings import get_settings
from .database.connection import get_db_manager
from .database.schema import DatabaseSchema
from .utils.logging import configure_application_logging, get_logger_for_component
from .utils.exceptions import MomoXRSSError

__all__ = [
    "get_settings",
    "get_db_manager",
    "DatabaseSchema",
    "configure_application_logging",
    "get_logger_for_component",
    "MomoXRSSError",
]
