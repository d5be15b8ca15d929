"""
MomoXRSS Processing Module
==========================

Feed retrieval, new-item detection and per-subscription checks.
"""

from .feed_fetcher import FeedFetcher
from .feed_checker import CheckResult, FeedChecker
from .novelty import NoveltyCandidate, detect_new_item, select_latest

__all__ = [
    'FeedFetcher',
    'FeedChecker',
    'CheckResult',
    'NoveltyCandidate',
    'detect_new_item',
    'select_latest',
]
