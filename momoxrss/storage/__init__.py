"""
MomoXRSS Storage Module
=======================

Repository layer over the SQLite database.
"""

from .subscription_repository import SubscriptionRepository

__all__ = ['SubscriptionRepository']
