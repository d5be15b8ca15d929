"""
MomoXRSS Management API
=======================

HTTP interface for managing subscriptions and triggering deliveries.
"""

from .app import create_app

__all__ = ['create_app']
