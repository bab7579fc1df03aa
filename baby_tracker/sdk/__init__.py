"""
SDK for Baby Tracker.

Provides programmatic access to authentication and event logging.
"""

from .auth_client import AuthClient, AuthError
from .tracker import Tracker

__all__ = ["AuthClient", "AuthError", "Tracker"]
