"""Web control surface for Inbox Watch."""

from .app import create_app

__all__ = ["create_app"]
