"""HTTP surface."""

from .app import create_app, create_routes

__all__ = ["create_app", "create_routes"]
