"""Expose API endpoint routers."""

from placer.api.endpoints import auth, places, users

__all__ = ["auth", "places", "users"]
