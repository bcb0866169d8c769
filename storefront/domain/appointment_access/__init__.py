"""Appointment access domain - timed access windows for subscription appointments"""

from .router import admin_router, router

__all__ = ["router", "admin_router"]
