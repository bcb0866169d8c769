"""Scheduling domain - Qualiphy telehealth exam booking"""

from .router import router

__all__ = ["router"]
