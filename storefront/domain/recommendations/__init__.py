"""Recommendations domain - assessment quizzes mapped to catalog products"""

from .router import router

__all__ = ["router"]
