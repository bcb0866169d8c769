"""Contact domain - public contact form"""

from .router import router

__all__ = ["router"]
