"""CMS webhook domain - mirrors CMS deletions and evicts cached products"""

from .router import router

__all__ = ["router"]
