"""Checkout domain - one-off appointment payments, cart checkout and orders"""

from .router import router

__all__ = ["router"]
