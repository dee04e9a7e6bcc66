"""Billing domain - the clinic's plan, checkout and provider webhooks"""

from .router import router, webhooks_router

__all__ = ["router", "webhooks_router"]
