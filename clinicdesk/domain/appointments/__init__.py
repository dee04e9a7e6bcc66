"""Appointments domain - booking, token numbering and the live queue"""

from .router import queue_router, router

__all__ = ["router", "queue_router"]
