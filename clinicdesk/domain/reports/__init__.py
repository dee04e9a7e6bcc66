"""Reports domain - reminders and daily summaries"""

from .router import router

__all__ = ["router"]
