"""Clinics domain - registration, settings and dashboard"""

from .router import router

__all__ = ["router"]
