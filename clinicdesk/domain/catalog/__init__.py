"""Catalog domain - services a clinic bills for"""

from .router import router

__all__ = ["router"]
