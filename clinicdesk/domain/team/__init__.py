"""Team domain - who works at the clinic and in what role"""

from .router import router

__all__ = ["router"]
