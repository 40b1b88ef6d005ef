# Routers package
from . import auth_router

__all__ = [
    "auth_router",
]
