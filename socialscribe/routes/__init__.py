from .auth import router as auth_router
from .blogs import router as blogs_router
from .connections import router as connections_router
from .users import router as users_router
from .verification import router as verification_router

__all__ = [
    "auth_router",
    "blogs_router",
    "connections_router",
    "users_router",
    "verification_router",
]
