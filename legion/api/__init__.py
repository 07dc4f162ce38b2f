"""API routers."""

from legion.api.chat import router as chat_router
from legion.api.health import router as health_router
from legion.api.vibe import router as vibe_router

__all__ = [
    "chat_router",
    "health_router",
    "vibe_router",
]
