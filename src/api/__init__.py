"""Doodle Mentor API Endpoints"""

from .health import router as health_router
from .personalities import router as personalities_router
from .chat import router as chat_router
from .analysis import router as analysis_router
from .websocket_commentary import router as websocket_router

__all__ = [
    "health_router",
    "personalities_router",
    "chat_router",
    "analysis_router",
    "websocket_router",
]
