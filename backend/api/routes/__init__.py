"""API route modules."""

from api.routes.dj import router as dj_router
from api.routes.events import router as events_router

__all__ = [
    "dj_router",
    "events_router",
]
