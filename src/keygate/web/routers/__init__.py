from keygate.web.routers.auth import router as auth_router
from keygate.web.routers.events import router as events_router
from keygate.web.routers.health import router as health_router

__all__ = [
    "auth_router",
    "events_router",
    "health_router",
]
