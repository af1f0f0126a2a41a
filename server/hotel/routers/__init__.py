"""FastAPI routers package."""

from .auth import router as auth_router
from .catalog import router as catalog_router
from .feedback import router as feedback_router
from .health import probes_router
from .health import router as health_router
from .metrics import router as metrics_router
from .reservation import router as reservation_router
from .restaurant import router as restaurant_router

__all__ = [
    "auth_router",
    "catalog_router",
    "feedback_router",
    "health_router",
    "metrics_router",
    "probes_router",
    "reservation_router",
    "restaurant_router",
]
