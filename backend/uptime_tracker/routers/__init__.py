"""API routers."""
from .services import router as services_router
from .checks import router as checks_router
from .status import router as status_router

__all__ = ["services_router", "checks_router", "status_router"]
