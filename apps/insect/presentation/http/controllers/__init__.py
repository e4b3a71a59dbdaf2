"""HTTP Controllers."""

from insect.presentation.http.controllers.health import router as health_router
from insect.presentation.http.controllers.identify import router as insect_router

__all__ = ["health_router", "insect_router"]
