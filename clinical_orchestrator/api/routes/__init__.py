"""API routes package."""

from .health import router as health_router
from .orchestration import router as orchestration_router

__all__ = ["health_router", "orchestration_router"]
