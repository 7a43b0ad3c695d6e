"""
API Routers
"""
from .results import router as results_router
from .resources import router as resources_router
from .alerts import router as alerts_router

__all__ = ["results_router", "resources_router", "alerts_router"]
