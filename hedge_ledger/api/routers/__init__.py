"""API router package for endpoint composition."""

from .health import api_create_health_router
from .hedge_executions import api_create_hedge_executions_router
from .hedge_requests import api_create_hedge_requests_router
from .projections import api_create_projections_router

__all__ = [
	"api_create_health_router",
	"api_create_hedge_requests_router",
	"api_create_hedge_executions_router",
	"api_create_projections_router",
]
