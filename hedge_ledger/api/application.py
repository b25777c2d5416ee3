"""FastAPI application factory for the hedge ledger service."""

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from hedge_ledger.config import AppSettings
from hedge_ledger.db import DatabaseHealthPort
from hedge_ledger.jobs import HedgeOperationOrchestrator, HedgeRequestWorkflow
from hedge_ledger.ledger import HedgeProjectionPort

from .routers import (
    api_create_health_router,
    api_create_hedge_executions_router,
    api_create_hedge_requests_router,
    api_create_projections_router,
)


def create_api_application(
    settings: AppSettings,
    db_health_service: DatabaseHealthPort,
    request_workflow: HedgeRequestWorkflow,
    operation_orchestrator: HedgeOperationOrchestrator,
    projection_service: HedgeProjectionPort,
) -> FastAPI:
    """Create the FastAPI application instance for the service.

    Args:
        settings: Validated application settings used for runtime metadata.
        db_health_service: Ledger store health service used by health endpoints.
        request_workflow: Job-layer hedge request workflow.
        operation_orchestrator: Job-layer position operation orchestrator.
        projection_service: Cached derived views.

    Returns:
        FastAPI: Framework application instance with every hedge router mounted.

    Raises:
        ValueError: Raised when a router dependency is invalid.
    """
    application = FastAPI(title="Hedge Ledger")

    @application.exception_handler(RequestValidationError)
    async def api_request_validation_error(_request: Request, error: RequestValidationError) -> JSONResponse:
        payload = {
            "status": "error",
            "code": "VALIDATION_FAILED",
            "message": "request body or parameters are invalid",
            "retryable": False,
            "details": [
                {"location": [str(part) for part in item.get("loc", ())], "message": item.get("msg", "")}
                for item in error.errors()
            ],
        }
        return JSONResponse(content=payload, status_code=status.HTTP_422_UNPROCESSABLE_ENTITY)

    @application.get("/", tags=["foundation"])
    def foundation_index() -> dict[str, str]:
        return {
            "service": "hedge-ledger",
            "status": "foundation-ready",
            "environment": settings.environment_name,
        }

    application.include_router(api_create_health_router(db_health_service=db_health_service))
    application.include_router(
        api_create_hedge_requests_router(
            settings=settings,
            request_workflow=request_workflow,
            operation_orchestrator=operation_orchestrator,
        )
    )
    application.include_router(
        api_create_hedge_executions_router(
            settings=settings,
            request_workflow=request_workflow,
            operation_orchestrator=operation_orchestrator,
        )
    )
    application.include_router(api_create_projections_router(projection_service=projection_service))

    return application
