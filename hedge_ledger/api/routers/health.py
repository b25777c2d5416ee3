"""Health endpoint router composition for app and ledger store checks."""

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from hedge_ledger.db import DatabaseHealthPort


def api_create_health_router(db_health_service: DatabaseHealthPort) -> APIRouter:
    """Create health-check router reporting app and ledger store status.

    Args:
        db_health_service: Ledger store health service.

    Returns:
        APIRouter: Router exposing `/health` endpoint.

    Raises:
        ValueError: Raised when db_health_service is invalid.
    """

    if db_health_service is None:
        raise ValueError("db_health_service must not be None")

    router = APIRouter(tags=["health"])

    @router.get("/health")
    def api_health_status() -> JSONResponse:
        target_label = db_health_service.db_connection_label()
        try:
            store_health = db_health_service.db_check_health()
        except ConnectionError as error:
            return JSONResponse(
                content={
                    "status": "degraded",
                    "app": "up",
                    "ledger_store": "down",
                    "detail": str(error),
                    "target": target_label,
                },
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            )
        return JSONResponse(
            content={
                "status": "ok",
                "app": "up",
                "ledger_store": store_health.status,
                "detail": store_health.detail,
                "target": target_label,
            },
            status_code=status.HTTP_200_OK,
        )

    return router
