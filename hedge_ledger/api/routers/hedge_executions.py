"""Hedge execution API router composition for reads and derived request creation."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Query, status
from fastapi.responses import JSONResponse

from hedge_ledger.config import AppSettings
from hedge_ledger.domain import (
    HedgeDirection,
    HedgeExecutionStatus,
    HedgeLedgerError,
    HedgeReferenceType,
    HedgeRequestType,
)
from hedge_ledger.jobs import HedgeOperationOrchestrator, HedgeRequestWorkflow
from hedge_ledger.ledger import HedgeExecutionFilter

from ..schemas import HedgePriceFixRequestBody, HedgeRollRequestBody
from ..serialization import api_error_response, api_page_payload, api_serialize_record


def api_create_hedge_executions_router(
    settings: AppSettings,
    request_workflow: HedgeRequestWorkflow,
    operation_orchestrator: HedgeOperationOrchestrator,
) -> APIRouter:
    """Create hedge execution router.

    Args:
        settings: Runtime settings used for pagination defaults.
        request_workflow: Job-layer request workflow used for derived requests.
        operation_orchestrator: Job-layer orchestrator used for execution reads.

    Returns:
        APIRouter: Router exposing `/hedge-executions` APIs.

    Raises:
        ValueError: Raised when dependencies are invalid.
    """

    if settings is None:
        raise ValueError("settings must not be None")
    if request_workflow is None:
        raise ValueError("request_workflow must not be None")
    if operation_orchestrator is None:
        raise ValueError("operation_orchestrator must not be None")

    router = APIRouter(prefix="/hedge-executions", tags=["hedge-executions"])

    @router.get("")
    def api_hedge_execution_list(
        metal: str | None = Query(default=None),
        direction: HedgeDirection | None = Query(default=None),
        status_filter: HedgeExecutionStatus | None = Query(default=None, alias="status"),
        reference_type: HedgeReferenceType | None = Query(default=None),
        limit: int = Query(default=settings.api_default_limit, ge=1),
        offset: int = Query(default=0, ge=0),
    ) -> JSONResponse:
        """Return executions in creation order.

        Returns:
            JSONResponse: Execution list payload.

        Raises:
            RuntimeError: Raised when execution fails unexpectedly.
        """

        execution_filter = HedgeExecutionFilter(
            metal=metal.strip() if metal and metal.strip() else None,
            direction=direction,
            status=status_filter,
            reference_type=reference_type,
        )
        applied_limit = min(limit, settings.api_max_limit)
        try:
            executions = operation_orchestrator.job_execution_list(execution_filter, applied_limit, offset)
        except HedgeLedgerError as error:
            return api_error_response(error)
        payload = {
            "items": [api_serialize_record(execution) for execution in executions],
            "page": api_page_payload(limit, applied_limit, offset, len(executions)),
            "filters": {name: str(getattr(value, "value", value)) for name, value in execution_filter.filter_as_mapping().items()},
        }
        return JSONResponse(content=payload, status_code=status.HTTP_200_OK)

    @router.get("/{hedge_execution_id}")
    def api_hedge_execution_detail(hedge_execution_id: UUID) -> JSONResponse:
        try:
            execution = operation_orchestrator.job_execution_get(hedge_execution_id)
        except HedgeLedgerError as error:
            return api_error_response(error)
        return JSONResponse(content=api_serialize_record(execution), status_code=status.HTTP_200_OK)

    @router.get("/{hedge_execution_id}/links")
    def api_hedge_execution_links(hedge_execution_id: UUID) -> JSONResponse:
        try:
            operation_orchestrator.job_execution_get(hedge_execution_id)
            links = operation_orchestrator.job_execution_links(hedge_execution_id)
        except HedgeLedgerError as error:
            return api_error_response(error)
        payload = {
            "hedge_execution_id": str(hedge_execution_id),
            "items": [api_serialize_record(link) for link in links],
        }
        return JSONResponse(content=payload, status_code=status.HTTP_200_OK)

    @router.post("/{hedge_execution_id}/roll-requests")
    def api_hedge_execution_roll_request(hedge_execution_id: UUID, body: HedgeRollRequestBody) -> JSONResponse:
        """Create an auto-approved roll request for one execution.

        Returns:
            JSONResponse: Created request payload.

        Raises:
            RuntimeError: Raised when execution fails unexpectedly.
        """

        try:
            request = request_workflow.job_request_create_roll(
                hedge_execution_id=hedge_execution_id,
                quantity_mt=body.quantity_mt,
                desired_expiry=body.desired_expiry,
                notes=body.notes,
            )
        except HedgeLedgerError as error:
            return api_error_response(error)
        return JSONResponse(content=api_serialize_record(request), status_code=status.HTTP_201_CREATED)

    @router.post("/{hedge_execution_id}/fixing-close-requests")
    def api_hedge_execution_fixing_close_request(
        hedge_execution_id: UUID,
        body: HedgeRollRequestBody,
    ) -> JSONResponse:
        try:
            request = request_workflow.job_request_create_roll(
                hedge_execution_id=hedge_execution_id,
                quantity_mt=body.quantity_mt,
                notes=body.notes,
                request_type=HedgeRequestType.FIXING_CLOSE,
            )
        except HedgeLedgerError as error:
            return api_error_response(error)
        return JSONResponse(content=api_serialize_record(request), status_code=status.HTTP_201_CREATED)

    @router.post("/{hedge_execution_id}/price-fix-requests")
    def api_hedge_execution_price_fix_request(
        hedge_execution_id: UUID,
        body: HedgePriceFixRequestBody,
    ) -> JSONResponse:
        """Create an auto-approved opposite-direction price-fix request for one execution.

        Returns:
            JSONResponse: Created request payload.

        Raises:
            RuntimeError: Raised when execution fails unexpectedly.
        """

        try:
            request = request_workflow.job_request_create_price_fix(
                hedge_execution_id=hedge_execution_id,
                order_id=body.order_id,
                quantity_mt=body.quantity_mt,
                fixing_date=body.fixing_date,
                notes=body.notes,
            )
        except HedgeLedgerError as error:
            return api_error_response(error)
        return JSONResponse(content=api_serialize_record(request), status_code=status.HTTP_201_CREATED)

    return router
