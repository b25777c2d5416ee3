"""Hedge request API router composition for workflow and execution endpoints."""
# pylint: disable=too-many-locals

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Query, status
from fastapi.responses import JSONResponse

from hedge_ledger.config import AppSettings
from hedge_ledger.domain import HedgeLedgerError, HedgeRequestStatus
from hedge_ledger.jobs import HedgeOperationOrchestrator, HedgeRequestWorkflow

from ..schemas import (
    HedgeFixingCloseBody,
    HedgeRequestCreateBody,
    HedgeRequestRejectBody,
    HedgeRollBody,
    HedgeTradeBody,
)
from ..serialization import (
    api_error_response,
    api_page_payload,
    api_serialize_operation_result,
    api_serialize_record,
)


def api_create_hedge_requests_router(
    settings: AppSettings,
    request_workflow: HedgeRequestWorkflow,
    operation_orchestrator: HedgeOperationOrchestrator,
) -> APIRouter:
    """Create hedge request router with workflow transitions and the four engine operations.

    Args:
        settings: Runtime settings used for pagination defaults.
        request_workflow: Job-layer request workflow.
        operation_orchestrator: Job-layer position operation orchestrator.

    Returns:
        APIRouter: Router exposing `/hedge-requests` APIs.

    Raises:
        ValueError: Raised when dependencies are invalid.
    """

    if settings is None:
        raise ValueError("settings must not be None")
    if request_workflow is None:
        raise ValueError("request_workflow must not be None")
    if operation_orchestrator is None:
        raise ValueError("operation_orchestrator must not be None")

    router = APIRouter(prefix="/hedge-requests", tags=["hedge-requests"])

    @router.post("")
    def api_hedge_request_create(body: HedgeRequestCreateBody) -> JSONResponse:
        """Create one manual hedge request in `Draft` or `Pending Approval`.

        Returns:
            JSONResponse: Created request payload.

        Raises:
            RuntimeError: Raised when execution fails unexpectedly.
        """

        try:
            request = request_workflow.job_request_create(body.body_to_draft())
        except HedgeLedgerError as error:
            return api_error_response(error)
        return JSONResponse(content=api_serialize_record(request), status_code=status.HTTP_201_CREATED)

    @router.get("")
    def api_hedge_request_list(
        status_filter: HedgeRequestStatus | None = Query(default=None, alias="status"),
        limit: int = Query(default=settings.api_default_limit, ge=1),
        offset: int = Query(default=0, ge=0),
    ) -> JSONResponse:
        """Return live hedge requests in creation order.

        Args:
            status_filter: Optional status filter.
            limit: Max rows to return.
            offset: Rows to skip.

        Returns:
            JSONResponse: Request list payload.

        Raises:
            RuntimeError: Raised when execution fails unexpectedly.
        """

        applied_limit = min(limit, settings.api_max_limit)
        try:
            requests = request_workflow.job_request_list(status=status_filter, limit=applied_limit, offset=offset)
        except HedgeLedgerError as error:
            return api_error_response(error)
        payload = {
            "items": [api_serialize_record(request) for request in requests],
            "page": api_page_payload(limit, applied_limit, offset, len(requests)),
            "filters": {"status": status_filter.value if status_filter is not None else None},
        }
        return JSONResponse(content=payload, status_code=status.HTTP_200_OK)

    @router.get("/{hedge_request_id}")
    def api_hedge_request_detail(hedge_request_id: UUID) -> JSONResponse:
        try:
            request = request_workflow.job_request_get(hedge_request_id)
        except HedgeLedgerError as error:
            return api_error_response(error)
        return JSONResponse(content=api_serialize_record(request), status_code=status.HTTP_200_OK)

    @router.post("/{hedge_request_id}/submit")
    def api_hedge_request_submit(hedge_request_id: UUID) -> JSONResponse:
        try:
            request = request_workflow.job_request_submit(hedge_request_id)
        except HedgeLedgerError as error:
            return api_error_response(error)
        return JSONResponse(content=api_serialize_record(request), status_code=status.HTTP_200_OK)

    @router.post("/{hedge_request_id}/approve")
    def api_hedge_request_approve(hedge_request_id: UUID) -> JSONResponse:
        try:
            request = request_workflow.job_request_approve(hedge_request_id)
        except HedgeLedgerError as error:
            return api_error_response(error)
        return JSONResponse(content=api_serialize_record(request), status_code=status.HTTP_200_OK)

    @router.post("/{hedge_request_id}/reject")
    def api_hedge_request_reject(hedge_request_id: UUID, body: HedgeRequestRejectBody) -> JSONResponse:
        """Reject one request with a mandatory reason.

        Returns:
            JSONResponse: Rejected request payload, or 422 when the reason is too short.

        Raises:
            RuntimeError: Raised when execution fails unexpectedly.
        """

        try:
            request = request_workflow.job_request_reject(hedge_request_id, body.reason)
        except HedgeLedgerError as error:
            return api_error_response(error)
        return JSONResponse(content=api_serialize_record(request), status_code=status.HTTP_200_OK)

    @router.post("/{hedge_request_id}/cancel")
    def api_hedge_request_cancel(hedge_request_id: UUID) -> JSONResponse:
        try:
            request = request_workflow.job_request_cancel(hedge_request_id)
        except HedgeLedgerError as error:
            return api_error_response(error)
        return JSONResponse(content=api_serialize_record(request), status_code=status.HTTP_200_OK)

    @router.delete("/{hedge_request_id}")
    def api_hedge_request_delete(hedge_request_id: UUID, reason: str = Query(default="")) -> JSONResponse:
        """Soft-delete one request.

        Args:
            hedge_request_id: Request identifier.
            reason: Mandatory deletion reason.

        Returns:
            JSONResponse: Deleted request payload.

        Raises:
            RuntimeError: Raised when execution fails unexpectedly.
        """

        try:
            request = request_workflow.job_request_delete(hedge_request_id, reason)
        except HedgeLedgerError as error:
            return api_error_response(error)
        return JSONResponse(content=api_serialize_record(request), status_code=status.HTTP_200_OK)

    @router.post("/{hedge_request_id}/open")
    def api_hedge_request_open(hedge_request_id: UUID, body: HedgeTradeBody) -> JSONResponse:
        """Open a new execution for an approved request.

        Returns:
            JSONResponse: Committed operation payload.

        Raises:
            RuntimeError: Raised when execution fails unexpectedly.
        """

        try:
            result = operation_orchestrator.job_open_execution(hedge_request_id, body.body_to_trade())
        except HedgeLedgerError as error:
            return api_error_response(error)
        return JSONResponse(content=api_serialize_operation_result(result), status_code=status.HTTP_200_OK)

    @router.post("/{hedge_request_id}/roll")
    def api_hedge_request_roll(hedge_request_id: UUID, body: HedgeRollBody) -> JSONResponse:
        try:
            result = operation_orchestrator.job_roll_execution(hedge_request_id, body.body_to_roll())
        except HedgeLedgerError as error:
            return api_error_response(error)
        return JSONResponse(content=api_serialize_operation_result(result), status_code=status.HTTP_200_OK)

    @router.post("/{hedge_request_id}/fixing-close")
    def api_hedge_request_fixing_close(hedge_request_id: UUID, body: HedgeFixingCloseBody) -> JSONResponse:
        try:
            result = operation_orchestrator.job_fixing_close_execution(hedge_request_id, body.body_to_fixing_close())
        except HedgeLedgerError as error:
            return api_error_response(error)
        return JSONResponse(content=api_serialize_operation_result(result), status_code=status.HTTP_200_OK)

    @router.post("/{hedge_request_id}/price-fix")
    def api_hedge_request_price_fix(hedge_request_id: UUID, body: HedgeTradeBody) -> JSONResponse:
        try:
            result = operation_orchestrator.job_price_fix_execution(hedge_request_id, body.body_to_trade())
        except HedgeLedgerError as error:
            return api_error_response(error)
        return JSONResponse(content=api_serialize_operation_result(result), status_code=status.HTTP_200_OK)

    return router
