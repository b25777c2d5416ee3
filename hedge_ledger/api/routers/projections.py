"""Projection API router composition for exposure and matching views."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation

from fastapi import APIRouter, Query, status
from fastapi.responses import JSONResponse

from hedge_ledger.domain import (
    HedgeDirection,
    HedgeExecutionStatus,
    HedgeLedgerError,
    HedgeReferenceType,
    HedgeValidationError,
)
from hedge_ledger.ledger import HedgeExecutionFilter, HedgeProjectionPort, projection_compute_unrealized_pnl

from ..serialization import (
    api_error_response,
    api_serialize_exposure_summary,
    api_serialize_matching_row,
    api_serialize_record,
)


def api_create_projections_router(projection_service: HedgeProjectionPort) -> APIRouter:
    """Create projection router with exposure, matching, and open-position views.

    Args:
        projection_service: Ledger-layer cached projection service.

    Returns:
        APIRouter: Router exposing `/projections` APIs.

    Raises:
        ValueError: Raised when projection_service is invalid.
    """

    if projection_service is None:
        raise ValueError("projection_service must not be None")

    router = APIRouter(prefix="/projections", tags=["projections"])

    @router.get("/exposure")
    def api_projection_exposure(
        metal: str | None = Query(default=None),
        direction: HedgeDirection | None = Query(default=None),
        status_filter: HedgeExecutionStatus | None = Query(default=None, alias="status"),
        reference_type: HedgeReferenceType | None = Query(default=None),
    ) -> JSONResponse:
        """Return net and open exposure over the filtered execution set.

        Returns:
            JSONResponse: Exposure summary payload.

        Raises:
            RuntimeError: Raised when execution fails unexpectedly.
        """

        execution_filter = HedgeExecutionFilter(
            metal=metal.strip() if metal and metal.strip() else None,
            direction=direction,
            status=status_filter,
            reference_type=reference_type,
        )
        try:
            summary = projection_service.projection_exposure_summary(execution_filter)
        except HedgeLedgerError as error:
            return api_error_response(error)
        return JSONResponse(content=api_serialize_exposure_summary(summary), status_code=status.HTTP_200_OK)

    @router.get("/matching")
    def api_projection_matching() -> JSONResponse:
        try:
            matching_rows = projection_service.projection_matching_rows()
        except HedgeLedgerError as error:
            return api_error_response(error)
        return JSONResponse(
            content={"items": [api_serialize_matching_row(row) for row in matching_rows]},
            status_code=status.HTTP_200_OK,
        )

    @router.get("/open-positions")
    def api_projection_open_positions(
        metal: str | None = Query(default=None),
        mark_price: str | None = Query(default=None),
    ) -> JSONResponse:
        """Return executions carrying open quantity, optionally marked to a price.

        Args:
            metal: Optional metal filter.
            mark_price: Optional decimal mark price used for unrealized P&L.

        Returns:
            JSONResponse: Open-position payload.

        Raises:
            RuntimeError: Raised when execution fails unexpectedly.
        """

        try:
            parsed_mark_price = _api_parse_mark_price(mark_price)
            open_positions = projection_service.projection_open_positions(metal=metal)
            items = []
            for execution in open_positions:
                item = api_serialize_record(execution)
                if parsed_mark_price is not None:
                    item["unrealized_pnl"] = str(projection_compute_unrealized_pnl(execution, parsed_mark_price))
                items.append(item)
        except HedgeLedgerError as error:
            return api_error_response(error)
        return JSONResponse(
            content={"items": items, "mark_price": str(parsed_mark_price) if parsed_mark_price is not None else None},
            status_code=status.HTTP_200_OK,
        )

    return router


def _api_parse_mark_price(mark_price: str | None) -> Decimal | None:
    if mark_price is None or not mark_price.strip():
        return None
    try:
        return Decimal(mark_price.strip())
    except InvalidOperation as error:
        raise HedgeValidationError(f"mark_price {mark_price} is not a decimal value") from error
