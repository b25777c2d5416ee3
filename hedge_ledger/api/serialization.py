"""JSON serialization and error payload helpers shared by API routers."""

from __future__ import annotations

from dataclasses import fields, is_dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from fastapi import status
from fastapi.responses import JSONResponse

from hedge_ledger.domain import (
    HedgeConflictError,
    HedgeLedgerError,
    HedgeNotFoundError,
    HedgeStorageError,
    HedgeValidationError,
)
from hedge_ledger.jobs import HedgeOperationResult
from hedge_ledger.ledger import HedgeExposureSummary, HedgeMatchingRow


def api_serialize_value(value: object) -> object:
    """Convert one domain value to a JSON-compatible value.

    Decimals are emitted as strings so quantities and prices keep their scale.

    Args:
        value: Domain value.

    Returns:
        object: JSON-compatible value.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    if value is None or isinstance(value, (bool, int, str)) and not isinstance(value, Enum):
        return value
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (Decimal, UUID)):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if is_dataclass(value):
        return api_serialize_record(value)
    if isinstance(value, dict):
        return {str(key): api_serialize_value(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [api_serialize_value(item) for item in value]
    return str(value)


def api_serialize_record(record: object) -> dict[str, object]:
    """Serialize one frozen dataclass record field by field."""

    return {field.name: api_serialize_value(getattr(record, field.name)) for field in fields(record)}


def api_serialize_operation_result(result: HedgeOperationResult) -> dict[str, object]:
    """Serialize one committed hedge operation.

    Args:
        result: Operation result.

    Returns:
        dict[str, object]: Response payload with the settled records and stage timeline.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    transition = result.transition
    return {
        "status": "ok",
        "operation": result.operation,
        "hedge_request": api_serialize_record(transition.request_after),
        "created_executions": [api_serialize_record(execution) for execution in transition.created_executions],
        "updated_executions": [api_serialize_record(update.after) for update in transition.execution_updates],
        "created_links": [api_serialize_record(link) for link in transition.created_links],
        "created_rolls": [api_serialize_record(roll) for roll in transition.created_rolls],
        "timeline": api_serialize_value(list(result.timeline)),
    }


def api_serialize_exposure_summary(summary: HedgeExposureSummary) -> dict[str, object]:
    return {
        "contract_count": summary.contract_count,
        "net_exposure_mt": str(summary.net_exposure_mt),
        "open_exposure_mt": str(summary.open_exposure_mt),
    }


def api_serialize_matching_row(row: HedgeMatchingRow) -> dict[str, object]:
    return {
        "link": api_serialize_record(row.link),
        "execution": api_serialize_record(row.execution) if row.execution is not None else None,
        "request": api_serialize_record(row.request) if row.request is not None else None,
    }


def api_error_status_code(error: HedgeLedgerError) -> int:
    """Map one typed ledger error to its HTTP status code.

    Args:
        error: Typed ledger error.

    Returns:
        int: HTTP status code.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    if isinstance(error, HedgeValidationError):
        return status.HTTP_422_UNPROCESSABLE_ENTITY
    if isinstance(error, HedgeConflictError):
        return status.HTTP_409_CONFLICT
    if isinstance(error, HedgeNotFoundError):
        return status.HTTP_404_NOT_FOUND
    if isinstance(error, HedgeStorageError):
        return status.HTTP_503_SERVICE_UNAVAILABLE
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def api_error_response(error: HedgeLedgerError) -> JSONResponse:
    payload = {
        "status": "error",
        "code": error.error_code,
        "message": error.message,
        "retryable": error.retryable,
    }
    return JSONResponse(content=payload, status_code=api_error_status_code(error))


def api_page_payload(limit: int, applied_limit: int, offset: int, returned: int) -> dict[str, int]:
    return {
        "limit": limit,
        "applied_limit": applied_limit,
        "offset": offset,
        "returned": returned,
    }
