"""Pure hedge request lifecycle transitions and derived request builders."""
# pylint: disable=too-many-arguments

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime
from decimal import Decimal
from typing import Callable, Iterable
from uuid import UUID, uuid4

from hedge_ledger.domain import (
    HedgeDirection,
    HedgeExecutionRecord,
    HedgeLinkLevel,
    HedgeLinkRecord,
    HedgeNotFoundError,
    HedgeReferenceType,
    HedgeRequestRecord,
    HedgeRequestSource,
    HedgeRequestStatus,
    HedgeRequestType,
    HedgeValidationError,
    domain_append_note,
    domain_normalize_hedge_metal,
    state_request_is_terminal,
    state_require_request_transition,
)

_ZERO = Decimal("0")


@dataclass(frozen=True)
class HedgeRequestDraft:
    """Caller inputs for a manually created hedge request.

    Attributes:
        metal: Physical metal label; Brass is hedged as Copper.
        direction: Requested trade direction.
        quantity_mt: Requested quantity.
        reference: Reference price curve.
        target_price: Optional target price.
        target_price_currency: Optional target price currency.
        order_id: Optional physical order anchor.
        ticket_id: Optional physical ticket anchor.
        bl_order_id: Optional bill-of-lading order anchor.
        reason: Optional hedge reason label.
        broker_preference: Optional preferred broker.
        notes: Optional notes.
        submit_for_approval: Create directly in `Pending Approval` instead of `Draft`.
    """

    metal: str
    direction: HedgeDirection
    quantity_mt: Decimal
    reference: HedgeReferenceType = HedgeReferenceType.LME_CASH
    target_price: Decimal | None = None
    target_price_currency: str | None = None
    order_id: str | None = None
    ticket_id: int | None = None
    bl_order_id: int | None = None
    reason: str | None = None
    broker_preference: str | None = None
    notes: str | None = None
    submit_for_approval: bool = False


def lifecycle_create_request(
    draft: HedgeRequestDraft,
    now_utc: datetime,
    id_factory: Callable[[], UUID] = uuid4,
) -> HedgeRequestRecord:
    """Build a new manual `open` hedge request.

    Args:
        draft: Caller inputs.
        now_utc: Creation timestamp in UTC.
        id_factory: Identifier factory.

    Returns:
        HedgeRequestRecord: New request in `Draft` or `Pending Approval`.

    Raises:
        HedgeValidationError: Raised when metal, quantity, or target price is invalid.
    """

    if not draft.metal.strip():
        raise HedgeValidationError("metal must not be blank")
    _lifecycle_require_positive(draft.quantity_mt, "quantity")
    if draft.target_price is not None and draft.target_price <= _ZERO:
        raise HedgeValidationError("target price must be greater than zero when provided")

    return HedgeRequestRecord(
        hedge_request_id=id_factory(),
        metal=domain_normalize_hedge_metal(draft.metal),
        direction=draft.direction,
        quantity_mt=draft.quantity_mt,
        status=HedgeRequestStatus.PENDING_APPROVAL if draft.submit_for_approval else HedgeRequestStatus.DRAFT,
        source=HedgeRequestSource.MANUAL,
        request_type=HedgeRequestType.OPEN,
        reference=draft.reference,
        created_at_utc=now_utc,
        updated_at_utc=now_utc,
        target_price=draft.target_price,
        target_price_currency=draft.target_price_currency if draft.target_price is not None else None,
        order_id=_lifecycle_clean_text(draft.order_id),
        ticket_id=draft.ticket_id,
        bl_order_id=draft.bl_order_id,
        reason=_lifecycle_clean_text(draft.reason),
        broker_preference=_lifecycle_clean_text(draft.broker_preference),
        notes=_lifecycle_clean_text(draft.notes),
    )


def lifecycle_submit_request(request: HedgeRequestRecord, now_utc: datetime) -> HedgeRequestRecord:
    """Move a draft request to `Pending Approval`."""

    return _lifecycle_transition(request, HedgeRequestStatus.PENDING_APPROVAL, now_utc)


def lifecycle_approve_request(request: HedgeRequestRecord, now_utc: datetime) -> HedgeRequestRecord:
    """Approve a draft or pending request."""

    return _lifecycle_transition(request, HedgeRequestStatus.APPROVED, now_utc)


def lifecycle_reject_request(
    request: HedgeRequestRecord,
    rejection_reason: str,
    now_utc: datetime,
    min_reason_length: int = 5,
) -> HedgeRequestRecord:
    """Reject a non-terminal request and record the reason in its notes.

    Args:
        request: Request to reject.
        rejection_reason: Caller-supplied reason.
        now_utc: Mutation timestamp in UTC.
        min_reason_length: Minimum trimmed reason length.

    Returns:
        HedgeRequestRecord: Rejected request.

    Raises:
        HedgeValidationError: Raised when the reason is too short.
        HedgeTransitionError: Raised when the request is terminal.
        HedgeNotFoundError: Raised when the request was soft-deleted.
    """

    normalized_reason = (rejection_reason or "").strip()
    if len(normalized_reason) < min_reason_length:
        raise HedgeValidationError(
            f"rejection reason must be at least {min_reason_length} characters"
        )

    rejected_request = _lifecycle_transition(request, HedgeRequestStatus.REJECTED, now_utc)
    return replace(
        rejected_request,
        notes=domain_append_note(request.notes, f"Rejection reason: {normalized_reason}"),
    )


def lifecycle_cancel_request(request: HedgeRequestRecord, now_utc: datetime) -> HedgeRequestRecord:
    """Cancel a non-terminal request."""

    return _lifecycle_transition(request, HedgeRequestStatus.CANCELLED, now_utc)


def lifecycle_soft_delete_request(
    request: HedgeRequestRecord,
    delete_reason: str,
    now_utc: datetime,
) -> HedgeRequestRecord:
    """Soft-delete a non-terminal request.

    Args:
        request: Request to delete.
        delete_reason: Mandatory non-blank reason.
        now_utc: Deletion timestamp in UTC.

    Returns:
        HedgeRequestRecord: Request with `deleted_at` and `delete_reason` set.

    Raises:
        HedgeValidationError: Raised when the reason is blank or the request is terminal.
        HedgeNotFoundError: Raised when the request was already soft-deleted.
    """

    _lifecycle_require_live(request)
    normalized_reason = (delete_reason or "").strip()
    if not normalized_reason:
        raise HedgeValidationError("delete reason must not be blank")
    if state_request_is_terminal(request.status):
        raise HedgeValidationError(f"hedge request in terminal status {request.status.value} cannot be deleted")

    return replace(
        request,
        deleted_at=now_utc,
        delete_reason=normalized_reason,
        updated_at_utc=now_utc,
        row_version=request.row_version + 1,
    )


def lifecycle_build_roll_request(
    execution: HedgeExecutionRecord,
    now_utc: datetime,
    quantity_mt: Decimal | None = None,
    desired_expiry: date | None = None,
    originating_request: HedgeRequestRecord | None = None,
    notes: str | None = None,
    request_type: HedgeRequestType = HedgeRequestType.ROLL,
    id_factory: Callable[[], UUID] = uuid4,
) -> HedgeRequestRecord:
    """Build an auto-approved request to roll or fixing-close an open execution.

    Physical anchors are inherited from the execution's originating request.

    Args:
        execution: Execution to roll or close.
        now_utc: Creation timestamp in UTC.
        quantity_mt: Requested quantity; defaults to the open quantity.
        desired_expiry: Optional target maturity for the new leg.
        originating_request: Request that originated `execution`, when any.
        notes: Optional caller notes appended after the generated note.
        request_type: `roll` or `fixing_close`.
        id_factory: Identifier factory.

    Returns:
        HedgeRequestRecord: Approved request linked to `execution`.

    Raises:
        HedgeValidationError: Raised when the execution has no open quantity or the quantity is invalid.
    """

    if request_type not in (HedgeRequestType.ROLL, HedgeRequestType.FIXING_CLOSE):
        raise HedgeValidationError(f"request type {request_type.value} cannot be derived as a roll request")
    requested_quantity = _lifecycle_require_closable_quantity(execution, quantity_mt)

    original_expiry = execution.expiry_date.isoformat() if execution.expiry_date is not None else "unknown"
    target_expiry = desired_expiry.isoformat() if desired_expiry is not None else "new month"
    if request_type is HedgeRequestType.ROLL:
        generated_note = (
            f"[ROLL] {execution.metal} {requested_quantity} MT from {original_expiry} to {target_expiry}"
        )
        source = HedgeRequestSource.ROLL
    else:
        generated_note = f"[FIXING CLOSE] {execution.metal} {requested_quantity} MT expiring {original_expiry}"
        source = HedgeRequestSource.PRICE_FIX

    return HedgeRequestRecord(
        hedge_request_id=id_factory(),
        metal=execution.metal,
        direction=execution.direction,
        quantity_mt=requested_quantity,
        status=HedgeRequestStatus.APPROVED,
        source=source,
        request_type=request_type,
        reference=execution.reference_type or HedgeReferenceType.LME_CASH,
        created_at_utc=now_utc,
        updated_at_utc=now_utc,
        order_id=originating_request.order_id if originating_request is not None else None,
        ticket_id=originating_request.ticket_id if originating_request is not None else None,
        bl_order_id=originating_request.bl_order_id if originating_request is not None else None,
        linked_execution_id=execution.hedge_execution_id,
        reason=request_type.value.upper(),
        broker_preference=execution.broker_name,
        notes=domain_append_note(generated_note, notes.strip()) if notes and notes.strip() else generated_note,
    )


def lifecycle_build_price_fix_request(
    execution: HedgeExecutionRecord,
    order_id: str,
    now_utc: datetime,
    quantity_mt: Decimal | None = None,
    fixing_date: date | None = None,
    originating_request: HedgeRequestRecord | None = None,
    execution_links: Iterable[HedgeLinkRecord] = (),
    notes: str | None = None,
    id_factory: Callable[[], UUID] = uuid4,
) -> HedgeRequestRecord:
    """Build an auto-approved opposite-direction price-fix request for an execution.

    The ticket anchor comes from the originating request, or else from a
    Ticket-level link of the execution.

    Args:
        execution: Execution being price-fixed.
        order_id: Physical order the fix prices.
        now_utc: Creation timestamp in UTC.
        quantity_mt: Fixing quantity; defaults to the open quantity.
        fixing_date: Optional fixing date recorded in the notes.
        originating_request: Request that originated `execution`, when any.
        execution_links: Existing links of `execution`.
        notes: Optional caller notes.
        id_factory: Identifier factory.

    Returns:
        HedgeRequestRecord: Approved price-fix request linked to `execution`.

    Raises:
        HedgeValidationError: Raised when the order id is blank or the quantity is invalid.
    """

    normalized_order_id = (order_id or "").strip()
    if not normalized_order_id:
        raise HedgeValidationError("order id is required for a price-fix request")
    requested_quantity = _lifecycle_require_closable_quantity(execution, quantity_mt)

    ticket_id = originating_request.ticket_id if originating_request is not None else None
    if ticket_id is None:
        for link in execution_links:
            if link.link_level is HedgeLinkLevel.TICKET and link.link_id.strip().isdigit():
                ticket_id = int(link.link_id.strip())
                break

    generated_note = (
        f"Price fixing against hedge {str(execution.hedge_execution_id)[:8]} for order {normalized_order_id}."
    )
    if fixing_date is not None:
        generated_note = f"{generated_note} Fixing date: {fixing_date.isoformat()}."
    if notes and notes.strip():
        generated_note = f"{generated_note} {notes.strip()}"

    return HedgeRequestRecord(
        hedge_request_id=id_factory(),
        metal=execution.metal,
        direction=execution.direction.direction_opposite(),
        quantity_mt=requested_quantity,
        status=HedgeRequestStatus.APPROVED,
        source=HedgeRequestSource.PRICE_FIX,
        request_type=HedgeRequestType.PRICE_FIX,
        reference=execution.reference_type or HedgeReferenceType.LME_CASH,
        created_at_utc=now_utc,
        updated_at_utc=now_utc,
        order_id=normalized_order_id,
        ticket_id=ticket_id,
        linked_execution_id=execution.hedge_execution_id,
        reason="PRICE_FIX",
        broker_preference=execution.broker_name,
        notes=generated_note,
    )


def _lifecycle_transition(
    request: HedgeRequestRecord,
    target: HedgeRequestStatus,
    now_utc: datetime,
) -> HedgeRequestRecord:
    """Apply one manual status transition through the transition table."""

    _lifecycle_require_live(request)
    return replace(
        request,
        status=state_require_request_transition(request.status, target),
        updated_at_utc=now_utc,
        row_version=request.row_version + 1,
    )


def _lifecycle_require_live(request: HedgeRequestRecord) -> None:
    if request.request_is_deleted():
        raise HedgeNotFoundError(f"hedge request {request.hedge_request_id} not found")


def _lifecycle_require_positive(value: Decimal | None, label: str) -> None:
    if value is None or value <= _ZERO:
        raise HedgeValidationError(f"{label} must be greater than zero")


def _lifecycle_require_closable_quantity(
    execution: HedgeExecutionRecord,
    quantity_mt: Decimal | None,
) -> Decimal:
    """Resolve and validate a quantity against an execution's open quantity.

    Args:
        execution: Target execution.
        quantity_mt: Requested quantity, or None for the full open quantity.

    Returns:
        Decimal: Validated quantity.

    Raises:
        HedgeValidationError: Raised when nothing is open or the quantity is out of range.
    """

    if execution.open_quantity_mt <= _ZERO:
        raise HedgeValidationError(
            f"hedge execution {execution.hedge_execution_id} has no open quantity"
        )
    requested_quantity = quantity_mt if quantity_mt is not None else execution.open_quantity_mt
    _lifecycle_require_positive(requested_quantity, "quantity")
    if requested_quantity > execution.open_quantity_mt:
        raise HedgeValidationError(
            f"quantity {requested_quantity} exceeds open quantity {execution.open_quantity_mt}"
        )
    return requested_quantity


def _lifecycle_clean_text(value: str | None) -> str | None:
    if value is None:
        return None
    stripped_value = value.strip()
    return stripped_value or None


__all__ = [
    "HedgeRequestDraft",
    "lifecycle_create_request",
    "lifecycle_submit_request",
    "lifecycle_approve_request",
    "lifecycle_reject_request",
    "lifecycle_cancel_request",
    "lifecycle_soft_delete_request",
    "lifecycle_build_roll_request",
    "lifecycle_build_price_fix_request",
]
