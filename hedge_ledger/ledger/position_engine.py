"""Pure position engine for hedge open, roll, fixing-close, and price-fix operations.

Every public `engine_compute_*` function takes already-loaded ledger records
and returns a `PositionTransition` describing every record the operation
creates or changes. Nothing is persisted here; rejections are raised as typed
`HedgeLedgerError` subclasses and never caught inside this module.
"""
# pylint: disable=too-many-arguments

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime
from decimal import Decimal
from typing import Callable, Iterable
from uuid import UUID, uuid4

from hedge_ledger.domain import (
    HedgeAllocationType,
    HedgeDirection,
    HedgeExecutionRecord,
    HedgeExecutionStatus,
    HedgeLinkLevel,
    HedgeLinkRecord,
    HedgeNotFoundError,
    HedgeReferenceType,
    HedgeRequestRecord,
    HedgeRequestStatus,
    HedgeRequestType,
    HedgeRollRecord,
    HedgeValidationError,
    domain_append_note,
    domain_normalize_hedge_metal,
    state_execution_status_for_open_quantity,
    state_require_execution_transition,
    state_require_request_transition,
)

_ZERO = Decimal("0")

ANCHOR_PREFERENCE_OPEN: tuple[HedgeLinkLevel, ...] = (HedgeLinkLevel.ORDER, HedgeLinkLevel.TICKET)
ANCHOR_PREFERENCE_FULL: tuple[HedgeLinkLevel, ...] = (
    HedgeLinkLevel.BL_ORDER,
    HedgeLinkLevel.ORDER,
    HedgeLinkLevel.TICKET,
)


@dataclass(frozen=True)
class HedgeTradeInput:
    """Trade details for a newly booked execution.

    Attributes:
        executed_price: Trade price; must be positive.
        execution_date: Trade date.
        expiry_date: Contract maturity date; mandatory.
        executed_price_currency: Trade price currency.
        broker_name: Optional broker override.
        contract_reference: Optional broker contract reference.
        notes: Optional execution notes.
    """

    executed_price: Decimal
    execution_date: date | None
    expiry_date: date | None
    executed_price_currency: str = "USD"
    broker_name: str | None = None
    contract_reference: str | None = None
    notes: str | None = None


@dataclass(frozen=True)
class HedgeRollInput:
    """Inputs for rolling part or all of an open execution into a new contract month.

    Attributes:
        close_price: Price at which the original leg is closed.
        close_date: Business date of the roll.
        new_trade: Trade details of the new leg.
        close_quantity_mt: Rolled quantity; defaults to the request quantity.
        close_currency: Optional close/roll cost currency.
        roll_cost: Optional roll cost.
        reason: Optional roll reason.
    """

    close_price: Decimal
    close_date: date | None
    new_trade: HedgeTradeInput
    close_quantity_mt: Decimal | None = None
    close_currency: str | None = None
    roll_cost: Decimal | None = None
    reason: str | None = None


@dataclass(frozen=True)
class HedgeFixingCloseInput:
    """Inputs for closing an execution against a physical pricing fix.

    Attributes:
        close_price: Fixing price.
        close_date: Business date of the fix.
        close_quantity_mt: Closed quantity; defaults to the request quantity.
        close_currency: Optional fixing price currency.
        notes: Optional link notes.
    """

    close_price: Decimal
    close_date: date | None
    close_quantity_mt: Decimal | None = None
    close_currency: str | None = None
    notes: str | None = None


@dataclass(frozen=True)
class HedgeEngineContext:
    """Ambient values the engine needs without reaching outside its inputs.

    Attributes:
        now_utc: Operation timestamp in UTC.
        default_broker_name: Broker recorded when neither input nor request names one.
        enforce_link_allocation_cap: Whether link allocations are capped by execution quantity.
        id_factory: Identifier factory for created records.
    """

    now_utc: datetime
    default_broker_name: str = "StoneX"
    enforce_link_allocation_cap: bool = True
    id_factory: Callable[[], UUID] = uuid4


@dataclass(frozen=True)
class HedgePhysicalAnchor:
    """Physical exposure a hedge slice is allocated to.

    Attributes:
        link_level: Exposure kind.
        link_id: Exposure identifier.
    """

    link_level: HedgeLinkLevel
    link_id: str


@dataclass(frozen=True)
class HedgeExecutionUpdate:
    """Close-type change applied to an existing execution.

    Attributes:
        before: Execution state the computation was based on.
        after: Execution state to persist.
        closed_quantity_mt: Quantity closed by this change.
    """

    before: HedgeExecutionRecord
    after: HedgeExecutionRecord
    closed_quantity_mt: Decimal


@dataclass(frozen=True)
class PositionTransition:
    """Complete record set produced by one accepted engine operation.

    Attributes:
        operation: Operation name.
        request_before: Driving request state the computation was based on.
        request_after: Driving request state to persist.
        execution_updates: Changes to existing executions.
        created_executions: New executions.
        created_links: New hedge links.
        created_rolls: New hedge roll rows.
    """

    operation: str
    request_before: HedgeRequestRecord
    request_after: HedgeRequestRecord
    execution_updates: tuple[HedgeExecutionUpdate, ...] = ()
    created_executions: tuple[HedgeExecutionRecord, ...] = ()
    created_links: tuple[HedgeLinkRecord, ...] = ()
    created_rolls: tuple[HedgeRollRecord, ...] = ()

    def transition_settled_executions(self) -> tuple[HedgeExecutionRecord, ...]:
        """Return every execution state this transition settles.

        Returns:
            tuple[HedgeExecutionRecord, ...]: Created executions followed by updated executions.

        Raises:
            RuntimeError: This helper does not raise runtime errors.
        """

        return self.created_executions + tuple(update.after for update in self.execution_updates)


def engine_compute_open(
    request: HedgeRequestRecord,
    trade: HedgeTradeInput,
    context: HedgeEngineContext,
) -> PositionTransition:
    """Fulfil an approved hedge request with a brand-new execution.

    Args:
        request: Approved `open` hedge request.
        trade: Trade details of the new execution.
        context: Engine context.

    Returns:
        PositionTransition: New execution, optional `INITIAL_HEDGE` link, and executed request.

    Raises:
        HedgeValidationError: Raised when the request is not executable or trade inputs are invalid.
        HedgeNotFoundError: Raised when the request was soft-deleted.
    """

    _engine_require_request_executable(request, HedgeRequestType.OPEN)
    _engine_require_positive(request.quantity_mt, "quantity")
    _engine_validate_trade(trade)

    execution = _engine_build_execution(
        metal=domain_normalize_hedge_metal(request.metal),
        direction=request.direction,
        quantity_mt=request.quantity_mt,
        trade=trade,
        broker_name=trade.broker_name or request.broker_preference or context.default_broker_name,
        reference_type=request.reference,
        instrument="FUTURE",
        hedge_request_id=request.hedge_request_id,
        notes=trade.notes,
        context=context,
    )

    created_links: tuple[HedgeLinkRecord, ...] = ()
    anchor = engine_resolve_request_anchor(request, ANCHOR_PREFERENCE_OPEN)
    if anchor is not None:
        created_links = (
            _engine_build_link(
                execution=execution,
                anchor=anchor,
                allocated_quantity_mt=execution.quantity_mt,
                direction=execution.direction,
                allocation_type=HedgeAllocationType.INITIAL_HEDGE,
                exec_price=trade.executed_price,
                fixing_price=None,
                notes=None,
                existing_links=(),
                context=context,
            ),
        )

    return PositionTransition(
        operation="open",
        request_before=request,
        request_after=_engine_mark_request_executed(request, context),
        created_executions=(execution,),
        created_links=created_links,
    )


def engine_compute_roll(
    request: HedgeRequestRecord,
    original: HedgeExecutionRecord,
    roll: HedgeRollInput,
    context: HedgeEngineContext,
) -> PositionTransition:
    """Close part or all of an open execution and open a replacement leg.

    Rolling the full open quantity closes the original in the same transition
    that opens the new leg.

    Args:
        request: Approved `roll` hedge request targeting `original`.
        original: Execution being rolled.
        roll: Roll inputs.
        context: Engine context.

    Returns:
        PositionTransition: Original update, new leg, roll row, optional `ROLL` link, executed request.

    Raises:
        HedgeValidationError: Raised when quantities, prices, or dates are invalid.
        HedgeNotFoundError: Raised when the request was soft-deleted.
    """

    _engine_require_request_executable(request, HedgeRequestType.ROLL)
    _engine_require_request_targets(request, original)
    _engine_require_positive(roll.close_price, "close price")
    if roll.close_date is None:
        raise HedgeValidationError("roll date is required")
    _engine_validate_trade(roll.new_trade, price_label="new contract price")

    rolled_quantity = _engine_resolve_close_quantity(request, roll.close_quantity_mt)
    original_update = _engine_close_execution(
        execution=original,
        close_quantity_mt=rolled_quantity,
        close_price=roll.close_price,
        close_note=f"Rolled {rolled_quantity} MT on {roll.close_date.isoformat()} @ {roll.close_price}",
        context=context,
    )

    new_trade = roll.new_trade
    roll_note = f"Rolled from {str(original.hedge_execution_id)[:8]}"
    new_execution = _engine_build_execution(
        metal=original.metal,
        direction=original.direction,
        quantity_mt=rolled_quantity,
        trade=new_trade,
        broker_name=new_trade.broker_name or original.broker_name or context.default_broker_name,
        reference_type=original.reference_type,
        instrument=original.instrument,
        hedge_request_id=request.hedge_request_id,
        notes=domain_append_note(roll_note, new_trade.notes) if new_trade.notes else roll_note,
        context=context,
    )

    original_expiry = original.expiry_date.isoformat() if original.expiry_date is not None else "unknown"
    roll_record = HedgeRollRecord(
        hedge_roll_id=context.id_factory(),
        close_execution_id=original.hedge_execution_id,
        open_execution_id=new_execution.hedge_execution_id,
        rolled_qty_mt=rolled_quantity,
        roll_date=roll.close_date,
        created_at_utc=context.now_utc,
        roll_cost=roll.roll_cost,
        roll_cost_currency=roll.close_currency or original.executed_price_currency,
        reason=roll.reason,
        notes=(
            f"Rolled {rolled_quantity} MT {original.metal} from {original_expiry} "
            f"to {new_execution.expiry_date.isoformat()}"
        ),
    )

    created_links: tuple[HedgeLinkRecord, ...] = ()
    anchor = engine_resolve_request_anchor(request, ANCHOR_PREFERENCE_FULL)
    if anchor is not None:
        created_links = (
            _engine_build_link(
                execution=new_execution,
                anchor=anchor,
                allocated_quantity_mt=rolled_quantity,
                direction=new_execution.direction,
                allocation_type=HedgeAllocationType.ROLL,
                exec_price=new_trade.executed_price,
                fixing_price=None,
                notes=roll_note,
                existing_links=(),
                context=context,
            ),
        )

    return PositionTransition(
        operation="roll",
        request_before=request,
        request_after=_engine_mark_request_executed(request, context),
        execution_updates=(original_update,),
        created_executions=(new_execution,),
        created_links=created_links,
        created_rolls=(roll_record,),
    )


def engine_compute_fixing_close(
    request: HedgeRequestRecord,
    original: HedgeExecutionRecord,
    fixing: HedgeFixingCloseInput,
    context: HedgeEngineContext,
    original_links: Iterable[HedgeLinkRecord] = (),
) -> PositionTransition:
    """Reduce or fully close an execution to match a physical pricing fix.

    Args:
        request: Approved `fixing_close` hedge request targeting `original`.
        original: Execution being closed.
        fixing: Fixing-close inputs.
        context: Engine context.
        original_links: Existing links of `original`, used for the allocation cap.

    Returns:
        PositionTransition: Original update, optional `PRICE_FIX` link, executed request.

    Raises:
        HedgeValidationError: Raised when quantity or price is invalid.
        HedgeNotFoundError: Raised when the request was soft-deleted.
    """

    _engine_require_request_executable(request, HedgeRequestType.FIXING_CLOSE)
    _engine_require_request_targets(request, original)
    _engine_require_positive(fixing.close_price, "close price")
    if fixing.close_date is None:
        raise HedgeValidationError("close date is required")

    close_quantity = _engine_resolve_close_quantity(request, fixing.close_quantity_mt)
    original_update = _engine_close_execution(
        execution=original,
        close_quantity_mt=close_quantity,
        close_price=fixing.close_price,
        close_note=f"Fixed close {close_quantity} MT on {fixing.close_date.isoformat()} @ {fixing.close_price}",
        context=context,
    )

    created_links: tuple[HedgeLinkRecord, ...] = ()
    if request.order_id:
        created_links = (
            _engine_build_link(
                execution=original,
                anchor=HedgePhysicalAnchor(link_level=HedgeLinkLevel.ORDER, link_id=request.order_id),
                allocated_quantity_mt=close_quantity,
                direction=original.direction,
                allocation_type=HedgeAllocationType.PRICE_FIX,
                exec_price=original.executed_price,
                fixing_price=fixing.close_price,
                notes=fixing.notes or f"Fixing close for {close_quantity} MT",
                existing_links=tuple(original_links),
                context=context,
            ),
        )

    return PositionTransition(
        operation="fixing_close",
        request_before=request,
        request_after=_engine_mark_request_executed(request, context),
        execution_updates=(original_update,),
        created_links=created_links,
    )


def engine_compute_price_fix(
    request: HedgeRequestRecord,
    trade: HedgeTradeInput,
    context: HedgeEngineContext,
    original: HedgeExecutionRecord | None = None,
    original_links: Iterable[HedgeLinkRecord] = (),
    original_request: HedgeRequestRecord | None = None,
) -> PositionTransition:
    """Execute an opposite-direction price-fix hedge tied to an existing execution.

    Args:
        request: Approved `price_fix` hedge request carrying the opposite direction.
        trade: Trade details of the fixing execution.
        context: Engine context.
        original: Execution referenced by `request.linked_execution_id`, when any.
        original_links: Existing links of `original`.
        original_request: Request that originated `original`, when any.

    Returns:
        PositionTransition: New execution, optional `PRICE_FIX` link, optional original update, executed request.

    Raises:
        HedgeValidationError: Raised when trade inputs, direction, or quantity are invalid.
        HedgeNotFoundError: Raised when the request was soft-deleted or the referenced original is missing.
    """

    _engine_require_request_executable(request, HedgeRequestType.PRICE_FIX)
    _engine_require_positive(request.quantity_mt, "quantity")
    _engine_validate_trade(trade)

    if request.linked_execution_id is not None:
        if original is None:
            raise HedgeNotFoundError(f"original hedge execution {request.linked_execution_id} not found")
        _engine_require_request_targets(request, original)
        if request.direction == original.direction:
            raise HedgeValidationError("price-fix direction must be opposite of the original position direction")

    fix_execution = _engine_build_execution(
        metal=domain_normalize_hedge_metal(request.metal),
        direction=request.direction,
        quantity_mt=request.quantity_mt,
        trade=trade,
        broker_name=trade.broker_name or request.broker_preference or context.default_broker_name,
        reference_type=request.reference,
        instrument="FUTURE",
        hedge_request_id=request.hedge_request_id,
        notes=trade.notes,
        context=context,
    )

    execution_updates: tuple[HedgeExecutionUpdate, ...] = ()
    if original is not None:
        execution_updates = (
            _engine_close_execution(
                execution=original,
                close_quantity_mt=request.quantity_mt,
                close_price=trade.executed_price,
                close_note=(
                    f"Price fixed {request.quantity_mt} MT on {trade.execution_date.isoformat()} "
                    f"@ {trade.executed_price}"
                ),
                context=context,
            ),
        )

    created_links: tuple[HedgeLinkRecord, ...] = ()
    anchor = engine_resolve_price_fix_anchor(
        request=request,
        original_links=original_links,
        original_request=original_request,
    )
    if anchor is not None:
        created_links = (
            _engine_build_link(
                execution=fix_execution,
                anchor=anchor,
                allocated_quantity_mt=request.quantity_mt,
                direction=request.direction,
                allocation_type=HedgeAllocationType.PRICE_FIX,
                exec_price=trade.executed_price,
                fixing_price=trade.executed_price,
                notes=None,
                existing_links=(),
                context=context,
            ),
        )

    return PositionTransition(
        operation="price_fix",
        request_before=request,
        request_after=_engine_mark_request_executed(request, context),
        execution_updates=execution_updates,
        created_executions=(fix_execution,),
        created_links=created_links,
    )


def engine_resolve_request_anchor(
    request: HedgeRequestRecord,
    preference: tuple[HedgeLinkLevel, ...] = ANCHOR_PREFERENCE_FULL,
) -> HedgePhysicalAnchor | None:
    """Resolve the physical anchor carried directly on a hedge request.

    Args:
        request: Hedge request.
        preference: Link levels in preference order.

    Returns:
        HedgePhysicalAnchor | None: First anchor present in preference order, or None.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    anchor_values = {
        HedgeLinkLevel.BL_ORDER: request.bl_order_id,
        HedgeLinkLevel.ORDER: request.order_id,
        HedgeLinkLevel.TICKET: request.ticket_id,
    }
    for link_level in preference:
        anchor_value = anchor_values[link_level]
        if anchor_value is not None and str(anchor_value).strip():
            return HedgePhysicalAnchor(link_level=link_level, link_id=str(anchor_value).strip())
    return None


def engine_resolve_price_fix_anchor(
    request: HedgeRequestRecord,
    original_links: Iterable[HedgeLinkRecord] = (),
    original_request: HedgeRequestRecord | None = None,
) -> HedgePhysicalAnchor | None:
    """Resolve the physical anchor of a price-fix execution through the original's lineage.

    The request's own anchor fields win. Otherwise the original execution's
    links are searched, then the original's originating request. Within each
    source the preference is BL-order, then Order, then Ticket.

    Args:
        request: Price-fix hedge request.
        original_links: Links of the original execution.
        original_request: Request that originated the original execution.

    Returns:
        HedgePhysicalAnchor | None: Resolved anchor, or None when the lineage carries none.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    request_anchor = engine_resolve_request_anchor(request, ANCHOR_PREFERENCE_FULL)
    if request_anchor is not None:
        return request_anchor

    links_by_level: dict[HedgeLinkLevel, str] = {}
    for link in original_links:
        if link.link_id.strip():
            links_by_level.setdefault(link.link_level, link.link_id.strip())
    for link_level in ANCHOR_PREFERENCE_FULL:
        if link_level in links_by_level:
            return HedgePhysicalAnchor(link_level=link_level, link_id=links_by_level[link_level])

    if original_request is not None:
        return engine_resolve_request_anchor(original_request, ANCHOR_PREFERENCE_FULL)
    return None


def engine_realized_pnl(
    direction: HedgeDirection,
    executed_price: Decimal,
    close_price: Decimal,
    quantity_mt: Decimal,
) -> Decimal:
    """Compute P&L of closing a quantity of an execution at a given price.

    Args:
        direction: Execution direction.
        executed_price: Execution trade price.
        close_price: Close or mark price.
        quantity_mt: Closed or marked quantity.

    Returns:
        Decimal: Direction-signed P&L.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    return (close_price - executed_price) * quantity_mt * direction.direction_sign()


def _engine_require_request_executable(request: HedgeRequestRecord, request_type: HedgeRequestType) -> None:
    """Validate that a request may be executed by the given operation."""

    if request.request_is_deleted():
        raise HedgeNotFoundError(f"hedge request {request.hedge_request_id} not found")
    if request.status is not HedgeRequestStatus.APPROVED:
        raise HedgeValidationError(
            f"hedge request must be Approved to execute; current status={request.status.value}"
        )
    if request.request_type is not request_type:
        raise HedgeValidationError(
            f"hedge request type {request.request_type.value} cannot be executed as {request_type.value}"
        )


def _engine_require_request_targets(request: HedgeRequestRecord, original: HedgeExecutionRecord) -> None:
    """Validate that a request references the supplied original execution."""

    if request.linked_execution_id != original.hedge_execution_id:
        raise HedgeValidationError(
            f"hedge request does not target hedge execution {original.hedge_execution_id}"
        )


def _engine_resolve_close_quantity(request: HedgeRequestRecord, close_quantity_mt: Decimal | None) -> Decimal:
    """Resolve the close quantity of a roll or fixing close against the approved request quantity.

    Args:
        request: Driving approved request.
        close_quantity_mt: Explicit close quantity, or None for the request quantity.

    Returns:
        Decimal: Close quantity to apply.

    Raises:
        HedgeValidationError: Raised when the explicit quantity exceeds the requested quantity.
    """

    if close_quantity_mt is None:
        return request.quantity_mt
    if close_quantity_mt > request.quantity_mt:
        raise HedgeValidationError(
            f"close quantity {close_quantity_mt} exceeds requested quantity {request.quantity_mt}"
        )
    return close_quantity_mt


def _engine_require_positive(value: Decimal | None, label: str) -> None:
    """Validate a required strictly positive decimal value."""

    if value is None or value <= _ZERO:
        raise HedgeValidationError(f"{label} must be greater than zero")


def _engine_validate_trade(trade: HedgeTradeInput, price_label: str = "executed price") -> None:
    """Validate trade details of a new execution.

    Args:
        trade: Trade details.
        price_label: Label used for price error messages.

    Returns:
        None: Validation has no return value.

    Raises:
        HedgeValidationError: Raised when price, dates, or currency are invalid.
    """

    _engine_require_positive(trade.executed_price, price_label)
    if trade.execution_date is None:
        raise HedgeValidationError("trade date is required")
    if trade.expiry_date is None:
        raise HedgeValidationError("maturity date is required")
    if trade.expiry_date < trade.execution_date:
        raise HedgeValidationError("maturity date must not be before trade date")
    if not trade.executed_price_currency.strip():
        raise HedgeValidationError("executed price currency must not be blank")


def _engine_build_execution(
    metal: str,
    direction: HedgeDirection,
    quantity_mt: Decimal,
    trade: HedgeTradeInput,
    broker_name: str,
    reference_type: HedgeReferenceType | None,
    instrument: str,
    hedge_request_id: UUID,
    notes: str | None,
    context: HedgeEngineContext,
) -> HedgeExecutionRecord:
    """Build a new fully open execution record."""

    _engine_require_positive(quantity_mt, "quantity")
    return HedgeExecutionRecord(
        hedge_execution_id=context.id_factory(),
        metal=metal,
        direction=direction,
        quantity_mt=quantity_mt,
        open_quantity_mt=quantity_mt,
        executed_price=trade.executed_price,
        executed_price_currency=trade.executed_price_currency.strip().upper(),
        execution_date=trade.execution_date,
        expiry_date=trade.expiry_date,
        status=HedgeExecutionStatus.OPEN,
        created_at_utc=context.now_utc,
        updated_at_utc=context.now_utc,
        broker_name=broker_name,
        reference_type=reference_type,
        contract_reference=trade.contract_reference,
        instrument=instrument,
        hedge_request_id=hedge_request_id,
        notes=notes,
    )


def _engine_close_execution(
    execution: HedgeExecutionRecord,
    close_quantity_mt: Decimal,
    close_price: Decimal,
    close_note: str,
    context: HedgeEngineContext,
) -> HedgeExecutionUpdate:
    """Apply one close-type decrement to an execution.

    Args:
        execution: Execution state before the close.
        close_quantity_mt: Quantity to close.
        close_price: Close price.
        close_note: Audit note appended to the execution notes.
        context: Engine context.

    Returns:
        HedgeExecutionUpdate: Before/after pair for the execution.

    Raises:
        HedgeValidationError: Raised when the quantity is non-positive or exceeds the open quantity.
        HedgeTransitionError: Raised when the execution status cannot move to the derived status.
    """

    open_quantity = execution.open_quantity_mt
    if open_quantity <= _ZERO:
        raise HedgeValidationError(
            f"original position {execution.hedge_execution_id} has no open quantity to close"
        )
    _engine_require_positive(close_quantity_mt, "close quantity")
    if close_quantity_mt > open_quantity:
        raise HedgeValidationError(
            f"close quantity {close_quantity_mt} exceeds open quantity {open_quantity} of the original position"
        )

    remaining_quantity = open_quantity - close_quantity_mt
    target_status = state_require_execution_transition(
        execution.status,
        state_execution_status_for_open_quantity(execution.quantity_mt, remaining_quantity),
    )
    fully_closed = remaining_quantity == _ZERO

    after = replace(
        execution,
        open_quantity_mt=remaining_quantity,
        status=target_status,
        closed_price=close_price if fully_closed else None,
        closed_at=context.now_utc if fully_closed else None,
        pnl_realized=execution.pnl_realized
        + engine_realized_pnl(execution.direction, execution.executed_price, close_price, close_quantity_mt),
        notes=domain_append_note(execution.notes, close_note),
        updated_at_utc=context.now_utc,
        row_version=execution.row_version + 1,
    )
    return HedgeExecutionUpdate(before=execution, after=after, closed_quantity_mt=close_quantity_mt)


def _engine_build_link(
    execution: HedgeExecutionRecord,
    anchor: HedgePhysicalAnchor,
    allocated_quantity_mt: Decimal,
    direction: HedgeDirection,
    allocation_type: HedgeAllocationType,
    exec_price: Decimal | None,
    fixing_price: Decimal | None,
    notes: str | None,
    existing_links: tuple[HedgeLinkRecord, ...],
    context: HedgeEngineContext,
) -> HedgeLinkRecord:
    """Build one hedge link, enforcing the execution-wide allocation cap.

    Args:
        execution: Execution the slice belongs to.
        anchor: Physical exposure anchor.
        allocated_quantity_mt: Allocated quantity.
        direction: Link direction.
        allocation_type: Allocation type.
        exec_price: Optional execution price.
        fixing_price: Optional fixing price.
        notes: Optional link notes.
        existing_links: Links already recorded for the execution; empty for an execution created in the same transition.
        context: Engine context.

    Returns:
        HedgeLinkRecord: New link record.

    Raises:
        HedgeValidationError: Raised when the quantity is non-positive or the cap would be exceeded.
    """

    _engine_require_positive(allocated_quantity_mt, "allocated quantity")
    if context.enforce_link_allocation_cap:
        already_allocated = sum(
            (
                link.allocated_quantity_mt
                for link in existing_links
                if link.hedge_execution_id == execution.hedge_execution_id
            ),
            _ZERO,
        )
        if already_allocated + allocated_quantity_mt > execution.quantity_mt:
            raise HedgeValidationError(
                f"link allocation exceeds execution quantity: {already_allocated} already allocated, "
                f"{allocated_quantity_mt} requested as {allocation_type.value}, execution quantity {execution.quantity_mt}"
            )

    return HedgeLinkRecord(
        hedge_link_id=context.id_factory(),
        hedge_execution_id=execution.hedge_execution_id,
        link_id=anchor.link_id,
        link_level=anchor.link_level,
        allocated_quantity_mt=allocated_quantity_mt,
        side=direction.direction_side_label(),
        metal=execution.metal,
        direction=direction,
        allocation_type=allocation_type,
        created_at_utc=context.now_utc,
        exec_price=exec_price,
        fixing_price=fixing_price,
        notes=notes,
    )


def _engine_mark_request_executed(request: HedgeRequestRecord, context: HedgeEngineContext) -> HedgeRequestRecord:
    """Move the driving request to `Executed` through the request transition table."""

    return replace(
        request,
        status=state_require_request_transition(
            request.status,
            HedgeRequestStatus.EXECUTED,
            engine_driven=True,
        ),
        updated_at_utc=context.now_utc,
        row_version=request.row_version + 1,
    )


__all__ = [
    "ANCHOR_PREFERENCE_OPEN",
    "ANCHOR_PREFERENCE_FULL",
    "HedgeTradeInput",
    "HedgeRollInput",
    "HedgeFixingCloseInput",
    "HedgeEngineContext",
    "HedgePhysicalAnchor",
    "HedgeExecutionUpdate",
    "PositionTransition",
    "engine_compute_open",
    "engine_compute_roll",
    "engine_compute_fixing_close",
    "engine_compute_price_fix",
    "engine_resolve_request_anchor",
    "engine_resolve_price_fix_anchor",
    "engine_realized_pnl",
]
