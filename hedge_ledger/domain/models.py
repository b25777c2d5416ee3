"""Typed domain models shared across runtime layers.

Hedge ledger records are immutable value objects. A state change is expressed
by building a new record (usually via `dataclasses.replace`) with an
incremented `row_version`, which the ledger store uses for optimistic
concurrency checks.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID


@dataclass(frozen=True)
class HealthStatus:
    """Health response contract used by health-check surfaces.

    Attributes:
        status: Overall status text for service health.
        detail: Additional message suitable for operational diagnostics.
    """

    status: str
    detail: str


class HedgeDirection(str, Enum):
    """Trade direction of a hedge request, execution, or link."""

    BUY = "Buy"
    SELL = "Sell"

    def direction_opposite(self) -> HedgeDirection:
        """Return the opposite trade direction.

        Returns:
            HedgeDirection: `Sell` for `Buy` and `Buy` for `Sell`.

        Raises:
            RuntimeError: This helper does not raise runtime errors.
        """

        return HedgeDirection.SELL if self is HedgeDirection.BUY else HedgeDirection.BUY

    def direction_sign(self) -> Decimal:
        """Return the exposure sign for this direction (Buy positive, Sell negative).

        Returns:
            Decimal: `1` for Buy and `-1` for Sell.

        Raises:
            RuntimeError: This helper does not raise runtime errors.
        """

        return Decimal("1") if self is HedgeDirection.BUY else Decimal("-1")

    def direction_side_label(self) -> str:
        """Return the upper-case side label stored on hedge links.

        Returns:
            str: `BUY` or `SELL`.

        Raises:
            RuntimeError: This helper does not raise runtime errors.
        """

        return self.value.upper()


class HedgeRequestStatus(str, Enum):
    """Hedge request lifecycle status."""

    DRAFT = "Draft"
    PENDING_APPROVAL = "Pending Approval"
    APPROVED = "Approved"
    EXECUTED = "Executed"
    REJECTED = "Rejected"
    CANCELLED = "Cancelled"


class HedgeRequestSource(str, Enum):
    """Origin of a hedge request."""

    MANUAL = "Manual"
    AUTO_QP = "Auto_QP"
    PRICE_FIX = "Price_Fix"
    ROLL = "Roll"


class HedgeRequestType(str, Enum):
    """Operation a hedge request asks the position engine to perform."""

    OPEN = "open"
    ROLL = "roll"
    FIXING_CLOSE = "fixing_close"
    PRICE_FIX = "price_fix"


class HedgeReferenceType(str, Enum):
    """Reference price curve of a hedge."""

    LME_CASH = "LME_CASH"
    LME_3M = "LME_3M"
    COMEX = "COMEX"
    SHFE = "SHFE"
    OTHER = "OTHER"


class HedgeExecutionStatus(str, Enum):
    """Hedge execution lifecycle status."""

    OPEN = "OPEN"
    PARTIALLY_CLOSED = "PARTIALLY_CLOSED"
    CLOSED = "CLOSED"
    ROLLED = "ROLLED"


class HedgeLinkLevel(str, Enum):
    """Physical exposure kind a hedge link points at."""

    ORDER = "Order"
    TICKET = "Ticket"
    BL_ORDER = "Bl_order"


class HedgeAllocationType(str, Enum):
    """Reason a slice of an execution was allocated to a physical exposure."""

    INITIAL_HEDGE = "INITIAL_HEDGE"
    PRICE_FIX = "PRICE_FIX"
    ROLL = "ROLL"


class HedgeRecordKind(str, Enum):
    """Record kinds held by the ledger store."""

    REQUEST = "hedge_request"
    EXECUTION = "hedge_execution"
    LINK = "hedge_link"
    ROLL = "hedge_roll"


@dataclass(frozen=True)
class HedgeRequestRecord:
    """Demand to open, roll, fixing-close, or price-fix a hedge.

    Attributes:
        hedge_request_id: Unique request identifier.
        metal: Hedged metal label.
        direction: Requested trade direction.
        quantity_mt: Requested quantity in metric tonnes.
        status: Lifecycle status.
        source: Request origin.
        request_type: Engine operation requested.
        reference: Reference price curve.
        created_at_utc: Creation timestamp in UTC.
        updated_at_utc: Last mutation timestamp in UTC.
        target_price: Optional target price.
        target_price_currency: Optional target price currency.
        order_id: Optional physical order anchor.
        ticket_id: Optional physical ticket anchor.
        bl_order_id: Optional bill-of-lading order anchor.
        linked_execution_id: Original execution targeted by roll, fixing-close, and price-fix requests.
        reason: Optional hedge reason label.
        broker_preference: Optional preferred broker.
        notes: Free-text audit notes.
        deleted_at: Soft-delete timestamp in UTC.
        delete_reason: Mandatory reason recorded with a soft delete.
        row_version: Optimistic concurrency version.
    """

    hedge_request_id: UUID
    metal: str
    direction: HedgeDirection
    quantity_mt: Decimal
    status: HedgeRequestStatus
    source: HedgeRequestSource
    request_type: HedgeRequestType
    reference: HedgeReferenceType
    created_at_utc: datetime
    updated_at_utc: datetime
    target_price: Decimal | None = None
    target_price_currency: str | None = None
    order_id: str | None = None
    ticket_id: int | None = None
    bl_order_id: int | None = None
    linked_execution_id: UUID | None = None
    reason: str | None = None
    broker_preference: str | None = None
    notes: str | None = None
    deleted_at: datetime | None = None
    delete_reason: str | None = None
    row_version: int = 1

    def request_is_deleted(self) -> bool:
        """Return whether the request has been soft-deleted.

        Returns:
            bool: True when `deleted_at` is set.

        Raises:
            RuntimeError: This helper does not raise runtime errors.
        """

        return self.deleted_at is not None


@dataclass(frozen=True)
class HedgeExecutionRecord:
    """Futures or forward trade booked against the market.

    Attributes:
        hedge_execution_id: Unique execution identifier.
        metal: Traded metal label.
        direction: Trade direction.
        quantity_mt: Traded quantity, fixed at creation.
        open_quantity_mt: Quantity not yet closed; never increases.
        executed_price: Trade price.
        executed_price_currency: Trade price currency.
        execution_date: Trade date.
        expiry_date: Contract maturity date.
        status: Lifecycle status.
        created_at_utc: Creation timestamp in UTC.
        updated_at_utc: Last mutation timestamp in UTC.
        broker_name: Executing broker.
        reference_type: Reference price curve.
        contract_reference: Optional broker contract reference.
        instrument: Instrument label.
        closed_price: Final close price, set only once fully closed.
        closed_at: Full-close timestamp, set only once fully closed.
        pnl_realized: Realized P&L accumulated across closes.
        hedge_request_id: Originating hedge request identifier.
        notes: Free-text audit notes.
        row_version: Optimistic concurrency version.
    """

    hedge_execution_id: UUID
    metal: str
    direction: HedgeDirection
    quantity_mt: Decimal
    open_quantity_mt: Decimal
    executed_price: Decimal
    executed_price_currency: str
    execution_date: date
    expiry_date: date | None
    status: HedgeExecutionStatus
    created_at_utc: datetime
    updated_at_utc: datetime
    broker_name: str | None = None
    reference_type: HedgeReferenceType | None = None
    contract_reference: str | None = None
    instrument: str = "FUTURE"
    closed_price: Decimal | None = None
    closed_at: datetime | None = None
    pnl_realized: Decimal = Decimal("0")
    hedge_request_id: UUID | None = None
    notes: str | None = None
    row_version: int = 1


@dataclass(frozen=True)
class HedgeLinkRecord:
    """Allocation of a slice of an execution to one physical exposure.

    Attributes:
        hedge_link_id: Unique link identifier.
        hedge_execution_id: Execution the slice belongs to.
        link_id: Physical exposure identifier.
        link_level: Physical exposure kind.
        allocated_quantity_mt: Allocated quantity.
        side: Upper-case side label (`BUY` or `SELL`).
        metal: Metal label.
        direction: Trade direction.
        allocation_type: Allocation reason.
        created_at_utc: Creation timestamp in UTC.
        exec_price: Optional execution price of the slice.
        fixing_price: Optional physical fixing price.
        notes: Optional notes.
    """

    hedge_link_id: UUID
    hedge_execution_id: UUID
    link_id: str
    link_level: HedgeLinkLevel
    allocated_quantity_mt: Decimal
    side: str
    metal: str
    direction: HedgeDirection
    allocation_type: HedgeAllocationType
    created_at_utc: datetime
    exec_price: Decimal | None = None
    fixing_price: Decimal | None = None
    notes: str | None = None


@dataclass(frozen=True)
class HedgeRollRecord:
    """Record that one execution was rolled into another.

    Attributes:
        hedge_roll_id: Unique roll identifier.
        close_execution_id: Execution whose quantity was closed.
        open_execution_id: Execution opened for the new contract month.
        rolled_qty_mt: Rolled quantity.
        roll_date: Business date of the roll.
        created_at_utc: Creation timestamp in UTC.
        roll_cost: Optional roll cost.
        roll_cost_currency: Optional roll cost currency.
        reason: Optional roll reason.
        notes: Optional notes.
    """

    hedge_roll_id: UUID
    close_execution_id: UUID
    open_execution_id: UUID
    rolled_qty_mt: Decimal
    roll_date: date
    created_at_utc: datetime
    roll_cost: Decimal | None = None
    roll_cost_currency: str | None = None
    reason: str | None = None
    notes: str | None = None


HedgeLedgerRecord = HedgeRequestRecord | HedgeExecutionRecord | HedgeLinkRecord | HedgeRollRecord


def domain_record_kind(record: HedgeLedgerRecord) -> HedgeRecordKind:
    """Return the ledger record kind of one typed record.

    Args:
        record: Typed ledger record.

    Returns:
        HedgeRecordKind: Record kind.

    Raises:
        TypeError: Raised when the record type is not a ledger record.
    """

    if isinstance(record, HedgeRequestRecord):
        return HedgeRecordKind.REQUEST
    if isinstance(record, HedgeExecutionRecord):
        return HedgeRecordKind.EXECUTION
    if isinstance(record, HedgeLinkRecord):
        return HedgeRecordKind.LINK
    if isinstance(record, HedgeRollRecord):
        return HedgeRecordKind.ROLL
    raise TypeError(f"unsupported ledger record type={type(record).__name__}")


def domain_record_id(record: HedgeLedgerRecord) -> UUID:
    """Return the primary identifier of one typed record.

    Args:
        record: Typed ledger record.

    Returns:
        UUID: Record identifier.

    Raises:
        TypeError: Raised when the record type is not a ledger record.
    """

    kind = domain_record_kind(record)
    if kind is HedgeRecordKind.REQUEST:
        return record.hedge_request_id
    if kind is HedgeRecordKind.EXECUTION:
        return record.hedge_execution_id
    if kind is HedgeRecordKind.LINK:
        return record.hedge_link_id
    return record.hedge_roll_id


def domain_normalize_hedge_metal(metal: str) -> str:
    """Map a physical commodity label to the metal it is hedged with.

    Brass has no exchange contract and is hedged as Copper.

    Args:
        metal: Physical commodity label.

    Returns:
        str: Hedge metal label.

    Raises:
        ValueError: Raised when metal is blank.
    """

    normalized_metal = metal.strip()
    if not normalized_metal:
        raise ValueError("metal must not be blank")
    if "BRASS" in normalized_metal.upper():
        return "Copper"
    return normalized_metal


def domain_append_note(existing_notes: str | None, note: str) -> str:
    """Append one audit note to an existing free-text notes value.

    Args:
        existing_notes: Current notes value.
        note: Note to append.

    Returns:
        str: Combined notes separated by a blank line.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    if existing_notes:
        return f"{existing_notes}\n\n{note}"
    return note
