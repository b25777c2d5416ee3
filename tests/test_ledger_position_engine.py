"""Regression tests for the pure hedge position engine."""

from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime, timezone
from decimal import Decimal
from itertools import count
from uuid import UUID

import pytest

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
    HedgeRequestSource,
    HedgeRequestStatus,
    HedgeRequestType,
    HedgeValidationError,
)
from hedge_ledger.ledger import (
    HedgeEngineContext,
    HedgeFixingCloseInput,
    HedgeRollInput,
    HedgeTradeInput,
    engine_compute_fixing_close,
    engine_compute_open,
    engine_compute_price_fix,
    engine_compute_roll,
    engine_realized_pnl,
)

_NOW_UTC = datetime(2026, 10, 18, 9, 30, tzinfo=timezone.utc)


def _build_context(enforce_link_allocation_cap: bool = True) -> HedgeEngineContext:
    """Build an engine context with deterministic sequential identifiers.

    Args:
        enforce_link_allocation_cap: Whether the link cap is enforced.

    Returns:
        HedgeEngineContext: Deterministic engine context.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    sequence = count(1)
    return HedgeEngineContext(
        now_utc=_NOW_UTC,
        enforce_link_allocation_cap=enforce_link_allocation_cap,
        id_factory=lambda: UUID(int=next(sequence)),
    )


def _build_request(**overrides) -> HedgeRequestRecord:
    """Build an approved Copper Buy `open` request with optional field overrides."""

    base_request = HedgeRequestRecord(
        hedge_request_id=UUID(int=9001),
        metal="Copper",
        direction=HedgeDirection.BUY,
        quantity_mt=Decimal("100"),
        status=HedgeRequestStatus.APPROVED,
        source=HedgeRequestSource.MANUAL,
        request_type=HedgeRequestType.OPEN,
        reference=HedgeReferenceType.LME_CASH,
        created_at_utc=_NOW_UTC,
        updated_at_utc=_NOW_UTC,
        row_version=2,
    )
    return replace(base_request, **overrides)


def _build_execution(**overrides) -> HedgeExecutionRecord:
    """Build an open Copper Buy execution of 100 MT at 9500 with optional overrides."""

    base_execution = HedgeExecutionRecord(
        hedge_execution_id=UUID(int=7001),
        metal="Copper",
        direction=HedgeDirection.BUY,
        quantity_mt=Decimal("100"),
        open_quantity_mt=Decimal("100"),
        executed_price=Decimal("9500"),
        executed_price_currency="USD",
        execution_date=date(2026, 9, 1),
        expiry_date=date(2026, 12, 16),
        status=HedgeExecutionStatus.OPEN,
        created_at_utc=_NOW_UTC,
        updated_at_utc=_NOW_UTC,
        broker_name="StoneX",
        reference_type=HedgeReferenceType.LME_CASH,
    )
    return replace(base_execution, **overrides)


def _build_trade(**overrides) -> HedgeTradeInput:
    base_trade = HedgeTradeInput(
        executed_price=Decimal("9500"),
        execution_date=date(2026, 10, 18),
        expiry_date=date(2027, 1, 20),
    )
    return replace(base_trade, **overrides)


def _build_roll_request(original: HedgeExecutionRecord, quantity_mt: Decimal) -> HedgeRequestRecord:
    return _build_request(
        request_type=HedgeRequestType.ROLL,
        source=HedgeRequestSource.ROLL,
        quantity_mt=quantity_mt,
        linked_execution_id=original.hedge_execution_id,
    )


def _build_fixing_request(original: HedgeExecutionRecord, quantity_mt: Decimal, **overrides) -> HedgeRequestRecord:
    return _build_request(
        request_type=HedgeRequestType.FIXING_CLOSE,
        source=HedgeRequestSource.PRICE_FIX,
        quantity_mt=quantity_mt,
        linked_execution_id=original.hedge_execution_id,
        **overrides,
    )


def _build_link(execution: HedgeExecutionRecord, **overrides) -> HedgeLinkRecord:
    base_link = HedgeLinkRecord(
        hedge_link_id=UUID(int=5001),
        hedge_execution_id=execution.hedge_execution_id,
        link_id="O-1",
        link_level=HedgeLinkLevel.ORDER,
        allocated_quantity_mt=execution.quantity_mt,
        side=execution.direction.direction_side_label(),
        metal=execution.metal,
        direction=execution.direction,
        allocation_type=HedgeAllocationType.INITIAL_HEDGE,
        created_at_utc=_NOW_UTC,
    )
    return replace(base_link, **overrides)


def test_open_creates_fully_open_execution_and_executes_request() -> None:
    """Open an approved 100 MT Copper Buy request at 9500.

    Returns:
        None: Assertions validate the created execution and request status.

    Raises:
        AssertionError: Raised when the open transition diverges.
    """

    request = _build_request()

    transition = engine_compute_open(request, _build_trade(executed_price_currency="usd"), _build_context())

    assert len(transition.created_executions) == 1
    execution = transition.created_executions[0]
    assert execution.quantity_mt == Decimal("100")
    assert execution.open_quantity_mt == Decimal("100")
    assert execution.status is HedgeExecutionStatus.OPEN
    assert execution.executed_price == Decimal("9500")
    assert execution.executed_price_currency == "USD"
    assert execution.hedge_request_id == request.hedge_request_id
    assert execution.broker_name == "StoneX"
    assert execution.reference_type is HedgeReferenceType.LME_CASH
    assert execution.closed_price is None
    assert execution.row_version == 1
    assert transition.request_after.status is HedgeRequestStatus.EXECUTED
    assert transition.request_after.row_version == request.row_version + 1
    assert transition.created_links == ()
    assert transition.execution_updates == ()


def test_open_links_order_anchor_before_ticket() -> None:
    """Allocate the whole new execution to the request's order when both anchors exist."""

    request = _build_request(order_id="O-77", ticket_id=4412, broker_preference="Marex")

    transition = engine_compute_open(request, _build_trade(), _build_context())

    link = transition.created_links[0]
    assert link.link_level is HedgeLinkLevel.ORDER
    assert link.link_id == "O-77"
    assert link.allocated_quantity_mt == Decimal("100")
    assert link.allocation_type is HedgeAllocationType.INITIAL_HEDGE
    assert link.side == "BUY"
    assert transition.created_executions[0].broker_name == "Marex"


def test_open_falls_back_to_ticket_anchor_and_normalizes_brass() -> None:
    """Use the ticket anchor when no order is set, and hedge Brass as Copper.

    Returns:
        None: Assertions validate anchor fallback and metal mapping.

    Raises:
        AssertionError: Raised when anchor or metal diverges.
    """

    request = _build_request(metal="Brass", ticket_id=4412)

    transition = engine_compute_open(request, _build_trade(), _build_context())

    assert transition.created_executions[0].metal == "Copper"
    assert transition.created_links[0].link_level is HedgeLinkLevel.TICKET
    assert transition.created_links[0].link_id == "4412"


@pytest.mark.parametrize(
    ("trade_overrides", "expected_message"),
    [
        ({"executed_price": Decimal("0")}, "executed price must be greater than zero"),
        ({"expiry_date": None}, "maturity date is required"),
        ({"execution_date": None}, "trade date is required"),
        ({"expiry_date": date(2026, 10, 1)}, "maturity date must not be before trade date"),
    ],
)
def test_open_rejects_invalid_trade_inputs(trade_overrides: dict, expected_message: str) -> None:
    """Reject zero prices, missing dates, and maturities before the trade date.

    Args:
        trade_overrides: Invalid trade fields.
        expected_message: Expected rejection message.

    Returns:
        None: Assertions validate rejections.

    Raises:
        AssertionError: Raised when invalid input is accepted.
    """

    with pytest.raises(HedgeValidationError) as error_info:
        engine_compute_open(_build_request(), _build_trade(**trade_overrides), _build_context())
    assert str(error_info.value) == expected_message


def test_open_requires_approved_open_request() -> None:
    """Refuse drafts, wrong request types, and soft-deleted requests."""

    with pytest.raises(HedgeValidationError) as error_info:
        engine_compute_open(_build_request(status=HedgeRequestStatus.DRAFT), _build_trade(), _build_context())
    assert "must be Approved" in str(error_info.value)

    with pytest.raises(HedgeValidationError):
        engine_compute_open(_build_request(request_type=HedgeRequestType.ROLL), _build_trade(), _build_context())

    with pytest.raises(HedgeNotFoundError):
        engine_compute_open(_build_request(deleted_at=_NOW_UTC, delete_reason="typo"), _build_trade(), _build_context())


def test_partial_roll_splits_original_and_opens_new_leg() -> None:
    """Roll 60 of 100 MT: original keeps 40 open and a 60 MT leg opens.

    Returns:
        None: Assertions validate both legs and the roll row.

    Raises:
        AssertionError: Raised when the roll transition diverges.
    """

    original = _build_execution()
    request = _build_roll_request(original, Decimal("60"))
    roll = HedgeRollInput(
        close_price=Decimal("9600"),
        close_date=date(2026, 10, 18),
        new_trade=_build_trade(executed_price=Decimal("9650")),
    )

    transition = engine_compute_roll(request, original, roll, _build_context())

    original_after = transition.execution_updates[0].after
    assert original_after.open_quantity_mt == Decimal("40")
    assert original_after.quantity_mt == Decimal("100")
    assert original_after.status is HedgeExecutionStatus.PARTIALLY_CLOSED
    assert original_after.closed_price is None
    assert original_after.closed_at is None
    assert original_after.pnl_realized == Decimal("6000")
    assert original_after.row_version == original.row_version + 1
    assert "Rolled 60 MT on 2026-10-18 @ 9600" in original_after.notes

    new_leg = transition.created_executions[0]
    assert new_leg.quantity_mt == Decimal("60")
    assert new_leg.open_quantity_mt == Decimal("60")
    assert new_leg.status is HedgeExecutionStatus.OPEN
    assert new_leg.executed_price == Decimal("9650")
    assert new_leg.direction is original.direction

    roll_record = transition.created_rolls[0]
    assert roll_record.close_execution_id == original.hedge_execution_id
    assert roll_record.open_execution_id == new_leg.hedge_execution_id
    assert roll_record.rolled_qty_mt == Decimal("60")
    assert transition.request_after.status is HedgeRequestStatus.EXECUTED


def test_full_roll_closes_original_and_opens_equal_leg() -> None:
    """Rolling the whole open quantity closes the original in the same transition."""

    original = _build_execution(open_quantity_mt=Decimal("40"), status=HedgeExecutionStatus.PARTIALLY_CLOSED)
    request = _build_roll_request(original, Decimal("40"))
    roll = HedgeRollInput(close_price=Decimal("9400"), close_date=date(2026, 10, 18), new_trade=_build_trade())

    transition = engine_compute_roll(request, original, roll, _build_context())

    original_after = transition.execution_updates[0].after
    assert original_after.status is HedgeExecutionStatus.CLOSED
    assert original_after.open_quantity_mt == Decimal("0")
    assert original_after.closed_price == Decimal("9400")
    assert original_after.closed_at == _NOW_UTC
    assert transition.created_executions[0].open_quantity_mt == Decimal("40")
    assert transition.created_executions[0].status is HedgeExecutionStatus.OPEN


def test_roll_carries_bill_of_lading_anchor_as_roll_link() -> None:
    original = _build_execution()
    request = replace(_build_roll_request(original, Decimal("25")), order_id="O-1", bl_order_id=880)
    roll = HedgeRollInput(close_price=Decimal("9600"), close_date=date(2026, 10, 18), new_trade=_build_trade())

    transition = engine_compute_roll(request, original, roll, _build_context())

    link = transition.created_links[0]
    assert link.link_level is HedgeLinkLevel.BL_ORDER
    assert link.link_id == "880"
    assert link.allocation_type is HedgeAllocationType.ROLL
    assert link.hedge_execution_id == transition.created_executions[0].hedge_execution_id


def test_roll_rejects_missing_new_maturity_and_foreign_target() -> None:
    """Reject a roll without a new maturity or whose request targets another execution.

    Returns:
        None: Assertions validate rejections.

    Raises:
        AssertionError: Raised when an invalid roll is accepted.
    """

    original = _build_execution()
    roll = HedgeRollInput(
        close_price=Decimal("9600"),
        close_date=date(2026, 10, 18),
        new_trade=_build_trade(expiry_date=None),
    )

    with pytest.raises(HedgeValidationError, match="maturity date is required"):
        engine_compute_roll(_build_roll_request(original, Decimal("10")), original, roll, _build_context())

    other_execution = _build_execution(hedge_execution_id=UUID(int=7002))
    valid_roll = replace(roll, new_trade=_build_trade())
    with pytest.raises(HedgeValidationError, match="does not target"):
        engine_compute_roll(_build_roll_request(other_execution, Decimal("10")), original, valid_roll, _build_context())


def test_fixing_close_full_quantity_closes_execution() -> None:
    """Close all 50 MT of an execution at 9700.

    Returns:
        None: Assertions validate the closed execution.

    Raises:
        AssertionError: Raised when the close diverges.
    """

    original = _build_execution(quantity_mt=Decimal("50"), open_quantity_mt=Decimal("50"))
    request = _build_fixing_request(original, Decimal("50"))

    transition = engine_compute_fixing_close(
        request,
        original,
        HedgeFixingCloseInput(close_price=Decimal("9700"), close_date=date(2026, 10, 18)),
        _build_context(),
    )

    original_after = transition.execution_updates[0].after
    assert original_after.open_quantity_mt == Decimal("0")
    assert original_after.status is HedgeExecutionStatus.CLOSED
    assert original_after.closed_price == Decimal("9700")
    assert original_after.pnl_realized == Decimal("10000")
    assert transition.created_executions == ()
    assert transition.created_links == ()


def test_fixing_close_over_open_quantity_is_rejected() -> None:
    """Closing 31 MT of a 30 MT open position names the violated constraint."""

    original = _build_execution(open_quantity_mt=Decimal("30"), status=HedgeExecutionStatus.PARTIALLY_CLOSED)
    request = _build_fixing_request(original, Decimal("31"))

    with pytest.raises(HedgeValidationError) as error_info:
        engine_compute_fixing_close(
            request,
            original,
            HedgeFixingCloseInput(close_price=Decimal("9500"), close_date=date(2026, 10, 18)),
            _build_context(),
        )
    assert "exceeds open quantity" in str(error_info.value)
    assert original.open_quantity_mt == Decimal("30")


def test_fixing_close_on_exhausted_execution_rejects_the_same_way_twice() -> None:
    """Repeated closes of an exhausted execution keep failing with the same error class.

    Returns:
        None: Assertions validate repeatable rejection.

    Raises:
        AssertionError: Raised when a repeated close succeeds.
    """

    exhausted = _build_execution(
        open_quantity_mt=Decimal("0"),
        status=HedgeExecutionStatus.CLOSED,
        closed_price=Decimal("9600"),
        closed_at=_NOW_UTC,
    )
    request = _build_fixing_request(exhausted, Decimal("10"))
    fixing = HedgeFixingCloseInput(close_price=Decimal("9500"), close_date=date(2026, 10, 18))

    messages = []
    for _ in range(2):
        with pytest.raises(HedgeValidationError) as error_info:
            engine_compute_fixing_close(request, exhausted, fixing, _build_context())
        messages.append(str(error_info.value))
    assert messages[0] == messages[1]
    assert "has no open quantity" in messages[0]


def test_fixing_close_price_fix_link_respects_allocation_cap() -> None:
    """Refuse a price-fix link that would allocate more than the execution quantity."""

    original = _build_execution(quantity_mt=Decimal("50"), open_quantity_mt=Decimal("30"))
    request = _build_fixing_request(original, Decimal("20"), order_id="O-9")
    existing_links = [
        _build_link(original, allocated_quantity_mt=Decimal("40"), allocation_type=HedgeAllocationType.PRICE_FIX)
    ]
    fixing = HedgeFixingCloseInput(close_price=Decimal("9500"), close_date=date(2026, 10, 18))

    with pytest.raises(HedgeValidationError, match="link allocation exceeds execution quantity"):
        engine_compute_fixing_close(request, original, fixing, _build_context(), original_links=existing_links)

    transition = engine_compute_fixing_close(
        request,
        original,
        fixing,
        _build_context(enforce_link_allocation_cap=False),
        original_links=existing_links,
    )
    assert transition.created_links[0].allocated_quantity_mt == Decimal("20")
    assert transition.created_links[0].fixing_price == Decimal("9500")
    assert transition.created_links[0].notes == "Fixing close for 20 MT"


def test_allocation_cap_counts_links_of_every_allocation_type() -> None:
    """A fully allocated initial hedge leaves no room for a price-fix link on the same execution.

    Returns:
        None: Assertions validate the execution-wide cap.

    Raises:
        AssertionError: Raised when links exceed the execution quantity.
    """

    open_transition = engine_compute_open(_build_request(order_id="O-1"), _build_trade(), _build_context())
    execution = open_transition.created_executions[0]
    initial_links = list(open_transition.created_links)
    assert sum(link.allocated_quantity_mt for link in initial_links) == Decimal("100")

    request = _build_fixing_request(execution, Decimal("100"), order_id="O-1")
    fixing = HedgeFixingCloseInput(close_price=Decimal("9600"), close_date=date(2026, 10, 18))

    with pytest.raises(HedgeValidationError, match="link allocation exceeds execution quantity"):
        engine_compute_fixing_close(request, execution, fixing, _build_context(), original_links=initial_links)

    partially_linked = [replace(initial_links[0], allocated_quantity_mt=Decimal("60"))]
    transition = engine_compute_fixing_close(
        _build_fixing_request(execution, Decimal("40"), order_id="O-1"),
        execution,
        fixing,
        _build_context(),
        original_links=partially_linked,
    )
    total_allocated = sum(link.allocated_quantity_mt for link in partially_linked + list(transition.created_links))
    assert total_allocated == execution.quantity_mt


def test_explicit_close_quantity_cannot_exceed_requested_quantity() -> None:
    """Roll and fixing close refuse to close more than the approved request quantity.

    Returns:
        None: Assertions validate the request quantity bound.

    Raises:
        AssertionError: Raised when an over-request close is computed.
    """

    original = _build_execution()
    roll = HedgeRollInput(
        close_price=Decimal("9600"),
        close_date=date(2026, 10, 18),
        new_trade=_build_trade(),
        close_quantity_mt=Decimal("100"),
    )
    with pytest.raises(HedgeValidationError, match="close quantity 100 exceeds requested quantity 10"):
        engine_compute_roll(_build_roll_request(original, Decimal("10")), original, roll, _build_context())

    fixing = HedgeFixingCloseInput(
        close_price=Decimal("9600"),
        close_date=date(2026, 10, 18),
        close_quantity_mt=Decimal("11"),
    )
    with pytest.raises(HedgeValidationError, match="exceeds requested quantity"):
        engine_compute_fixing_close(_build_fixing_request(original, Decimal("10")), original, fixing, _build_context())

    smaller_roll = replace(roll, close_quantity_mt=Decimal("4"))
    transition = engine_compute_roll(_build_roll_request(original, Decimal("10")), original, smaller_roll, _build_context())
    assert transition.created_rolls[0].rolled_qty_mt == Decimal("4")
    assert transition.execution_updates[0].after.open_quantity_mt == Decimal("96")


def test_close_quantity_boundaries() -> None:
    """Closing exactly the open quantity succeeds; one unit more is rejected.

    Returns:
        None: Assertions validate quantity boundaries.

    Raises:
        AssertionError: Raised when boundary handling diverges.
    """

    original = _build_execution(open_quantity_mt=Decimal("20"), status=HedgeExecutionStatus.PARTIALLY_CLOSED)
    fixing = HedgeFixingCloseInput(close_price=Decimal("9500"), close_date=date(2026, 10, 18))

    exact_transition = engine_compute_fixing_close(
        _build_fixing_request(original, Decimal("20")), original, fixing, _build_context()
    )
    assert exact_transition.execution_updates[0].after.status is HedgeExecutionStatus.CLOSED

    with pytest.raises(HedgeValidationError, match="exceeds open quantity"):
        engine_compute_fixing_close(_build_fixing_request(original, Decimal("21")), original, fixing, _build_context())

    with pytest.raises(HedgeValidationError, match="close price must be greater than zero"):
        engine_compute_fixing_close(
            _build_fixing_request(original, Decimal("5")),
            original,
            replace(fixing, close_price=Decimal("0")),
            _build_context(),
        )


def test_price_fix_inherits_order_anchor_from_original_links() -> None:
    """A price-fix request without its own anchor links to the original's order.

    Returns:
        None: Assertions validate anchor inheritance.

    Raises:
        AssertionError: Raised when the inherited anchor diverges.
    """

    original = _build_execution(quantity_mt=Decimal("40"), open_quantity_mt=Decimal("40"))
    request = _build_request(
        direction=HedgeDirection.SELL,
        quantity_mt=Decimal("15"),
        request_type=HedgeRequestType.PRICE_FIX,
        source=HedgeRequestSource.PRICE_FIX,
        linked_execution_id=original.hedge_execution_id,
    )

    transition = engine_compute_price_fix(
        request,
        _build_trade(executed_price=Decimal("9800")),
        _build_context(),
        original=original,
        original_links=[_build_link(original, link_id="O-1")],
    )

    fix_execution = transition.created_executions[0]
    assert fix_execution.direction is HedgeDirection.SELL
    assert fix_execution.quantity_mt == Decimal("15")
    link = transition.created_links[0]
    assert link.link_id == "O-1"
    assert link.link_level is HedgeLinkLevel.ORDER
    assert link.hedge_execution_id == fix_execution.hedge_execution_id
    assert link.allocation_type is HedgeAllocationType.PRICE_FIX

    original_after = transition.execution_updates[0].after
    assert original_after.open_quantity_mt == Decimal("25")
    assert original_after.status is HedgeExecutionStatus.PARTIALLY_CLOSED
    assert original_after.pnl_realized == Decimal("4500")


def test_price_fix_falls_back_to_originating_request_anchor() -> None:
    original = _build_execution()
    request = _build_request(
        direction=HedgeDirection.SELL,
        quantity_mt=Decimal("10"),
        request_type=HedgeRequestType.PRICE_FIX,
        linked_execution_id=original.hedge_execution_id,
    )
    originating_request = _build_request(hedge_request_id=UUID(int=9002), ticket_id=31)

    transition = engine_compute_price_fix(
        request,
        _build_trade(),
        _build_context(),
        original=original,
        original_request=originating_request,
    )

    assert transition.created_links[0].link_level is HedgeLinkLevel.TICKET
    assert transition.created_links[0].link_id == "31"


def test_price_fix_rejects_same_direction_missing_original_and_missing_maturity() -> None:
    """Reject price fixes that would add to the position or cannot find their original.

    Returns:
        None: Assertions validate rejections.

    Raises:
        AssertionError: Raised when an invalid price fix is accepted.
    """

    original = _build_execution()
    same_direction_request = _build_request(
        quantity_mt=Decimal("10"),
        request_type=HedgeRequestType.PRICE_FIX,
        linked_execution_id=original.hedge_execution_id,
    )
    with pytest.raises(HedgeValidationError, match="opposite"):
        engine_compute_price_fix(same_direction_request, _build_trade(), _build_context(), original=original)

    opposite_request = replace(same_direction_request, direction=HedgeDirection.SELL)
    with pytest.raises(HedgeNotFoundError):
        engine_compute_price_fix(opposite_request, _build_trade(), _build_context(), original=None)

    with pytest.raises(HedgeValidationError, match="maturity date is required"):
        engine_compute_price_fix(
            opposite_request,
            _build_trade(expiry_date=None),
            _build_context(),
            original=original,
        )


def test_realized_pnl_sign_follows_direction() -> None:
    assert engine_realized_pnl(HedgeDirection.BUY, Decimal("100"), Decimal("110"), Decimal("2")) == Decimal("20")
    assert engine_realized_pnl(HedgeDirection.SELL, Decimal("100"), Decimal("110"), Decimal("2")) == Decimal("-20")
