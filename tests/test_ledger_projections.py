"""Regression tests for derived hedge views and their cache."""

from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from uuid import UUID

import pytest

from hedge_ledger.db import HedgeRecordWrite, InMemoryHedgeLedgerStore
from hedge_ledger.domain import (
    HedgeAllocationType,
    HedgeDirection,
    HedgeExecutionRecord,
    HedgeExecutionStatus,
    HedgeLinkLevel,
    HedgeLinkRecord,
    HedgeRecordKind,
    HedgeReferenceType,
    HedgeRequestRecord,
    HedgeRequestSource,
    HedgeRequestStatus,
    HedgeRequestType,
    HedgeValidationError,
)
from hedge_ledger.ledger import (
    HedgeExecutionFilter,
    HedgeProjectionService,
    projection_build_matching_rows,
    projection_compute_exposure,
    projection_compute_unrealized_pnl,
    projection_select_open_positions,
)

_NOW_UTC = datetime(2026, 10, 18, 9, 30, tzinfo=timezone.utc)


def _build_execution(identifier: int, **overrides) -> HedgeExecutionRecord:
    execution = HedgeExecutionRecord(
        hedge_execution_id=UUID(int=identifier),
        metal="Copper",
        direction=HedgeDirection.BUY,
        quantity_mt=Decimal("100"),
        open_quantity_mt=Decimal("100"),
        executed_price=Decimal("9500"),
        executed_price_currency="USD",
        execution_date=date(2026, 9, 1),
        expiry_date=date(2026, 12, 16),
        status=HedgeExecutionStatus.OPEN,
        created_at_utc=_NOW_UTC + timedelta(minutes=identifier),
        updated_at_utc=_NOW_UTC,
        reference_type=HedgeReferenceType.LME_CASH,
    )
    return replace(execution, **overrides)


def _build_request(identifier: int, **overrides) -> HedgeRequestRecord:
    request = HedgeRequestRecord(
        hedge_request_id=UUID(int=identifier),
        metal="Copper",
        direction=HedgeDirection.BUY,
        quantity_mt=Decimal("100"),
        status=HedgeRequestStatus.EXECUTED,
        source=HedgeRequestSource.MANUAL,
        request_type=HedgeRequestType.OPEN,
        reference=HedgeReferenceType.LME_CASH,
        created_at_utc=_NOW_UTC,
        updated_at_utc=_NOW_UTC,
    )
    return replace(request, **overrides)


def _build_link(identifier: int, hedge_execution_id: UUID) -> HedgeLinkRecord:
    return HedgeLinkRecord(
        hedge_link_id=UUID(int=identifier),
        hedge_execution_id=hedge_execution_id,
        link_id=f"O-{identifier}",
        link_level=HedgeLinkLevel.ORDER,
        allocated_quantity_mt=Decimal("10"),
        side="BUY",
        metal="Copper",
        direction=HedgeDirection.BUY,
        allocation_type=HedgeAllocationType.INITIAL_HEDGE,
        created_at_utc=_NOW_UTC + timedelta(minutes=identifier),
    )


def test_exposure_sums_signed_quantity_and_restricts_open_exposure() -> None:
    """Net exposure counts every execution while open exposure counts `OPEN` ones only.

    Returns:
        None: Assertions validate exposure totals.

    Raises:
        AssertionError: Raised when totals diverge.
    """

    summary = projection_compute_exposure(
        [
            _build_execution(1),
            _build_execution(2, direction=HedgeDirection.SELL, quantity_mt=Decimal("30"), open_quantity_mt=Decimal("30")),
            _build_execution(3, open_quantity_mt=Decimal("20"), status=HedgeExecutionStatus.PARTIALLY_CLOSED),
        ]
    )

    assert summary.contract_count == 3
    assert summary.net_exposure_mt == Decimal("170")
    assert summary.open_exposure_mt == Decimal("70")


def test_unrealized_pnl_marks_open_quantity_only() -> None:
    """Mark the open quantity and ignore executions with nothing open."""

    partially_closed = _build_execution(1, open_quantity_mt=Decimal("40"), status=HedgeExecutionStatus.PARTIALLY_CLOSED)
    closed = _build_execution(2, open_quantity_mt=Decimal("0"), status=HedgeExecutionStatus.CLOSED)

    assert projection_compute_unrealized_pnl(partially_closed, Decimal("9600")) == Decimal("4000")
    assert projection_compute_unrealized_pnl(
        replace(partially_closed, direction=HedgeDirection.SELL), Decimal("9600")
    ) == Decimal("-4000")
    assert projection_compute_unrealized_pnl(closed, Decimal("9600")) == Decimal("0")
    with pytest.raises(HedgeValidationError):
        projection_compute_unrealized_pnl(partially_closed, Decimal("0"))


def test_matching_rows_skip_soft_deleted_requests() -> None:
    """Join links to executions and drop soft-deleted originating requests.

    Returns:
        None: Assertions validate joined rows.

    Raises:
        AssertionError: Raised when joins diverge.
    """

    live_execution = _build_execution(1, hedge_request_id=UUID(int=101))
    orphan_execution = _build_execution(2, hedge_request_id=UUID(int=102))
    requests = [
        _build_request(101),
        _build_request(102, deleted_at=_NOW_UTC, delete_reason="duplicate"),
    ]
    links = [_build_link(201, live_execution.hedge_execution_id), _build_link(202, orphan_execution.hedge_execution_id)]

    rows = projection_build_matching_rows(links, [live_execution, orphan_execution], requests)

    assert [row.link.hedge_link_id for row in rows] == [UUID(int=201), UUID(int=202)]
    assert rows[0].request.hedge_request_id == UUID(int=101)
    assert rows[1].execution == orphan_execution
    assert rows[1].request is None


def test_open_positions_filter_status_and_metal() -> None:
    executions = [
        _build_execution(1),
        _build_execution(2, metal="Aluminium"),
        _build_execution(3, open_quantity_mt=Decimal("0"), status=HedgeExecutionStatus.CLOSED),
    ]

    assert [execution.hedge_execution_id for execution in projection_select_open_positions(executions)] == [
        UUID(int=1),
        UUID(int=2),
    ]
    assert [
        execution.hedge_execution_id for execution in projection_select_open_positions(executions, metal=" aluminium ")
    ] == [UUID(int=2)]


def test_projection_service_caches_until_invalidated() -> None:
    """Serve cached views until invalidation, then recompute from the store.

    Returns:
        None: Assertions validate cache lifecycle.

    Raises:
        AssertionError: Raised when cached views go stale after invalidation.
    """

    store = InMemoryHedgeLedgerStore()
    first_execution = _build_execution(1)
    store.db_hedge_batch_put(
        [HedgeRecordWrite(HedgeRecordKind.EXECUTION, first_execution.hedge_execution_id, None, first_execution)]
    )
    service = HedgeProjectionService(repository=store)

    assert service.projection_exposure_summary().net_exposure_mt == Decimal("100")

    second_execution = _build_execution(2, direction=HedgeDirection.SELL, quantity_mt=Decimal("40"), open_quantity_mt=Decimal("40"))
    store.db_hedge_batch_put(
        [HedgeRecordWrite(HedgeRecordKind.EXECUTION, second_execution.hedge_execution_id, None, second_execution)]
    )
    assert service.projection_exposure_summary().net_exposure_mt == Decimal("100")

    service.projection_invalidate()
    refreshed_summary = service.projection_exposure_summary()
    assert refreshed_summary.net_exposure_mt == Decimal("60")
    assert refreshed_summary.contract_count == 2

    sell_summary = service.projection_exposure_summary(HedgeExecutionFilter(direction=HedgeDirection.SELL))
    assert sell_summary.contract_count == 1
    assert sell_summary.net_exposure_mt == Decimal("-40")


class _CommitDuringReadStore:
    """Store wrapper that commits an execution and invalidates views while the first execution read is in flight."""

    def __init__(self, delegate: InMemoryHedgeLedgerStore, pending_execution: HedgeExecutionRecord):
        self._delegate = delegate
        self._pending_execution = pending_execution
        self.service: HedgeProjectionService | None = None

    def db_hedge_record_list(self, kind: HedgeRecordKind, filters, limit: int, offset: int) -> list:
        """Return the pre-commit page, committing the pending execution in between.

        Args:
            kind: Record kind.
            filters: Optional equality filters.
            limit: Page size.
            offset: Page offset.

        Returns:
            list: Records as they were before the concurrent commit.

        Raises:
            HedgeStorageError: Raised when the delegate store cannot be read.
        """

        page = self._delegate.db_hedge_record_list(kind, filters, limit=limit, offset=offset)
        if kind is HedgeRecordKind.EXECUTION and self._pending_execution is not None:
            pending_execution, self._pending_execution = self._pending_execution, None
            self._delegate.db_hedge_batch_put(
                [HedgeRecordWrite(HedgeRecordKind.EXECUTION, pending_execution.hedge_execution_id, None, pending_execution)]
            )
            self.service.projection_invalidate()
        return page


def test_projection_service_does_not_cache_view_read_before_invalidation() -> None:
    """A view read before a concurrent commit is served once but never cached.

    Returns:
        None: Assertions validate the cache generation guard.

    Raises:
        AssertionError: Raised when the stale view survives the invalidation.
    """

    delegate_store = InMemoryHedgeLedgerStore()
    store = _CommitDuringReadStore(delegate_store, pending_execution=_build_execution(1))
    service = HedgeProjectionService(repository=store)
    store.service = service

    stale_summary = service.projection_exposure_summary()
    assert stale_summary.contract_count == 0

    refreshed_summary = service.projection_exposure_summary()
    assert refreshed_summary.contract_count == 1
    assert refreshed_summary.net_exposure_mt == Decimal("100")


def test_projection_service_without_cache_always_reads_the_store() -> None:
    store = InMemoryHedgeLedgerStore()
    service = HedgeProjectionService(repository=store, cache_enabled=False)
    assert service.projection_open_positions() == []

    execution = _build_execution(1)
    store.db_hedge_batch_put(
        [HedgeRecordWrite(HedgeRecordKind.EXECUTION, execution.hedge_execution_id, None, execution)]
    )
    assert [position.hedge_execution_id for position in service.projection_open_positions()] == [UUID(int=1)]
