"""Derived hedge views computed from ledger store records.

Views are pure functions of the execution, link, and request sets. The
service caches computed views until the orchestrator invalidates them after a
committed write. The cache is process-local; deployments where several
processes share one database run with the cache disabled.
"""

from __future__ import annotations

import logging
import threading
from decimal import Decimal
from typing import Iterable
from uuid import UUID

from hedge_ledger.db import HedgeLedgerRepositoryPort
from hedge_ledger.domain import (
    HedgeExecutionRecord,
    HedgeExecutionStatus,
    HedgeLinkRecord,
    HedgeRecordKind,
    HedgeRequestRecord,
    HedgeValidationError,
)

from .interfaces import HedgeExecutionFilter, HedgeExposureSummary, HedgeMatchingRow, HedgeProjectionPort
from .position_engine import engine_realized_pnl

logger = logging.getLogger(__name__)

_ZERO = Decimal("0")
_PROJECTION_PAGE_SIZE = 500
_OPEN_POSITION_STATUSES = frozenset({HedgeExecutionStatus.OPEN, HedgeExecutionStatus.PARTIALLY_CLOSED})


def projection_compute_exposure(executions: Iterable[HedgeExecutionRecord]) -> HedgeExposureSummary:
    """Compute net and open exposure over an execution set.

    Args:
        executions: Executions already filtered by the caller.

    Returns:
        HedgeExposureSummary: Contract count with signed net and open exposure.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    contract_count = 0
    net_exposure = _ZERO
    open_exposure = _ZERO
    for execution in executions:
        signed_quantity = execution.quantity_mt * execution.direction.direction_sign()
        contract_count += 1
        net_exposure += signed_quantity
        if execution.status is HedgeExecutionStatus.OPEN:
            open_exposure += signed_quantity
    return HedgeExposureSummary(
        contract_count=contract_count,
        net_exposure_mt=net_exposure,
        open_exposure_mt=open_exposure,
    )


def projection_compute_unrealized_pnl(execution: HedgeExecutionRecord, mark_price: Decimal) -> Decimal:
    """Mark the open quantity of an execution to a caller-supplied price.

    Args:
        execution: Execution to mark.
        mark_price: Mark price.

    Returns:
        Decimal: Direction-signed unrealized P&L; zero when nothing is open.

    Raises:
        HedgeValidationError: Raised when the mark price is not positive.
    """

    if mark_price <= _ZERO:
        raise HedgeValidationError("mark price must be greater than zero")
    if execution.open_quantity_mt <= _ZERO:
        return _ZERO
    return engine_realized_pnl(execution.direction, execution.executed_price, mark_price, execution.open_quantity_mt)


def projection_build_matching_rows(
    links: Iterable[HedgeLinkRecord],
    executions: Iterable[HedgeExecutionRecord],
    requests: Iterable[HedgeRequestRecord],
) -> list[HedgeMatchingRow]:
    """Join links to their execution and the execution's originating request.

    Args:
        links: Hedge links.
        executions: Candidate executions.
        requests: Candidate requests; soft-deleted requests are not joined.

    Returns:
        list[HedgeMatchingRow]: One row per link, in input order.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    executions_by_id: dict[UUID, HedgeExecutionRecord] = {
        execution.hedge_execution_id: execution for execution in executions
    }
    requests_by_id: dict[UUID, HedgeRequestRecord] = {
        request.hedge_request_id: request for request in requests if not request.request_is_deleted()
    }

    matching_rows: list[HedgeMatchingRow] = []
    for link in links:
        execution = executions_by_id.get(link.hedge_execution_id)
        request = None
        if execution is not None and execution.hedge_request_id is not None:
            request = requests_by_id.get(execution.hedge_request_id)
        matching_rows.append(HedgeMatchingRow(link=link, execution=execution, request=request))
    return matching_rows


def projection_select_open_positions(
    executions: Iterable[HedgeExecutionRecord],
    metal: str | None = None,
) -> list[HedgeExecutionRecord]:
    """Select executions that still carry open quantity.

    Args:
        executions: Candidate executions.
        metal: Optional case-insensitive metal filter.

    Returns:
        list[HedgeExecutionRecord]: Executions in `OPEN` or `PARTIALLY_CLOSED` with open quantity.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    normalized_metal = metal.strip().lower() if metal and metal.strip() else None
    return [
        execution
        for execution in executions
        if execution.status in _OPEN_POSITION_STATUSES
        and execution.open_quantity_mt > _ZERO
        and (normalized_metal is None or execution.metal.lower() == normalized_metal)
    ]


class HedgeProjectionService(HedgeProjectionPort):
    """Cached derived views backed by the ledger store.

    Every invalidation bumps a generation counter. A view computed while an
    invalidation happened is returned to its caller but never cached.
    """

    def __init__(self, repository: HedgeLedgerRepositoryPort, cache_enabled: bool = True):
        """Initialize projection service dependencies.

        Args:
            repository: Ledger store used as the source of truth.
            cache_enabled: Whether computed views are kept between calls.

        Raises:
            ValueError: Raised when repository is None.
        """

        if repository is None:
            raise ValueError("repository must not be None")
        self._repository = repository
        self._cache_enabled = cache_enabled
        self._cache: dict[tuple[object, ...], object] = {}
        self._cache_generation = 0
        self._cache_lock = threading.Lock()

    def projection_exposure_summary(self, execution_filter: HedgeExecutionFilter | None = None) -> HedgeExposureSummary:
        active_filter = execution_filter or HedgeExecutionFilter()
        cache_key = ("exposure", tuple(sorted((name, str(value)) for name, value in active_filter.filter_as_mapping().items())))
        cached_summary, generation = self._projection_cache_get(cache_key)
        if cached_summary is not None:
            return cached_summary

        summary = projection_compute_exposure(
            self._projection_list_all(HedgeRecordKind.EXECUTION, active_filter.filter_as_mapping())
        )
        self._projection_cache_put(cache_key, summary, generation)
        return summary

    def projection_matching_rows(self) -> list[HedgeMatchingRow]:
        cache_key = ("matching",)
        cached_rows, generation = self._projection_cache_get(cache_key)
        if cached_rows is not None:
            return list(cached_rows)

        matching_rows = projection_build_matching_rows(
            links=self._projection_list_all(HedgeRecordKind.LINK),
            executions=self._projection_list_all(HedgeRecordKind.EXECUTION),
            requests=self._projection_list_all(HedgeRecordKind.REQUEST),
        )
        self._projection_cache_put(cache_key, tuple(matching_rows), generation)
        return matching_rows

    def projection_open_positions(self, metal: str | None = None) -> list[HedgeExecutionRecord]:
        cache_key = ("open_positions", (metal or "").strip().lower())
        cached_positions, generation = self._projection_cache_get(cache_key)
        if cached_positions is not None:
            return list(cached_positions)

        open_positions = projection_select_open_positions(
            self._projection_list_all(HedgeRecordKind.EXECUTION),
            metal=metal,
        )
        self._projection_cache_put(cache_key, tuple(open_positions), generation)
        return open_positions

    def projection_invalidate(self) -> None:
        with self._cache_lock:
            dropped_count = len(self._cache)
            self._cache.clear()
            self._cache_generation += 1
        logger.debug("hedge projection cache invalidated dropped_views=%s", dropped_count)

    def _projection_cache_get(self, cache_key: tuple[object, ...]) -> tuple[object | None, int]:
        """Look up a cached view and the generation a fresh computation would belong to.

        Args:
            cache_key: View cache key.

        Returns:
            tuple[object | None, int]: Cached view or None, and the current cache generation.

        Raises:
            RuntimeError: This helper does not raise runtime errors.
        """

        with self._cache_lock:
            if not self._cache_enabled:
                return None, self._cache_generation
            return self._cache.get(cache_key), self._cache_generation

    def _projection_cache_put(self, cache_key: tuple[object, ...], value: object, generation: int) -> None:
        with self._cache_lock:
            if not self._cache_enabled or generation != self._cache_generation:
                return
            self._cache[cache_key] = value

    def _projection_list_all(self, kind: HedgeRecordKind, filters: dict[str, object] | None = None) -> list:
        """Read every record of one kind page by page.

        Args:
            kind: Record kind.
            filters: Optional equality filters.

        Returns:
            list: Records in store order.

        Raises:
            HedgeStorageError: Raised when the ledger store cannot be read.
        """

        collected_records: list = []
        offset = 0
        while True:
            page = self._repository.db_hedge_record_list(
                kind=kind,
                filters=filters,
                limit=_PROJECTION_PAGE_SIZE,
                offset=offset,
            )
            collected_records.extend(page)
            if len(page) < _PROJECTION_PAGE_SIZE:
                return collected_records
            offset += _PROJECTION_PAGE_SIZE


__all__ = [
    "HedgeProjectionService",
    "projection_compute_exposure",
    "projection_compute_unrealized_pnl",
    "projection_build_matching_rows",
    "projection_select_open_positions",
]
