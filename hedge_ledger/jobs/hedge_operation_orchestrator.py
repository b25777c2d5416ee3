"""Job-layer orchestrator for position engine operations with stage timelines."""
# pylint: disable=too-many-arguments

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable
from uuid import UUID, uuid4

from hedge_ledger.db import HedgeLedgerRepositoryPort, HedgeRecordWrite
from hedge_ledger.domain import (
    HedgeConflictError,
    HedgeExecutionRecord,
    HedgeLinkRecord,
    HedgeNotFoundError,
    HedgeRecordKind,
    HedgeRequestRecord,
    HedgeValidationError,
    domain_build_stage_event,
)
from hedge_ledger.ledger import (
    HedgeEngineContext,
    HedgeExecutionFilter,
    HedgeFixingCloseInput,
    HedgeProjectionPort,
    HedgeRollInput,
    HedgeTradeInput,
    PositionTransition,
    engine_compute_fixing_close,
    engine_compute_open,
    engine_compute_price_fix,
    engine_compute_roll,
)

from .interfaces import HedgeOperationPort, HedgeOperationResult

logger = logging.getLogger(__name__)

_LINK_PAGE_SIZE = 500


def job_utc_now() -> datetime:
    """Return the current offset-aware UTC timestamp."""

    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class HedgeOrchestratorConfig:
    """Configuration values for hedge operation orchestration.

    Attributes:
        default_broker_name: Broker recorded when neither input nor request names one.
        enforce_link_allocation_cap: Whether link allocations are capped by execution quantity.
    """

    default_broker_name: str = "StoneX"
    enforce_link_allocation_cap: bool = True


class HedgeOperationOrchestrator(HedgeOperationPort):
    """Run position engine operations against the ledger store.

    Each operation loads its records, computes a transition, re-reads every
    record the transition mutates, then writes the whole transition as one
    version-guarded batch. Projections are invalidated only after a commit.
    """

    def __init__(
        self,
        repository: HedgeLedgerRepositoryPort,
        projection_service: HedgeProjectionPort | None = None,
        config: HedgeOrchestratorConfig | None = None,
        clock: Callable[[], datetime] = job_utc_now,
        id_factory: Callable[[], UUID] = uuid4,
    ):
        """Initialize orchestrator dependencies.

        Args:
            repository: Ledger store.
            projection_service: Optional projection cache to invalidate after commits.
            config: Orchestration configuration.
            clock: UTC clock.
            id_factory: Identifier factory for created records.

        Returns:
            None: Initializer does not return a value.

        Raises:
            ValueError: Raised when dependencies or config values are invalid.
        """

        if repository is None:
            raise ValueError("repository must not be None")
        active_config = config or HedgeOrchestratorConfig()
        if not active_config.default_broker_name.strip():
            raise ValueError("config.default_broker_name must not be blank")

        self._repository = repository
        self._projection_service = projection_service
        self._config = active_config
        self._clock = clock
        self._id_factory = id_factory

    def job_open_execution(self, hedge_request_id: UUID, trade: HedgeTradeInput) -> HedgeOperationResult:
        def _compute(context: HedgeEngineContext, timeline: list[dict[str, object]]) -> PositionTransition:
            request = self._job_load_request(hedge_request_id)
            timeline.append(self._job_stage("load", "completed", context, {"hedge_request_id": str(hedge_request_id)}))
            return engine_compute_open(request=request, trade=trade, context=context)

        return self._job_run_operation("open", hedge_request_id, _compute)

    def job_roll_execution(self, hedge_request_id: UUID, roll: HedgeRollInput) -> HedgeOperationResult:
        def _compute(context: HedgeEngineContext, timeline: list[dict[str, object]]) -> PositionTransition:
            request = self._job_load_request(hedge_request_id)
            original = self._job_load_original_execution(request, required=True)
            timeline.append(
                self._job_stage(
                    "load",
                    "completed",
                    context,
                    {"hedge_request_id": str(hedge_request_id), "original_execution_id": str(original.hedge_execution_id)},
                )
            )
            return engine_compute_roll(request=request, original=original, roll=roll, context=context)

        return self._job_run_operation("roll", hedge_request_id, _compute)

    def job_fixing_close_execution(
        self,
        hedge_request_id: UUID,
        fixing: HedgeFixingCloseInput,
    ) -> HedgeOperationResult:
        def _compute(context: HedgeEngineContext, timeline: list[dict[str, object]]) -> PositionTransition:
            request = self._job_load_request(hedge_request_id)
            original = self._job_load_original_execution(request, required=True)
            original_links = self.job_execution_links(original.hedge_execution_id)
            timeline.append(
                self._job_stage(
                    "load",
                    "completed",
                    context,
                    {
                        "hedge_request_id": str(hedge_request_id),
                        "original_execution_id": str(original.hedge_execution_id),
                        "original_link_count": len(original_links),
                    },
                )
            )
            return engine_compute_fixing_close(
                request=request,
                original=original,
                fixing=fixing,
                context=context,
                original_links=original_links,
            )

        return self._job_run_operation("fixing_close", hedge_request_id, _compute)

    def job_price_fix_execution(self, hedge_request_id: UUID, trade: HedgeTradeInput) -> HedgeOperationResult:
        def _compute(context: HedgeEngineContext, timeline: list[dict[str, object]]) -> PositionTransition:
            request = self._job_load_request(hedge_request_id)
            original = self._job_load_original_execution(request, required=False)
            original_links: list[HedgeLinkRecord] = []
            original_request: HedgeRequestRecord | None = None
            if original is not None:
                original_links = self.job_execution_links(original.hedge_execution_id)
                if original.hedge_request_id is not None:
                    candidate_request = self._repository.db_hedge_record_get(
                        HedgeRecordKind.REQUEST,
                        original.hedge_request_id,
                    )
                    if candidate_request is not None and not candidate_request.request_is_deleted():
                        original_request = candidate_request
            timeline.append(
                self._job_stage(
                    "load",
                    "completed",
                    context,
                    {
                        "hedge_request_id": str(hedge_request_id),
                        "original_execution_id": str(original.hedge_execution_id) if original is not None else None,
                        "original_link_count": len(original_links),
                    },
                )
            )
            return engine_compute_price_fix(
                request=request,
                trade=trade,
                context=context,
                original=original,
                original_links=original_links,
                original_request=original_request,
            )

        return self._job_run_operation("price_fix", hedge_request_id, _compute)

    def job_execution_get(self, hedge_execution_id: UUID) -> HedgeExecutionRecord:
        """Fetch one execution.

        Args:
            hedge_execution_id: Execution identifier.

        Returns:
            HedgeExecutionRecord: Stored execution.

        Raises:
            HedgeNotFoundError: Raised when the execution does not exist.
            HedgeStorageError: Raised when the ledger store cannot be read.
        """

        execution = self._repository.db_hedge_record_get(HedgeRecordKind.EXECUTION, hedge_execution_id)
        if execution is None:
            raise HedgeNotFoundError(f"hedge execution {hedge_execution_id} not found")
        return execution

    def job_execution_list(
        self,
        execution_filter: HedgeExecutionFilter | None,
        limit: int,
        offset: int,
    ) -> list[HedgeExecutionRecord]:
        return self._repository.db_hedge_record_list(
            kind=HedgeRecordKind.EXECUTION,
            filters=(execution_filter or HedgeExecutionFilter()).filter_as_mapping(),
            limit=limit,
            offset=offset,
        )

    def job_execution_links(self, hedge_execution_id: UUID) -> list[HedgeLinkRecord]:
        """Return every link recorded against one execution.

        Args:
            hedge_execution_id: Execution identifier.

        Returns:
            list[HedgeLinkRecord]: Links in creation order.

        Raises:
            HedgeStorageError: Raised when the ledger store cannot be read.
        """

        collected_links: list[HedgeLinkRecord] = []
        offset = 0
        while True:
            page = self._repository.db_hedge_record_list(
                kind=HedgeRecordKind.LINK,
                filters={"hedge_execution_id": hedge_execution_id},
                limit=_LINK_PAGE_SIZE,
                offset=offset,
            )
            collected_links.extend(page)
            if len(page) < _LINK_PAGE_SIZE:
                return collected_links
            offset += _LINK_PAGE_SIZE

    def _job_run_operation(
        self,
        operation: str,
        hedge_request_id: UUID,
        compute: Callable[[HedgeEngineContext, list[dict[str, object]]], PositionTransition],
    ) -> HedgeOperationResult:
        """Run one operation through load, compute, revalidate, persist, and invalidate stages.

        Args:
            operation: Operation name.
            hedge_request_id: Driving request identifier.
            compute: Callback loading records and returning the engine transition.

        Returns:
            HedgeOperationResult: Committed operation result.

        Raises:
            HedgeValidationError: Raised when the engine or revalidation rejects the operation.
            HedgeConflictError: Raised when a mutated record changed before commit.
            HedgeNotFoundError: Raised when a referenced record is missing.
            HedgeStorageError: Raised when the ledger store fails; nothing was committed.
        """

        context = HedgeEngineContext(
            now_utc=self._clock(),
            default_broker_name=self._config.default_broker_name,
            enforce_link_allocation_cap=self._config.enforce_link_allocation_cap,
            id_factory=self._id_factory,
        )
        timeline: list[dict[str, object]] = [self._job_stage("load", "started", context)]

        try:
            transition = compute(context, timeline)
            timeline.append(
                self._job_stage(
                    "compute",
                    "completed",
                    context,
                    {
                        "created_execution_count": len(transition.created_executions),
                        "updated_execution_count": len(transition.execution_updates),
                        "created_link_count": len(transition.created_links),
                        "created_roll_count": len(transition.created_rolls),
                    },
                )
            )

            self._job_revalidate(transition)
            timeline.append(self._job_stage("revalidate", "completed", context))

            self._repository.db_hedge_batch_put(self._job_build_writes(transition))
            timeline.append(self._job_stage("persist", "completed", context))
        except HedgeConflictError as error:
            logger.warning(
                "hedge operation conflict operation=%s hedge_request_id=%s detail=%s",
                operation,
                hedge_request_id,
                error.message,
            )
            raise
        except (HedgeValidationError, HedgeNotFoundError) as error:
            logger.warning(
                "hedge operation rejected operation=%s hedge_request_id=%s code=%s detail=%s",
                operation,
                hedge_request_id,
                error.error_code,
                error.message,
            )
            raise

        if self._projection_service is not None:
            self._projection_service.projection_invalidate()
        timeline.append(self._job_stage("invalidate", "completed", context))

        logger.info(
            "hedge operation accepted operation=%s hedge_request_id=%s created_executions=%s updated_executions=%s",
            operation,
            hedge_request_id,
            [str(execution.hedge_execution_id) for execution in transition.created_executions],
            [str(update.after.hedge_execution_id) for update in transition.execution_updates],
        )
        return HedgeOperationResult(operation=operation, transition=transition, timeline=tuple(timeline))

    def _job_load_request(self, hedge_request_id: UUID) -> HedgeRequestRecord:
        request = self._repository.db_hedge_record_get(HedgeRecordKind.REQUEST, hedge_request_id)
        if request is None or request.request_is_deleted():
            raise HedgeNotFoundError(f"hedge request {hedge_request_id} not found")
        return request

    def _job_load_original_execution(
        self,
        request: HedgeRequestRecord,
        required: bool,
    ) -> HedgeExecutionRecord | None:
        """Load the execution a request targets.

        Args:
            request: Driving request.
            required: Whether the request must target an execution.

        Returns:
            HedgeExecutionRecord | None: Targeted execution, or None when optional and absent.

        Raises:
            HedgeValidationError: Raised when a required target is not set on the request.
            HedgeNotFoundError: Raised when the targeted execution does not exist.
        """

        if request.linked_execution_id is None:
            if required:
                raise HedgeValidationError(
                    f"hedge request {request.hedge_request_id} does not reference an original execution"
                )
            return None
        return self.job_execution_get(request.linked_execution_id)

    def _job_revalidate(self, transition: PositionTransition) -> None:
        """Re-read every mutated record and confirm it still matches the computation basis.

        Args:
            transition: Computed transition.

        Returns:
            None: Revalidation has no return value.

        Raises:
            HedgeConflictError: Raised when a mutated record changed since it was loaded.
            HedgeValidationError: Raised when a close quantity no longer fits the open quantity.
        """

        fresh_request = self._repository.db_hedge_record_get(
            HedgeRecordKind.REQUEST,
            transition.request_before.hedge_request_id,
        )
        if fresh_request is None or fresh_request.row_version != transition.request_before.row_version:
            raise HedgeConflictError(
                f"hedge request {transition.request_before.hedge_request_id} was modified concurrently"
            )

        for update in transition.execution_updates:
            fresh_execution = self.job_execution_get(update.before.hedge_execution_id)
            if update.closed_quantity_mt > fresh_execution.open_quantity_mt:
                raise HedgeConflictError(
                    f"hedge execution {fresh_execution.hedge_execution_id} open quantity changed to "
                    f"{fresh_execution.open_quantity_mt}; close quantity {update.closed_quantity_mt} no longer fits"
                )
            if (
                fresh_execution.row_version != update.before.row_version
                or fresh_execution.open_quantity_mt != update.before.open_quantity_mt
            ):
                raise HedgeConflictError(
                    f"hedge execution {fresh_execution.hedge_execution_id} was modified concurrently"
                )

    def _job_build_writes(self, transition: PositionTransition) -> list[HedgeRecordWrite]:
        """Build the version-guarded batch for one transition.

        Args:
            transition: Computed transition.

        Returns:
            list[HedgeRecordWrite]: Request update, execution updates, then inserts.

        Raises:
            RuntimeError: This helper does not raise runtime errors.
        """

        writes = [
            HedgeRecordWrite(
                kind=HedgeRecordKind.REQUEST,
                record_id=transition.request_after.hedge_request_id,
                expected_version=transition.request_before.row_version,
                record=transition.request_after,
            )
        ]
        writes.extend(
            HedgeRecordWrite(
                kind=HedgeRecordKind.EXECUTION,
                record_id=update.after.hedge_execution_id,
                expected_version=update.before.row_version,
                record=update.after,
            )
            for update in transition.execution_updates
        )
        writes.extend(
            HedgeRecordWrite(
                kind=HedgeRecordKind.EXECUTION,
                record_id=execution.hedge_execution_id,
                expected_version=None,
                record=execution,
            )
            for execution in transition.created_executions
        )
        writes.extend(
            HedgeRecordWrite(kind=HedgeRecordKind.LINK, record_id=link.hedge_link_id, expected_version=None, record=link)
            for link in transition.created_links
        )
        writes.extend(
            HedgeRecordWrite(kind=HedgeRecordKind.ROLL, record_id=roll.hedge_roll_id, expected_version=None, record=roll)
            for roll in transition.created_rolls
        )
        return writes

    def _job_stage(
        self,
        stage: str,
        status: str,
        context: HedgeEngineContext,
        details: dict[str, object] | None = None,
    ) -> dict[str, object]:
        return domain_build_stage_event(stage=stage, status=status, details=details, at_utc=context.now_utc)


__all__ = ["HedgeOrchestratorConfig", "HedgeOperationOrchestrator", "job_utc_now"]
