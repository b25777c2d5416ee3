"""Job-layer workflow for hedge request creation and approval transitions."""
# pylint: disable=too-many-arguments

from __future__ import annotations

import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Callable
from uuid import UUID, uuid4

from hedge_ledger.db import HedgeLedgerRepositoryPort, HedgeRecordWrite
from hedge_ledger.domain import (
    HedgeExecutionRecord,
    HedgeNotFoundError,
    HedgeRecordKind,
    HedgeRequestRecord,
    HedgeRequestStatus,
    HedgeRequestType,
)
from hedge_ledger.ledger import (
    HedgeProjectionPort,
    HedgeRequestDraft,
    lifecycle_approve_request,
    lifecycle_build_price_fix_request,
    lifecycle_build_roll_request,
    lifecycle_cancel_request,
    lifecycle_create_request,
    lifecycle_reject_request,
    lifecycle_soft_delete_request,
    lifecycle_submit_request,
)

from .hedge_operation_orchestrator import job_utc_now

logger = logging.getLogger(__name__)


class HedgeRequestWorkflow:
    """Create hedge requests and move them through the approval workflow."""

    def __init__(
        self,
        repository: HedgeLedgerRepositoryPort,
        projection_service: HedgeProjectionPort | None = None,
        rejection_reason_min_length: int = 5,
        clock: Callable[[], datetime] = job_utc_now,
        id_factory: Callable[[], UUID] = uuid4,
    ):
        """Initialize request workflow dependencies.

        Args:
            repository: Ledger store.
            projection_service: Optional projection cache to invalidate after commits.
            rejection_reason_min_length: Minimum trimmed rejection reason length.
            clock: UTC clock.
            id_factory: Identifier factory for created requests.

        Returns:
            None: Initializer does not return a value.

        Raises:
            ValueError: Raised when repository is None or the reason length is not positive.
        """

        if repository is None:
            raise ValueError("repository must not be None")
        if rejection_reason_min_length < 1:
            raise ValueError("rejection_reason_min_length must be >= 1")
        self._repository = repository
        self._projection_service = projection_service
        self._rejection_reason_min_length = rejection_reason_min_length
        self._clock = clock
        self._id_factory = id_factory

    def job_request_create(self, draft: HedgeRequestDraft) -> HedgeRequestRecord:
        """Create one manual hedge request.

        Args:
            draft: Caller inputs.

        Returns:
            HedgeRequestRecord: Persisted request.

        Raises:
            HedgeValidationError: Raised when inputs are invalid.
            HedgeStorageError: Raised when the ledger store fails.
        """

        request = lifecycle_create_request(draft, now_utc=self._clock(), id_factory=self._id_factory)
        return self._job_insert_request(request)

    def job_request_get(self, hedge_request_id: UUID) -> HedgeRequestRecord:
        """Fetch one live request.

        Args:
            hedge_request_id: Request identifier.

        Returns:
            HedgeRequestRecord: Stored request.

        Raises:
            HedgeNotFoundError: Raised when the request is missing or soft-deleted.
            HedgeStorageError: Raised when the ledger store fails.
        """

        request = self._repository.db_hedge_record_get(HedgeRecordKind.REQUEST, hedge_request_id)
        if request is None or request.request_is_deleted():
            raise HedgeNotFoundError(f"hedge request {hedge_request_id} not found")
        return request

    def job_request_list(
        self,
        status: HedgeRequestStatus | None,
        limit: int,
        offset: int,
    ) -> list[HedgeRequestRecord]:
        filters: dict[str, object] = {"deleted_at": None}
        if status is not None:
            filters["status"] = status
        return self._repository.db_hedge_record_list(
            kind=HedgeRecordKind.REQUEST,
            filters=filters,
            limit=limit,
            offset=offset,
        )

    def job_request_submit(self, hedge_request_id: UUID) -> HedgeRequestRecord:
        return self._job_mutate_request(
            hedge_request_id,
            "submit",
            lambda request, now_utc: lifecycle_submit_request(request, now_utc),
        )

    def job_request_approve(self, hedge_request_id: UUID) -> HedgeRequestRecord:
        return self._job_mutate_request(
            hedge_request_id,
            "approve",
            lambda request, now_utc: lifecycle_approve_request(request, now_utc),
        )

    def job_request_reject(self, hedge_request_id: UUID, rejection_reason: str) -> HedgeRequestRecord:
        return self._job_mutate_request(
            hedge_request_id,
            "reject",
            lambda request, now_utc: lifecycle_reject_request(
                request,
                rejection_reason,
                now_utc,
                min_reason_length=self._rejection_reason_min_length,
            ),
        )

    def job_request_cancel(self, hedge_request_id: UUID) -> HedgeRequestRecord:
        return self._job_mutate_request(
            hedge_request_id,
            "cancel",
            lambda request, now_utc: lifecycle_cancel_request(request, now_utc),
        )

    def job_request_delete(self, hedge_request_id: UUID, delete_reason: str) -> HedgeRequestRecord:
        return self._job_mutate_request(
            hedge_request_id,
            "delete",
            lambda request, now_utc: lifecycle_soft_delete_request(request, delete_reason, now_utc),
        )

    def job_request_create_roll(
        self,
        hedge_execution_id: UUID,
        quantity_mt: Decimal | None = None,
        desired_expiry: date | None = None,
        notes: str | None = None,
        request_type: HedgeRequestType = HedgeRequestType.ROLL,
    ) -> HedgeRequestRecord:
        """Create an auto-approved roll or fixing-close request for one execution.

        Args:
            hedge_execution_id: Execution to roll or close.
            quantity_mt: Optional quantity; defaults to the open quantity.
            desired_expiry: Optional target maturity.
            notes: Optional caller notes.
            request_type: `roll` or `fixing_close`.

        Returns:
            HedgeRequestRecord: Persisted approved request.

        Raises:
            HedgeNotFoundError: Raised when the execution does not exist.
            HedgeValidationError: Raised when the quantity does not fit the open quantity.
        """

        execution = self._job_load_execution(hedge_execution_id)
        request = lifecycle_build_roll_request(
            execution=execution,
            now_utc=self._clock(),
            quantity_mt=quantity_mt,
            desired_expiry=desired_expiry,
            originating_request=self._job_load_originating_request(execution),
            notes=notes,
            request_type=request_type,
            id_factory=self._id_factory,
        )
        return self._job_insert_request(request)

    def job_request_create_price_fix(
        self,
        hedge_execution_id: UUID,
        order_id: str,
        quantity_mt: Decimal | None = None,
        fixing_date: date | None = None,
        notes: str | None = None,
    ) -> HedgeRequestRecord:
        """Create an auto-approved price-fix request for one execution.

        Args:
            hedge_execution_id: Execution being price-fixed.
            order_id: Physical order the fix prices.
            quantity_mt: Optional quantity; defaults to the open quantity.
            fixing_date: Optional fixing date.
            notes: Optional caller notes.

        Returns:
            HedgeRequestRecord: Persisted approved request.

        Raises:
            HedgeNotFoundError: Raised when the execution does not exist.
            HedgeValidationError: Raised when the order id or quantity is invalid.
        """

        execution = self._job_load_execution(hedge_execution_id)
        execution_links = self._repository.db_hedge_record_list(
            kind=HedgeRecordKind.LINK,
            filters={"hedge_execution_id": hedge_execution_id},
            limit=500,
            offset=0,
        )
        request = lifecycle_build_price_fix_request(
            execution=execution,
            order_id=order_id,
            now_utc=self._clock(),
            quantity_mt=quantity_mt,
            fixing_date=fixing_date,
            originating_request=self._job_load_originating_request(execution),
            execution_links=execution_links,
            notes=notes,
            id_factory=self._id_factory,
        )
        return self._job_insert_request(request)

    def _job_mutate_request(
        self,
        hedge_request_id: UUID,
        action: str,
        mutate: Callable[[HedgeRequestRecord, datetime], HedgeRequestRecord],
    ) -> HedgeRequestRecord:
        """Apply one lifecycle mutation under a version guard.

        Args:
            hedge_request_id: Request identifier.
            action: Action label for logging.
            mutate: Pure lifecycle function.

        Returns:
            HedgeRequestRecord: Persisted request.

        Raises:
            HedgeNotFoundError: Raised when the request is missing or soft-deleted.
            HedgeValidationError: Raised when the lifecycle rejects the mutation.
            HedgeConflictError: Raised when the request changed concurrently.
        """

        current_request = self.job_request_get(hedge_request_id)
        updated_request = mutate(current_request, self._clock())
        self._repository.db_hedge_batch_put(
            [
                HedgeRecordWrite(
                    kind=HedgeRecordKind.REQUEST,
                    record_id=hedge_request_id,
                    expected_version=current_request.row_version,
                    record=updated_request,
                )
            ]
        )
        self._job_invalidate()
        logger.info(
            "hedge request %s hedge_request_id=%s status=%s",
            action,
            hedge_request_id,
            updated_request.status.value,
        )
        return updated_request

    def _job_insert_request(self, request: HedgeRequestRecord) -> HedgeRequestRecord:
        self._repository.db_hedge_batch_put(
            [
                HedgeRecordWrite(
                    kind=HedgeRecordKind.REQUEST,
                    record_id=request.hedge_request_id,
                    expected_version=None,
                    record=request,
                )
            ]
        )
        self._job_invalidate()
        logger.info(
            "hedge request created hedge_request_id=%s request_type=%s status=%s",
            request.hedge_request_id,
            request.request_type.value,
            request.status.value,
        )
        return request

    def _job_load_execution(self, hedge_execution_id: UUID) -> HedgeExecutionRecord:
        execution = self._repository.db_hedge_record_get(HedgeRecordKind.EXECUTION, hedge_execution_id)
        if execution is None:
            raise HedgeNotFoundError(f"hedge execution {hedge_execution_id} not found")
        return execution

    def _job_load_originating_request(self, execution: HedgeExecutionRecord) -> HedgeRequestRecord | None:
        if execution.hedge_request_id is None:
            return None
        request = self._repository.db_hedge_record_get(HedgeRecordKind.REQUEST, execution.hedge_request_id)
        if request is None or request.request_is_deleted():
            return None
        return request

    def _job_invalidate(self) -> None:
        if self._projection_service is not None:
            self._projection_service.projection_invalidate()


__all__ = ["HedgeRequestWorkflow"]
