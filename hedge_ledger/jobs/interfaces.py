"""Typed interfaces for job-layer orchestration responsibilities."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

from hedge_ledger.ledger import (
    HedgeFixingCloseInput,
    HedgeRollInput,
    HedgeTradeInput,
    PositionTransition,
)


@dataclass(frozen=True)
class HedgeOperationResult:
    """Result contract for one committed position engine operation.

    Attributes:
        operation: Operation name (`open`, `roll`, `fixing_close`, `price_fix`).
        transition: Committed record set.
        timeline: Ordered stage events recorded while the operation ran.
    """

    operation: str
    transition: PositionTransition
    timeline: tuple[dict[str, object], ...]


class HedgeOperationPort(Protocol):
    """Port definition for the four state-changing hedge operations."""

    def job_open_execution(self, hedge_request_id: UUID, trade: HedgeTradeInput) -> HedgeOperationResult:
        """Open a new execution for an approved request.

        Args:
            hedge_request_id: Driving request identifier.
            trade: Trade details.

        Returns:
            HedgeOperationResult: Committed operation result.

        Raises:
            HedgeLedgerError: Raised when the operation is rejected or cannot be committed.
        """

    def job_roll_execution(self, hedge_request_id: UUID, roll: HedgeRollInput) -> HedgeOperationResult:
        """Roll the execution targeted by an approved roll request.

        Args:
            hedge_request_id: Driving request identifier.
            roll: Roll inputs.

        Returns:
            HedgeOperationResult: Committed operation result.

        Raises:
            HedgeLedgerError: Raised when the operation is rejected or cannot be committed.
        """

    def job_fixing_close_execution(
        self,
        hedge_request_id: UUID,
        fixing: HedgeFixingCloseInput,
    ) -> HedgeOperationResult:
        """Close the execution targeted by an approved fixing-close request.

        Args:
            hedge_request_id: Driving request identifier.
            fixing: Fixing-close inputs.

        Returns:
            HedgeOperationResult: Committed operation result.

        Raises:
            HedgeLedgerError: Raised when the operation is rejected or cannot be committed.
        """

    def job_price_fix_execution(self, hedge_request_id: UUID, trade: HedgeTradeInput) -> HedgeOperationResult:
        """Execute an approved price-fix request.

        Args:
            hedge_request_id: Driving request identifier.
            trade: Trade details of the fixing execution.

        Returns:
            HedgeOperationResult: Committed operation result.

        Raises:
            HedgeLedgerError: Raised when the operation is rejected or cannot be committed.
        """
