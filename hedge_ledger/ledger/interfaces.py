"""Typed interfaces for ledger-layer derived views."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol

from hedge_ledger.domain import (
    HedgeDirection,
    HedgeExecutionRecord,
    HedgeExecutionStatus,
    HedgeLinkRecord,
    HedgeReferenceType,
    HedgeRequestRecord,
)


@dataclass(frozen=True)
class HedgeExecutionFilter:
    """Equality filters applied to the execution set of a derived view.

    Attributes:
        metal: Optional metal label.
        direction: Optional trade direction.
        status: Optional execution status.
        reference_type: Optional reference price curve.
    """

    metal: str | None = None
    direction: HedgeDirection | None = None
    status: HedgeExecutionStatus | None = None
    reference_type: HedgeReferenceType | None = None

    def filter_as_mapping(self) -> dict[str, object]:
        """Return populated filters keyed by execution field name.

        Returns:
            dict[str, object]: Non-null filter values.

        Raises:
            RuntimeError: This helper does not raise runtime errors.
        """

        candidate_filters: dict[str, object | None] = {
            "metal": self.metal,
            "direction": self.direction,
            "status": self.status,
            "reference_type": self.reference_type,
        }
        return {name: value for name, value in candidate_filters.items() if value is not None}


@dataclass(frozen=True)
class HedgeExposureSummary:
    """Net and open hedge exposure over a filtered execution set.

    Attributes:
        contract_count: Number of executions in the set.
        net_exposure_mt: Signed traded quantity (Buy positive, Sell negative).
        open_exposure_mt: Signed traded quantity restricted to `OPEN` executions.
    """

    contract_count: int
    net_exposure_mt: Decimal
    open_exposure_mt: Decimal


@dataclass(frozen=True)
class HedgeMatchingRow:
    """One hedge link joined to its execution and originating request.

    Attributes:
        link: Hedge link.
        execution: Execution the link allocates, when present.
        request: Request that originated the execution, when present.
    """

    link: HedgeLinkRecord
    execution: HedgeExecutionRecord | None
    request: HedgeRequestRecord | None


class HedgeProjectionPort(Protocol):
    """Port definition for cached read-only hedge views."""

    def projection_exposure_summary(self, execution_filter: HedgeExecutionFilter | None = None) -> HedgeExposureSummary:
        """Return net and open exposure over the filtered execution set.

        Args:
            execution_filter: Optional execution filters.

        Returns:
            HedgeExposureSummary: Exposure summary.

        Raises:
            HedgeStorageError: Raised when the ledger store cannot be read.
        """

    def projection_matching_rows(self) -> list[HedgeMatchingRow]:
        """Return every hedge link joined to its execution and originating request.

        Returns:
            list[HedgeMatchingRow]: Matching rows in link creation order.

        Raises:
            HedgeStorageError: Raised when the ledger store cannot be read.
        """

    def projection_open_positions(self, metal: str | None = None) -> list[HedgeExecutionRecord]:
        """Return executions that still carry open quantity.

        Args:
            metal: Optional metal filter.

        Returns:
            list[HedgeExecutionRecord]: Open or partially closed executions.

        Raises:
            HedgeStorageError: Raised when the ledger store cannot be read.
        """

    def projection_invalidate(self) -> None:
        """Drop every cached view so the next read recomputes from the store."""
