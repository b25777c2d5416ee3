"""Explicit status transition tables for hedge requests and executions."""

from __future__ import annotations

from decimal import Decimal
from typing import Final

from .errors import HedgeTransitionError, HedgeValidationError
from .models import HedgeExecutionStatus, HedgeRequestStatus

REQUEST_STATUS_TRANSITIONS: Final[dict[HedgeRequestStatus, frozenset[HedgeRequestStatus]]] = {
    HedgeRequestStatus.DRAFT: frozenset(
        {
            HedgeRequestStatus.PENDING_APPROVAL,
            HedgeRequestStatus.APPROVED,
            HedgeRequestStatus.REJECTED,
            HedgeRequestStatus.CANCELLED,
        }
    ),
    HedgeRequestStatus.PENDING_APPROVAL: frozenset(
        {
            HedgeRequestStatus.APPROVED,
            HedgeRequestStatus.REJECTED,
            HedgeRequestStatus.CANCELLED,
        }
    ),
    HedgeRequestStatus.APPROVED: frozenset(
        {
            HedgeRequestStatus.EXECUTED,
            HedgeRequestStatus.REJECTED,
            HedgeRequestStatus.CANCELLED,
        }
    ),
    HedgeRequestStatus.EXECUTED: frozenset(),
    HedgeRequestStatus.REJECTED: frozenset(),
    HedgeRequestStatus.CANCELLED: frozenset(),
}

# Reachable only through a successful position engine operation.
REQUEST_ENGINE_ONLY_STATUSES: Final[frozenset[HedgeRequestStatus]] = frozenset({HedgeRequestStatus.EXECUTED})

EXECUTION_STATUS_TRANSITIONS: Final[dict[HedgeExecutionStatus, frozenset[HedgeExecutionStatus]]] = {
    HedgeExecutionStatus.OPEN: frozenset(
        {
            HedgeExecutionStatus.PARTIALLY_CLOSED,
            HedgeExecutionStatus.CLOSED,
            HedgeExecutionStatus.ROLLED,
        }
    ),
    HedgeExecutionStatus.PARTIALLY_CLOSED: frozenset(
        {
            HedgeExecutionStatus.PARTIALLY_CLOSED,
            HedgeExecutionStatus.CLOSED,
            HedgeExecutionStatus.ROLLED,
        }
    ),
    HedgeExecutionStatus.CLOSED: frozenset(),
    HedgeExecutionStatus.ROLLED: frozenset(),
}


def state_request_is_terminal(status: HedgeRequestStatus) -> bool:
    """Return whether a hedge request status accepts no further transitions.

    Args:
        status: Request status.

    Returns:
        bool: True for `Executed`, `Rejected`, and `Cancelled`.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    return not REQUEST_STATUS_TRANSITIONS[status]


def state_require_request_transition(
    current: HedgeRequestStatus,
    target: HedgeRequestStatus,
    engine_driven: bool = False,
) -> HedgeRequestStatus:
    """Validate one hedge request status transition against the transition table.

    Args:
        current: Current request status.
        target: Requested target status.
        engine_driven: Whether the transition is applied by a position engine operation.

    Returns:
        HedgeRequestStatus: Validated target status.

    Raises:
        HedgeTransitionError: Raised when the transition is not allowed.
    """

    if target in REQUEST_ENGINE_ONLY_STATUSES and not engine_driven:
        raise HedgeTransitionError(
            f"hedge request status {target.value} can only be set by a successful execution operation"
        )
    if target not in REQUEST_STATUS_TRANSITIONS[current]:
        raise HedgeTransitionError(
            f"hedge request status transition {current.value} -> {target.value} is not allowed"
        )
    return target


def state_require_execution_transition(
    current: HedgeExecutionStatus,
    target: HedgeExecutionStatus,
) -> HedgeExecutionStatus:
    """Validate one hedge execution status transition against the transition table.

    Args:
        current: Current execution status.
        target: Requested target status.

    Returns:
        HedgeExecutionStatus: Validated target status.

    Raises:
        HedgeTransitionError: Raised when the transition is not allowed.
    """

    if target not in EXECUTION_STATUS_TRANSITIONS[current]:
        raise HedgeTransitionError(
            f"hedge execution status transition {current.value} -> {target.value} is not allowed"
        )
    return target


def state_execution_status_for_open_quantity(
    quantity_mt: Decimal,
    open_quantity_mt: Decimal,
) -> HedgeExecutionStatus:
    """Derive execution status from traded and open quantities.

    Args:
        quantity_mt: Traded quantity.
        open_quantity_mt: Remaining open quantity.

    Returns:
        HedgeExecutionStatus: `OPEN`, `PARTIALLY_CLOSED`, or `CLOSED`.

    Raises:
        HedgeValidationError: Raised when open quantity is outside `[0, quantity_mt]`.
    """

    if open_quantity_mt < Decimal("0") or open_quantity_mt > quantity_mt:
        raise HedgeValidationError(
            f"open quantity {open_quantity_mt} must be between 0 and traded quantity {quantity_mt}"
        )
    if open_quantity_mt == Decimal("0"):
        return HedgeExecutionStatus.CLOSED
    if open_quantity_mt == quantity_mt:
        return HedgeExecutionStatus.OPEN
    return HedgeExecutionStatus.PARTIALLY_CLOSED


__all__ = [
    "REQUEST_STATUS_TRANSITIONS",
    "REQUEST_ENGINE_ONLY_STATUSES",
    "EXECUTION_STATUS_TRANSITIONS",
    "state_request_is_terminal",
    "state_require_request_transition",
    "state_require_execution_transition",
    "state_execution_status_for_open_quantity",
]
