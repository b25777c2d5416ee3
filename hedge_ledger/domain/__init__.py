"""Domain models, errors, and state machines used across application layer boundaries."""

from .errors import (
	HedgeConflictError,
	HedgeLedgerError,
	HedgeNotFoundError,
	HedgeStorageError,
	HedgeTransitionError,
	HedgeValidationError,
)
from .models import (
	HealthStatus,
	HedgeAllocationType,
	HedgeDirection,
	HedgeExecutionRecord,
	HedgeExecutionStatus,
	HedgeLedgerRecord,
	HedgeLinkLevel,
	HedgeLinkRecord,
	HedgeRecordKind,
	HedgeReferenceType,
	HedgeRequestRecord,
	HedgeRequestSource,
	HedgeRequestStatus,
	HedgeRequestType,
	HedgeRollRecord,
	domain_append_note,
	domain_normalize_hedge_metal,
	domain_record_id,
	domain_record_kind,
)
from .state_machine import (
	state_execution_status_for_open_quantity,
	state_request_is_terminal,
	state_require_execution_transition,
	state_require_request_transition,
)
from .timeline import domain_build_stage_event

__all__ = [
	"HealthStatus",
	"HedgeLedgerError",
	"HedgeValidationError",
	"HedgeTransitionError",
	"HedgeConflictError",
	"HedgeNotFoundError",
	"HedgeStorageError",
	"HedgeDirection",
	"HedgeRequestStatus",
	"HedgeRequestSource",
	"HedgeRequestType",
	"HedgeReferenceType",
	"HedgeExecutionStatus",
	"HedgeLinkLevel",
	"HedgeAllocationType",
	"HedgeRecordKind",
	"HedgeRequestRecord",
	"HedgeExecutionRecord",
	"HedgeLinkRecord",
	"HedgeRollRecord",
	"HedgeLedgerRecord",
	"domain_record_kind",
	"domain_record_id",
	"domain_normalize_hedge_metal",
	"domain_append_note",
	"state_request_is_terminal",
	"state_require_request_transition",
	"state_require_execution_transition",
	"state_execution_status_for_open_quantity",
	"domain_build_stage_event",
]
