"""Ledger layer package for the hedge position engine, request lifecycle, and derived views."""

from .interfaces import HedgeExecutionFilter, HedgeExposureSummary, HedgeMatchingRow, HedgeProjectionPort
from .position_engine import (
	HedgeEngineContext,
	HedgeExecutionUpdate,
	HedgeFixingCloseInput,
	HedgePhysicalAnchor,
	HedgeRollInput,
	HedgeTradeInput,
	PositionTransition,
	engine_compute_fixing_close,
	engine_compute_open,
	engine_compute_price_fix,
	engine_compute_roll,
	engine_realized_pnl,
	engine_resolve_price_fix_anchor,
	engine_resolve_request_anchor,
)
from .projections import (
	HedgeProjectionService,
	projection_build_matching_rows,
	projection_compute_exposure,
	projection_compute_unrealized_pnl,
	projection_select_open_positions,
)
from .request_lifecycle import (
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

__all__ = [
	"HedgeExecutionFilter",
	"HedgeExposureSummary",
	"HedgeMatchingRow",
	"HedgeProjectionPort",
	"HedgeEngineContext",
	"HedgeExecutionUpdate",
	"HedgeFixingCloseInput",
	"HedgePhysicalAnchor",
	"HedgeRollInput",
	"HedgeTradeInput",
	"PositionTransition",
	"engine_compute_open",
	"engine_compute_roll",
	"engine_compute_fixing_close",
	"engine_compute_price_fix",
	"engine_realized_pnl",
	"engine_resolve_request_anchor",
	"engine_resolve_price_fix_anchor",
	"HedgeProjectionService",
	"projection_build_matching_rows",
	"projection_compute_exposure",
	"projection_compute_unrealized_pnl",
	"projection_select_open_positions",
	"HedgeRequestDraft",
	"lifecycle_create_request",
	"lifecycle_submit_request",
	"lifecycle_approve_request",
	"lifecycle_reject_request",
	"lifecycle_cancel_request",
	"lifecycle_soft_delete_request",
	"lifecycle_build_roll_request",
	"lifecycle_build_price_fix_request",
]
