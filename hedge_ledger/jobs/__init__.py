"""Job layer package for hedge operation and request workflow orchestration."""

from .hedge_operation_orchestrator import HedgeOperationOrchestrator, HedgeOrchestratorConfig, job_utc_now
from .interfaces import HedgeOperationPort, HedgeOperationResult
from .request_workflow import HedgeRequestWorkflow

__all__ = [
	"HedgeOperationPort",
	"HedgeOperationResult",
	"HedgeOperationOrchestrator",
	"HedgeOrchestratorConfig",
	"HedgeRequestWorkflow",
	"job_utc_now",
]
