"""Application bootstrap wiring for startup validation and dependency assembly."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from fastapi import FastAPI

from hedge_ledger.api import create_api_application
from hedge_ledger.config import AppSettings, config_load_settings
from hedge_ledger.db import (
    DatabaseHealthPort,
    HedgeLedgerRepositoryPort,
    InMemoryHedgeLedgerStore,
    SQLAlchemyDatabaseHealthService,
    SQLAlchemyHedgeLedgerService,
    db_create_engine,
)
from hedge_ledger.jobs import HedgeOperationOrchestrator, HedgeOrchestratorConfig, HedgeRequestWorkflow
from hedge_ledger.ledger import HedgeProjectionService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HedgeLedgerServices:
    """Wired runtime services shared by the HTTP and CLI surfaces.

    Attributes:
        settings: Validated runtime settings.
        repository: Ledger store.
        db_health_service: Ledger store health service.
        projection_service: Cached derived views.
        request_workflow: Request workflow.
        operation_orchestrator: Position operation orchestrator.
    """

    settings: AppSettings
    repository: HedgeLedgerRepositoryPort
    db_health_service: DatabaseHealthPort
    projection_service: HedgeProjectionService
    request_workflow: HedgeRequestWorkflow
    operation_orchestrator: HedgeOperationOrchestrator


def bootstrap_create_services(settings: AppSettings | None = None) -> HedgeLedgerServices:
    """Wire ledger store, projections, and job services from settings.

    Args:
        settings: Optional preloaded settings; loaded from the environment when omitted.

    Returns:
        HedgeLedgerServices: Wired services.

    Raises:
        SettingsLoadError: Raised when startup configuration validation fails.
    """

    active_settings = settings or config_load_settings()
    if active_settings.settings_uses_memory_store():
        memory_store = InMemoryHedgeLedgerStore()
        repository: HedgeLedgerRepositoryPort = memory_store
        db_health_service: DatabaseHealthPort = memory_store
    else:
        engine = db_create_engine(database_url=active_settings.database_url)
        repository = SQLAlchemyHedgeLedgerService(engine=engine)
        db_health_service = SQLAlchemyDatabaseHealthService(engine=engine)
    logger.info("hedge ledger store selected target=%s", db_health_service.db_connection_label())

    projection_service = HedgeProjectionService(
        repository=repository,
        cache_enabled=active_settings.settings_uses_memory_store(),
    )
    return HedgeLedgerServices(
        settings=active_settings,
        repository=repository,
        db_health_service=db_health_service,
        projection_service=projection_service,
        request_workflow=HedgeRequestWorkflow(
            repository=repository,
            projection_service=projection_service,
            rejection_reason_min_length=active_settings.rejection_reason_min_length,
        ),
        operation_orchestrator=HedgeOperationOrchestrator(
            repository=repository,
            projection_service=projection_service,
            config=HedgeOrchestratorConfig(
                default_broker_name=active_settings.default_broker_name,
                enforce_link_allocation_cap=active_settings.enforce_link_allocation_cap,
            ),
        ),
    )


def bootstrap_create_application(settings: AppSettings | None = None) -> FastAPI:
    """Assemble the runtime application after validating startup configuration.

    Args:
        settings: Optional preloaded settings.

    Returns:
        FastAPI: Fully initialized FastAPI application instance.

    Raises:
        SettingsLoadError: Raised when startup configuration validation fails.
    """

    services = bootstrap_create_services(settings)
    return create_api_application(
        settings=services.settings,
        db_health_service=services.db_health_service,
        request_workflow=services.request_workflow,
        operation_orchestrator=services.operation_orchestrator,
        projection_service=services.projection_service,
    )
