"""Tests for API health endpoint behavior.

These tests validate deterministic response behavior for healthy and
ledger-store-unavailable states.
"""

from fastapi.testclient import TestClient

from hedge_ledger.api.application import create_api_application
from hedge_ledger.config import AppSettings
from hedge_ledger.db import InMemoryHedgeLedgerStore
from hedge_ledger.domain import HealthStatus
from hedge_ledger.jobs import HedgeOperationOrchestrator, HedgeRequestWorkflow
from hedge_ledger.ledger import HedgeProjectionService


class _HealthyDatabaseService:
    """Test double that simulates a healthy ledger store target."""

    def db_connection_label(self) -> str:
        """Return deterministic target label.

        Returns:
            str: Health target label.

        Raises:
            RuntimeError: Never raised by this test double.
        """

        return "postgresql://test"

    def db_check_health(self) -> HealthStatus:
        return HealthStatus(status="ok", detail="database connectivity verified")


class _FailingDatabaseService:
    """Test double that simulates a ledger store connectivity failure."""

    def db_connection_label(self) -> str:
        return "postgresql://test"

    def db_check_health(self) -> HealthStatus:
        """Raise deterministic connection error.

        Returns:
            HealthStatus: This method does not return.

        Raises:
            ConnectionError: Always raised by this test double.
        """

        raise ConnectionError("database connectivity check failed")


def _build_client(db_health_service) -> TestClient:
    """Create a test client around the supplied health service.

    Args:
        db_health_service: Health service test double.

    Returns:
        TestClient: Client for the assembled application.

    Raises:
        ValueError: Raised by AppSettings when values are invalid.
    """

    settings = AppSettings(environment_name="test", database_url="memory://")
    store = InMemoryHedgeLedgerStore()
    projection_service = HedgeProjectionService(repository=store)
    application = create_api_application(
        settings,
        db_health_service,
        HedgeRequestWorkflow(repository=store, projection_service=projection_service),
        HedgeOperationOrchestrator(repository=store, projection_service=projection_service),
        projection_service,
    )
    return TestClient(application)


def test_api_health_returns_success_when_ledger_store_is_available() -> None:
    """Return HTTP 200 and healthy payload when the store reports success.

    Returns:
        None: Assertions validate response behavior.

    Raises:
        AssertionError: Raised when response does not match expected payload.
    """

    response = _build_client(_HealthyDatabaseService()).get("/health")

    assert response.status_code == 200
    assert response.json() == {
        "status": "ok",
        "app": "up",
        "ledger_store": "ok",
        "detail": "database connectivity verified",
        "target": "postgresql://test",
    }


def test_api_health_returns_service_unavailable_when_ledger_store_is_down() -> None:
    """Return HTTP 503 and degraded payload when the store reports failure.

    Returns:
        None: Assertions validate response behavior.

    Raises:
        AssertionError: Raised when response does not match expected payload.
    """

    response = _build_client(_FailingDatabaseService()).get("/health")

    assert response.status_code == 503
    assert response.json()["status"] == "degraded"
    assert response.json()["app"] == "up"
    assert response.json()["ledger_store"] == "down"


def test_api_root_reports_environment() -> None:
    response = _build_client(_HealthyDatabaseService()).get("/")

    assert response.json() == {"service": "hedge-ledger", "status": "foundation-ready", "environment": "test"}
