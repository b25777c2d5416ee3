"""Ledger store health check backed by the SQL database."""

from sqlalchemy import Engine, text
from sqlalchemy.exc import SQLAlchemyError

from hedge_ledger.domain import HealthStatus

from .interfaces import DatabaseHealthPort
from .record_tables import HEDGE_TABLE_SPECS


class SQLAlchemyDatabaseHealthService(DatabaseHealthPort):
    """Health service probing the connection and each hedge ledger table."""

    def __init__(self, engine: Engine):
        if engine is None:
            raise ValueError("engine must not be None")
        self._engine = engine

    def db_connection_label(self) -> str:
        return self._engine.url.render_as_string(hide_password=True)

    def db_check_health(self) -> HealthStatus:
        """Probe the connection, then read zero-or-one row from every ledger table.

        Returns:
            HealthStatus: `ok` with the number of probed tables.

        Raises:
            ConnectionError: Raised when the database or a ledger table cannot be read.
        """

        table_names = [table_spec.table_name for table_spec in HEDGE_TABLE_SPECS.values()]
        try:
            with self._engine.connect() as connection:
                connection.execute(text("SELECT 1"))
                for table_name in table_names:
                    connection.execute(text(f"SELECT 1 FROM {table_name} LIMIT 1"))
        except SQLAlchemyError as error:
            raise ConnectionError(f"hedge ledger database check failed: {error.__class__.__name__}") from error
        return HealthStatus(status="ok", detail=f"hedge ledger database reachable; {len(table_names)} tables probed")
