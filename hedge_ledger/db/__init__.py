"""Database layer package for all SQL and persistence boundaries."""

from .health import SQLAlchemyDatabaseHealthService
from .hedge_ledger_store import SQLAlchemyHedgeLedgerService
from .interfaces import DatabaseHealthPort, HedgeLedgerRepositoryPort, HedgeRecordWrite
from .memory_store import InMemoryHedgeLedgerStore
from .record_tables import HEDGE_TABLE_SPECS, HedgeTableSpec
from .session import db_create_engine

__all__ = [
	"DatabaseHealthPort",
	"HedgeLedgerRepositoryPort",
	"HedgeRecordWrite",
	"HEDGE_TABLE_SPECS",
	"HedgeTableSpec",
	"InMemoryHedgeLedgerStore",
	"SQLAlchemyDatabaseHealthService",
	"SQLAlchemyHedgeLedgerService",
	"db_create_engine",
]
