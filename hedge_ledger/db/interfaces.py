"""Typed interfaces for database-layer services.

All SQL access must remain in the db package and its submodules.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Protocol, Sequence
from uuid import UUID

from hedge_ledger.domain import HealthStatus, HedgeLedgerRecord, HedgeRecordKind


class DatabaseHealthPort(Protocol):
    """Port definition for ledger store connectivity verification."""

    def db_connection_label(self) -> str:
        """Return a stable label for the active storage target.

        Returns:
            str: Storage target label for diagnostics.

        Raises:
            RuntimeError: Raised when connection metadata is unavailable.
        """

    def db_check_health(self) -> HealthStatus:
        """Check storage connectivity and return deterministic health payload.

        Returns:
            HealthStatus: Storage health status payload.

        Raises:
            ConnectionError: Raised when storage cannot be reached.
        """


@dataclass(frozen=True)
class HedgeRecordWrite:
    """One record write inside an atomic ledger batch.

    Attributes:
        kind: Record kind.
        record_id: Record identifier.
        expected_version: Stored `row_version` the write was computed from, or None for an insert.
        record: Full record state to persist.
    """

    kind: HedgeRecordKind
    record_id: UUID
    expected_version: int | None
    record: HedgeLedgerRecord


class HedgeLedgerRepositoryPort(Protocol):
    """Port definition for hedge ledger record reads and atomic batch writes."""

    def db_hedge_record_get(self, kind: HedgeRecordKind, record_id: UUID) -> HedgeLedgerRecord | None:
        """Fetch the current committed state of one record.

        Args:
            kind: Record kind.
            record_id: Record identifier.

        Returns:
            HedgeLedgerRecord | None: Matching record, or None when absent.

        Raises:
            HedgeStorageError: Raised when the read fails.
        """

    def db_hedge_batch_put(self, writes: Sequence[HedgeRecordWrite]) -> None:
        """Persist every write or none of them.

        Inserts require the id to be absent. Updates require the stored
        `row_version` to equal `expected_version`.

        Args:
            writes: Batch of record writes.

        Returns:
            None: Batch writes do not return values.

        Raises:
            HedgeConflictError: Raised when any version check or insert uniqueness check fails.
            HedgeStorageError: Raised when the write fails for infrastructure reasons.
            ValueError: Raised when a write is malformed.
        """

    def db_hedge_record_list(
        self,
        kind: HedgeRecordKind,
        filters: Mapping[str, object] | None,
        limit: int,
        offset: int,
    ) -> list[HedgeLedgerRecord]:
        """List records of one kind ordered by creation timestamp and id.

        Args:
            kind: Record kind.
            filters: Optional equality filters keyed by record field name.
            limit: Max rows to return.
            offset: Rows to skip.

        Returns:
            list[HedgeLedgerRecord]: Deterministically ordered records.

        Raises:
            ValueError: Raised when pagination or filter arguments are invalid.
            HedgeStorageError: Raised when the read fails.
        """
