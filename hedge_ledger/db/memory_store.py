"""In-process ledger store with the same contract as the SQL store."""

from __future__ import annotations

import threading
from typing import Mapping, Sequence
from uuid import UUID

from hedge_ledger.domain import HealthStatus, HedgeConflictError, HedgeLedgerRecord, HedgeRecordKind

from .interfaces import DatabaseHealthPort, HedgeLedgerRepositoryPort, HedgeRecordWrite
from .record_tables import HEDGE_TABLE_SPECS, db_storage_value, db_validate_batch, db_validate_list_arguments


class InMemoryHedgeLedgerStore(HedgeLedgerRepositoryPort, DatabaseHealthPort):
    """Thread-safe ledger store holding records in process memory.

    A batch is checked in full under the store lock before any record is
    swapped in, so a rejected batch leaves every record untouched.
    """

    def __init__(self):
        self._records: dict[HedgeRecordKind, dict[UUID, HedgeLedgerRecord]] = {kind: {} for kind in HedgeRecordKind}
        self._lock = threading.Lock()

    def db_hedge_record_get(self, kind: HedgeRecordKind, record_id: UUID) -> HedgeLedgerRecord | None:
        with self._lock:
            return self._records[kind].get(record_id)

    def db_hedge_batch_put(self, writes: Sequence[HedgeRecordWrite]) -> None:
        """Persist every write or none of them.

        Args:
            writes: Batch of record writes.

        Returns:
            None: Batch writes do not return values.

        Raises:
            HedgeConflictError: Raised when a version check or insert uniqueness check fails.
            ValueError: Raised when a write is malformed.
        """

        db_validate_batch(writes)
        with self._lock:
            for write in writes:
                stored_record = self._records[write.kind].get(write.record_id)
                table_name = HEDGE_TABLE_SPECS[write.kind].table_name
                if write.expected_version is None:
                    if stored_record is not None:
                        raise HedgeConflictError(f"{table_name} {write.record_id} already exists")
                    continue
                if stored_record is None:
                    raise HedgeConflictError(f"{table_name} {write.record_id} no longer exists")
                if stored_record.row_version != write.expected_version:
                    raise HedgeConflictError(
                        f"{table_name} {write.record_id} was modified concurrently: expected row_version "
                        f"{write.expected_version}, found {stored_record.row_version}"
                    )

            for write in writes:
                self._records[write.kind][write.record_id] = write.record

    def db_hedge_record_list(
        self,
        kind: HedgeRecordKind,
        filters: Mapping[str, object] | None,
        limit: int,
        offset: int,
    ) -> list[HedgeLedgerRecord]:
        normalized_filters = db_validate_list_arguments(kind, filters, limit, offset)
        with self._lock:
            candidate_records = list(self._records[kind].values())

        matching_records = [
            record
            for record in candidate_records
            if all(db_storage_value(getattr(record, column)) == value for column, value in normalized_filters.items())
        ]
        matching_records.sort(key=lambda record: (record.created_at_utc, str(_memory_record_id(kind, record))))
        return matching_records[offset : offset + limit]

    def db_connection_label(self) -> str:
        return "memory://hedge-ledger"

    def db_check_health(self) -> HealthStatus:
        with self._lock:
            record_count = sum(len(records) for records in self._records.values())
        return HealthStatus(status="ok", detail=f"in-memory hedge ledger holds {record_count} records")


def _memory_record_id(kind: HedgeRecordKind, record: HedgeLedgerRecord) -> UUID:
    return getattr(record, HEDGE_TABLE_SPECS[kind].id_column)


__all__ = ["InMemoryHedgeLedgerStore"]
