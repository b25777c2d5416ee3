"""SQLAlchemy-backed hedge ledger store with optimistic concurrency."""

from __future__ import annotations

from typing import Mapping, Sequence
from uuid import UUID

from sqlalchemy import Engine, text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from hedge_ledger.domain import HedgeConflictError, HedgeLedgerRecord, HedgeRecordKind, HedgeStorageError

from .interfaces import HedgeLedgerRepositoryPort, HedgeRecordWrite
from .record_tables import HEDGE_TABLE_SPECS, HedgeTableSpec, db_validate_batch, db_validate_list_arguments

_IMMUTABLE_COLUMNS = frozenset({"created_at_utc"})


class SQLAlchemyHedgeLedgerService(HedgeLedgerRepositoryPort):
    """SQLAlchemy-backed hedge ledger store.

    Every batch runs inside one `engine.begin()` transaction. Updates carry a
    `row_version` guard; a guarded update that matches no row aborts the whole
    transaction with `HedgeConflictError`.
    """

    def __init__(self, engine: Engine):
        """Initialize hedge ledger persistence service.

        Args:
            engine: SQLAlchemy engine used for all persistence operations.

        Returns:
            None: This initializer does not return a value.

        Raises:
            ValueError: Raised when engine is None.
        """

        if engine is None:
            raise ValueError("engine must not be None")
        self._engine = engine

    def db_hedge_record_get(self, kind: HedgeRecordKind, record_id: UUID) -> HedgeLedgerRecord | None:
        """Fetch one record by primary key.

        Args:
            kind: Record kind.
            record_id: Record identifier.

        Returns:
            HedgeLedgerRecord | None: Matching record or None.

        Raises:
            HedgeStorageError: Raised when database read fails.
        """

        table_spec = HEDGE_TABLE_SPECS[kind]
        try:
            with self._engine.connect() as connection:
                row = connection.execute(
                    text(
                        f"SELECT {', '.join(table_spec.table_columns())} "
                        f"FROM {table_spec.table_name} "
                        f"WHERE {table_spec.id_column} = :record_id"
                    ),
                    {"record_id": record_id},
                ).mappings().first()
                if row is None:
                    return None
                return table_spec.table_row_to_record(row)
        except SQLAlchemyError as error:
            raise HedgeStorageError(f"failed to fetch {table_spec.table_name} by id") from error

    def db_hedge_batch_put(self, writes: Sequence[HedgeRecordWrite]) -> None:
        """Persist every write in one transaction.

        Args:
            writes: Batch of record writes.

        Returns:
            None: Batch writes do not return values.

        Raises:
            HedgeConflictError: Raised when a version guard matches no row or an insert collides.
            HedgeStorageError: Raised when persistence fails.
            ValueError: Raised when a write is malformed.
        """

        db_validate_batch(writes)
        if not writes:
            return

        try:
            with self._engine.begin() as connection:
                for write in writes:
                    table_spec = HEDGE_TABLE_SPECS[write.kind]
                    if write.expected_version is None:
                        connection.execute(
                            text(self._build_insert_sql(table_spec)),
                            table_spec.table_record_to_row(write.record),
                        )
                        continue

                    update_parameters = table_spec.table_record_to_row(write.record)
                    update_parameters["expected_version"] = write.expected_version
                    updated_row = connection.execute(
                        text(self._build_update_sql(table_spec)),
                        update_parameters,
                    ).first()
                    if updated_row is None:
                        raise HedgeConflictError(
                            f"{table_spec.table_name} {write.record_id} was modified concurrently: "
                            f"expected row_version {write.expected_version}"
                        )
        except IntegrityError as error:
            raise HedgeConflictError("hedge ledger batch collided with an existing row") from error
        except SQLAlchemyError as error:
            raise HedgeStorageError("failed to persist hedge ledger batch") from error

    def db_hedge_record_list(
        self,
        kind: HedgeRecordKind,
        filters: Mapping[str, object] | None,
        limit: int,
        offset: int,
    ) -> list[HedgeLedgerRecord]:
        """List records with deterministic creation ordering.

        Args:
            kind: Record kind.
            filters: Optional equality filters; a None value matches SQL NULL.
            limit: Maximum number of rows.
            offset: Number of rows to skip.

        Returns:
            list[HedgeLedgerRecord]: Ordered records.

        Raises:
            ValueError: Raised when limit, offset, or filter columns are invalid.
            HedgeStorageError: Raised when database read fails.
        """

        normalized_filters = db_validate_list_arguments(kind, filters, limit, offset)
        table_spec = HEDGE_TABLE_SPECS[kind]

        where_clauses: list[str] = []
        query_parameters: dict[str, object] = {"limit": limit, "offset": offset}
        for column, value in sorted(normalized_filters.items()):
            if value is None:
                where_clauses.append(f"{column} IS NULL")
                continue
            where_clauses.append(f"{column} = :filter_{column}")
            query_parameters[f"filter_{column}"] = value
        where_sql = f"WHERE {' AND '.join(where_clauses)} " if where_clauses else ""

        try:
            with self._engine.connect() as connection:
                rows = connection.execute(
                    text(
                        f"SELECT {', '.join(table_spec.table_columns())} "
                        f"FROM {table_spec.table_name} "
                        f"{where_sql}"
                        f"ORDER BY created_at_utc ASC, {table_spec.id_column} ASC "
                        "LIMIT :limit OFFSET :offset"
                    ),
                    query_parameters,
                ).mappings().all()
                return [table_spec.table_row_to_record(row) for row in rows]
        except SQLAlchemyError as error:
            raise HedgeStorageError(f"failed to list {table_spec.table_name} rows") from error

    def _build_insert_sql(self, table_spec: HedgeTableSpec) -> str:
        columns = table_spec.table_columns()
        return (
            f"INSERT INTO {table_spec.table_name} ({', '.join(columns)}) "
            f"VALUES ({', '.join(f':{column}' for column in columns)})"
        )

    def _build_update_sql(self, table_spec: HedgeTableSpec) -> str:
        """Build the version-guarded update statement for one mutable table.

        Args:
            table_spec: Table layout.

        Returns:
            str: Parameterized UPDATE returning the primary key of the updated row.

        Raises:
            RuntimeError: This helper does not raise runtime errors.
        """

        assignments = [
            f"{column} = :{column}"
            for column in table_spec.table_columns()
            if column != table_spec.id_column and column not in _IMMUTABLE_COLUMNS
        ]
        return (
            f"UPDATE {table_spec.table_name} SET {', '.join(assignments)} "
            f"WHERE {table_spec.id_column} = :{table_spec.id_column} "
            "AND row_version = :expected_version "
            f"RETURNING {table_spec.id_column}"
        )


__all__ = ["SQLAlchemyHedgeLedgerService"]
