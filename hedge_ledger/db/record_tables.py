"""Table layout and batch validation shared by ledger store implementations."""

from __future__ import annotations

from dataclasses import dataclass, fields
from enum import Enum
from typing import Any, Mapping, Sequence

from hedge_ledger.domain import (
    HedgeAllocationType,
    HedgeDirection,
    HedgeExecutionRecord,
    HedgeExecutionStatus,
    HedgeLinkLevel,
    HedgeLinkRecord,
    HedgeRecordKind,
    HedgeReferenceType,
    HedgeRequestRecord,
    HedgeRequestSource,
    HedgeRequestStatus,
    HedgeRequestType,
    HedgeRollRecord,
    domain_record_id,
    domain_record_kind,
)

from .interfaces import HedgeRecordWrite


@dataclass(frozen=True)
class HedgeTableSpec:
    """Storage layout of one ledger record kind.

    Attributes:
        table_name: SQL table name.
        id_column: Primary key column name.
        record_type: Record dataclass.
        enum_columns: Columns stored as enum values.
        versioned: Whether rows are mutable under `row_version` checks.
        filter_columns: Columns accepted as list filters.
    """

    table_name: str
    id_column: str
    record_type: type
    enum_columns: Mapping[str, type[Enum]]
    versioned: bool
    filter_columns: frozenset[str]

    def table_columns(self) -> tuple[str, ...]:
        return tuple(field.name for field in fields(self.record_type))

    def table_record_to_row(self, record: Any) -> dict[str, object]:
        """Convert one record to a column-keyed parameter mapping.

        Args:
            record: Record of this table's type.

        Returns:
            dict[str, object]: Column values with enums stored as their values.

        Raises:
            RuntimeError: This helper does not raise runtime errors.
        """

        return {column: db_storage_value(getattr(record, column)) for column in self.table_columns()}

    def table_row_to_record(self, row: Mapping[str, Any]) -> Any:
        """Convert one column-keyed row to a typed record.

        Args:
            row: Row mapping containing every column.

        Returns:
            Any: Typed record.

        Raises:
            ValueError: Raised when an enum column holds an unknown value.
        """

        record_values: dict[str, Any] = {}
        for column in self.table_columns():
            column_value = row[column]
            enum_type = self.enum_columns.get(column)
            if enum_type is not None and column_value is not None:
                column_value = enum_type(column_value)
            record_values[column] = column_value
        return self.record_type(**record_values)


HEDGE_TABLE_SPECS: dict[HedgeRecordKind, HedgeTableSpec] = {
    HedgeRecordKind.REQUEST: HedgeTableSpec(
        table_name="hedge_request",
        id_column="hedge_request_id",
        record_type=HedgeRequestRecord,
        enum_columns={
            "direction": HedgeDirection,
            "status": HedgeRequestStatus,
            "source": HedgeRequestSource,
            "request_type": HedgeRequestType,
            "reference": HedgeReferenceType,
        },
        versioned=True,
        filter_columns=frozenset(
            {"status", "metal", "direction", "source", "request_type", "linked_execution_id", "deleted_at"}
        ),
    ),
    HedgeRecordKind.EXECUTION: HedgeTableSpec(
        table_name="hedge_execution",
        id_column="hedge_execution_id",
        record_type=HedgeExecutionRecord,
        enum_columns={
            "direction": HedgeDirection,
            "status": HedgeExecutionStatus,
            "reference_type": HedgeReferenceType,
        },
        versioned=True,
        filter_columns=frozenset({"status", "metal", "direction", "reference_type", "hedge_request_id"}),
    ),
    HedgeRecordKind.LINK: HedgeTableSpec(
        table_name="hedge_link",
        id_column="hedge_link_id",
        record_type=HedgeLinkRecord,
        enum_columns={
            "link_level": HedgeLinkLevel,
            "direction": HedgeDirection,
            "allocation_type": HedgeAllocationType,
        },
        versioned=False,
        filter_columns=frozenset({"hedge_execution_id", "link_id", "link_level", "allocation_type"}),
    ),
    HedgeRecordKind.ROLL: HedgeTableSpec(
        table_name="hedge_roll",
        id_column="hedge_roll_id",
        record_type=HedgeRollRecord,
        enum_columns={},
        versioned=False,
        filter_columns=frozenset({"close_execution_id", "open_execution_id"}),
    ),
}


def db_storage_value(value: object) -> object:
    """Return the value stored for one record field; enums are stored by value."""

    if isinstance(value, Enum):
        return value.value
    return value


def db_validate_list_arguments(
    kind: HedgeRecordKind,
    filters: Mapping[str, object] | None,
    limit: int,
    offset: int,
) -> dict[str, object]:
    """Validate list arguments against the table filter whitelist.

    Args:
        kind: Record kind.
        filters: Optional equality filters.
        limit: Max rows to return.
        offset: Rows to skip.

    Returns:
        dict[str, object]: Filters with values converted to storage values.

    Raises:
        ValueError: Raised when pagination is invalid or a filter column is not allowed.
    """

    if limit < 1:
        raise ValueError("limit must be >= 1")
    if offset < 0:
        raise ValueError("offset must be >= 0")

    table_spec = HEDGE_TABLE_SPECS[kind]
    normalized_filters: dict[str, object] = {}
    for column, value in (filters or {}).items():
        if column not in table_spec.filter_columns:
            raise ValueError(f"filter column {column} is not allowed for {table_spec.table_name}")
        normalized_filters[column] = db_storage_value(value)
    return normalized_filters


def db_validate_batch(writes: Sequence[HedgeRecordWrite]) -> None:
    """Validate the shape of a batch before any store touches it.

    Args:
        writes: Batch of record writes.

    Returns:
        None: Validation has no return value.

    Raises:
        ValueError: Raised when a write is malformed or an id repeats within the batch.
    """

    seen_keys: set[tuple[HedgeRecordKind, object]] = set()
    for write in writes:
        if domain_record_kind(write.record) is not write.kind:
            raise ValueError(f"write kind {write.kind.value} does not match record type")
        if domain_record_id(write.record) != write.record_id:
            raise ValueError(f"write id {write.record_id} does not match record id")

        write_key = (write.kind, write.record_id)
        if write_key in seen_keys:
            raise ValueError(f"record {write.record_id} appears more than once in one batch")
        seen_keys.add(write_key)

        table_spec = HEDGE_TABLE_SPECS[write.kind]
        if write.expected_version is None:
            if table_spec.versioned and write.record.row_version != 1:
                raise ValueError(f"inserted {table_spec.table_name} rows must start at row_version 1")
            continue
        if not table_spec.versioned:
            raise ValueError(f"{table_spec.table_name} rows are append-only")
        if write.record.row_version != write.expected_version + 1:
            raise ValueError(
                f"{table_spec.table_name} update must advance row_version from {write.expected_version} "
                f"to {write.expected_version + 1}"
            )


__all__ = [
    "HedgeTableSpec",
    "HEDGE_TABLE_SPECS",
    "db_storage_value",
    "db_validate_list_arguments",
    "db_validate_batch",
]
