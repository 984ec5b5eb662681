"""
Materialized query results.

A ResultBuffer holds one query's complete result as text: the column
descriptors and a row-major grid of cells. It is built once by
``materialize`` and never mutated afterwards.
"""

from __future__ import annotations

import logging
import struct
from typing import Any, Iterable, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, model_validator

from .errors import AllocationFailure
from .wire_types import classify

logger = logging.getLogger(__name__)

NULL_TEXT = "NULL"

POINTER_SIZE = struct.calcsize("P")
# headers, wire types, domain types, cells, row count, column count
BUFFER_RECORD_SIZE = 6 * POINTER_SIZE


class ColumnDescriptor(BaseModel):
    """Name and type labels of one result column."""

    model_config = ConfigDict(frozen=True)

    name: str
    wire_type: str
    domain_type: str

    @classmethod
    def from_wire(cls, name: str, wire_type: Any) -> "ColumnDescriptor":
        wire_label, domain_label = classify(wire_type)
        return cls(name=name, wire_type=wire_label, domain_type=domain_label)


class ResultBuffer(BaseModel):
    """Immutable, fully materialized query result."""

    model_config = ConfigDict(frozen=True)

    headers: Tuple[ColumnDescriptor, ...] = ()
    rows: Tuple[Tuple[str, ...], ...] = ()

    @model_validator(mode="after")
    def check_row_widths(self) -> "ResultBuffer":
        """Every row must carry exactly one cell per column."""
        width = len(self.headers)
        for index, row in enumerate(self.rows):
            if len(row) != width:
                raise ValueError(
                    f"Row {index} has {len(row)} cells, expected {width}"
                )
        return self

    @property
    def col_count(self) -> int:
        return len(self.headers)

    @property
    def row_count(self) -> int:
        return len(self.rows)

    def cell(self, row: int, column: int) -> str:
        return self.rows[row][column]

    def estimated_size(self) -> int:
        """
        Approximate bytes retained by the result.

        Pointer-sized slots for every cell and for the three per-column
        labels, plus each stored string's UTF-8 length and a terminator byte.
        """
        size = BUFFER_RECORD_SIZE
        size += self.row_count * self.col_count * POINTER_SIZE
        size += self.col_count * POINTER_SIZE * 3
        for row in self.rows:
            for text in row:
                size += _stored_length(text)
        for column in self.headers:
            size += _stored_length(column.name)
            size += _stored_length(column.wire_type)
            size += _stored_length(column.domain_type)
        return size


def _stored_length(text: str) -> int:
    return len(text.encode("utf-8", errors="replace")) + 1


def cell_text(value: Any) -> str:
    """Text form of a single value; absent values become ``NULL``."""
    if value is None:
        return NULL_TEXT
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).decode("utf-8", errors="replace")
    return str(value)


def materialize(
    columns: Iterable[Tuple[str, Any]],
    rows: Iterable[Sequence[Any]],
) -> ResultBuffer:
    """
    Build a ResultBuffer from column ``(name, wire_type)`` pairs and rows.

    Order is preserved exactly. Raises AllocationFailure if the interpreter
    runs out of memory while copying the result.
    """
    try:
        headers = tuple(
            ColumnDescriptor.from_wire(name, wire_type) for name, wire_type in columns
        )
        grid = tuple(tuple(cell_text(value) for value in row) for row in rows)
        buffer = ResultBuffer(headers=headers, rows=grid)
    except MemoryError as e:
        raise AllocationFailure("Out of memory while materializing the result") from e

    logger.debug(
        "Materialized %d rows x %d columns", buffer.row_count, buffer.col_count
    )
    return buffer
