"""
Adaptive table rendering.

Turns a ResultBuffer of any shape into a bounded textual report: at most
8 columns (first 3, an elision marker, last 4) and at most 11 body rows
(first 5, an elision row, last 5), cells truncated to a width budget, then
a summary block with the row count, estimated memory footprint and a legend
of every column.
"""

from __future__ import annotations

from io import StringIO
from typing import List, Optional, Sequence

from rich import box
from rich.console import Console
from rich.measure import Measurement
from rich.table import Table
from rich.text import Text

from .result import ResultBuffer

ELLIPSIS = "..."

HEAD_COLUMNS = 3
TAIL_COLUMNS = 4
HEAD_ROWS = 5
TAIL_ROWS = 5
MAX_FULL_ROWS = HEAD_ROWS + TAIL_ROWS

# An over-budget cell is never shorter than the ellipsis itself
MIN_CELL_WIDTH = len(ELLIPSIS)

GIGABYTE = 1024 * 1024 * 1024


def visible_columns(col_count: int) -> List[Optional[int]]:
    """Column indexes to display; ``None`` marks the elision column."""
    if col_count <= HEAD_COLUMNS + TAIL_COLUMNS:
        return list(range(col_count))
    return [
        *range(HEAD_COLUMNS),
        None,
        *range(col_count - TAIL_COLUMNS, col_count),
    ]


def visible_rows(row_count: int) -> List[Optional[int]]:
    """Row indexes to display; ``None`` marks the elision row."""
    if row_count <= MAX_FULL_ROWS:
        return list(range(row_count))
    return [
        *range(HEAD_ROWS),
        None,
        *range(row_count - TAIL_ROWS, row_count),
    ]


def hidden_columns_label(col_count: int) -> str:
    return f"<<+{col_count - HEAD_COLUMNS - TAIL_COLUMNS} cols>>"


def cell_budget(buffer: ResultBuffer, columns: Sequence[Optional[int]]) -> int:
    """Longest displayed header name, the width every body cell is capped to."""
    widths = [len(buffer.headers[i].name) for i in columns if i is not None]
    return max([MIN_CELL_WIDTH, *widths])


def truncate(text: str, budget: int) -> str:
    if len(text) <= budget:
        return text
    return text[: budget - len(ELLIPSIS)] + ELLIPSIS


def table_grid(buffer: ResultBuffer) -> List[List[str]]:
    """
    The displayed cells, header row first.

    Both elision policies and cell truncation are applied here; the result
    is exactly what ends up inside the table borders.
    """
    columns = visible_columns(buffer.col_count)
    budget = cell_budget(buffer, columns)

    header = [
        buffer.headers[i].name if i is not None else hidden_columns_label(buffer.col_count)
        for i in columns
    ]
    grid = [header]

    for r in visible_rows(buffer.row_count):
        if r is None:
            grid.append([ELLIPSIS] * len(columns))
            continue
        grid.append(
            [
                truncate(buffer.cell(r, c), budget) if c is not None else ELLIPSIS
                for c in columns
            ]
        )
    return grid


# Wide enough that measuring never constrains a bounded table
SCRATCH_WIDTH = 1_000_000


def _plain_console(width: int) -> Console:
    return Console(
        file=StringIO(),
        width=width,
        color_system=None,
        force_terminal=False,
        force_jupyter=False,
        force_interactive=False,
        highlight=False,
        markup=False,
        emoji=False,
        legacy_windows=False,
    )


def _cell(text: str) -> Text:
    """
    Plain rich text for one cell.

    Every character Python treats as a line boundary becomes a newline and
    tabs are expanded, so rich measures the cell exactly as it draws it.
    """
    cell = Text("\n".join(text.splitlines()))
    cell.expand_tabs()
    return cell


def _natural_width(table: Table) -> int:
    """Width rich needs to draw ``table`` without shrinking any column."""
    console = _plain_console(SCRATCH_WIDTH)
    return max(1, Measurement.get(console, console.options, table).maximum)


def render_table(buffer: ResultBuffer) -> str:
    """Box-drawn table of the displayed cells, left-aligned, no styling."""
    grid = table_grid(buffer)
    header, body = grid[0], grid[1:]

    table = Table(box=box.ASCII, header_style="", show_edge=True, highlight=False)
    for label in header:
        table.add_column(_cell(label), justify="left", no_wrap=True)
    for row in body:
        table.add_row(*(_cell(text) for text in row))

    console = _plain_console(_natural_width(table))
    console.print(table)
    return console.file.getvalue().rstrip("\n")


def render_summary(buffer: ResultBuffer) -> str:
    size_in_gb = buffer.estimated_size() / GIGABYTE
    lines = [
        f"Total number of rows: {buffer.row_count}",
        f"Size in memory: {size_in_gb:.7f} GB",
        "",
        "Column names and data types:",
    ]
    lines.extend(
        f"{column.name} ({column.wire_type} => {column.domain_type})"
        for column in buffer.headers
    )
    return "\n".join(lines)


def render(buffer: ResultBuffer) -> str:
    """Full report: bounded table followed by the summary block."""
    return render_table(buffer) + "\n" + render_summary(buffer) + "\n"
