"""Run a SQL query against a named preset and print a bounded table."""

from .render import render
from .result import ColumnDescriptor, ResultBuffer, materialize
from .wire_types import classify

__version__ = "0.1.0"

__all__ = [
    "ColumnDescriptor",
    "ResultBuffer",
    "classify",
    "materialize",
    "render",
]
