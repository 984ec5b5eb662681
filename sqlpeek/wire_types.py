"""
Wire type classification.

Maps the column type reported by the database (a MySQL protocol field type
code, a SQL / DuckDB type name, or a DuckDB type object) to a pair of labels:
the wire label shown to the user and the domain type the value represents.

The mapping is total. Anything not listed falls back to ("UNKNOWN", "void").
"""

from __future__ import annotations

import re
from typing import Any, Dict, Tuple

TypeMapping = Tuple[str, str]

UNKNOWN: TypeMapping = ("UNKNOWN", "void")

# MySQL protocol field type codes (enum_field_types)
MYSQL_FIELD_TYPES: Dict[int, str] = {
    0: "DECIMAL",
    1: "TINY",
    2: "SHORT",
    3: "LONG",
    4: "FLOAT",
    5: "DOUBLE",
    6: "NULL",
    7: "TIMESTAMP",
    8: "LONGLONG",
    9: "INT24",
    10: "DATE",
    11: "TIME",
    12: "DATETIME",
    13: "YEAR",
    14: "NEWDATE",
    15: "VARCHAR",
    16: "BIT",
    17: "TIMESTAMP2",
    18: "DATETIME2",
    19: "TIME2",
    245: "JSON",
    246: "NEWDECIMAL",
    247: "ENUM",
    248: "SET",
    249: "TINY_BLOB",
    250: "MEDIUM_BLOB",
    251: "LONG_BLOB",
    252: "BLOB",
    253: "VAR_STRING",
    254: "STRING",
    255: "GEOMETRY",
}

# Canonical wire label -> (wire label, domain label), with every spelling that
# resolves to it. MySQL protocol names, SQL names and DuckDB names share rows.
_TYPE_GROUPS: Tuple[Tuple[TypeMapping, Tuple[str, ...]], ...] = (
    # Signed integers
    (("TINYINT", "int8"), ("TINYINT", "TINY", "INT1")),
    (("SMALLINT", "int16"), ("SMALLINT", "SHORT", "INT2")),
    (("MEDIUMINT", "int32"), ("MEDIUMINT", "INT24", "INT3")),
    (("INT", "int32"), ("INT", "INTEGER", "LONG", "INT4", "SIGNED")),
    (("BIGINT", "int64"), ("BIGINT", "LONGLONG", "INT8")),
    (("HUGEINT", "int128"), ("HUGEINT", "INT128")),
    # Unsigned integers
    (("UTINYINT", "uint8"), ("UTINYINT", "TINYINT UNSIGNED")),
    (("USMALLINT", "uint16"), ("USMALLINT", "SMALLINT UNSIGNED")),
    (("UINTEGER", "uint32"), ("UINTEGER", "INT UNSIGNED", "INTEGER UNSIGNED")),
    (("UBIGINT", "uint64"), ("UBIGINT", "BIGINT UNSIGNED")),
    (("UHUGEINT", "uint128"), ("UHUGEINT",)),
    # Floating point and fixed precision
    (("FLOAT", "float32"), ("FLOAT", "REAL", "FLOAT4")),
    (("DOUBLE", "float64"), ("DOUBLE", "FLOAT8", "DOUBLE PRECISION")),
    (("DECIMAL", "decimal"), ("DECIMAL", "NEWDECIMAL", "NUMERIC", "DEC")),
    # Boolean and bit
    (("BOOLEAN", "bool"), ("BOOLEAN", "BOOL", "LOGICAL")),
    (("BIT", "uint8"), ("BIT", "BITSTRING")),
    # Date and time
    (("DATE", "date"), ("DATE",)),
    (("NEWDATE", "date"), ("NEWDATE",)),
    (("YEAR", "int16"), ("YEAR",)),
    (("TIME", "time"), ("TIME", "TIME2")),
    (("TIMETZ", "time"), ("TIMETZ", "TIME WITH TIME ZONE")),
    (("DATETIME", "datetime"), ("DATETIME", "DATETIME2")),
    (
        ("TIMESTAMP", "datetime"),
        ("TIMESTAMP", "TIMESTAMP2", "TIMESTAMP_S", "TIMESTAMP_MS", "TIMESTAMP_NS", "TIMESTAMP_US"),
    ),
    (("TIMESTAMPTZ", "datetime"), ("TIMESTAMPTZ", "TIMESTAMP WITH TIME ZONE")),
    (("INTERVAL", "timedelta"), ("INTERVAL",)),
    # Character data
    (("CHAR", "str"), ("CHAR", "BPCHAR", "NCHAR")),
    (("VARCHAR", "str"), ("VARCHAR", "NVARCHAR", "CHARACTER VARYING")),
    (("STRING", "str"), ("STRING", "VAR_STRING")),
    (("TEXT", "str"), ("TEXT", "TINYTEXT", "MEDIUMTEXT", "LONGTEXT")),
    (("ENUM", "str"), ("ENUM",)),
    (("SET", "str"), ("SET",)),
    # Binary large objects
    (("TINYBLOB", "bytes"), ("TINYBLOB", "TINY_BLOB")),
    (("BLOB", "bytes"), ("BLOB", "BYTEA", "BINARY", "VARBINARY")),
    (("MEDIUMBLOB", "bytes"), ("MEDIUMBLOB", "MEDIUM_BLOB")),
    (("LONGBLOB", "bytes"), ("LONGBLOB", "LONG_BLOB")),
    # Structured and semi-structured
    (("JSON", "json"), ("JSON", "JSONB")),
    (("GEOMETRY", "bytes"), ("GEOMETRY",)),
    (("UUID", "uuid"), ("UUID",)),
    (("LIST", "list"), ("LIST",)),
    (("ARRAY", "list"), ("ARRAY",)),
    (("STRUCT", "dict"), ("STRUCT",)),
    (("MAP", "dict"), ("MAP",)),
    # Null
    (("NULL", "void"), ("NULL",)),
)

TYPE_MAP: Dict[str, TypeMapping] = {
    alias: mapping for mapping, aliases in _TYPE_GROUPS for alias in aliases
}

LIST_PATTERN = re.compile(r"\[\]$")
ARRAY_PATTERN = re.compile(r"\[\d+\]$")


def normalize_type_name(name: str) -> str:
    """Reduce a type name to the spelling used as a ``TYPE_MAP`` key."""
    cleaned = name.strip().strip('"').strip().upper()
    if LIST_PATTERN.search(cleaned):
        return "LIST"
    if ARRAY_PATTERN.search(cleaned):
        return "ARRAY"
    # "DECIMAL(18,3)" -> "DECIMAL", "STRUCT(a INTEGER)" -> "STRUCT"
    return cleaned.partition("(")[0].strip()


def classify(wire_type: Any) -> TypeMapping:
    """
    Return ``(wire_label, domain_label)`` for a column type tag.

    Never raises: unrecognized tags, including values of the wrong kind,
    map to ``UNKNOWN``.
    """
    if wire_type is None or isinstance(wire_type, bool):
        return UNKNOWN

    if isinstance(wire_type, int):
        name = MYSQL_FIELD_TYPES.get(wire_type)
        if name is None:
            return UNKNOWN
    else:
        try:
            name = str(wire_type)
        except Exception:
            # Arbitrary objects may refuse str(); the mapping stays total
            return UNKNOWN

    return TYPE_MAP.get(normalize_type_name(name), UNKNOWN)
