# File: entigen/column_types.py
"""
entigen - Type Mapper
=====================
Static lookup from a native column type name (as reported by the database)
to the TypeScript type used for the generated entity property.

The table covers the SQL Server family the generator was first written for
plus the generic names SQLAlchemy reflection reports for other dialects.
Lookups are case-insensitive and ignore any ``(length)`` suffix.
"""

from __future__ import annotations

import functools
import logging
from typing import Dict, FrozenSet, List, Optional

logger: logging.Logger = logging.getLogger("entigen.column_types")

NUMBER: str = "number"
BOOLEAN: str = "boolean"
STRING: str = "string"
DATE: str = "Date"
BUFFER: str = "Buffer"

# Fallback for native types without a mapping.
UNKNOWN: str = "any"

SEMANTIC_TYPES: Dict[str, str] = {
    # Numeric
    "int": NUMBER,
    "integer": NUMBER,
    "bigint": NUMBER,
    "biginteger": NUMBER,
    "smallint": NUMBER,
    "smallinteger": NUMBER,
    "tinyint": NUMBER,
    "money": NUMBER,
    "smallmoney": NUMBER,
    "float": NUMBER,
    "real": NUMBER,
    "double": NUMBER,
    "double_precision": NUMBER,
    "decimal": NUMBER,
    "numeric": NUMBER,
    # Boolean
    "bit": BOOLEAN,
    "boolean": BOOLEAN,
    # Textual
    "char": STRING,
    "nchar": STRING,
    "varchar": STRING,
    "nvarchar": STRING,
    "text": STRING,
    "ntext": STRING,
    "string": STRING,
    "clob": STRING,
    "xml": STRING,
    "uniqueidentifier": STRING,
    "uuid": STRING,
    # Temporal
    "date": DATE,
    "time": DATE,
    "timestamp": DATE,
    "datetime": DATE,
    "datetime2": DATE,
    "smalldatetime": DATE,
    "datetimeoffset": DATE,
    # Binary
    "binary": BUFFER,
    "varbinary": BUFFER,
    "image": BUFFER,
    "blob": BUFFER,
    "largebinary": BUFFER,
}

# Types whose reported length is a storage detail, not a column option.
UNBOUNDED_TYPES: FrozenSet[str] = frozenset({"text", "ntext", "image", "xml", "clob", "blob"})

# Types that carry precision / scale in the generated column options.
DECIMAL_TYPES: FrozenSet[str] = frozenset({"decimal", "numeric"})


@functools.lru_cache(maxsize=None)
def normalise_type_name(native_type: str) -> str:
    """``'NVARCHAR(50)'`` → ``'nvarchar'``."""
    return native_type.split("(")[0].strip().lower()


def lookup_semantic_type(native_type: Optional[str]) -> Optional[str]:
    """Return the mapped TypeScript type, or ``None`` when the type is unknown."""
    if not native_type:
        return None
    return SEMANTIC_TYPES.get(normalise_type_name(native_type))


def semantic_type(native_type: Optional[str]) -> str:
    """Like ``lookup_semantic_type`` but falls back to ``any``."""
    mapped: Optional[str] = lookup_semantic_type(native_type)
    if mapped is None:
        logger.debug("No semantic type for native type %r; using %r.", native_type, UNKNOWN)
        return UNKNOWN
    return mapped


__all__: List[str] = [
    "SEMANTIC_TYPES",
    "UNBOUNDED_TYPES",
    "DECIMAL_TYPES",
    "UNKNOWN",
    "normalise_type_name",
    "lookup_semantic_type",
    "semantic_type",
]
